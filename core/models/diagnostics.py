# ============================================================================
# ENGINE DIAGNOSTICS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core model - Validation errors, stall warnings, anomalies
# PURPOSE: Non-exception diagnostics returned by the engine
# LAST_REVIEWED: 15 OCT 2026
# EXPORTS: ValidationErrorKind, TemplateValidationError, ValidationReport,
#          StallWarningKind, StallWarning, AnomalyKind, EvaluationAnomaly
# DEPENDENCIES: pydantic, enum
# ============================================================================
"""
Engine Diagnostics

The engine reports problems as values, not exceptions:

- TemplateValidationError: authoring-time, collected into a list so the
  author sees every problem at once. The template stays in draft.
- StallWarning: runtime, non-fatal. The instance keeps its current state.
- EvaluationAnomaly: runtime, a condition could not be evaluated normally
  (missing field, incomparable operands). Resolved fail-closed; logged.

Each kind maps to a distinct user-facing message in the authoring UI.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# VALIDATION
# ============================================================================

class ValidationErrorKind(str, Enum):
    """Distinct template validation failures."""
    CYCLE_DETECTED = "CYCLE_DETECTED"
    UNKNOWN_STEP_REFERENCE = "UNKNOWN_STEP_REFERENCE"
    COMPOUND_ARITY_VIOLATION = "COMPOUND_ARITY_VIOLATION"
    NESTING_DEPTH_EXCEEDED = "NESTING_DEPTH_EXCEEDED"
    UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"
    MISSING_CONDITION_CONFIG = "MISSING_CONDITION_CONFIG"
    DUPLICATE_SWITCH_TARGET = "DUPLICATE_SWITCH_TARGET"
    DUPLICATE_STEP_ID = "DUPLICATE_STEP_ID"
    EMPTY_TEMPLATE = "EMPTY_TEMPLATE"
    MISSING_CONDITION_VALUE = "MISSING_CONDITION_VALUE"
    UNEXPECTED_CONDITION_CONFIG = "UNEXPECTED_CONDITION_CONFIG"
    INVALID_SWITCH_BRANCHES = "INVALID_SWITCH_BRANCHES"
    MISSING_SWITCH_DEFAULT = "MISSING_SWITCH_DEFAULT"
    DUPLICATE_EDGE = "DUPLICATE_EDGE"


class TemplateValidationError(BaseModel):
    """A single problem found in a template."""
    kind: ValidationErrorKind
    message: str
    step_ids: List[str] = Field(default_factory=list)
    path: Optional[str] = Field(
        default=None,
        description="Location inside the template, e.g. steps[S3].condition_config",
    )

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


# ============================================================================
# STALL WARNINGS
# ============================================================================

class StallWarningKind(str, Enum):
    NO_BRANCH_MATCHED = "NO_BRANCH_MATCHED"            # SWITCH matched nothing, no default
    INSTANCE_STALLED = "INSTANCE_STALLED"              # Pending steps, nothing READY
    STEP_UNREACHABLE = "STEP_UNREACHABLE"              # Dependency logic can never pass
    SWITCH_WITHOUT_DEFAULT = "SWITCH_WITHOUT_DEFAULT"  # Authoring-time hint


class StallWarning(BaseModel):
    """Non-fatal diagnostic about lack of forward progress."""
    kind: StallWarningKind
    message: str
    step_ids: List[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """Errors block activation; warnings do not."""
    errors: List[TemplateValidationError] = Field(default_factory=list)
    warnings: List[StallWarning] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def kinds(self) -> List[ValidationErrorKind]:
        return [error.kind for error in self.errors]


# ============================================================================
# EVALUATION ANOMALIES
# ============================================================================

class AnomalyKind(str, Enum):
    MISSING_FIELD = "MISSING_FIELD"
    INCOMPARABLE_OPERANDS = "INCOMPARABLE_OPERANDS"
    INVALID_OPERAND = "INVALID_OPERAND"
    UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"


class EvaluationAnomaly(BaseModel):
    """A condition evaluated fail-closed instead of normally."""
    kind: AnomalyKind
    field: Optional[str] = None
    operator: Optional[str] = None
    detail: Optional[Any] = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ValidationErrorKind",
    "TemplateValidationError",
    "ValidationReport",
    "StallWarningKind",
    "StallWarning",
    "AnomalyKind",
    "EvaluationAnomaly",
]
