# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 15 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the workflow engine:
    - condition: recursive predicate union and SWITCH branches
    - template: steps, dependency edges, templates (immutable once active)
    - instance: per-step runtime state and instance snapshots
    - context_schema: declared runtime context fields
    - diagnostics: validation errors, stall warnings, anomalies
"""

from core.models.condition import (
    Condition,
    CompoundCondition,
    SimpleCondition,
    SwitchBranch,
    iter_simple_conditions,
    parse_condition,
)
from core.models.context_schema import (
    ContextFieldDefinition,
    ContextFieldError,
    ContextFieldType,
    ContextSchema,
)
from core.models.template import DependencyEdge, StepDefinition, WorkflowTemplate
from core.models.instance import StepRuntimeState, WorkflowInstance
from core.models.diagnostics import (
    AnomalyKind,
    EvaluationAnomaly,
    StallWarning,
    StallWarningKind,
    TemplateValidationError,
    ValidationErrorKind,
    ValidationReport,
)

__all__ = [
    # Conditions
    "Condition",
    "CompoundCondition",
    "SimpleCondition",
    "SwitchBranch",
    "iter_simple_conditions",
    "parse_condition",
    # Context schema
    "ContextFieldDefinition",
    "ContextFieldError",
    "ContextFieldType",
    "ContextSchema",
    # Template
    "DependencyEdge",
    "StepDefinition",
    "WorkflowTemplate",
    # Instance
    "StepRuntimeState",
    "WorkflowInstance",
    # Diagnostics
    "AnomalyKind",
    "EvaluationAnomaly",
    "StallWarning",
    "StallWarningKind",
    "TemplateValidationError",
    "ValidationErrorKind",
    "ValidationReport",
]
