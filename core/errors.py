# ============================================================================
# ENGINE EXCEPTIONS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Foundation - Caller-side exception hierarchy
# PURPOSE: Exceptions raised by the template and instance services
# LAST_REVIEWED: 15 OCT 2026
# ============================================================================
"""
Exceptions raised at the service boundary.

The pure engine components never raise for bad input; they return
diagnostics. These exceptions are for callers that attempt an operation
the lifecycle does not permit (activating an invalid template, completing
a step that is not READY, ...). The API layer maps them to HTTP statuses.
"""

from typing import List, Optional

from core.models.context_schema import ContextFieldError
from core.models.diagnostics import TemplateValidationError


class WorkflowEngineError(Exception):
    """Base class for all engine errors."""
    status_code = 400


class TemplateNotFoundError(WorkflowEngineError, KeyError):
    status_code = 404

    def __str__(self) -> str:
        return Exception.__str__(self)


class TemplateImmutableError(WorkflowEngineError):
    """An active template cannot be edited; create a new version."""
    status_code = 409


class TemplateNotActiveError(WorkflowEngineError):
    """Instances can only be created from an active template."""
    status_code = 409


class TemplateValidationFailed(WorkflowEngineError):
    """Template failed validation; carries every error found."""
    status_code = 422

    def __init__(self, errors: List[TemplateValidationError], template_id: Optional[str] = None):
        self.errors = list(errors)
        self.template_id = template_id
        summary = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Template {template_id or ''} failed validation: {summary}".strip())


class StepNotFoundError(WorkflowEngineError, KeyError):
    status_code = 404

    def __str__(self) -> str:
        return Exception.__str__(self)


class StepTransitionError(WorkflowEngineError):
    """Requested step transition is not permitted."""
    status_code = 409


class ContextValidationFailed(WorkflowEngineError):
    """Runtime context does not satisfy the template's context schema."""
    status_code = 422

    def __init__(self, errors: List[ContextFieldError]):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Invalid workflow context: {summary}")


__all__ = [
    "WorkflowEngineError",
    "TemplateNotFoundError",
    "TemplateImmutableError",
    "TemplateNotActiveError",
    "TemplateValidationFailed",
    "StepNotFoundError",
    "StepTransitionError",
    "ContextValidationFailed",
]
