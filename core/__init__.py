# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core module initialization
# PURPOSE: Export core contracts and models
# LAST_REVIEWED: 15 OCT 2026
# ============================================================================

from core.contracts import (
    ConditionType,
    DependencyLogic,
    DependencyType,
    InstanceStatus,
    StepState,
)
from core.models import (
    Condition,
    DependencyEdge,
    StepDefinition,
    StepRuntimeState,
    TemplateValidationError,
    WorkflowInstance,
    WorkflowTemplate,
)

__all__ = [
    # Enums
    "ConditionType",
    "DependencyLogic",
    "DependencyType",
    "InstanceStatus",
    "StepState",
    # Models
    "Condition",
    "DependencyEdge",
    "StepDefinition",
    "StepRuntimeState",
    "TemplateValidationError",
    "WorkflowInstance",
    "WorkflowTemplate",
]
