# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Foundation - Core enums shared by templates, instances and engine
# PURPOSE: Define step states, condition/dependency enums and operator sets
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: StepState, InstanceStatus, ConditionType, DependencyType,
#          DependencyLogic, ActionType, RoleScope, operator sets
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the workflow engine.

These enums cross every boundary of the engine:
- Template authoring (JSON/YAML documents)
- Instance snapshots supplied by the caller
- Engine results returned to the caller

Values are the upper-case tags used by the matter management application.
"""

from enum import Enum
from typing import FrozenSet


# ============================================================================
# STATE ENUMS
# ============================================================================

class StepState(str, Enum):
    """
    Step lifecycle states within an instance.

    State transitions (monotonic, never reverted):
        PENDING -> READY -> COMPLETED
                         -> SKIPPED
                -> SKIPPED (own condition false / unreachable)
    """
    PENDING = "PENDING"          # Waiting for dependencies
    READY = "READY"              # Dependencies met, may be dispatched
    COMPLETED = "COMPLETED"      # Finished, outcome recorded
    SKIPPED = "SKIPPED"          # Not executed (condition false / branch not taken)

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (StepState.COMPLETED, StepState.SKIPPED)


class InstanceStatus(str, Enum):
    """
    Instance lifecycle states.

    State transitions:
        ACTIVE -> COMPLETED (every required step terminal)
               -> CANCELLED (external overwrite)
    """
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    def is_terminal(self) -> bool:
        return self in (InstanceStatus.COMPLETED, InstanceStatus.CANCELLED)


# ============================================================================
# TEMPLATE ENUMS
# ============================================================================

class ConditionType(str, Enum):
    """Whether a step's own eligibility is gated by a predicate."""
    ALWAYS = "ALWAYS"
    IF_TRUE = "IF_TRUE"
    IF_FALSE = "IF_FALSE"
    SWITCH = "SWITCH"


class DependencyType(str, Enum):
    """
    Edge types between two steps.

    DEPENDS_ON and TRIGGERS express the same precedence relation from
    opposite ends. The *_BRANCH types only count when their branch is taken.
    """
    DEPENDS_ON = "DEPENDS_ON"
    TRIGGERS = "TRIGGERS"
    IF_TRUE_BRANCH = "IF_TRUE_BRANCH"
    IF_FALSE_BRANCH = "IF_FALSE_BRANCH"

    def is_branch(self) -> bool:
        return self in (DependencyType.IF_TRUE_BRANCH, DependencyType.IF_FALSE_BRANCH)


class DependencyLogic(str, Enum):
    """How a target step combines its predecessors."""
    ALL = "ALL"          # Every predecessor COMPLETED
    ANY = "ANY"          # At least one predecessor COMPLETED
    CUSTOM = "CUSTOM"    # Condition over predecessor outcomes


class ActionType(str, Enum):
    """Kind of work a step represents. Opaque to the engine."""
    APPROVAL = "APPROVAL"
    SIGNATURE = "SIGNATURE"
    REQUEST_DOC = "REQUEST_DOC"
    PAYMENT = "PAYMENT"
    TASK = "TASK"
    CHECKLIST = "CHECKLIST"
    WRITE_TEXT = "WRITE_TEXT"
    POPULATE_QUESTIONNAIRE = "POPULATE_QUESTIONNAIRE"
    AUTOMATION_EMAIL = "AUTOMATION_EMAIL"
    AUTOMATION_WEBHOOK = "AUTOMATION_WEBHOOK"


class RoleScope(str, Enum):
    """Role responsible for executing a step."""
    ADMIN = "ADMIN"
    LAWYER = "LAWYER"
    PARALEGAL = "PARALEGAL"
    CLIENT = "CLIENT"


# ============================================================================
# CONDITION OPERATORS
# ============================================================================

# Operators that inspect presence only and take no value
EXISTENCE_OPERATORS: FrozenSet[str] = frozenset({
    "exists",
    "notExists",
    "isEmpty",
    "isNotEmpty",
})

COMPARISON_OPERATORS: FrozenSet[str] = frozenset({"==", "!=", ">", "<", ">=", "<="})

STRING_OPERATORS: FrozenSet[str] = frozenset({"contains", "startsWith", "endsWith"})

MEMBERSHIP_OPERATORS: FrozenSet[str] = frozenset({"in", "notIn"})

SIMPLE_OPERATORS: FrozenSet[str] = (
    COMPARISON_OPERATORS | STRING_OPERATORS | MEMBERSHIP_OPERATORS | EXISTENCE_OPERATORS
)

COMPOUND_OPERATORS: FrozenSet[str] = frozenset({"AND", "OR"})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "StepState",
    "InstanceStatus",
    "ConditionType",
    "DependencyType",
    "DependencyLogic",
    "ActionType",
    "RoleScope",
    "EXISTENCE_OPERATORS",
    "COMPARISON_OPERATORS",
    "STRING_OPERATORS",
    "MEMBERSHIP_OPERATORS",
    "SIMPLE_OPERATORS",
    "COMPOUND_OPERATORS",
]
