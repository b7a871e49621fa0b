# ============================================================================
# WORKFLOW TEMPLATE MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core model - Workflow template/blueprint
# PURPOSE: Define steps, dependency edges and guards of a template
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: StepDefinition, DependencyEdge, WorkflowTemplate
# DEPENDENCIES: pydantic
# ============================================================================
"""
Workflow Template Models

A WorkflowTemplate is the blueprint instances are created from.
It defines:
- What steps exist and what kind of work each represents
- Precedence edges between steps
- Guard conditions and branch routing

Templates are authored as drafts, validated, then activated. An active
template is immutable: changes produce a new version with a new id.

Template documents use camelCase keys (actionType, conditionConfig);
snake_case is accepted as well.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.contracts import (
    ActionType,
    ConditionType,
    DependencyLogic,
    DependencyType,
    RoleScope,
)
from core.models.condition import Condition, SwitchBranch
from core.models.context_schema import ContextSchema


_TEMPLATE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
)


class StepDefinition(BaseModel):
    """
    Definition of a single step in a template.

    This is the TEMPLATE - what the step is and when it may run.
    StepRuntimeState (in instance.py) is the INSTANCE - runtime state.
    """
    model_config = _TEMPLATE_CONFIG

    id: str = Field(..., min_length=1, max_length=64)
    order: int = Field(default=0, ge=0, description="Display/tie-break hint only")
    title: Optional[str] = None

    # Work payload (opaque to the engine)
    action_type: ActionType = ActionType.TASK
    action_config: Dict[str, Any] = Field(default_factory=dict)
    role_scope: RoleScope = RoleScope.LAWYER
    required: bool = True

    # Own eligibility guard
    condition_type: ConditionType = ConditionType.ALWAYS
    condition_config: Optional[Condition] = None

    # Predecessor combination
    dependency_logic: DependencyLogic = DependencyLogic.ALL
    custom_condition: Optional[Condition] = None

    # SWITCH routing
    branches: List[SwitchBranch] = Field(default_factory=list)

    @property
    def label(self) -> str:
        return self.title or self.id

    @property
    def is_switch(self) -> bool:
        return self.condition_type == ConditionType.SWITCH


class DependencyEdge(BaseModel):
    """Directed precedence relation: source must resolve before target."""
    model_config = _TEMPLATE_CONFIG

    id: Optional[str] = None
    source: str = Field(
        ...,
        validation_alias=AliasChoices("source", "sourceStepId", "source_step_id"),
    )
    target: str = Field(
        ...,
        validation_alias=AliasChoices("target", "targetStepId", "target_step_id"),
    )
    dependency_type: DependencyType = DependencyType.DEPENDS_ON


class WorkflowTemplate(BaseModel):
    """
    Complete template definition.

    Immutable once activated - changes require new version.
    """
    model_config = _TEMPLATE_CONFIG

    template_id: str = Field(default_factory=lambda: uuid.uuid4().hex, max_length=64)
    name: str = Field(..., max_length=128)
    description: Optional[str] = None
    version: int = Field(default=1, ge=1)
    is_active: bool = False

    steps: List[StepDefinition] = Field(default_factory=list)
    edges: List[DependencyEdge] = Field(
        default_factory=list,
        validation_alias=AliasChoices("edges", "dependencies"),
    )
    context_schema: Optional[ContextSchema] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    activated_at: Optional[datetime] = None

    def get_step(self, step_id: str) -> StepDefinition:
        """Get a step definition by ID."""
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(f"Step '{step_id}' not found in template '{self.template_id}'")

    def has_step(self, step_id: str) -> bool:
        return any(step.id == step_id for step in self.steps)

    @property
    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]

    def ordered_steps(self) -> List[StepDefinition]:
        """Steps sorted by (order, id) for deterministic iteration."""
        return sorted(self.steps, key=lambda s: (s.order, s.id))

    def activate(self) -> "WorkflowTemplate":
        """Return an activated copy. Validation is the caller's job."""
        if self.is_active:
            return self
        return self.model_copy(update={
            "is_active": True,
            "activated_at": datetime.now(timezone.utc),
        })

    def new_version(self, template_id: Optional[str] = None) -> "WorkflowTemplate":
        """Return a draft copy with a new id and incremented version."""
        return self.model_copy(update={
            "template_id": template_id or uuid.uuid4().hex,
            "version": self.version + 1,
            "is_active": False,
            "created_at": datetime.now(timezone.utc),
            "activated_at": None,
        })


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["StepDefinition", "DependencyEdge", "WorkflowTemplate"]
