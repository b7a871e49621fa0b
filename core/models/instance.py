# ============================================================================
# WORKFLOW INSTANCE MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core model - Instance runtime state
# PURPOSE: Track per-step state, outcomes and runtime context of an instance
# LAST_REVIEWED: 15 OCT 2026
# EXPORTS: StepRuntimeState, WorkflowInstance
# DEPENDENCIES: pydantic
# ============================================================================
"""
Workflow Instance Model

Key concept:
- WorkflowTemplate.StepDefinition = TEMPLATE (what to do)
- StepRuntimeState = INSTANCE (runtime state for one execution)

Instances are snapshots. The engine never mutates a snapshot it was given;
every transition returns a new WorkflowInstance. The caller persists the
result and serializes writes per instance.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from core.contracts import InstanceStatus, StepState


class StepRuntimeState(BaseModel):
    """
    Runtime state of a step within an instance.

    Lifecycle:
        1. Created with state=PENDING when the instance starts
        2. Transitions to READY when dependencies and own guard pass
        3. Transitions to COMPLETED when the action handler reports back
        4. Transitions to SKIPPED when its guard is false, its branch was
           not taken, or an operator skips an optional step
    """
    model_config = {"frozen": True}

    state: StepState = StepState.PENDING
    outcome: Any = None
    taken_targets: Optional[List[str]] = Field(
        default=None,
        description="Branch targets activated when a branching step completed",
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    def can_transition_to(self, new_state: StepState) -> bool:
        """
        Validate if a state transition is allowed.

        Valid transitions:
            PENDING -> READY, SKIPPED
            READY -> COMPLETED, SKIPPED
            COMPLETED, SKIPPED -> (none, terminal)
        """
        if self.state == new_state:
            return True

        allowed = {
            StepState.PENDING: {StepState.READY, StepState.SKIPPED},
            StepState.READY: {StepState.COMPLETED, StepState.SKIPPED},
            StepState.COMPLETED: set(),
            StepState.SKIPPED: set(),
        }
        return new_state in allowed.get(self.state, set())

    def transition(self, new_state: StepState, **updates: Any) -> "StepRuntimeState":
        """Return a copy in new_state, raising on an illegal transition."""
        if not self.can_transition_to(new_state):
            raise ValueError(f"Cannot transition from {self.state.value} to {new_state.value}")
        return self.model_copy(update={
            "state": new_state,
            "updated_at": datetime.now(timezone.utc),
            **updates,
        })


class WorkflowInstance(BaseModel):
    """One execution of a template against a matter/contact."""
    model_config = {"frozen": True}

    instance_id: str = Field(default_factory=lambda: uuid.uuid4().hex, max_length=64)
    template_id: str = Field(..., max_length=64)
    template_version: int = Field(default=1, ge=1)
    status: InstanceStatus = InstanceStatus.ACTIVE

    steps: Dict[str, StepRuntimeState] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def state_of(self, step_id: str) -> StepState:
        """State of a step; steps unknown to the snapshot count as PENDING."""
        runtime = self.steps.get(step_id)
        return runtime.state if runtime else StepState.PENDING

    def step_ids_in(self, *states: StepState) -> List[str]:
        return [step_id for step_id, runtime in self.steps.items() if runtime.state in states]

    def with_states(self, states: Mapping[str, StepState]) -> "WorkflowInstance":
        """Return a copy with the given step states applied (monotonic only)."""
        steps = dict(self.steps)
        for step_id, new_state in states.items():
            current = steps.get(step_id, StepRuntimeState())
            if current.state != new_state:
                steps[step_id] = current.transition(new_state)
        return self.model_copy(update={"steps": steps})

    def with_step(self, step_id: str, runtime: StepRuntimeState) -> "WorkflowInstance":
        steps = dict(self.steps)
        steps[step_id] = runtime
        return self.model_copy(update={"steps": steps})

    def with_context(self, updates: Mapping[str, Any]) -> "WorkflowInstance":
        """Return a copy with context updates merged in."""
        if not updates:
            return self
        return self.model_copy(update={"context": {**self.context, **updates}})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["StepRuntimeState", "WorkflowInstance"]
