# ============================================================================
# INSTANCE SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Service - Instance lifecycle
# PURPOSE: Instantiate templates, complete/skip steps, cancel instances
# CREATED: 16 OCT 2026
# ============================================================================
"""
Instance Service

Caller-side lifecycle of a workflow instance:
- Instantiate an active template (context defaults + validation)
- Complete a READY step with its outcome, select branches, recompute
- Skip an optional step manually
- Cancel an instance

Every operation takes a full instance snapshot and returns a new one.
Nothing is persisted here; the caller writes the returned snapshot and
must serialize writes per instance (read states -> compute -> write is
expected to be atomic on the caller's side).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from core.contracts import InstanceStatus, StepState
from core.errors import (
    ContextValidationFailed,
    StepNotFoundError,
    StepTransitionError,
    TemplateNotActiveError,
)
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    EvaluationAnomaly,
    StallWarning,
    StepDefinition,
    StepRuntimeState,
    WorkflowInstance,
    WorkflowTemplate,
)
from core.observability import record_transition
from engine import BranchSelection, ReadinessResult, WorkflowEngine, get_engine

logger = get_logger(__name__, ComponentType.SERVICE)


@dataclass
class InstanceTransition:
    """New snapshot plus what changed to produce it."""
    instance: WorkflowInstance
    step_id: Optional[str] = None
    newly_ready: Set[str] = field(default_factory=set)
    newly_skipped: Set[str] = field(default_factory=set)
    warnings: List[StallWarning] = field(default_factory=list)
    anomalies: List[EvaluationAnomaly] = field(default_factory=list)
    branch_selection: Optional[BranchSelection] = None

    @property
    def completed(self) -> bool:
        return self.instance.status == InstanceStatus.COMPLETED


class InstanceService:
    """Service for workflow instance transitions."""

    def __init__(self, engine: Optional[WorkflowEngine] = None):
        self.engine = engine or get_engine()

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def instantiate(
        self,
        template: WorkflowTemplate,
        context: Optional[Mapping[str, Any]] = None,
        instance_id: Optional[str] = None,
    ) -> InstanceTransition:
        """
        Create an instance of an active template.

        Every step starts PENDING; the initial recompute marks steps with
        no predecessors READY (or SKIPPED when their guard is false).

        Args:
            template: Active template
            context: Initial runtime context (contact/matter attributes)
            instance_id: Optional explicit instance id

        Raises:
            TemplateNotActiveError: If the template is still a draft
            ContextValidationFailed: If the context violates the schema
        """
        if not template.is_active:
            raise TemplateNotActiveError(
                f"Template {template.template_id} v{template.version} is not active"
            )

        initial = self._prepare_context(template, dict(context or {}))

        fields: Dict[str, Any] = {
            "template_id": template.template_id,
            "template_version": template.version,
            "steps": {step.id: StepRuntimeState() for step in template.steps},
            "context": initial,
        }
        if instance_id:
            fields["instance_id"] = instance_id
        instance = WorkflowInstance(**fields)

        with log_context(
            template_id=template.template_id,
            template_version=template.version,
            instance_id=instance.instance_id,
        ):
            log_checkpoint("instance_created", {"steps": len(template.steps)})
            transition = self._advance(template, instance)

        return transition

    def complete_step(
        self,
        instance: WorkflowInstance,
        template: WorkflowTemplate,
        step_id: str,
        outcome: Any = None,
        context_updates: Optional[Mapping[str, Any]] = None,
    ) -> InstanceTransition:
        """
        Record a READY step as COMPLETED and recompute readiness.

        Args:
            instance: Current snapshot
            template: Template the instance runs
            step_id: Completed step
            outcome: Outcome reported by the action handler
            context_updates: Values the action contributes to the context

        Raises:
            StepNotFoundError: If the step is not part of the template
            StepTransitionError: If the step is not READY or the instance
                was cancelled
            ContextValidationFailed: If the updates violate the schema
        """
        self._check_instance(instance, template)
        step = self._get_step(template, step_id)
        runtime = instance.steps.get(step_id, StepRuntimeState())

        if runtime.state != StepState.READY:
            raise StepTransitionError(
                f"Step {step_id} is {runtime.state.value}; only READY steps can be completed"
            )

        with log_context(
            template_id=template.template_id,
            template_version=template.version,
            instance_id=instance.instance_id,
            step_id=step_id,
        ):
            if context_updates:
                merged = {**instance.context, **context_updates}
                instance = instance.with_context(self._prepare_context(template, merged))

            eval_context = self.engine.evaluation_context(template, instance)
            selection = self.engine.select(template, step, outcome, eval_context)

            instance = instance.with_step(
                step_id,
                runtime.transition(
                    StepState.COMPLETED,
                    outcome=outcome,
                    taken_targets=list(selection.taken),
                ),
            )
            record_transition(step.action_type, StepState.READY, StepState.COMPLETED)
            log_checkpoint("step_completed", {"taken": selection.taken})

            transition = self._advance(template, instance)
            transition.step_id = step_id
            transition.branch_selection = selection
            transition.anomalies = selection.anomalies + transition.anomalies
            if selection.warning is not None:
                transition.warnings.insert(0, selection.warning)

        return transition

    def skip_step(
        self,
        instance: WorkflowInstance,
        template: WorkflowTemplate,
        step_id: str,
        allow_required: bool = False,
    ) -> InstanceTransition:
        """
        Manually skip a PENDING or READY step and recompute readiness.

        Raises:
            StepNotFoundError: If the step is not part of the template
            StepTransitionError: If the step is terminal, required (unless
                allow_required), or the instance was cancelled
        """
        self._check_instance(instance, template)
        step = self._get_step(template, step_id)
        runtime = instance.steps.get(step_id, StepRuntimeState())

        if runtime.is_terminal:
            raise StepTransitionError(f"Step {step_id} is already {runtime.state.value}")
        if step.required and not allow_required:
            raise StepTransitionError(f"Step {step_id} is required and cannot be skipped")

        with log_context(instance_id=instance.instance_id, step_id=step_id):
            instance = instance.with_step(step_id, runtime.transition(StepState.SKIPPED))
            record_transition(step.action_type, runtime.state, StepState.SKIPPED)
            logger.info(f"Step {step_id} skipped manually")

            transition = self._advance(template, instance)
            transition.step_id = step_id

        return transition

    def cancel(self, instance: WorkflowInstance, reason: Optional[str] = None) -> WorkflowInstance:
        """
        Cancel an instance: every PENDING or READY step becomes SKIPPED.

        Cancelling a cancelled instance returns it unchanged.
        """
        if instance.status == InstanceStatus.CANCELLED:
            return instance

        open_steps = instance.step_ids_in(StepState.PENDING, StepState.READY)
        cancelled = instance.with_states({step_id: StepState.SKIPPED for step_id in open_steps})
        cancelled = cancelled.model_copy(update={
            "status": InstanceStatus.CANCELLED,
            "completed_at": datetime.now(timezone.utc),
        })

        with log_context(instance_id=instance.instance_id):
            log_checkpoint("instance_cancelled", {"skipped": len(open_steps), "reason": reason})

        return cancelled

    # ------------------------------------------------------------------
    # QUERIES
    # ------------------------------------------------------------------

    def is_complete(self, template: WorkflowTemplate, instance: WorkflowInstance) -> bool:
        """True when every required step is COMPLETED or SKIPPED."""
        return all(
            instance.state_of(step.id).is_terminal()
            for step in template.steps
            if step.required
        )

    def ready_steps(self, template: WorkflowTemplate, instance: WorkflowInstance) -> List[StepDefinition]:
        """READY steps in template order, for dispatch."""
        return [
            step for step in template.ordered_steps()
            if instance.state_of(step.id) == StepState.READY
        ]

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    def _advance(self, template: WorkflowTemplate, instance: WorkflowInstance) -> InstanceTransition:
        """Recompute readiness, apply it and close the instance when done."""
        result: ReadinessResult = self.engine.recompute(template, instance)
        instance = result.apply(instance)

        steps = {step.id: step for step in template.steps}
        for step_id in sorted(result.newly_ready):
            record_transition(steps[step_id].action_type, StepState.PENDING, StepState.READY)
        for step_id in sorted(result.newly_skipped):
            record_transition(steps[step_id].action_type, StepState.PENDING, StepState.SKIPPED)

        for warning in result.warnings:
            logger.warning(warning.message, extra={"kind": warning.kind.value, "steps": warning.step_ids})

        if instance.status == InstanceStatus.ACTIVE and self.is_complete(template, instance):
            instance = instance.model_copy(update={
                "status": InstanceStatus.COMPLETED,
                "completed_at": datetime.now(timezone.utc),
            })
            log_checkpoint("instance_completed")

        return InstanceTransition(
            instance=instance,
            newly_ready=set(result.newly_ready),
            newly_skipped=set(result.newly_skipped),
            warnings=list(result.warnings),
            anomalies=list(result.anomalies),
        )

    def _prepare_context(self, template: WorkflowTemplate, context: Dict[str, Any]) -> Dict[str, Any]:
        schema = template.context_schema
        if schema is None:
            return context

        context = schema.apply_defaults(context)
        errors = schema.validate_context(context)
        if errors:
            raise ContextValidationFailed(errors)
        return context

    def _check_instance(self, instance: WorkflowInstance, template: WorkflowTemplate) -> None:
        if instance.status == InstanceStatus.CANCELLED:
            raise StepTransitionError(f"Instance {instance.instance_id} is cancelled")
        if instance.template_id != template.template_id:
            raise StepTransitionError(
                f"Instance {instance.instance_id} runs template {instance.template_id}, "
                f"not {template.template_id}"
            )

    def _get_step(self, template: WorkflowTemplate, step_id: str) -> StepDefinition:
        try:
            return template.get_step(step_id)
        except KeyError:
            raise StepNotFoundError(
                f"Step {step_id} not found in template {template.template_id}"
            ) from None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["InstanceService", "InstanceTransition"]
