# ============================================================================
# READINESS RESOLVER
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Readiness propagation
# PURPOSE: Compute which PENDING steps become READY or SKIPPED
# CREATED: 16 OCT 2026
# ============================================================================
"""
Readiness Resolver

Given a template and an instance snapshot, computes the steps that newly
become READY or SKIPPED. The snapshot is not modified; the caller applies
the result and persists it.

For every PENDING step:
1. Each incoming edge yields a signal:
   - SATISFIED: source COMPLETED (and, for a branch edge, the branch fired)
   - SKIPPED: source SKIPPED, or branch edge not taken
   - PENDING: source PENDING or READY
2. Dependency logic turns the signals into a verdict:
   - ALL: any SKIPPED -> unreachable, any PENDING -> wait, else eligible
   - ANY: any SATISFIED -> eligible, any PENDING -> wait, else unreachable
   - CUSTOM: condition true -> eligible, predecessors still running -> wait,
     else unreachable
3. Eligible steps check their own guard: pass -> READY, fail -> SKIPPED.
4. Unreachable steps become SKIPPED (or stay PENDING with a warning).

SKIPPED propagates: the pass repeats until no step changes. Signals only
ever move from PENDING to SATISFIED/SKIPPED, so the result does not depend
on the order steps are visited or completions arrive.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from core.config import ConditionDefaults, ReadinessDefaults, get_defaults
from core.contracts import ConditionType, DependencyLogic, StepState
from core.models import (
    EvaluationAnomaly,
    StallWarning,
    StallWarningKind,
    StepDefinition,
    WorkflowInstance,
    WorkflowTemplate,
    iter_simple_conditions,
)
from core.observability import get_metrics
from engine.branches import BranchSelector
from engine.conditions import ConditionEvaluator, build_evaluation_context
from engine.graph import DependencyGraph, GraphBuilder, GraphEdge

logger = logging.getLogger(__name__)


class Signal(str, Enum):
    """What an incoming edge contributes to its target's readiness."""
    SATISFIED = "SATISFIED"
    SKIPPED = "SKIPPED"
    PENDING = "PENDING"


class Verdict(str, Enum):
    ELIGIBLE = "ELIGIBLE"
    WAIT = "WAIT"
    UNREACHABLE = "UNREACHABLE"


@dataclass
class ReadinessResult:
    """Outcome of one recompute pass."""
    newly_ready: Set[str] = field(default_factory=set)
    newly_skipped: Set[str] = field(default_factory=set)
    # Full step state map after the pass
    states: Dict[str, StepState] = field(default_factory=dict)
    warnings: List[StallWarning] = field(default_factory=list)
    anomalies: List[EvaluationAnomaly] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.newly_ready or self.newly_skipped)

    def apply(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Return the instance with the newly READY/SKIPPED states applied."""
        if not self.changed:
            return instance
        return instance.with_states({
            step_id: self.states[step_id]
            for step_id in self.newly_ready | self.newly_skipped
        })


@dataclass
class DependencyStatus:
    """Progress of one step's dependencies, for the task UI."""
    step_id: str
    title: str
    logic: DependencyLogic
    is_satisfied: bool
    dependency_count: int
    completed_count: int
    # Sources not yet COMPLETED, skipped ones included
    pending_dependencies: List[str] = field(default_factory=list)


@dataclass
class _Pass:
    """Working state of a single recompute."""
    template: WorkflowTemplate
    instance: WorkflowInstance
    graph: DependencyGraph
    steps: Dict[str, StepDefinition]
    states: Dict[str, StepState]
    context: Dict[str, Any]
    result: ReadinessResult
    taken: Dict[str, Set[str]] = field(default_factory=dict)


class ReadinessResolver:
    """
    Recomputes step readiness.

    Usage:
        resolver = ReadinessResolver()
        result = resolver.recompute(template, instance)
        instance = result.apply(instance)
        for step_id in result.newly_ready:
            dispatch(step_id)
    """

    def __init__(
        self,
        evaluator: Optional[ConditionEvaluator] = None,
        branch_selector: Optional[BranchSelector] = None,
        condition_defaults: Optional[ConditionDefaults] = None,
        readiness_defaults: Optional[ReadinessDefaults] = None,
    ):
        defaults = get_defaults()
        self.conditions = condition_defaults or defaults.conditions
        self.readiness = readiness_defaults or defaults.readiness
        self.evaluator = evaluator or ConditionEvaluator(self.conditions)
        self.branch_selector = branch_selector or BranchSelector(self.evaluator, self.conditions)
        self.graph_builder = GraphBuilder()

    def recompute(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
        graph: Optional[DependencyGraph] = None,
    ) -> ReadinessResult:
        """
        Compute newly READY and SKIPPED steps.

        Args:
            template: Active template the instance runs
            instance: Current instance snapshot (not modified)
            graph: Optional graph already built for the template

        Returns:
            ReadinessResult
        """
        with get_metrics().timer("workflow.recompute.duration"):
            work = self._start(template, instance, graph)
            self._propagate(work)
            self._check_stalled(work)
            work.result.states = dict(work.states)

        result = work.result
        if result.changed:
            logger.info(
                f"Instance {instance.instance_id}: ready={sorted(result.newly_ready)} "
                f"skipped={sorted(result.newly_skipped)}"
            )
        return result

    def dependency_status(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
        step_id: str,
        graph: Optional[DependencyGraph] = None,
    ) -> DependencyStatus:
        """
        Describe how far a step's dependencies have progressed.

        Raises:
            KeyError: If the step is not part of the template
        """
        step = template.get_step(step_id)
        work = self._start(template, instance, graph)
        edges = work.graph.get_incoming(step_id)

        return DependencyStatus(
            step_id=step_id,
            title=step.label,
            logic=step.dependency_logic,
            is_satisfied=self._dependency_verdict(step, work) == Verdict.ELIGIBLE,
            dependency_count=len(edges),
            completed_count=sum(1 for edge in edges if work.states[edge.source] == StepState.COMPLETED),
            pending_dependencies=[
                edge.source for edge in edges if work.states[edge.source] != StepState.COMPLETED
            ],
        )

    def blocked_steps(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
    ) -> List[str]:
        """PENDING steps whose dependencies are not yet satisfied."""
        work = self._start(template, instance, None)
        return [
            step.id for step in template.ordered_steps()
            if work.states[step.id] == StepState.PENDING
            and self._dependency_verdict(step, work) != Verdict.ELIGIBLE
        ]

    def _start(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
        graph: Optional[DependencyGraph],
    ) -> _Pass:
        return _Pass(
            template=template,
            instance=instance,
            graph=graph or self.graph_builder.build(template),
            steps={step.id: step for step in template.steps},
            states={step.id: instance.state_of(step.id) for step in template.steps},
            context=build_evaluation_context(template, instance, self.conditions),
            result=ReadinessResult(),
        )

    # ------------------------------------------------------------------
    # PROPAGATION
    # ------------------------------------------------------------------

    def _propagate(self, work: _Pass) -> None:
        order = [step_id for step_id in work.graph.topological_order() if step_id in work.steps]
        warned: Set[str] = set()

        changed = True
        while changed:
            changed = False
            for step_id in order:
                if work.states[step_id] != StepState.PENDING:
                    continue

                step = work.steps[step_id]
                verdict = self._dependency_verdict(step, work)

                if verdict == Verdict.WAIT:
                    continue

                if verdict == Verdict.UNREACHABLE:
                    if not self.readiness.skip_unreachable_steps:
                        if step_id not in warned:
                            warned.add(step_id)
                            work.result.warnings.append(StallWarning(
                                kind=StallWarningKind.STEP_UNREACHABLE,
                                message=f"Step '{step_id}' can no longer satisfy its {step.dependency_logic.value} dependencies",
                                step_ids=[step_id],
                            ))
                        continue
                    new_state = StepState.SKIPPED
                elif self._guard_passes(step, work):
                    new_state = StepState.READY
                else:
                    new_state = StepState.SKIPPED

                work.states[step_id] = new_state
                work.context[self.conditions.state_key(step_id)] = new_state.value
                if new_state == StepState.READY:
                    work.result.newly_ready.add(step_id)
                else:
                    work.result.newly_skipped.add(step_id)
                changed = True

    def _dependency_verdict(self, step: StepDefinition, work: _Pass) -> Verdict:
        edges = work.graph.get_incoming(step.id)
        signals = [self._signal(edge, work) for edge in edges]

        # CUSTOM roots still answer to their condition
        if step.dependency_logic == DependencyLogic.CUSTOM:
            if self.evaluator.evaluate(step.custom_condition, work.context, work.result.anomalies):
                return Verdict.ELIGIBLE
            if Signal.PENDING in signals:
                return Verdict.WAIT
            return Verdict.UNREACHABLE

        if not edges:
            return Verdict.ELIGIBLE

        if step.dependency_logic == DependencyLogic.ANY:
            if Signal.SATISFIED in signals:
                return Verdict.ELIGIBLE
            if Signal.PENDING in signals:
                return Verdict.WAIT
            return Verdict.UNREACHABLE

        if Signal.SKIPPED in signals and not self.readiness.skipped_satisfies_all:
            return Verdict.UNREACHABLE
        if Signal.PENDING in signals:
            return Verdict.WAIT
        return Verdict.ELIGIBLE

    def _signal(self, edge: GraphEdge, work: _Pass) -> Signal:
        source_state = work.states.get(edge.source, StepState.PENDING)

        if source_state == StepState.SKIPPED:
            return Signal.SKIPPED
        if source_state != StepState.COMPLETED:
            return Signal.PENDING
        if not edge.is_branch:
            return Signal.SATISFIED

        taken = self._taken_targets(edge.source, work)
        if edge.target in taken:
            return Signal.SATISFIED
        if edge.branch_label is not None and not any(
            other.target in taken
            for other in work.graph.get_outgoing(edge.source)
            if other.branch_label is not None
        ):
            # SWITCH matched no branch: its targets stall
            return Signal.PENDING
        return Signal.SKIPPED

    def _taken_targets(self, step_id: str, work: _Pass) -> Set[str]:
        """Fired successors of a completed step, recorded or recomputed."""
        if step_id in work.taken:
            return work.taken[step_id]

        runtime = work.instance.steps.get(step_id)
        if runtime is not None and runtime.taken_targets is not None:
            taken = set(runtime.taken_targets)
        else:
            outcome = runtime.outcome if runtime is not None else None
            selection = self.branch_selector.select(
                work.graph, work.steps[step_id], outcome, work.context,
            )
            work.result.anomalies.extend(selection.anomalies)
            if selection.warning is not None:
                work.result.warnings.append(selection.warning)
            taken = set(selection.taken)

        work.taken[step_id] = taken
        return taken

    # ------------------------------------------------------------------
    # OWN GUARD
    # ------------------------------------------------------------------

    def _guard_passes(self, step: StepDefinition, work: _Pass) -> bool:
        """
        Evaluate the step's own condition.

        A condition reading the step's own outcome only routes its
        successors and never gates the step itself. IF_FALSE steps run when
        their condition is false, but an anomalous evaluation never lets
        them through.
        """
        condition = step.condition_config
        if condition is None or step.condition_type == ConditionType.ALWAYS:
            return True

        own_outcome = self.conditions.outcome_key(step.id)
        if any(simple.field == own_outcome for simple in iter_simple_conditions(condition)):
            return True

        anomalies: List[EvaluationAnomaly] = []
        passed = self.evaluator.evaluate(condition, work.context, anomalies)
        work.result.anomalies.extend(anomalies)

        if step.condition_type == ConditionType.IF_FALSE:
            return not passed and not anomalies
        return passed

    # ------------------------------------------------------------------
    # STALL DETECTION
    # ------------------------------------------------------------------

    def _check_stalled(self, work: _Pass) -> None:
        pending = sorted(step_id for step_id, state in work.states.items() if state == StepState.PENDING)
        if not pending:
            return
        if any(state == StepState.READY for state in work.states.values()):
            return

        work.result.warnings.append(StallWarning(
            kind=StallWarningKind.INSTANCE_STALLED,
            message=f"Instance {work.instance.instance_id} has {len(pending)} pending step(s) and none ready",
            step_ids=pending,
        ))
        logger.warning(f"Instance {work.instance.instance_id} stalled: pending={pending}")


__all__ = [
    "Signal",
    "ReadinessResult",
    "DependencyStatus",
    "ReadinessResolver",
]
