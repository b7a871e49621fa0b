# ============================================================================
# BRANCH SELECTOR
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Successor selection for branching steps
# PURPOSE: Decide which outgoing edges fire once a step's outcome is known
# CREATED: 16 OCT 2026
# ============================================================================
"""
Branch Selector

Once a step completes, decides which of its successors receive a
COMPLETED predecessor signal. The rest receive a SKIPPED signal.

- IF_TRUE / IF_FALSE steps: the step's condition is evaluated against the
  context extended with the step's own outcome. True fires IF_TRUE_BRANCH
  edges, false fires IF_FALSE_BRANCH edges.
- Steps with IF_*_BRANCH edges and no condition (approvals): the
  truthiness of the outcome picks the branch.
- SWITCH steps: guards in declaration order, first match wins, then the
  default branch. No match and no default fires nothing: the targets are
  left stalled and a NO_BRANCH_MATCHED warning is returned.
- DEPENDS_ON / TRIGGERS successors always fire.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from core.config import ConditionDefaults, get_defaults
from core.contracts import ConditionType, DependencyType
from core.models import (
    EvaluationAnomaly,
    StallWarning,
    StallWarningKind,
    StepDefinition,
    SwitchBranch,
    WorkflowTemplate,
)
from engine.conditions import ConditionEvaluator
from engine.graph import DependencyGraph, GraphBuilder

logger = logging.getLogger(__name__)


@dataclass
class BranchSelection:
    """Successors of one completed step, split into taken and not taken."""
    step_id: str
    taken: List[str] = field(default_factory=list)
    not_taken: List[str] = field(default_factory=list)
    # SWITCH targets left waiting because no branch matched
    stalled: List[str] = field(default_factory=list)
    label: Optional[str] = None
    warning: Optional[StallWarning] = None
    anomalies: List[EvaluationAnomaly] = field(default_factory=list)


class BranchSelector:
    """
    Selects successor edges for a completed step.

    Usage:
        selector = BranchSelector()
        selection = selector.select(template, "S1", outcome=True, context={})
        selection.taken      # ["S2"]
        selection.not_taken  # ["S3"]
    """

    def __init__(
        self,
        evaluator: Optional[ConditionEvaluator] = None,
        defaults: Optional[ConditionDefaults] = None,
    ):
        self.defaults = defaults or get_defaults().conditions
        self.evaluator = evaluator or ConditionEvaluator(self.defaults)
        self.graph_builder = GraphBuilder()

    def select(
        self,
        source: Union[WorkflowTemplate, DependencyGraph],
        step: Union[StepDefinition, str],
        outcome: Any,
        context: Mapping[str, Any],
        template: Optional[WorkflowTemplate] = None,
    ) -> BranchSelection:
        """
        Select branches for a step.

        Args:
            source: Template, or a graph already built for it
            step: Step definition, or its id when source is a template
            outcome: The step's recorded outcome
            context: Runtime context (reserved keys included or not)
            template: Template owning the step when source is a graph
                and step is given by id

        Returns:
            BranchSelection
        """
        if isinstance(source, WorkflowTemplate):
            graph = self.graph_builder.build(source)
            template = source
        else:
            graph = source

        if isinstance(step, str):
            if template is None:
                raise ValueError("A template is required to select branches by step id")
            step = template.get_step(step)

        eval_context: Dict[str, Any] = dict(context)
        if outcome is not None:
            eval_context[self.defaults.outcome_key(step.id)] = outcome

        selection = BranchSelection(step_id=step.id)
        outgoing = graph.get_outgoing(step.id)

        chosen: Optional[SwitchBranch] = None
        if step.is_switch:
            chosen = self._choose_switch_branch(step, eval_context, selection)

        if_result: Optional[bool] = None
        if any(edge.dependency_type.is_branch() and edge.branch_label is None for edge in outgoing):
            if_result = self._evaluate_if(step, outcome, eval_context, selection)
            selection.label = "true" if if_result else "false"

        for edge in outgoing:
            if edge.branch_label is not None and chosen is None:
                selection.stalled.append(edge.target)
                continue
            if edge.branch_label is not None:
                fired = edge.target == chosen.target
            elif edge.dependency_type == DependencyType.IF_TRUE_BRANCH:
                fired = bool(if_result)
            elif edge.dependency_type == DependencyType.IF_FALSE_BRANCH:
                fired = not if_result
            else:
                fired = True

            if fired:
                selection.taken.append(edge.target)
            else:
                selection.not_taken.append(edge.target)

        logger.debug(
            f"Branches for {step.id}: taken={selection.taken} not_taken={selection.not_taken}"
        )
        return selection

    def select_branches(
        self,
        template: WorkflowTemplate,
        step: Union[StepDefinition, str],
        outcome: Any,
        context: Mapping[str, Any],
    ) -> List[str]:
        """Ids of the successors that fire."""
        return self.select(template, step, outcome, context).taken

    def _choose_switch_branch(
        self,
        step: StepDefinition,
        context: Mapping[str, Any],
        selection: BranchSelection,
    ) -> Optional[SwitchBranch]:
        for branch in step.branches:
            if branch.default or branch.condition is None:
                continue
            if self.evaluator.evaluate(branch.condition, context, selection.anomalies):
                selection.label = branch.label
                return branch

        default = next((branch for branch in step.branches if branch.default), None)
        if default is not None:
            selection.label = default.label
            return default

        selection.warning = StallWarning(
            kind=StallWarningKind.NO_BRANCH_MATCHED,
            message=f"No branch of SWITCH step '{step.id}' matched and it has no default",
            step_ids=[step.id],
        )
        logger.warning(f"SWITCH step {step.id} matched no branch")
        return None

    def _evaluate_if(
        self,
        step: StepDefinition,
        outcome: Any,
        context: Mapping[str, Any],
        selection: BranchSelection,
    ) -> bool:
        if (
            step.condition_type in (ConditionType.IF_TRUE, ConditionType.IF_FALSE)
            and step.condition_config is not None
        ):
            return self.evaluator.evaluate(step.condition_config, context, selection.anomalies)
        # Approval payloads carry their decision as {"approved": bool}
        if isinstance(outcome, Mapping) and "approved" in outcome:
            return bool(outcome["approved"])
        return bool(outcome)


__all__ = [
    "BranchSelection",
    "BranchSelector",
]
