# ============================================================================
# WORKFLOW ENGINE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Engine facade
# PURPOSE: Single entry point combining validator, resolver and selector
# CREATED: 16 OCT 2026
# ============================================================================
"""
Workflow Engine

Combines the engine components behind one object that shares a single
configuration:

- validate_template / check_template: authoring-time well-formedness
- recompute: which steps become READY or SKIPPED
- select_branches: which successors fire after a step completes
- evaluate_condition: a condition against a runtime context

Every operation is synchronous and side-effect free apart from logging and
metrics. Inputs are never modified.

Usage:
    from engine import get_engine

    engine = get_engine()
    errors = engine.validate_template(template)
    result = engine.recompute(template, instance)
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from core.config import EngineDefaults, get_defaults
from core.models import (
    Condition,
    EvaluationAnomaly,
    StepDefinition,
    TemplateValidationError,
    ValidationReport,
    WorkflowInstance,
    WorkflowTemplate,
    parse_condition,
)
from engine.branches import BranchSelection, BranchSelector
from engine.conditions import ConditionEvaluator, build_evaluation_context
from engine.graph import DependencyGraph, GraphBuilder
from engine.resolver import DependencyStatus, ReadinessResolver, ReadinessResult
from engine.validator import GraphValidator


class WorkflowEngine:
    """
    Main workflow engine.

    Holds no state between calls beyond its configuration.
    """

    def __init__(self, defaults: Optional[EngineDefaults] = None):
        self.defaults = defaults or get_defaults()
        self.graph_builder = GraphBuilder()
        self.condition_evaluator = ConditionEvaluator(self.defaults.conditions)
        self.branch_selector = BranchSelector(self.condition_evaluator, self.defaults.conditions)
        self.validator = GraphValidator(self.defaults.conditions, self.defaults.readiness)
        self.resolver = ReadinessResolver(
            evaluator=self.condition_evaluator,
            branch_selector=self.branch_selector,
            condition_defaults=self.defaults.conditions,
            readiness_defaults=self.defaults.readiness,
        )

    def build_graph(self, template: WorkflowTemplate) -> DependencyGraph:
        return self.graph_builder.build(template)

    def validate_template(self, template: WorkflowTemplate) -> List[TemplateValidationError]:
        """
        Validate a template.

        Returns:
            Every error found (empty list = may be activated)
        """
        return self.validator.validate(template)

    def check_template(self, template: WorkflowTemplate) -> ValidationReport:
        """Validate a template, also returning authoring warnings."""
        return self.validator.check(template)

    def recompute(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
        graph: Optional[DependencyGraph] = None,
    ) -> ReadinessResult:
        """Compute steps that newly become READY or SKIPPED."""
        return self.resolver.recompute(template, instance, graph)

    def dependency_status(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
        step_id: str,
    ) -> DependencyStatus:
        return self.resolver.dependency_status(template, instance, step_id)

    def blocked_steps(self, template: WorkflowTemplate, instance: WorkflowInstance) -> List[str]:
        """PENDING steps still waiting on their dependencies."""
        return self.resolver.blocked_steps(template, instance)

    def select(
        self,
        template: WorkflowTemplate,
        step: Union[StepDefinition, str],
        outcome: Any,
        context: Mapping[str, Any],
        graph: Optional[DependencyGraph] = None,
    ) -> BranchSelection:
        """Select branches, returning taken/not-taken targets and any warning."""
        source = graph if graph is not None else template
        return self.branch_selector.select(source, step, outcome, context, template=template)

    def select_branches(
        self,
        template: WorkflowTemplate,
        step: Union[StepDefinition, str],
        outcome: Any,
        context: Mapping[str, Any],
    ) -> List[str]:
        """Ids of the successors that fire once the step has this outcome."""
        return self.select(template, step, outcome, context).taken

    def evaluate_condition(
        self,
        condition: Union[Condition, Mapping[str, Any], None],
        context: Mapping[str, Any],
        anomalies: Optional[List[EvaluationAnomaly]] = None,
    ) -> bool:
        """
        Evaluate a condition against a context.

        Args:
            condition: Built condition or its raw dict form
            context: Runtime context
            anomalies: Optional sink for fail-closed anomalies

        Raises:
            pydantic.ValidationError: If a raw condition cannot be parsed
        """
        if condition is not None:
            condition = parse_condition(condition)
        return self.condition_evaluator.evaluate(condition, context, anomalies)

    def evaluation_context(
        self,
        template: WorkflowTemplate,
        instance: WorkflowInstance,
    ) -> Dict[str, Any]:
        """Instance context plus reserved step outcome/state keys."""
        return build_evaluation_context(template, instance, self.defaults.conditions)


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_engine: Optional[WorkflowEngine] = None


def get_engine() -> WorkflowEngine:
    """Get shared engine instance."""
    global _engine
    if _engine is None:
        _engine = WorkflowEngine()
    return _engine


def reset_engine() -> None:
    """Drop the shared engine so the next call picks up new defaults."""
    global _engine
    _engine = None


def validate_template(template: WorkflowTemplate) -> List[TemplateValidationError]:
    """
    Convenience function to validate a template.

    Args:
        template: Template to validate

    Returns:
        List of validation errors (empty if valid)
    """
    return get_engine().validate_template(template)


def recompute(template: WorkflowTemplate, instance: WorkflowInstance) -> ReadinessResult:
    """Convenience function to recompute readiness."""
    return get_engine().recompute(template, instance)


def select_branches(
    template: WorkflowTemplate,
    step: Union[StepDefinition, str],
    outcome: Any,
    context: Mapping[str, Any],
) -> List[str]:
    """Convenience function to select branch targets."""
    return get_engine().select_branches(template, step, outcome, context)


def evaluate_condition(
    condition: Union[Condition, Mapping[str, Any], None],
    context: Mapping[str, Any],
) -> bool:
    """Convenience function to evaluate a condition."""
    return get_engine().evaluate_condition(condition, context)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "WorkflowEngine",
    "get_engine",
    "reset_engine",
    "validate_template",
    "recompute",
    "select_branches",
    "evaluate_condition",
]
