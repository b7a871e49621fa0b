# ============================================================================
# CONDITION EVALUATOR
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Predicate evaluation against runtime context
# PURPOSE: Evaluate simple/compound conditions, fail-closed, never raise
# CREATED: 15 OCT 2026
# ============================================================================
"""
Condition Evaluator

Evaluates a Condition against a runtime context map and returns a bool.

Supports:
- Comparison operators: ==, !=, <, >, <=, >=
- String operators: contains, startsWith, endsWith
- Membership: in, notIn
- Existence: exists, notExists, isEmpty, isNotEmpty
- Compound AND/OR with short-circuit, depth-capped

Field lookup tries the exact key first (so reserved keys such as
"S1.outcome" resolve), then a dotted path into nested mappings.

The evaluator is pure. Conditions are assumed to have passed the
GraphValidator; anything unexpected evaluates to False and is recorded
as an EvaluationAnomaly instead of raising.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from core.config import ConditionDefaults, get_defaults
from core.contracts import EXISTENCE_OPERATORS, StepState
from core.models import (
    AnomalyKind,
    Condition,
    EvaluationAnomaly,
    SimpleCondition,
    WorkflowInstance,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)

# Sentinel for a field absent from the context
MISSING = object()

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equals(left: Any, right: Any) -> bool:
    """Typed equality: booleans never equal numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, dict) + _COLLECTION_TYPES):
        return len(value) == 0
    return False


def resolve_field(field: str, context: Mapping[str, Any]) -> Any:
    """
    Resolve a field from context.

    Args:
        field: Exact key or dotted path ("matter.type")
        context: Runtime context

    Returns:
        The value, or MISSING if not found
    """
    if field in context:
        return context[field]

    value: Any = context
    for part in field.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return MISSING
    return value


def build_evaluation_context(
    template: WorkflowTemplate,
    instance: WorkflowInstance,
    defaults: Optional[ConditionDefaults] = None,
) -> Dict[str, Any]:
    """
    Copy of the instance context plus reserved step keys.

    Adds "<stepId>.state" for every step and "<stepId>.outcome" for every
    COMPLETED step with a recorded outcome. The instance is not modified.
    """
    defaults = defaults or get_defaults().conditions
    context: Dict[str, Any] = dict(instance.context)
    for step in template.steps:
        runtime = instance.steps.get(step.id)
        state = instance.state_of(step.id)
        context[defaults.state_key(step.id)] = state.value
        if runtime is not None and state == StepState.COMPLETED and runtime.outcome is not None:
            context[defaults.outcome_key(step.id)] = runtime.outcome
    return context


class ConditionEvaluator:
    """
    Evaluates conditions.

    Usage:
        evaluator = ConditionEvaluator()
        condition = parse_condition({"field": "amount", "operator": ">", "value": 100})
        evaluator.evaluate(condition, {"amount": 150})  # True
    """

    def __init__(self, defaults: Optional[ConditionDefaults] = None):
        self.defaults = defaults or get_defaults().conditions

    def evaluate(
        self,
        condition: Optional[Condition],
        context: Mapping[str, Any],
        anomalies: Optional[List[EvaluationAnomaly]] = None,
    ) -> bool:
        """
        Evaluate a condition.

        Args:
            condition: Condition to evaluate; None is always true
            context: Runtime context (never modified)
            anomalies: Optional sink collecting fail-closed anomalies

        Returns:
            True if condition is met
        """
        if condition is None:
            return True
        return self._evaluate(condition, context, 0, anomalies)

    def _evaluate(
        self,
        condition: Condition,
        context: Mapping[str, Any],
        depth: int,
        anomalies: Optional[List[EvaluationAnomaly]],
    ) -> bool:
        if condition.kind == "simple":
            return self._evaluate_simple(condition, context, anomalies)

        if condition.kind == "compound":
            depth += 1
            if depth > self.defaults.max_nesting_depth:
                self._note(anomalies, AnomalyKind.DEPTH_EXCEEDED, operator=condition.operator,
                           detail=depth)
                return False

            children = condition.conditions
            if condition.operator == "AND":
                return all(self._evaluate(c, context, depth, anomalies) for c in children)
            if condition.operator == "OR":
                return any(self._evaluate(c, context, depth, anomalies) for c in children)

            self._note(anomalies, AnomalyKind.UNKNOWN_OPERATOR, operator=condition.operator)
            return False

        self._note(anomalies, AnomalyKind.UNKNOWN_OPERATOR, detail=getattr(condition, "kind", None))
        return False

    def _evaluate_simple(
        self,
        condition: SimpleCondition,
        context: Mapping[str, Any],
        anomalies: Optional[List[EvaluationAnomaly]],
    ) -> bool:
        operator = condition.operator
        actual = resolve_field(condition.field, context)
        expected = condition.value

        if operator in EXISTENCE_OPERATORS:
            if actual is MISSING:
                actual = None
            if operator == "exists":
                return actual is not None
            if operator == "notExists":
                return actual is None
            if operator == "isEmpty":
                return _is_empty(actual)
            return not _is_empty(actual)

        if actual is MISSING:
            self._note(anomalies, AnomalyKind.MISSING_FIELD, condition.field, operator)
            return False

        if operator == "==":
            return _equals(actual, expected)
        if operator == "!=":
            return not _equals(actual, expected)

        if operator in (">", "<", ">=", "<="):
            comparable = (
                (_is_number(actual) and _is_number(expected))
                or (isinstance(actual, str) and isinstance(expected, str))
            )
            if not comparable:
                self._note(anomalies, AnomalyKind.INCOMPARABLE_OPERANDS, condition.field, operator,
                           detail=[type(actual).__name__, type(expected).__name__])
                return False
            if operator == ">":
                return actual > expected
            if operator == "<":
                return actual < expected
            if operator == ">=":
                return actual >= expected
            return actual <= expected

        if operator in ("contains", "startsWith", "endsWith"):
            if not (isinstance(actual, str) and isinstance(expected, str)):
                self._note(anomalies, AnomalyKind.INVALID_OPERAND, condition.field, operator)
                return False
            if operator == "contains":
                return expected in actual
            if operator == "startsWith":
                return actual.startswith(expected)
            return actual.endswith(expected)

        if operator in ("in", "notIn"):
            if not isinstance(expected, _COLLECTION_TYPES):
                self._note(anomalies, AnomalyKind.INVALID_OPERAND, condition.field, operator)
                return False
            found = any(_equals(actual, item) for item in expected)
            return found if operator == "in" else not found

        self._note(anomalies, AnomalyKind.UNKNOWN_OPERATOR, condition.field, operator)
        return False

    def _note(
        self,
        anomalies: Optional[List[EvaluationAnomaly]],
        kind: AnomalyKind,
        field: Optional[str] = None,
        operator: Optional[str] = None,
        detail: Any = None,
    ) -> None:
        """Record an anomaly. Evaluation continues fail-closed."""
        anomaly = EvaluationAnomaly(kind=kind, field=field, operator=operator, detail=detail)
        logger.debug(f"Condition anomaly {kind.value}: field={field} operator={operator}")
        if anomalies is not None:
            anomalies.append(anomaly)


__all__ = [
    "MISSING",
    "resolve_field",
    "build_evaluation_context",
    "ConditionEvaluator",
]
