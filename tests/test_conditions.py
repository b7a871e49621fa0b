# ============================================================================
# CONDITION EVALUATOR TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Tests - Condition evaluation
# PURPOSE: Verify operators, fail-closed behaviour, short-circuit, depth cap
# CREATED: 17 OCT 2026
# ============================================================================
"""
Condition Evaluator Tests

Covers:
1. Condition parsing (kind inference, "logic" alias)
2. Comparison, string, membership and existence operators
3. Missing fields fail closed and record an anomaly
4. AND/OR short-circuit
5. Nesting depth cap
6. Field resolution (exact reserved keys, dotted paths)
7. Evaluation context with reserved step keys

Run with:
    pytest tests/test_conditions.py -v
"""

import pytest

from core.config import ConditionDefaults
from core.contracts import StepState
from core.models import (
    AnomalyKind,
    CompoundCondition,
    SimpleCondition,
    parse_condition,
)
from engine import evaluate_condition
from engine.conditions import (
    MISSING,
    ConditionEvaluator,
    build_evaluation_context,
    resolve_field,
)


_NO_VALUE = object()


def simple(field, operator, value=_NO_VALUE):
    if value is _NO_VALUE:
        return SimpleCondition(field=field, operator=operator)
    return SimpleCondition(field=field, operator=operator, value=value)


def all_of(*conditions):
    return CompoundCondition(operator="AND", conditions=list(conditions))


def any_of(*conditions):
    return CompoundCondition(operator="OR", conditions=list(conditions))


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


# ============================================================================
# PARSING
# ============================================================================

class TestConditionParsing:
    """Raw dicts become the right union member."""

    def test_simple_inferred_without_kind(self):
        condition = parse_condition({"field": "amount", "operator": ">", "value": 100})
        assert isinstance(condition, SimpleCondition)
        assert condition.has_value

    def test_compound_inferred_from_conditions(self):
        condition = parse_condition({
            "logic": "AND",
            "conditions": [
                {"field": "a", "operator": "exists"},
                {"field": "b", "operator": "==", "value": 1},
            ],
        })
        assert isinstance(condition, CompoundCondition)
        assert condition.operator == "AND"
        assert len(condition.conditions) == 2

    def test_explicit_null_value_counts_as_supplied(self):
        condition = parse_condition({"field": "a", "operator": "==", "value": None})
        assert condition.has_value

    def test_absent_value_not_supplied(self):
        condition = parse_condition({"field": "a", "operator": "exists"})
        assert not condition.has_value

    def test_built_condition_returned_as_is(self):
        condition = simple("a", "exists")
        assert parse_condition(condition) is condition


# ============================================================================
# COMPARISON OPERATORS
# ============================================================================

class TestComparison:
    """==, !=, <, >, <=, >=."""

    def test_numeric_equality_across_int_and_float(self, evaluator):
        assert evaluator.evaluate(simple("n", "==", 5), {"n": 5.0})

    def test_string_never_equals_number(self, evaluator):
        assert not evaluator.evaluate(simple("n", "==", 5), {"n": "5"})

    def test_bool_is_not_numeric(self, evaluator):
        assert not evaluator.evaluate(simple("flag", "==", 1), {"flag": True})
        assert evaluator.evaluate(simple("flag", "==", True), {"flag": True})

    def test_not_equal(self, evaluator):
        assert evaluator.evaluate(simple("status", "!=", "closed"), {"status": "open"})
        assert not evaluator.evaluate(simple("status", "!=", "open"), {"status": "open"})

    def test_ordering_numeric(self, evaluator):
        context = {"amount": 150}
        assert evaluator.evaluate(simple("amount", ">", 100), context)
        assert evaluator.evaluate(simple("amount", ">=", 150), context)
        assert not evaluator.evaluate(simple("amount", "<", 100), context)
        assert evaluator.evaluate(simple("amount", "<=", 150.5), context)

    def test_ordering_lexical(self, evaluator):
        assert evaluator.evaluate(simple("date", "<", "2026-12-31"), {"date": "2026-10-01"})

    def test_ordering_mixed_types_fails_closed(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("amount", ">", 100), {"amount": "lots"}, anomalies)
        assert [a.kind for a in anomalies] == [AnomalyKind.INCOMPARABLE_OPERANDS]

    def test_ordering_bool_fails_closed(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("flag", ">", 0), {"flag": True}, anomalies)
        assert anomalies[0].kind == AnomalyKind.INCOMPARABLE_OPERANDS


# ============================================================================
# STRING / MEMBERSHIP OPERATORS
# ============================================================================

class TestStringAndMembership:
    """contains, startsWith, endsWith, in, notIn."""

    def test_string_operators(self, evaluator):
        context = {"title": "Doe vs. Corp"}
        assert evaluator.evaluate(simple("title", "contains", "vs."), context)
        assert evaluator.evaluate(simple("title", "startsWith", "Doe"), context)
        assert evaluator.evaluate(simple("title", "endsWith", "Corp"), context)
        assert not evaluator.evaluate(simple("title", "startsWith", "Corp"), context)

    def test_contains_on_non_string_fails_closed(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("tags", "contains", "urgent"), {"tags": ["urgent"]}, anomalies)
        assert anomalies[0].kind == AnomalyKind.INVALID_OPERAND

    def test_in_and_not_in(self, evaluator):
        context = {"matter_type": "corporate"}
        assert evaluator.evaluate(simple("matter_type", "in", ["corporate", "contracts"]), context)
        assert not evaluator.evaluate(simple("matter_type", "notIn", ["corporate"]), context)
        assert evaluator.evaluate(simple("matter_type", "notIn", ["litigation"]), context)

    def test_in_uses_typed_equality(self, evaluator):
        assert not evaluator.evaluate(simple("n", "in", [True]), {"n": 1})

    def test_in_requires_collection_value(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("letter", "in", "abc"), {"letter": "a"}, anomalies)
        assert anomalies[0].kind == AnomalyKind.INVALID_OPERAND


# ============================================================================
# EXISTENCE OPERATORS AND MISSING FIELDS
# ============================================================================

class TestExistenceAndMissing:
    """Missing fields never raise."""

    def test_existence_on_missing_field(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("absent", "exists"), {}, anomalies)
        assert evaluator.evaluate(simple("absent", "notExists"), {}, anomalies)
        assert evaluator.evaluate(simple("absent", "isEmpty"), {}, anomalies)
        assert not evaluator.evaluate(simple("absent", "isNotEmpty"), {}, anomalies)
        assert anomalies == []

    def test_exists_treats_none_as_absent(self, evaluator):
        assert not evaluator.evaluate(simple("approver", "exists"), {"approver": None})

    @pytest.mark.parametrize("value", ["", [], {}, None])
    def test_is_empty(self, evaluator, value):
        assert evaluator.evaluate(simple("v", "isEmpty"), {"v": value})

    @pytest.mark.parametrize("value", [0, False, "x", ["a"]])
    def test_is_not_empty(self, evaluator, value):
        assert evaluator.evaluate(simple("v", "isNotEmpty"), {"v": value})

    @pytest.mark.parametrize("operator,value", [
        ("==", 1), ("!=", 1), (">", 1), ("contains", "x"), ("in", [1]), ("notIn", [1]),
    ])
    def test_other_operators_fail_closed(self, evaluator, operator, value):
        anomalies = []
        assert not evaluator.evaluate(simple("absent", operator, value), {}, anomalies)
        assert anomalies[0].kind == AnomalyKind.MISSING_FIELD
        assert anomalies[0].field == "absent"

    def test_unknown_operator_fails_closed(self, evaluator):
        anomalies = []
        assert not evaluator.evaluate(simple("a", "~=", 1), {"a": 1}, anomalies)
        assert anomalies[0].kind == AnomalyKind.UNKNOWN_OPERATOR

    def test_no_condition_is_true(self, evaluator):
        assert evaluator.evaluate(None, {})

    def test_anomaly_sink_is_optional(self, evaluator):
        assert not evaluator.evaluate(simple("absent", "==", 1), {})


# ============================================================================
# COMPOUND CONDITIONS
# ============================================================================

class TestCompound:
    """AND/OR with short-circuit and a depth cap."""

    def test_and_or(self, evaluator):
        context = {"amount": 150, "matter_type": "civil"}
        assert evaluator.evaluate(
            all_of(simple("amount", ">", 100), simple("matter_type", "==", "civil")), context,
        )
        assert not evaluator.evaluate(
            all_of(simple("amount", ">", 100), simple("matter_type", "==", "criminal")), context,
        )
        assert evaluator.evaluate(
            any_of(simple("amount", ">", 1000), simple("matter_type", "==", "civil")), context,
        )

    def test_and_short_circuits_on_first_false(self, evaluator):
        anomalies = []
        condition = all_of(simple("amount", ">", 100), simple("absent", "==", 1))
        assert not evaluator.evaluate(condition, {"amount": 50}, anomalies)
        # Second operand never evaluated, so its missing field is not reported
        assert anomalies == []

    def test_or_short_circuits_on_first_true(self, evaluator):
        anomalies = []
        condition = any_of(simple("amount", "<", 100), simple("absent", "==", 1))
        assert evaluator.evaluate(condition, {"amount": 50}, anomalies)
        assert anomalies == []

    def test_depth_within_limit(self, evaluator):
        true = simple("a", "exists")
        condition = all_of(all_of(any_of(true, true), true), true)
        assert evaluator.evaluate(condition, {"a": 1})

    def test_depth_exceeded_fails_closed(self, evaluator):
        true = simple("a", "exists")
        condition = all_of(all_of(all_of(any_of(true, true), true), true), true)
        anomalies = []
        assert not evaluator.evaluate(condition, {"a": 1}, anomalies)
        assert [a.kind for a in anomalies] == [AnomalyKind.DEPTH_EXCEEDED]

    def test_configurable_depth(self):
        evaluator = ConditionEvaluator(ConditionDefaults(max_nesting_depth=1))
        true = simple("a", "exists")
        assert evaluator.evaluate(all_of(true, true), {"a": 1})
        assert not evaluator.evaluate(all_of(all_of(true, true), true), {"a": 1})

    def test_unknown_compound_operator(self, evaluator):
        condition = CompoundCondition(operator="XOR", conditions=[simple("a", "exists"), simple("b", "exists")])
        anomalies = []
        assert not evaluator.evaluate(condition, {"a": 1, "b": 2}, anomalies)
        assert anomalies[0].kind == AnomalyKind.UNKNOWN_OPERATOR


# ============================================================================
# FIELD RESOLUTION
# ============================================================================

class TestFieldResolution:
    """Exact keys first, then dotted paths."""

    def test_dotted_path(self):
        assert resolve_field("matter.type", {"matter": {"type": "civil"}}) == "civil"

    def test_exact_key_wins(self):
        context = {"S1.outcome": "approved", "S1": {"outcome": "other"}}
        assert resolve_field("S1.outcome", context) == "approved"

    def test_missing(self):
        assert resolve_field("matter.type", {"matter": "civil"}) is MISSING
        assert resolve_field("absent", {}) is MISSING

    def test_present_none_is_not_missing(self):
        assert resolve_field("a", {"a": None}) is None


class TestEvaluationContext:
    """Reserved step keys are added to a copy of the instance context."""

    def test_reserved_keys(self, make_step, make_template, make_instance):
        template = make_template([make_step("S1"), make_step("S2")], [("S1", "S2")])
        instance = make_instance(
            template,
            {"S1": (StepState.COMPLETED, "approved"), "S2": StepState.READY},
            context={"amount": 5},
        )

        context = build_evaluation_context(template, instance)

        assert context["amount"] == 5
        assert context["S1.outcome"] == "approved"
        assert context["S1.state"] == "COMPLETED"
        assert context["S2.state"] == "READY"
        assert "S2.outcome" not in context

    def test_instance_context_not_widened(self, make_step, make_template, make_instance):
        template = make_template([make_step("S1")])
        instance = make_instance(template, {"S1": (StepState.COMPLETED, True)}, context={"a": 1})

        build_evaluation_context(template, instance)

        assert instance.context == {"a": 1}


class TestEvaluateConditionFunction:
    """Module-level helper accepts raw dicts."""

    def test_raw_dict(self):
        assert evaluate_condition({"field": "amount", "operator": ">", "value": 100}, {"amount": 150})

    def test_compound_dict(self):
        condition = {
            "logic": "OR",
            "conditions": [
                {"field": "a", "operator": "==", "value": 1},
                {"field": "b", "operator": "exists"},
            ],
        }
        assert evaluate_condition(condition, {"b": "x"})

    def test_none(self):
        assert evaluate_condition(None, {})
