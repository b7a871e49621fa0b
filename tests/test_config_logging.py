# ============================================================================
# CONFIGURATION, LOGGING AND METRICS TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Tests - Ambient infrastructure
# PURPOSE: Verify env-driven defaults, structured logging, metrics
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration, Logging and Metrics Tests

Covers:
1. Engine defaults and environment overrides
2. Defaults flowing into the shared engine
3. Logging context nesting
4. JSON and human formatters
5. Context-aware loggers and checkpoints
6. Metrics collector and transition counters

Run with:
    pytest tests/test_config_logging.py -v
"""

import json
import logging

import pytest

from core.config import ConditionDefaults, get_defaults, reset_defaults
from core.contracts import ActionType, ConditionType, StepState
from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    configure_logging,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)
from core.models import CompoundCondition, SimpleCondition, ValidationErrorKind
from core.observability import MetricsCollector, get_metrics, record_transition
from engine import build_evaluation_context, get_engine, reset_engine


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(message="hello", name="engine.test"):
    return logging.LogRecord(name, logging.INFO, __file__, 10, message, None, None)


# ============================================================================
# CONFIGURATION
# ============================================================================

class TestDefaults:
    """EngineDefaults and environment overrides."""

    def test_builtin_defaults(self):
        defaults = get_defaults()
        assert defaults.conditions.max_nesting_depth == 3
        assert defaults.readiness.skipped_satisfies_all is False
        assert defaults.readiness.skip_unreachable_steps is True
        assert defaults.readiness.require_switch_default is False

    def test_cached(self):
        assert get_defaults() is get_defaults()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WORKFLOW_MAX_CONDITION_DEPTH", "5")
        monkeypatch.setenv("WORKFLOW_SKIPPED_SATISFIES_ALL", "true")
        monkeypatch.setenv("WORKFLOW_SKIP_UNREACHABLE", "no")
        monkeypatch.setenv("WORKFLOW_REQUIRE_SWITCH_DEFAULT", "1")
        reset_defaults()

        defaults = get_defaults()

        assert defaults.conditions.max_nesting_depth == 5
        assert defaults.readiness.skipped_satisfies_all is True
        assert defaults.readiness.skip_unreachable_steps is False
        assert defaults.readiness.require_switch_default is True

    def test_reserved_keys(self):
        defaults = ConditionDefaults()
        assert defaults.outcome_key("S1") == "S1.outcome"
        assert defaults.state_key("S1") == "S1.state"

    def test_custom_suffix_reaches_context(self, monkeypatch, make_step, make_template, make_instance):
        monkeypatch.setenv("WORKFLOW_OUTCOME_SUFFIX", "_outcome")
        reset_defaults()
        template = make_template([make_step("S1")])
        instance = make_instance(template, {"S1": (StepState.COMPLETED, "ok")})

        context = build_evaluation_context(template, instance)

        assert context["S1_outcome"] == "ok"
        assert "S1.outcome" not in context

    def test_engine_picks_up_new_defaults(self, monkeypatch, make_step, make_template):
        nested = CompoundCondition(operator="AND", conditions=[
            CompoundCondition(operator="OR", conditions=[
                SimpleCondition(field="a", operator="exists"),
                SimpleCondition(field="b", operator="exists"),
            ]),
            SimpleCondition(field="c", operator="exists"),
        ])
        template = make_template([
            make_step("S", condition_type=ConditionType.IF_TRUE, condition_config=nested),
        ])
        assert get_engine().validate_template(template) == []

        monkeypatch.setenv("WORKFLOW_MAX_CONDITION_DEPTH", "1")
        reset_defaults()
        reset_engine()

        errors = get_engine().validate_template(template)
        assert [e.kind for e in errors] == [ValidationErrorKind.NESTING_DEPTH_EXCEEDED]


# ============================================================================
# LOGGING CONTEXT
# ============================================================================

class TestLogContext:
    """Thread-local context stack."""

    def test_empty_outside(self):
        assert get_current_context().to_dict() == {}

    def test_nesting_inherits_and_restores(self):
        with log_context(template_id="tpl", instance_id="inst"):
            with log_context(step_id="S1", extra={"attempt": 1}):
                inner = get_current_context().to_dict()
            outer = get_current_context().to_dict()

        assert inner == {"template_id": "tpl", "instance_id": "inst", "step_id": "S1", "attempt": 1}
        assert outer == {"template_id": "tpl", "instance_id": "inst"}
        assert get_current_context().to_dict() == {}


class TestFormatters:
    """JSON and human output."""

    def test_structured_formatter(self):
        record = make_record("recomputed")
        record.extra = {"ready": ["S2"]}

        with log_context(instance_id="inst-9"):
            payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "recomputed"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "engine.test"
        assert payload["context"] == {"instance_id": "inst-9"}
        assert payload["data"] == {"ready": ["S2"]}
        assert payload["source"]["line"] == 10

    def test_structured_formatter_without_source(self):
        payload = json.loads(StructuredFormatter(include_source=False).format(make_record()))
        assert "source" not in payload
        assert "context" not in payload

    def test_human_formatter(self):
        with log_context(template_id="tpl", instance_id="inst", step_id="S1"):
            line = HumanFormatter().format(make_record("step done"))
        assert "[template=tpl, instance=inst, step=S1]" in line
        assert line.endswith("step done")

    def test_configure_json(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")

        configure_logging("debug")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, StructuredFormatter)

    def test_configure_human(self, restore_root_logger, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        configure_logging(logging.WARNING)
        assert isinstance(restore_root_logger.handlers[0].formatter, HumanFormatter)


class TestContextLogger:
    """Context-aware loggers and checkpoints."""

    def test_context_attached_to_records(self, caplog):
        logger = get_logger("services.test", ComponentType.SERVICE)

        with caplog.at_level(logging.INFO, logger="services.test"):
            with log_context(instance_id="inst-1"):
                logger.info("hello", extra={"count": 2})

        record = caplog.records[-1]
        assert record.extra == {"count": 2, "instance_id": "inst-1", "component": "service"}

    def test_checkpoint(self, caplog):
        with caplog.at_level(logging.INFO, logger="checkpoint"):
            with log_context(template_id="tpl", instance_id="inst", step_id="S1"):
                log_checkpoint("step_completed", {"taken": ["S2"]})

        record = caplog.records[-1]
        assert record.getMessage() == "CHECKPOINT: step_completed"
        assert record.extra["checkpoint"] == "step_completed"
        assert record.extra["instance_id"] == "inst"
        assert record.extra["step_id"] == "S1"
        assert record.extra["data"] == {"taken": ["S2"]}


# ============================================================================
# METRICS
# ============================================================================

class TestMetrics:
    """In-process metrics collector."""

    def test_counters(self):
        metrics = MetricsCollector()
        metrics.counter("workflow.validation.failed")
        metrics.counter("workflow.validation.failed", 2)
        metrics.counter("workflow.validation.failed", tags={"kind": "CYCLE_DETECTED"})

        assert metrics.get_counter("workflow.validation.failed") == 3
        assert len(metrics.get_metrics()) == 3

    def test_timer(self):
        metrics = MetricsCollector()
        with metrics.timer("workflow.recompute.duration"):
            pass

        point = metrics.get_metrics()[0]
        assert point.name == "workflow.recompute.duration"
        assert point.unit == "ms"
        assert point.value >= 0

    def test_clear(self):
        metrics = MetricsCollector()
        metrics.counter("x")
        metrics.clear()
        assert metrics.get_metrics() == []
        assert metrics.get_counter("x") == 0

    def test_record_transition(self):
        record_transition(ActionType.PAYMENT, StepState.PENDING, StepState.READY)
        record_transition(ActionType.PAYMENT, StepState.READY, StepState.COMPLETED)

        metrics = get_metrics()
        assert metrics.get_counter("workflow.transition.PAYMENT.PENDING_to_READY") == 1
        assert metrics.get_counter("workflow.transition.PAYMENT.READY_to_COMPLETED") == 1
        assert metrics.get_counter("workflow.step.ready.total") == 1
        assert metrics.get_counter("workflow.step.completed.total") == 1
