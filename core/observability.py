# ============================================================================
# OBSERVABILITY
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - In-process metrics
# PURPOSE: Transition counters, validation failures, recompute timings
# CREATED: 15 OCT 2026
# ============================================================================
"""
Observability

In-process metrics for the workflow engine. The host application reads
the collected points and exports them to whatever backend it uses.

Metric names:
    workflow.transition.<ACTION_TYPE>.<FROM>_to_<TO>
    workflow.step.<state>.total
    workflow.validation.failed / workflow.validation.passed
    workflow.recompute.duration (histogram, ms)

Usage:
    from core.observability import get_metrics, record_transition

    record_transition(ActionType.APPROVAL, StepState.READY, StepState.COMPLETED)
    with get_metrics().timer("workflow.recompute.duration"):
        ...
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.contracts import ActionType, StepState

logger = logging.getLogger(__name__)


@dataclass
class MetricPoint:
    """A single metric data point."""
    name: str
    value: float
    timestamp: float = field(default_factory=time.time)
    tags: Dict[str, str] = field(default_factory=dict)
    unit: str = ""


class MetricsCollector:
    """
    Collects metrics.

    Supports counters and histograms.
    """

    def __init__(self):
        self._metrics: List[MetricPoint] = []
        self._counters: Dict[str, float] = {}
        self._lock = threading.Lock()

    def counter(
        self,
        name: str,
        value: float = 1.0,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name
            value: Value to add (default 1)
            tags: Optional tags
        """
        key = f"{name}:{sorted(tags.items())}" if tags else name
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value
            self._metrics.append(MetricPoint(name=name, value=value, tags=tags or {}))

        logger.debug(f"Metric counter: {name}={value}")

    def histogram(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        unit: str = "ms",
    ) -> None:
        """Record a histogram value."""
        with self._lock:
            self._metrics.append(MetricPoint(name=name, value=value, tags=tags or {}, unit=unit))

        logger.debug(f"Metric histogram: {name}={value}{unit}")

    @contextmanager
    def timer(self, name: str, tags: Optional[Dict[str, str]] = None):
        """Context manager for timing operations."""
        start = time.perf_counter()
        try:
            yield
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            self.histogram(name, duration_ms, tags=tags, unit="ms")

    def get_counter(self, name: str) -> float:
        """Current value of an untagged counter."""
        return self._counters.get(name, 0)

    def get_metrics(self) -> List[MetricPoint]:
        """Get all collected metrics."""
        with self._lock:
            return self._metrics.copy()

    def clear(self) -> None:
        """Clear collected metrics."""
        with self._lock:
            self._metrics.clear()
            self._counters.clear()


# ============================================================================
# GLOBAL INSTANCE
# ============================================================================

_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def record_transition(action_type: ActionType, from_state: StepState, to_state: StepState) -> None:
    """Count a step state transition by action type."""
    metrics = get_metrics()
    metrics.counter(f"workflow.transition.{action_type.value}.{from_state.value}_to_{to_state.value}")
    metrics.counter(f"workflow.step.{to_state.value.lower()}.total")


__all__ = [
    "MetricPoint",
    "MetricsCollector",
    "get_metrics",
    "record_transition",
]
