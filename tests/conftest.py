# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Tests - Fixtures
# PURPOSE: Template/instance factories and global state reset
# CREATED: 17 OCT 2026
# ============================================================================
"""
Shared fixtures.

Factories build templates from compact edge tuples so each test states
only the graph shape it cares about.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import pytest

from core.config import reset_defaults
from core.contracts import DependencyType, StepState
from core.models import (
    DependencyEdge,
    StepDefinition,
    StepRuntimeState,
    WorkflowInstance,
    WorkflowTemplate,
)
from core.observability import get_metrics
from engine import reset_engine

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

Edge = Union[Tuple[str, str], Tuple[str, str, DependencyType]]


@pytest.fixture(autouse=True)
def fresh_engine_state():
    """Every test starts with default config, a new engine and no metrics."""
    reset_defaults()
    reset_engine()
    get_metrics().clear()
    yield
    reset_defaults()
    reset_engine()


@pytest.fixture
def templates_dir() -> Path:
    return TEMPLATES_DIR


@pytest.fixture
def make_step():
    """Factory for StepDefinition."""
    def _make(step_id: str, **kwargs: Any) -> StepDefinition:
        return StepDefinition(id=step_id, **kwargs)
    return _make


@pytest.fixture
def make_template():
    """Factory for WorkflowTemplate from steps and (source, target[, type]) tuples."""
    def _make(
        steps: Iterable[StepDefinition],
        edges: Iterable[Edge] = (),
        active: bool = True,
        template_id: str = "tpl-test",
        **kwargs: Any,
    ) -> WorkflowTemplate:
        dependency_edges = []
        for edge in edges:
            source, target = edge[0], edge[1]
            dependency_type = edge[2] if len(edge) > 2 else DependencyType.DEPENDS_ON
            dependency_edges.append(
                DependencyEdge(source=source, target=target, dependency_type=dependency_type)
            )
        return WorkflowTemplate(
            template_id=template_id,
            name=kwargs.pop("name", "Test Template"),
            is_active=active,
            steps=list(steps),
            edges=dependency_edges,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_instance():
    """
    Factory for WorkflowInstance.

    states maps step id to a StepState, or to (StepState, outcome).
    Steps not listed are PENDING.
    """
    def _make(
        template: WorkflowTemplate,
        states: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> WorkflowInstance:
        states = states or {}
        steps = {}
        for step in template.steps:
            entry = states.get(step.id, StepState.PENDING)
            if isinstance(entry, tuple):
                state, outcome = entry
            else:
                state, outcome = entry, None
            steps[step.id] = StepRuntimeState(state=state, outcome=outcome)
        return WorkflowInstance(
            instance_id="inst-test",
            template_id=template.template_id,
            template_version=template.version,
            steps=steps,
            context=context or {},
        )
    return _make
