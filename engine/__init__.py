# ============================================================================
# WORKFLOW ENGINE PACKAGE
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Engine components
# PURPOSE: Condition evaluation, validation, readiness, branch selection
# CREATED: 15 OCT 2026
# ============================================================================
"""
Workflow Engine Components

- conditions: condition evaluation against a runtime context
- graph: adjacency index over template steps and edges
- validator: template well-formedness checks
- resolver: readiness propagation
- branches: successor selection for branching steps
- evaluator: WorkflowEngine facade and convenience functions
"""

from engine.conditions import (
    ConditionEvaluator,
    build_evaluation_context,
    resolve_field,
)
from engine.graph import DependencyGraph, GraphBuilder, GraphEdge
from engine.validator import GraphValidator
from engine.branches import BranchSelection, BranchSelector
from engine.resolver import DependencyStatus, ReadinessResolver, ReadinessResult, Signal
from engine.evaluator import (
    WorkflowEngine,
    evaluate_condition,
    get_engine,
    recompute,
    reset_engine,
    select_branches,
    validate_template,
)

__all__ = [
    # Conditions
    "ConditionEvaluator",
    "build_evaluation_context",
    "resolve_field",
    # Graph
    "DependencyGraph",
    "GraphBuilder",
    "GraphEdge",
    # Validator
    "GraphValidator",
    # Branches
    "BranchSelection",
    "BranchSelector",
    # Resolver
    "DependencyStatus",
    "ReadinessResolver",
    "ReadinessResult",
    "Signal",
    # Facade
    "WorkflowEngine",
    "get_engine",
    "reset_engine",
    "validate_template",
    "recompute",
    "select_branches",
    "evaluate_condition",
]
