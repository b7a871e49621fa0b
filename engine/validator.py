# ============================================================================
# GRAPH VALIDATOR
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Template well-formedness checks
# PURPOSE: Gate draft -> active with a complete list of authoring errors
# CREATED: 15 OCT 2026
# ============================================================================
"""
Graph Validator

Checks a template before it may be activated. Every problem is collected
so the author sees them all at once; nothing is fail-fast.

Checks:
- Template has steps, step ids are unique
- Every edge and SWITCH target references a known step
- At most one edge links any pair of steps
- No cycles over any precedence edge (DFS with a recursion-stack set)
- Conditions: known operators, values present, compound arity >= 2,
  nesting depth within the configured maximum
- Condition config present exactly where the condition type needs it
- CUSTOM conditions reference only predecessor outcomes/states
- SWITCH branches: at least two, one default at most, distinct targets,
  a guard on every non-default branch
"""

import logging
from collections import Counter
from typing import List, Optional, Set

from core.config import ConditionDefaults, ReadinessDefaults, get_defaults
from core.contracts import (
    COMPOUND_OPERATORS,
    EXISTENCE_OPERATORS,
    SIMPLE_OPERATORS,
    ConditionType,
    DependencyLogic,
)
from core.models import (
    Condition,
    StallWarning,
    StallWarningKind,
    StepDefinition,
    TemplateValidationError,
    ValidationErrorKind,
    ValidationReport,
    WorkflowTemplate,
    iter_simple_conditions,
)
from engine.graph import DependencyGraph, GraphBuilder, GraphEdge

logger = logging.getLogger(__name__)


class GraphValidator:
    """
    Validates template structure.

    Usage:
        validator = GraphValidator()
        errors = validator.validate(template)
        if errors:
            ...  # keep template in draft, show errors to the author
    """

    def __init__(
        self,
        condition_defaults: Optional[ConditionDefaults] = None,
        readiness_defaults: Optional[ReadinessDefaults] = None,
    ):
        defaults = get_defaults()
        self.conditions = condition_defaults or defaults.conditions
        self.readiness = readiness_defaults or defaults.readiness
        self.graph_builder = GraphBuilder()

    def validate(self, template: WorkflowTemplate) -> List[TemplateValidationError]:
        """Validate template; an empty list means it may be activated."""
        return self.check(template).errors

    def check(self, template: WorkflowTemplate) -> ValidationReport:
        """
        Validate template and collect authoring warnings.

        Args:
            template: Template to validate

        Returns:
            ValidationReport with every error and warning found
        """
        report = ValidationReport()

        if not template.steps:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.EMPTY_TEMPLATE,
                message=f"Template '{template.name}' has no steps",
            ))
            return report

        self._check_duplicate_ids(template, report)

        graph = self.graph_builder.build(template)
        self._check_references(graph, report)
        self._check_duplicate_edges(graph, report)
        self._check_cycles(graph, report)

        for step in template.ordered_steps():
            self._check_step(step, graph, report)

        if report.errors:
            logger.info(
                f"Template {template.template_id} v{template.version} failed validation "
                f"with {len(report.errors)} error(s)"
            )
        else:
            logger.debug(f"Template {template.template_id} v{template.version} is valid")

        return report

    # ------------------------------------------------------------------
    # STRUCTURE
    # ------------------------------------------------------------------

    def _check_duplicate_ids(self, template: WorkflowTemplate, report: ValidationReport) -> None:
        counts = Counter(step.id for step in template.steps)
        for step_id, count in sorted(counts.items()):
            if count > 1:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.DUPLICATE_STEP_ID,
                    message=f"Step id '{step_id}' is used by {count} steps",
                    step_ids=[step_id],
                    path=f"steps[{step_id}]",
                ))

    def _check_references(self, graph: DependencyGraph, report: ValidationReport) -> None:
        for edge in graph.dangling:
            unknown = [s for s in (edge.source, edge.target) if s not in graph.nodes]
            if edge.branch_label is not None:
                message = f"SWITCH branch '{edge.branch_label}' of step '{edge.source}' targets unknown step '{edge.target}'"
                path = f"steps[{edge.source}].branches[{edge.branch_label}]"
            else:
                message = f"Edge {edge.source} -> {edge.target} references unknown step(s): {', '.join(unknown)}"
                path = f"edges[{edge.source}->{edge.target}]"
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.UNKNOWN_STEP_REFERENCE,
                message=message,
                step_ids=unknown,
                path=path,
            ))

    def _check_duplicate_edges(self, graph: DependencyGraph, report: ValidationReport) -> None:
        for edge in graph.duplicates:
            kept = graph.find_edge(edge.source, edge.target)
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.DUPLICATE_EDGE,
                message=(
                    f"Edge {edge.source} -> {edge.target} ({_describe(edge)}) repeats "
                    f"the {_describe(kept)} edge between the same steps"
                ),
                step_ids=[edge.source, edge.target],
                path=f"edges[{edge.source}->{edge.target}]",
            ))

    def _check_cycles(self, graph: DependencyGraph, report: ValidationReport) -> None:
        for cycle in self.find_cycles(graph):
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.CYCLE_DETECTED,
                message=f"Cycle detected: {' → '.join(cycle + [cycle[0]])}",
                step_ids=sorted(cycle),
            ))

    def find_cycles(self, graph: DependencyGraph) -> List[List[str]]:
        """
        Find cycles with a depth-first search and a recursion-stack set.

        Each distinct set of steps is reported once. A step depending on
        itself is a cycle of one.
        """
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        path: List[str] = []
        seen: Set[frozenset] = set()
        cycles: List[List[str]] = []

        def visit(node: str) -> None:
            visited.add(node)
            on_stack.add(node)
            path.append(node)

            for successor in sorted(graph.get_successors(node)):
                if successor in on_stack:
                    cycle = path[path.index(successor):]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif successor not in visited:
                    visit(successor)

            path.pop()
            on_stack.discard(node)

        for node in sorted(graph.nodes):
            if node not in visited:
                visit(node)

        return cycles

    # ------------------------------------------------------------------
    # STEPS
    # ------------------------------------------------------------------

    def _check_step(self, step: StepDefinition, graph: DependencyGraph, report: ValidationReport) -> None:
        base = f"steps[{step.id}]"

        if step.condition_type in (ConditionType.IF_TRUE, ConditionType.IF_FALSE):
            if step.condition_config is None:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.MISSING_CONDITION_CONFIG,
                    message=f"Step '{step.id}' is {step.condition_type.value} but has no condition",
                    step_ids=[step.id],
                    path=f"{base}.condition_config",
                ))
        elif step.condition_type == ConditionType.ALWAYS and step.condition_config is not None:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.UNEXPECTED_CONDITION_CONFIG,
                message=f"Step '{step.id}' is ALWAYS but declares a condition",
                step_ids=[step.id],
                path=f"{base}.condition_config",
            ))

        if step.condition_config is not None:
            self._check_condition(step.condition_config, f"{base}.condition_config", step.id, 0, report)

        if step.dependency_logic == DependencyLogic.CUSTOM:
            if step.custom_condition is None:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.MISSING_CONDITION_CONFIG,
                    message=f"Step '{step.id}' uses CUSTOM dependency logic without a custom condition",
                    step_ids=[step.id],
                    path=f"{base}.custom_condition",
                ))
            else:
                path = f"{base}.custom_condition"
                self._check_condition(step.custom_condition, path, step.id, 0, report)
                self._check_custom_references(step, graph, path, report)

        if step.is_switch:
            self._check_switch(step, report)
        elif step.branches:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.INVALID_SWITCH_BRANCHES,
                message=f"Step '{step.id}' declares branches but is not a SWITCH step",
                step_ids=[step.id],
                path=f"{base}.branches",
            ))

    def _check_custom_references(
        self,
        step: StepDefinition,
        graph: DependencyGraph,
        path: str,
        report: ValidationReport,
    ) -> None:
        """Reserved-key fields in a CUSTOM condition must name a predecessor."""
        predecessors = set(graph.get_predecessors(step.id))
        suffixes = (self.conditions.outcome_key_suffix, self.conditions.state_key_suffix)

        for simple in iter_simple_conditions(step.custom_condition):
            for suffix in suffixes:
                if not simple.field.endswith(suffix):
                    continue
                referenced = simple.field[: -len(suffix)]
                if referenced not in predecessors:
                    report.errors.append(TemplateValidationError(
                        kind=ValidationErrorKind.UNKNOWN_STEP_REFERENCE,
                        message=(
                            f"Custom condition of step '{step.id}' reads '{simple.field}' "
                            f"but '{referenced}' is not one of its predecessors"
                        ),
                        step_ids=[step.id, referenced],
                        path=path,
                    ))
                break

    def _check_switch(self, step: StepDefinition, report: ValidationReport) -> None:
        base = f"steps[{step.id}].branches"

        if len(step.branches) < 2:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.INVALID_SWITCH_BRANCHES,
                message=f"SWITCH step '{step.id}' needs at least 2 branches, has {len(step.branches)}",
                step_ids=[step.id],
                path=base,
            ))

        defaults = [branch for branch in step.branches if branch.default]
        if len(defaults) > 1:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.INVALID_SWITCH_BRANCHES,
                message=f"SWITCH step '{step.id}' has {len(defaults)} default branches",
                step_ids=[step.id],
                path=base,
            ))

        target_counts = Counter(branch.target for branch in step.branches)
        for target, count in sorted(target_counts.items()):
            if count > 1:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.DUPLICATE_SWITCH_TARGET,
                    message=f"SWITCH step '{step.id}' routes {count} branches to '{target}'",
                    step_ids=[step.id, target],
                    path=base,
                ))

        for index, branch in enumerate(step.branches):
            branch_path = f"{base}[{index}].condition"
            if branch.condition is None:
                if not branch.default:
                    report.errors.append(TemplateValidationError(
                        kind=ValidationErrorKind.MISSING_CONDITION_CONFIG,
                        message=f"Branch '{branch.label}' of SWITCH step '{step.id}' has no guard",
                        step_ids=[step.id],
                        path=branch_path,
                    ))
            else:
                self._check_condition(branch.condition, branch_path, step.id, 0, report)

        if step.branches and not defaults:
            if self.readiness.require_switch_default:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.MISSING_SWITCH_DEFAULT,
                    message=f"SWITCH step '{step.id}' has no default branch",
                    step_ids=[step.id],
                    path=base,
                ))
            else:
                report.warnings.append(StallWarning(
                    kind=StallWarningKind.SWITCH_WITHOUT_DEFAULT,
                    message=f"SWITCH step '{step.id}' has no default branch; an unmatched outcome stalls its targets",
                    step_ids=[step.id],
                ))

    # ------------------------------------------------------------------
    # CONDITIONS
    # ------------------------------------------------------------------

    def _check_condition(
        self,
        condition: Condition,
        path: str,
        step_id: str,
        depth: int,
        report: ValidationReport,
    ) -> None:
        """Walk a condition tree; depth counts compound levels (top = 1)."""
        if condition.kind == "simple":
            if condition.operator not in SIMPLE_OPERATORS:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.UNKNOWN_OPERATOR,
                    message=f"Unknown operator '{condition.operator}' in step '{step_id}'",
                    step_ids=[step_id],
                    path=path,
                ))
            elif condition.operator not in EXISTENCE_OPERATORS and not condition.has_value:
                report.errors.append(TemplateValidationError(
                    kind=ValidationErrorKind.MISSING_CONDITION_VALUE,
                    message=f"Operator '{condition.operator}' on '{condition.field}' in step '{step_id}' needs a value",
                    step_ids=[step_id],
                    path=path,
                ))
            return

        depth += 1
        if depth > self.conditions.max_nesting_depth:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.NESTING_DEPTH_EXCEEDED,
                message=(
                    f"Condition in step '{step_id}' nests {depth} levels deep "
                    f"(max {self.conditions.max_nesting_depth})"
                ),
                step_ids=[step_id],
                path=path,
            ))
            return

        if condition.operator not in COMPOUND_OPERATORS:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.UNKNOWN_OPERATOR,
                message=f"Unknown compound operator '{condition.operator}' in step '{step_id}'",
                step_ids=[step_id],
                path=path,
            ))

        if len(condition.conditions) < 2:
            report.errors.append(TemplateValidationError(
                kind=ValidationErrorKind.COMPOUND_ARITY_VIOLATION,
                message=(
                    f"{condition.operator} in step '{step_id}' needs at least 2 conditions, "
                    f"has {len(condition.conditions)}"
                ),
                step_ids=[step_id],
                path=path,
            ))

        for index, child in enumerate(condition.conditions):
            self._check_condition(child, f"{path}.conditions[{index}]", step_id, depth, report)


def _describe(edge: Optional[GraphEdge]) -> str:
    if edge is None:
        return "existing"
    if edge.branch_label is not None:
        return f"SWITCH branch '{edge.branch_label}'"
    return edge.dependency_type.value


__all__ = ["GraphValidator"]
