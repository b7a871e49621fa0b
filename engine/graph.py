# ============================================================================
# DEPENDENCY GRAPH
# ============================================================================
# EPOCH: 1 - WORKFLOW ENGINE
# STATUS: Core - Adjacency index over template steps and edges
# PURPOSE: Build incoming/outgoing edge maps once per pass
# CREATED: 15 OCT 2026
# ============================================================================
"""
Dependency Graph

Steps and edges are stored flat and referenced by id. The graph is an
index built once per validation/resolution pass so the components never
re-scan the edge list.

Precedence edges come from:
- Explicit template edges (DEPENDS_ON, TRIGGERS, IF_TRUE_BRANCH,
  IF_FALSE_BRANCH)
- SWITCH branches (implicit edge from the SWITCH step to each target,
  tagged with the branch label)

A -> B means "B depends on A" (A must resolve before B).
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from core.contracts import DependencyType
from core.models import WorkflowTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphEdge:
    """A precedence edge between two known steps."""
    source: str
    target: str
    dependency_type: DependencyType = DependencyType.DEPENDS_ON
    branch_label: Optional[str] = None

    @property
    def is_branch(self) -> bool:
        """Branch edges only count when their branch was taken."""
        return self.branch_label is not None or self.dependency_type.is_branch()


@dataclass
class DependencyGraph:
    """
    Dependency graph for a template.

    Edges whose endpoints are not steps of the template are kept aside in
    `dangling` and excluded from adjacency. Only the first edge between a
    pair of steps is indexed; later ones land in `duplicates`.
    """
    # Step ID -> edges arriving at it
    incoming: Dict[str, List[GraphEdge]] = field(default_factory=lambda: defaultdict(list))

    # Step ID -> edges leaving it
    outgoing: Dict[str, List[GraphEdge]] = field(default_factory=lambda: defaultdict(list))

    # All step IDs
    nodes: Set[str] = field(default_factory=set)

    # Edges referencing unknown steps
    dangling: List[GraphEdge] = field(default_factory=list)

    # Edges dropped because their (source, target) pair was already linked
    duplicates: List[GraphEdge] = field(default_factory=list)

    def add_edge(self, edge: GraphEdge) -> bool:
        """Add an edge; returns False for a duplicate (source, target) pair."""
        if self.find_edge(edge.source, edge.target) is not None:
            return False
        self.outgoing[edge.source].append(edge)
        self.incoming[edge.target].append(edge)
        return True

    def find_edge(self, source: str, target: str) -> Optional[GraphEdge]:
        for edge in self.get_outgoing(source):
            if edge.target == target:
                return edge
        return None

    def get_incoming(self, step_id: str) -> List[GraphEdge]:
        return self.incoming.get(step_id, [])

    def get_outgoing(self, step_id: str) -> List[GraphEdge]:
        return self.outgoing.get(step_id, [])

    def get_predecessors(self, step_id: str) -> List[str]:
        """Steps this step depends on."""
        return [edge.source for edge in self.get_incoming(step_id)]

    def get_successors(self, step_id: str) -> List[str]:
        """Steps that depend on this step."""
        return [edge.target for edge in self.get_outgoing(step_id)]

    def roots(self) -> List[str]:
        """Steps with no incoming edges (a template's initial steps)."""
        return sorted(node for node in self.nodes if not self.get_incoming(node))

    def topological_order(self) -> List[str]:
        """
        Kahn ordering of the nodes, ties broken by id.

        Nodes on a cycle never reach in-degree zero; they are appended at
        the end in id order so callers still see every node once.
        """
        in_degree = {node: len(self.get_incoming(node)) for node in self.nodes}
        queue = deque(sorted(node for node, degree in in_degree.items() if degree == 0))
        ordered: List[str] = []

        while queue:
            node = queue.popleft()
            ordered.append(node)
            for successor in sorted(self.get_successors(node)):
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    queue.append(successor)

        if len(ordered) != len(self.nodes):
            placed = set(ordered)
            ordered.extend(sorted(node for node in self.nodes if node not in placed))
        return ordered


class GraphBuilder:
    """Builds the dependency graph from a template."""

    def build(self, template: WorkflowTemplate) -> DependencyGraph:
        """
        Build dependency graph from template.

        SWITCH branch edges are added first, so an explicit edge between the
        same pair is the one recorded as a duplicate.

        Args:
            template: Template definition

        Returns:
            DependencyGraph instance
        """
        graph = DependencyGraph()
        graph.nodes.update(step.id for step in template.steps)

        for step in template.steps:
            for branch in step.branches:
                edge = GraphEdge(
                    source=step.id,
                    target=branch.target,
                    dependency_type=DependencyType.DEPENDS_ON,
                    branch_label=branch.label,
                )
                self._add(graph, edge)

        for template_edge in template.edges:
            edge = GraphEdge(
                source=template_edge.source,
                target=template_edge.target,
                dependency_type=template_edge.dependency_type,
            )
            self._add(graph, edge)

        return graph

    def _add(self, graph: DependencyGraph, edge: GraphEdge) -> None:
        if edge.source not in graph.nodes or edge.target not in graph.nodes:
            graph.dangling.append(edge)
            return
        if graph.add_edge(edge):
            return
        kept = graph.find_edge(edge.source, edge.target)
        if edge.branch_label is not None and kept is not None and kept.branch_label is not None:
            # Reported per SWITCH as DUPLICATE_SWITCH_TARGET
            return
        logger.debug(f"Duplicate edge {edge.source} -> {edge.target}")
        graph.duplicates.append(edge)


__all__ = [
    "GraphEdge",
    "DependencyGraph",
    "GraphBuilder",
]
