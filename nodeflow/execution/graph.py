"""Dependency graph for workflow execution.

Nodes are stored by id; adjacency is kept as per-node edge lists in both
directions. The graph is read-only once built and is rebuilt for each run.
"""

from __future__ import annotations

import heapq
import sys
from collections.abc import Iterable, Sequence

from nodeflow.domain.errors import (
    CycleError,
    DanglingEdgeError,
    DuplicateNodeError,
    GraphValidationError,
)
from nodeflow.domain.models import Edge, Node

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Adjacency lists plus ordering and reachability queries.

    Use ``DependencyGraph.build`` rather than the constructor. Problems found
    while building (unknown endpoints, duplicate ids) are collected on
    ``problems`` instead of being raised, so callers can report them together
    with the cycle and port checks.
    """

    def __init__(self) -> None:
        self.node_ids: list[str] = []
        self._outgoing: dict[str, list[Edge]] = {}
        self._incoming: dict[str, list[Edge]] = {}
        self.problems: list[GraphValidationError] = []

    @classmethod
    def build(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> DependencyGraph:
        graph = cls()

        for node in nodes:
            if node.id in graph._outgoing:
                graph.problems.append(DuplicateNodeError(node.id))
                continue
            graph.node_ids.append(node.id)
            graph._outgoing[node.id] = []
            graph._incoming[node.id] = []

        for edge in edges:
            dangling = False
            for endpoint, node_id in (("source", edge.source), ("target", edge.target)):
                if node_id not in graph._outgoing:
                    graph.problems.append(DanglingEdgeError(edge.id, node_id, endpoint))
                    dangling = True
            if dangling:
                continue
            graph._outgoing[edge.source].append(edge)
            graph._incoming[edge.target].append(edge)

        sys.stderr.write(
            f"[GRAPH] Built graph: {len(graph.node_ids)} nodes, "
            f"{sum(len(e) for e in graph._outgoing.values())} edges, "
            f"{len(graph.problems)} problems\n"
        )
        sys.stderr.flush()
        return graph

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._outgoing

    def __len__(self) -> int:
        return len(self.node_ids)

    @property
    def is_valid(self) -> bool:
        return not self.problems

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return self._incoming.get(node_id, [])

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return self._outgoing.get(node_id, [])

    def dependencies_of(self, node_id: str) -> set[str]:
        """Direct predecessors of a node."""
        return {edge.source for edge in self.incoming_edges(node_id)}

    def dependents_of(self, node_id: str) -> set[str]:
        """Direct successors of a node."""
        return {edge.target for edge in self.outgoing_edges(node_id)}

    def descendants_of(self, node_id: str) -> set[str]:
        """All nodes reachable from ``node_id`` through forward edges."""
        seen: set[str] = set()
        stack = list(self.dependents_of(node_id))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.dependents_of(current) - seen)
        return seen

    def detect_cycle(self) -> CycleError | None:
        """Three-colour depth-first search.

        Returns:
            A CycleError whose ``cycle`` is the offending id sequence, closed
            on its first node (e.g. ``["a", "b", "a"]``), or None.
        """
        color = {node_id: _WHITE for node_id in self.node_ids}

        for root in sorted(self.node_ids):
            if color[root] != _WHITE:
                continue
            path: list[str] = [root]
            color[root] = _GRAY
            stack = [iter(sorted(self.dependents_of(root)))]
            while stack:
                successor = next(stack[-1], None)
                if successor is None:
                    color[path.pop()] = _BLACK
                    stack.pop()
                    continue
                if color[successor] == _GRAY:
                    start = path.index(successor)
                    return CycleError(path[start:] + [successor])
                if color[successor] == _WHITE:
                    color[successor] = _GRAY
                    path.append(successor)
                    stack.append(iter(sorted(self.dependents_of(successor))))
        return None

    def topological_order(self) -> list[str]:
        """Kahn's algorithm, taking eligible nodes in ascending id order.

        Raises:
            CycleError: If some nodes can never become eligible.
        """
        in_degree = {node_id: len(self._incoming[node_id]) for node_id in self.node_ids}
        eligible = [node_id for node_id, degree in in_degree.items() if degree == 0]
        heapq.heapify(eligible)

        order: list[str] = []
        while eligible:
            node_id = heapq.heappop(eligible)
            order.append(node_id)
            for edge in self._outgoing[node_id]:
                in_degree[edge.target] -= 1
                if in_degree[edge.target] == 0:
                    heapq.heappush(eligible, edge.target)

        if len(order) != len(self.node_ids):
            cycle = self.detect_cycle()
            if cycle is not None:
                raise cycle
            ordered = set(order)
            remaining = [node_id for node_id in self.node_ids if node_id not in ordered]
            raise CycleError(remaining)
        return order

    def is_ordered(self, order: Sequence[str]) -> bool:
        """Check that ``order`` places every edge's source before its target."""
        position = {node_id: index for index, node_id in enumerate(order)}
        return all(
            position[edge.source] < position[edge.target]
            for edges in self._outgoing.values()
            for edge in edges
        )
