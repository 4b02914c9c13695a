"""Unit tests for the dependency graph.

These tests verify:
- Adjacency and dependency lookups
- Dangling edge / duplicate id reporting
- Cycle detection with the offending path
- Deterministic topological ordering
"""

from __future__ import annotations

import random

from nodeflow.domain.errors import CycleError, DanglingEdgeError, DuplicateNodeError
from nodeflow.domain.models import Edge, Node
from nodeflow.execution.graph import DependencyGraph


def _nodes(*ids: str) -> list[Node]:
    return [Node(id=node_id, type="const") for node_id in ids]


def _edges(*pairs: tuple[str, str]) -> list[Edge]:
    return [Edge(id=f"{s}-{t}", source=s, target=t) for s, t in pairs]


class TestBuild:
    def test_dependencies_and_dependents(self):
        graph = DependencyGraph.build(_nodes("a", "b", "c"), _edges(("a", "b"), ("a", "c"), ("b", "c")))

        assert graph.is_valid
        assert graph.dependencies_of("c") == {"a", "b"}
        assert graph.dependents_of("a") == {"b", "c"}
        assert graph.dependencies_of("a") == set()
        assert [e.id for e in graph.incoming_edges("c")] == ["a-c", "b-c"]

    def test_descendants(self):
        graph = DependencyGraph.build(
            _nodes("a", "b", "c", "d", "e"),
            _edges(("a", "b"), ("b", "c"), ("a", "d")),
        )

        assert graph.descendants_of("a") == {"b", "c", "d"}
        assert graph.descendants_of("b") == {"c"}
        assert graph.descendants_of("e") == set()

    def test_dangling_edge_is_reported_not_raised(self):
        graph = DependencyGraph.build(_nodes("a"), _edges(("a", "ghost")))

        assert not graph.is_valid
        assert len(graph.problems) == 1
        problem = graph.problems[0]
        assert isinstance(problem, DanglingEdgeError)
        assert problem.missing_node_id == "ghost"
        assert problem.endpoint == "target"
        assert graph.dependents_of("a") == set()

    def test_edge_with_both_endpoints_missing(self):
        graph = DependencyGraph.build(_nodes("a"), _edges(("x", "y")))

        assert [p.endpoint for p in graph.problems] == ["source", "target"]

    def test_duplicate_node_id(self):
        graph = DependencyGraph.build(_nodes("a", "b", "a"), [])

        assert len(graph) == 2
        assert isinstance(graph.problems[0], DuplicateNodeError)
        assert graph.problems[0].node_id == "a"


class TestCycles:
    def test_acyclic_graph_has_no_cycle(self):
        graph = DependencyGraph.build(_nodes("a", "b", "c"), _edges(("a", "b"), ("b", "c")))
        assert graph.detect_cycle() is None

    def test_two_node_cycle(self):
        graph = DependencyGraph.build(_nodes("a", "b"), _edges(("a", "b"), ("b", "a")))

        cycle = graph.detect_cycle()

        assert isinstance(cycle, CycleError)
        assert cycle.cycle == ["a", "b", "a"]
        assert cycle.members == {"a", "b"}
        assert "Cycle detected" in str(cycle)

    def test_self_loop(self):
        graph = DependencyGraph.build(_nodes("a"), _edges(("a", "a")))

        cycle = graph.detect_cycle()

        assert cycle is not None
        assert cycle.cycle == ["a", "a"]

    def test_cycle_behind_acyclic_prefix(self):
        graph = DependencyGraph.build(
            _nodes("a", "b", "c", "d"),
            _edges(("a", "b"), ("b", "c"), ("c", "d"), ("d", "b")),
        )

        cycle = graph.detect_cycle()

        assert cycle is not None
        assert cycle.members == {"b", "c", "d"}
        assert "a" not in cycle.members

    def test_diamond_is_not_a_cycle(self):
        graph = DependencyGraph.build(
            _nodes("a", "b", "c", "d"),
            _edges(("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")),
        )
        assert graph.detect_cycle() is None

    def test_topological_order_raises_on_cycle(self):
        graph = DependencyGraph.build(_nodes("a", "b", "c"), _edges(("a", "b"), ("b", "c"), ("c", "b")))

        try:
            graph.topological_order()
        except CycleError as exc:
            assert exc.members == {"b", "c"}
        else:
            raise AssertionError("expected CycleError")


class TestTopologicalOrder:
    def test_chain(self):
        graph = DependencyGraph.build(_nodes("a", "b", "c"), _edges(("a", "b"), ("b", "c")))
        assert graph.topological_order() == ["a", "b", "c"]

    def test_ties_broken_by_ascending_id(self):
        graph = DependencyGraph.build(
            _nodes("zeta", "beta", "alpha", "gamma"),
            _edges(("zeta", "gamma")),
        )
        assert graph.topological_order() == ["alpha", "beta", "zeta", "gamma"]

    def test_newly_eligible_nodes_compete_with_existing_ones(self):
        graph = DependencyGraph.build(_nodes("a", "c", "b"), _edges(("a", "b")))
        # after "a", both "b" (newly eligible) and "c" are eligible
        assert graph.topological_order() == ["a", "b", "c"]

    def test_order_is_independent_of_input_order(self):
        ids = [f"n{i:02d}" for i in range(20)]
        pairs = [(ids[i], ids[j]) for i in range(20) for j in range(i + 1, 20) if (i * 7 + j) % 5 == 0]
        expected = DependencyGraph.build(_nodes(*ids), _edges(*pairs)).topological_order()

        rng = random.Random(42)
        for _ in range(5):
            shuffled_ids = ids[:]
            shuffled_pairs = pairs[:]
            rng.shuffle(shuffled_ids)
            rng.shuffle(shuffled_pairs)
            graph = DependencyGraph.build(_nodes(*shuffled_ids), _edges(*shuffled_pairs))
            assert graph.topological_order() == expected

    def test_order_is_a_valid_permutation(self):
        rng = random.Random(7)
        ids = [f"n{i}" for i in range(30)]
        pairs = [(ids[i], ids[j]) for i in range(30) for j in range(i + 1, 30) if rng.random() < 0.15]
        graph = DependencyGraph.build(_nodes(*ids), _edges(*pairs))

        order = graph.topological_order()

        assert sorted(order) == sorted(ids)
        assert graph.is_ordered(order)
