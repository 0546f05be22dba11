"""Tests for the in-memory hierarchy graph."""

import pytest

from hr_org.services.authority_resolver import AuthorityResolver
from hr_org.services.hierarchy_graph import (
    ChainStop,
    EdgeKind,
    HierarchyGraph,
    PositionNode,
)


def build_graph(levels, reports_to=None, coordinator=None, departments=None):
    """Build a graph from {id: level} and {id: target} edge maps."""
    graph = HierarchyGraph()
    departments = departments or {}
    for pid, level in levels.items():
        graph.add_position(
            PositionNode(
                id=pid,
                code=f"P{pid}",
                name=f"Position {pid}",
                hierarchy_level=level,
                department_id=departments.get(pid, 1),
            )
        )
    reports_to = reports_to or {}
    coordinator = coordinator or {}
    for pid in levels:
        graph.set_edges(pid, reports_to.get(pid), coordinator.get(pid))
    return graph


@pytest.fixture
def linear_graph():
    """1 <- 2 <- 3 <- 4 reporting line."""
    return build_graph({1: 1, 2: 2, 3: 3, 4: 4}, reports_to={2: 1, 3: 2, 4: 3})


class TestReportingChain:
    """Tests for get_reporting_chain."""

    def test_chain_is_nearest_first(self, linear_graph):
        chain = linear_graph.get_reporting_chain(4)

        assert [entry.position_id for entry in chain] == [3, 2, 1]
        assert [entry.depth for entry in chain] == [1, 2, 3]

    def test_root_has_empty_chain(self, linear_graph):
        assert linear_graph.get_reporting_chain(1) == []

    def test_long_chain_is_capped_at_twenty(self):
        levels = {pid: pid for pid in range(1, 27)}
        edges = {pid: pid - 1 for pid in range(2, 27)}
        graph = build_graph(levels, reports_to=edges)

        chain = graph.get_reporting_chain(26)

        assert len(chain) == 20
        assert chain[0].position_id == 25
        assert chain[-1].position_id == 6

    def test_cycle_terminates(self):
        graph = build_graph({1: 1, 2: 1, 3: 1}, reports_to={1: 2, 2: 3, 3: 1})

        chain = graph.get_reporting_chain(1)

        assert [entry.position_id for entry in chain] == [2, 3]

    def test_walk_reports_why_it_stopped(self):
        graph = build_graph({1: 1, 2: 2}, reports_to={2: 1})
        graph.set_edges(1, reports_to_id=99)

        walk = graph.walk(2)

        assert walk.ids == [1]
        assert walk.stop == ChainStop.DANGLING
        assert walk.last_edge_target == 99

    def test_walk_hop_limit(self, linear_graph):
        walk = linear_graph.walk(4, max_hops=2)

        assert walk.ids == [3, 2]
        assert walk.stop == ChainStop.HOP_LIMIT


class TestSubordinates:
    """Tests for get_subordinates."""

    def test_includes_both_edge_kinds_at_any_depth(self):
        graph = build_graph(
            {1: 1, 2: 2, 3: 3, 4: 2},
            reports_to={2: 1, 3: 2},
            coordinator={4: 1},
        )

        subordinates = graph.get_subordinates(1)

        assert {s.position_id for s in subordinates} == {2, 3, 4}

    def test_sorted_by_level_then_name(self):
        graph = build_graph({1: 1, 2: 3, 3: 2, 4: 2}, reports_to={2: 1, 3: 1, 4: 1})

        subordinates = graph.get_subordinates(1)

        assert [s.position_id for s in subordinates] == [3, 4, 2]

    def test_leaf_has_no_subordinates(self, linear_graph):
        assert linear_graph.get_subordinates(4) == []

    def test_cycle_does_not_loop(self):
        graph = build_graph({1: 1, 2: 1}, reports_to={1: 2, 2: 1})

        assert [s.position_id for s in graph.get_subordinates(1)] == [2]


class TestCycleDetection:
    """Tests for would_create_cycle and dependents_of."""

    def test_self_edge_is_a_cycle(self, linear_graph):
        assert linear_graph.would_create_cycle(2, 2)

    def test_edge_to_descendant_is_a_cycle(self, linear_graph):
        assert linear_graph.would_create_cycle(1, 4)

    def test_edge_to_ancestor_is_not_a_cycle(self, linear_graph):
        assert not linear_graph.would_create_cycle(4, 1)

    def test_edge_kinds_are_independent(self, linear_graph):
        assert not linear_graph.would_create_cycle(1, 4, EdgeKind.COORDINATOR)

    def test_dependents_of(self):
        graph = build_graph({1: 1, 2: 2, 3: 2}, reports_to={2: 1}, coordinator={3: 1})

        assert graph.dependents_of(1) == [2, 3]
        assert graph.dependents_of(2) == []


class TestAuthorityResolver:
    """Tests for AuthorityResolver."""

    def test_more_senior_in_same_department_has_authority(self, linear_graph):
        assert AuthorityResolver(linear_graph).resolve([1], 3) == 1

    def test_same_level_has_no_authority(self):
        graph = build_graph({1: 2, 2: 2})

        assert not AuthorityResolver(graph).has_authority([1], 2)

    def test_other_department_has_no_authority(self):
        graph = build_graph({1: 1, 2: 3}, departments={1: 1, 2: 2})

        assert not AuthorityResolver(graph).has_authority([1], 2)

    def test_every_holding_is_considered(self):
        graph = build_graph({1: 1, 2: 1, 3: 3}, departments={1: 9, 2: 1, 3: 1})

        assert AuthorityResolver(graph).resolve([1, 2], 3) == 2

    def test_unknown_target(self, linear_graph):
        assert AuthorityResolver(linear_graph).resolve([1], 42) is None
