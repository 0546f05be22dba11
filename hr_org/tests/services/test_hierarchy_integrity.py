"""Tests for whole-hierarchy integrity validation."""

from hr_org.config.settings import HierarchySettings
from hr_org.services.hierarchy_graph import HierarchyGraph, PositionNode
from hr_org.services.hierarchy_integrity import HierarchyIntegrityChecker


def node(pid, level, is_active=True):
    return PositionNode(
        id=pid,
        code=f"P{pid}",
        name=f"Position {pid}",
        hierarchy_level=level,
        department_id=1,
        is_active=is_active,
    )


class TestHierarchyIntegrityChecker:
    """Tests for HierarchyIntegrityChecker."""

    def test_acyclic_hierarchy_is_valid(self):
        graph = HierarchyGraph()
        for pid, level in [(1, 1), (2, 2), (3, 3)]:
            graph.add_position(node(pid, level))
        graph.set_edges(1)
        graph.set_edges(2, reports_to_id=1)
        graph.set_edges(3, reports_to_id=2)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert report.valid is True
        assert report.circular_references == []
        assert report.orphaned_positions == []
        assert report.depth_warnings == []

    def test_three_node_cycle_is_reported_for_each_member(self):
        graph = HierarchyGraph()
        for pid in (1, 2, 3):
            graph.add_position(node(pid, 1))
        graph.set_edges(1, reports_to_id=2)
        graph.set_edges(2, reports_to_id=3)
        graph.set_edges(3, reports_to_id=1)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert report.valid is False
        assert {ref.position_id for ref in report.circular_references} == {1, 2, 3}
        by_position = {ref.position_id: ref.conflict_with for ref in report.circular_references}
        assert by_position[1] == 3

    def test_position_feeding_into_cycle_is_orphaned(self):
        graph = HierarchyGraph()
        for pid in (1, 2, 3):
            graph.add_position(node(pid, 1))
        graph.set_edges(1, reports_to_id=2)
        graph.set_edges(2, reports_to_id=1)
        graph.set_edges(3, reports_to_id=1)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert {ref.position_id for ref in report.circular_references} == {1, 2}
        assert [o.position_id for o in report.orphaned_positions] == [3]
        assert "never reaches a root" in report.orphaned_positions[0].reason

    def test_missing_hierarchy_definition_below_top_level(self):
        graph = HierarchyGraph()
        graph.add_position(node(1, 1))
        graph.add_position(node(2, 2))

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert [o.position_id for o in report.orphaned_positions] == [2]
        assert report.orphaned_positions[0].reason == "No hierarchy definition"

    def test_reports_to_missing_position(self):
        graph = HierarchyGraph()
        graph.add_position(node(2, 2))
        graph.set_edges(2, reports_to_id=99)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert report.orphaned_positions[0].reason == "Reports to position 99 which does not exist"

    def test_reports_to_inactive_position(self):
        graph = HierarchyGraph()
        graph.add_position(node(1, 1, is_active=False))
        graph.add_position(node(2, 2))
        graph.set_edges(1)
        graph.set_edges(2, reports_to_id=1)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert [o.position_id for o in report.orphaned_positions] == [2]
        assert "inactive position 'Position 1'" in report.orphaned_positions[0].reason

    def test_inactive_ancestor_breaks_chain(self):
        graph = HierarchyGraph()
        graph.add_position(node(1, 1, is_active=False))
        graph.add_position(node(2, 2))
        graph.add_position(node(3, 3))
        graph.set_edges(1)
        graph.set_edges(2, reports_to_id=1)
        graph.set_edges(3, reports_to_id=2)

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        reasons = {o.position_id: o.reason for o in report.orphaned_positions}
        assert reasons[3].startswith("Reporting chain broken above 'Position 2'")

    def test_inactive_positions_are_not_reported_as_orphans(self):
        graph = HierarchyGraph()
        graph.add_position(node(2, 2, is_active=False))

        report = HierarchyIntegrityChecker(graph).validate_hierarchy()

        assert report.valid is True

    def test_deep_chain_produces_warning_but_stays_valid(self):
        graph = HierarchyGraph()
        for pid in range(1, 14):
            graph.add_position(node(pid, pid))
        graph.set_edges(1)
        for pid in range(2, 14):
            graph.set_edges(pid, reports_to_id=pid - 1)

        report = HierarchyIntegrityChecker(graph, HierarchySettings(max_depth=10)).validate_hierarchy()

        assert report.valid is True
        assert [w.position_id for w in report.depth_warnings] == [12, 13]
        assert report.depth_warnings[-1].depth == 12
        assert report.depth_warnings[-1].truncated is False
