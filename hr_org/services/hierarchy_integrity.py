"""Whole-graph integrity checks for the position hierarchy."""

import logging
from typing import List, Optional

from hr_org.config.settings import HierarchySettings
from hr_org.schemas.hierarchy import (
    CircularReference,
    DepthWarning,
    HierarchyReport,
    OrphanedPosition,
)
from hr_org.services.hierarchy_graph import ChainStop, ChainWalk, HierarchyGraph, PositionNode

logger = logging.getLogger(__name__)


class HierarchyIntegrityChecker:
    """
    Scan a hierarchy snapshot for cycles, orphans and excessive depth.

    Used operationally to catch drift, not on every write. Cycles and
    orphans make the report invalid; depth warnings are informational.
    """

    def __init__(
        self,
        graph: HierarchyGraph,
        settings: Optional[HierarchySettings] = None,
    ):
        self.graph = graph
        self.settings = settings or HierarchySettings()

    def validate_hierarchy(self) -> HierarchyReport:
        """
        Run every check over the whole graph.

        Returns:
            HierarchyReport listing circular references, orphaned positions
            and depth warnings
        """
        circular: List[CircularReference] = []
        orphaned: List[OrphanedPosition] = []
        depth_warnings: List[DepthWarning] = []

        for position_id in sorted(self.graph.nodes):
            node = self.graph.nodes[position_id]
            walk: Optional[ChainWalk] = None

            if position_id in self.graph.reports_to:
                walk = self.graph.walk(position_id, max_hops=None)
                cycle = self._check_cycle(node, walk)
                if cycle is not None:
                    circular.append(cycle)
                    continue

            if not node.is_active:
                continue

            orphan = self._check_orphan(node, walk)
            if orphan is not None:
                orphaned.append(orphan)
                continue

            if walk is not None:
                warning = self._check_depth(node, walk)
                if warning is not None:
                    depth_warnings.append(warning)

        report = HierarchyReport(
            valid=not circular and not orphaned,
            circular_references=circular,
            orphaned_positions=orphaned,
            depth_warnings=depth_warnings,
        )

        if report.valid:
            logger.info("Hierarchy validation passed for %d positions", len(self.graph.nodes))
        else:
            logger.warning(
                "Hierarchy validation found %d circular references and %d orphaned positions",
                len(circular),
                len(orphaned),
            )
        return report

    # =========================================================================
    # Individual Checks
    # =========================================================================

    def _check_cycle(self, node: PositionNode, walk: ChainWalk) -> Optional[CircularReference]:
        """A position is circular when its own walk returns to it."""
        if walk.stop != ChainStop.CYCLE or walk.revisited != node.id:
            return None

        # The last superior visited is the one whose edge points back here
        conflict_with = walk.ids[-1] if walk.ids else node.id
        return CircularReference(
            position_id=node.id,
            position_name=node.name,
            conflict_with=conflict_with,
        )

    def _check_orphan(
        self,
        node: PositionNode,
        walk: Optional[ChainWalk],
    ) -> Optional[OrphanedPosition]:
        nodes = self.graph.nodes

        if node.id not in self.graph.defined:
            if node.hierarchy_level > 1:
                return self._orphan(node, "No hierarchy definition")
            return None

        superior_id = self.graph.reports_to.get(node.id)
        if superior_id is None or walk is None:
            return None

        if superior_id not in nodes:
            return self._orphan(node, f"Reports to position {superior_id} which does not exist")

        if not nodes[superior_id].is_active:
            return self._orphan(
                node, f"Reports to inactive position '{nodes[superior_id].name}'"
            )

        for previous_id, ancestor_id in zip(walk.ids, walk.ids[1:]):
            if not nodes[ancestor_id].is_active:
                return self._orphan(
                    node,
                    f"Reporting chain broken above '{nodes[previous_id].name}': "
                    f"position '{nodes[ancestor_id].name}' is inactive",
                )

        if walk.stop == ChainStop.DANGLING:
            top = nodes[walk.ids[-1]]
            return self._orphan(
                node,
                f"Reporting chain broken above '{top.name}': "
                f"position {walk.last_edge_target} does not exist",
            )

        if walk.stop == ChainStop.CYCLE:
            entry = nodes[walk.revisited]
            return self._orphan(
                node,
                f"Reporting chain never reaches a root (enters a cycle at '{entry.name}')",
            )

        return None

    def _check_depth(self, node: PositionNode, walk: ChainWalk) -> Optional[DepthWarning]:
        depth = len(walk.ids)
        if depth <= self.settings.max_depth:
            return None

        return DepthWarning(
            position_id=node.id,
            position_name=node.name,
            depth=depth,
            truncated=depth > self.settings.max_chain_hops,
        )

    @staticmethod
    def _orphan(node: PositionNode, reason: str) -> OrphanedPosition:
        return OrphanedPosition(position_id=node.id, position_name=node.name, reason=reason)
