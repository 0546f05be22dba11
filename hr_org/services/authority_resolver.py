"""Appointment authority over positions."""

from typing import Iterable, Optional

from hr_org.services.hierarchy_graph import HierarchyGraph


class AuthorityResolver:
    """
    Decide whether an appointer's holdings grant authority over a position.

    A holding at position P grants authority over target T when P is
    strictly more senior (lower ``hierarchy_level``) and in the same
    department. Every holding is considered, not just the first.
    """

    def __init__(self, graph: HierarchyGraph):
        self.graph = graph

    def resolve(self, holding_position_ids: Iterable[int], target_id: int) -> Optional[int]:
        """
        Find a holding that grants authority over ``target_id``.

        Args:
            holding_position_ids: Positions the appointer actively holds (non-acting)
            target_id: Position being filled

        Returns:
            The granting position id, or None when no holding qualifies or the
            target is unknown
        """
        target = self.graph.nodes.get(target_id)
        if target is None:
            return None

        for position_id in sorted(set(holding_position_ids)):
            holding = self.graph.nodes.get(position_id)
            if holding is None:
                continue
            if (
                holding.hierarchy_level < target.hierarchy_level
                and holding.department_id == target.department_id
            ):
                return position_id

        return None

    def has_authority(self, holding_position_ids: Iterable[int], target_id: int) -> bool:
        return self.resolve(holding_position_ids, target_id) is not None
