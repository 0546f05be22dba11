"""
Reporting-line and coordination graph over positions.

Nodes and edges are held in id-indexed dictionaries; traversals work on
plain position ids with visited sets, so no walk can loop forever.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_org.models.organization import Position, PositionHierarchy
from hr_org.schemas.hierarchy import ChainEntry, SubordinateEntry

DEFAULT_MAX_HOPS = 20


class EdgeKind(str, Enum):
    """Kind of outgoing edge a position can have."""

    REPORTS_TO = "reports_to"
    COORDINATOR = "coordinator"


class ChainStop(str, Enum):
    """Why a reporting-chain walk ended."""

    ROOT = "root"
    DANGLING = "dangling"
    CYCLE = "cycle"
    HOP_LIMIT = "hop_limit"


@dataclass(frozen=True)
class PositionNode:
    """Position attributes needed by graph consumers."""

    id: int
    code: str
    name: str
    hierarchy_level: int
    department_id: Optional[int] = None
    school_id: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_model(cls, position: Position) -> "PositionNode":
        return cls(
            id=position.id,
            code=position.code,
            name=position.name,
            hierarchy_level=position.hierarchy_level,
            department_id=position.department_id,
            school_id=position.school_id,
            is_active=position.is_active,
        )


@dataclass
class ChainWalk:
    """
    Raw result of following one edge kind upward.

    Attributes:
        ids: Visited superiors, nearest first (the start is excluded)
        stop: Reason the walk ended
        revisited: Node that was seen twice when ``stop`` is CYCLE
        last_edge_target: Target of the final edge followed, when it was not
            appended (dangling or revisited)
    """

    ids: List[int] = field(default_factory=list)
    stop: ChainStop = ChainStop.ROOT
    revisited: Optional[int] = None
    last_edge_target: Optional[int] = None


class HierarchyGraph:
    """
    Directed graph with at most one ``reports_to`` and one ``coordinator``
    edge per position.

    ``defined`` holds the ids of positions that have a hierarchy record,
    which is distinct from having an edge.
    """

    def __init__(self) -> None:
        self.nodes: Dict[int, PositionNode] = {}
        self.reports_to: Dict[int, int] = {}
        self.coordinator: Dict[int, int] = {}
        self.defined: Set[int] = set()

    @classmethod
    def load(cls, session: Session) -> "HierarchyGraph":
        """Build a read-only snapshot of every position and hierarchy record."""
        graph = cls()

        for position in session.scalars(select(Position)).all():
            graph.add_position(PositionNode.from_model(position))

        for record in session.scalars(select(PositionHierarchy)).all():
            graph.set_edges(record.position_id, record.reports_to_id, record.coordinator_id)

        return graph

    def add_position(self, node: PositionNode) -> None:
        self.nodes[node.id] = node

    def set_edges(
        self,
        position_id: int,
        reports_to_id: Optional[int] = None,
        coordinator_id: Optional[int] = None,
    ) -> None:
        """Record the hierarchy row of a position, replacing any previous edges."""
        self.defined.add(position_id)
        self.reports_to.pop(position_id, None)
        self.coordinator.pop(position_id, None)
        if reports_to_id is not None:
            self.reports_to[position_id] = reports_to_id
        if coordinator_id is not None:
            self.coordinator[position_id] = coordinator_id

    def _edges(self, kind: EdgeKind) -> Dict[int, int]:
        return self.reports_to if kind == EdgeKind.REPORTS_TO else self.coordinator

    def _inverse(self, kind: EdgeKind) -> Dict[int, List[int]]:
        inverse: Dict[int, List[int]] = {}
        for source, target in self._edges(kind).items():
            inverse.setdefault(target, []).append(source)
        return inverse

    # =========================================================================
    # Traversals
    # =========================================================================

    def walk(
        self,
        position_id: int,
        kind: EdgeKind = EdgeKind.REPORTS_TO,
        max_hops: Optional[int] = DEFAULT_MAX_HOPS,
    ) -> ChainWalk:
        """
        Follow one edge kind upward from ``position_id``.

        Stops at a node without an edge, an edge to an unknown node, an
        already-visited node, or after ``max_hops`` edges. ``max_hops=None``
        relies on the visited set alone.
        """
        edges = self._edges(kind)
        result = ChainWalk()
        visited = {position_id}
        current = position_id

        while True:
            if max_hops is not None and len(result.ids) >= max_hops:
                if current in edges:
                    result.stop = ChainStop.HOP_LIMIT
                return result

            target = edges.get(current)
            if target is None:
                result.stop = ChainStop.ROOT
                return result

            if target not in self.nodes:
                result.stop = ChainStop.DANGLING
                result.last_edge_target = target
                return result

            if target in visited:
                result.stop = ChainStop.CYCLE
                result.revisited = target
                result.last_edge_target = target
                return result

            visited.add(target)
            result.ids.append(target)
            current = target

    def get_reporting_chain(
        self,
        position_id: int,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> List[ChainEntry]:
        """
        Get the superiors of a position, nearest first.

        Never returns more than ``max_hops`` entries.
        """
        chain: List[ChainEntry] = []
        for depth, superior_id in enumerate(self.walk(position_id, max_hops=max_hops).ids, start=1):
            node = self.nodes[superior_id]
            chain.append(
                ChainEntry(
                    depth=depth,
                    position_id=node.id,
                    position_code=node.code,
                    position_name=node.name,
                    hierarchy_level=node.hierarchy_level,
                    department_id=node.department_id,
                )
            )
        return chain

    def get_subordinates(self, position_id: int) -> List[SubordinateEntry]:
        """
        Get every position that reports to or is coordinated by
        ``position_id``, directly or at any depth.

        Ordered by hierarchy level, then name.
        """
        inverse_reports = self._inverse(EdgeKind.REPORTS_TO)
        inverse_coordinates = self._inverse(EdgeKind.COORDINATOR)

        visited: Set[int] = {position_id}
        queue = deque([position_id])
        found: List[int] = []

        while queue:
            current = queue.popleft()
            for child in inverse_reports.get(current, []) + inverse_coordinates.get(current, []):
                if child in visited:
                    continue
                visited.add(child)
                found.append(child)
                queue.append(child)

        subordinates = [
            SubordinateEntry(
                position_id=node.id,
                position_code=node.code,
                position_name=node.name,
                hierarchy_level=node.hierarchy_level,
                department_id=node.department_id,
            )
            for node in (self.nodes[pid] for pid in found if pid in self.nodes)
        ]
        subordinates.sort(key=lambda s: (s.hierarchy_level, s.position_name))
        return subordinates

    def dependents_of(self, position_id: int) -> List[int]:
        """Positions with a direct ``reports_to`` or ``coordinator`` edge to ``position_id``."""
        dependents = {
            source for source, target in self.reports_to.items() if target == position_id
        }
        dependents.update(
            source for source, target in self.coordinator.items() if target == position_id
        )
        return sorted(dependents)

    def would_create_cycle(
        self,
        position_id: int,
        target_id: int,
        edge_kind: EdgeKind = EdgeKind.REPORTS_TO,
    ) -> bool:
        """
        Check whether adding ``position_id -> target_id`` of ``edge_kind``
        closes a loop.
        """
        if position_id == target_id:
            return True

        edges = self._edges(edge_kind)
        visited: Set[int] = set()
        current: Optional[int] = target_id

        while current is not None and current not in visited:
            if current == position_id:
                return True
            visited.add(current)
            current = edges.get(current)

        return False
