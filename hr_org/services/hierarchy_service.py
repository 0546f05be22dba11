"""Service for editing and querying the position hierarchy."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_org.audit.service import AuditContext, OrganizationAuditService
from hr_org.config.settings import HierarchySettings, get_settings
from hr_org.database.database import transaction_scope
from hr_org.models.organization import Department, Position, PositionHierarchy
from hr_org.schemas.hierarchy import (
    ChainEntry,
    HierarchyReport,
    HierarchyResponse,
    SetHierarchyRequest,
    SubordinateEntry,
)
from hr_org.services.access_control_service import (
    AccessControlService,
    AccessOperation,
    EntityType,
)
from hr_org.services.hierarchy_graph import EdgeKind, HierarchyGraph
from hr_org.services.hierarchy_integrity import HierarchyIntegrityChecker
from hr_org.utils.errors import (
    AccessDeniedError,
    CircularHierarchyError,
    InvalidHierarchyError,
    PositionInactiveError,
    PositionNotFoundError,
    TargetPositionNotFoundError,
)

logger = logging.getLogger(__name__)


class HierarchyService:
    """
    Service for position hierarchy operations.

    Provides functionality for:
    - Setting the reporting and coordination lines of a position
    - Walking reporting chains and subordinate sets
    - Validating the integrity of the whole hierarchy
    """

    def __init__(
        self,
        session: Session,
        settings: Optional[HierarchySettings] = None,
        audit_service: Optional[OrganizationAuditService] = None,
    ):
        self.session = session
        self.settings = settings or get_settings().hierarchy
        self.access = AccessControlService(session)
        self.audit = audit_service or OrganizationAuditService(session)

    # =========================================================================
    # Hierarchy Edits
    # =========================================================================

    def set_hierarchy(
        self,
        position_id: int,
        request: SetHierarchyRequest,
        actor_id: str,
    ) -> HierarchyResponse:
        """
        Replace the edges of a position after validating them.

        Raises:
            AccessDeniedError: If the actor cannot update the position
            PositionNotFoundError: If the position does not exist
            InvalidHierarchyError: Self reference, wrong seniority, coordinator
                equal to superior, or disallowed cross-department reporting
            CircularHierarchyError: If an edge would close a loop
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.UPDATE)

        with transaction_scope(self.session):
            position = self.session.get(Position, position_id)
            if position is None:
                raise PositionNotFoundError(details={"position_id": position_id})

            self._validate_edges(position, request)

            record = self.session.scalars(
                select(PositionHierarchy).where(PositionHierarchy.position_id == position_id)
            ).first()
            old_values = {
                "reports_to_id": record.reports_to_id if record else None,
                "coordinator_id": record.coordinator_id if record else None,
            }

            if record is None:
                record = PositionHierarchy(position_id=position_id)
                self.session.add(record)
            record.reports_to_id = request.reports_to_id
            record.coordinator_id = request.coordinator_id
            self.session.flush()

        logger.info(
            "Set hierarchy of position %s: reports_to=%s coordinator=%s",
            position_id, request.reports_to_id, request.coordinator_id,
        )
        self.audit.safe_log(
            self.audit.log_organizational_change,
            "PositionHierarchy",
            position_id,
            "HIERARCHY_CHANGE",
            AuditContext(actor_id=actor_id),
            entity_display=position.name,
            old_values=old_values,
            new_values=request.model_dump(),
        )
        return HierarchyResponse.model_validate(record)

    def _validate_edges(self, position: Position, request: SetHierarchyRequest) -> None:
        if position.id in (request.reports_to_id, request.coordinator_id):
            raise InvalidHierarchyError(
                message="A position cannot report to or be coordinated by itself",
            )

        if (
            request.reports_to_id is not None
            and request.reports_to_id == request.coordinator_id
        ):
            raise InvalidHierarchyError(
                message="Coordinator and reporting manager cannot be the same position",
            )

        graph: Optional[HierarchyGraph] = None

        if request.reports_to_id is not None:
            superior = self._get_edge_target(request.reports_to_id, "reports_to_id")
            if superior.hierarchy_level >= position.hierarchy_level:
                raise InvalidHierarchyError(
                    message="A position can only report to a higher hierarchy level",
                    details={
                        "hierarchy_level": position.hierarchy_level,
                        "reports_to_level": superior.hierarchy_level,
                    },
                )

            graph = HierarchyGraph.load(self.session)
            if graph.would_create_cycle(position.id, superior.id, EdgeKind.REPORTS_TO):
                raise CircularHierarchyError(
                    message="This change would create a circular reporting structure",
                    details={"position_id": position.id, "reports_to_id": superior.id},
                )

            self._check_cross_department(position, superior)

        if request.coordinator_id is not None:
            coordinator = self._get_edge_target(request.coordinator_id, "coordinator_id")
            if coordinator.hierarchy_level > position.hierarchy_level:
                raise InvalidHierarchyError(
                    message="A position can only be coordinated by same or higher hierarchy level",
                    details={
                        "hierarchy_level": position.hierarchy_level,
                        "coordinator_level": coordinator.hierarchy_level,
                    },
                )

            graph = graph or HierarchyGraph.load(self.session)
            if graph.would_create_cycle(position.id, coordinator.id, EdgeKind.COORDINATOR):
                raise CircularHierarchyError(
                    message="This change would create a circular coordination structure",
                    details={"position_id": position.id, "coordinator_id": coordinator.id},
                )

    def _get_edge_target(self, target_id: int, field: str) -> Position:
        target = self.session.get(Position, target_id)
        if target is None:
            raise TargetPositionNotFoundError(
                message=f"{field} position does not exist",
                details={field: target_id},
            )
        if not target.is_active:
            raise PositionInactiveError(
                message="Hierarchy edges cannot point to an inactive position",
                details={field: target_id},
            )
        return target

    def _check_cross_department(self, position: Position, superior: Position) -> None:
        """Reporting across departments is allowed within a school or between parent and child."""
        if position.department_id is None or superior.department_id is None:
            return
        if position.department_id == superior.department_id:
            return

        department = self.session.get(Department, position.department_id)
        target_department = self.session.get(Department, superior.department_id)

        allowed = (
            department is not None
            and target_department is not None
            and (
                department.school_id == target_department.school_id
                or department.parent_id == target_department.id
                or target_department.parent_id == department.id
            )
        )
        if not allowed:
            raise InvalidHierarchyError(
                message="Cross-department reporting is not allowed between these departments",
                details={
                    "department_id": position.department_id,
                    "reports_to_department_id": superior.department_id,
                },
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_reporting_chain(self, position_id: int, actor_id: Optional[str] = None) -> List[ChainEntry]:
        """Get the superiors of a position, nearest first."""
        self._require_read(position_id, actor_id)
        graph = HierarchyGraph.load(self.session)
        if position_id not in graph.nodes:
            raise PositionNotFoundError(details={"position_id": position_id})
        return graph.get_reporting_chain(position_id, max_hops=self.settings.max_chain_hops)

    def get_subordinates(self, position_id: int, actor_id: Optional[str] = None) -> List[SubordinateEntry]:
        """Get every position below a position through either edge kind."""
        self._require_read(position_id, actor_id)
        graph = HierarchyGraph.load(self.session)
        if position_id not in graph.nodes:
            raise PositionNotFoundError(details={"position_id": position_id})
        return graph.get_subordinates(position_id)

    def validate_hierarchy(self, actor_id: Optional[str] = None) -> HierarchyReport:
        """
        Check the whole hierarchy for cycles, orphans and excessive depth.

        When an actor is given, only superadmins may run it.
        """
        if actor_id is not None:
            context = self.access.get_user_context(actor_id)
            if not context.is_superadmin:
                logger.warning("Access denied: actor=%s hierarchy validation", actor_id)
                raise AccessDeniedError(message="Only superadmins can validate hierarchy")

        graph = HierarchyGraph.load(self.session)
        return HierarchyIntegrityChecker(graph, self.settings).validate_hierarchy()

    def _require_read(self, position_id: int, actor_id: Optional[str]) -> None:
        if actor_id is None:
            return
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.READ)
