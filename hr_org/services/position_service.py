"""Service for position management and holder queries."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from hr_org.audit.service import AuditContext, OrganizationAuditService
from hr_org.config.settings import AssignmentPolicySettings, get_settings
from hr_org.database.database import transaction_scope
from hr_org.models.organization import Department, Position, PositionHierarchy, School
from hr_org.models.user_position import UserPosition, UserProfile
from hr_org.schemas.position import (
    HolderEntry,
    PositionAvailabilityResponse,
    PositionCreateRequest,
    PositionHoldersResponse,
    PositionResponse,
    PositionUpdateRequest,
)
from hr_org.services.access_control_service import (
    AccessControlService,
    AccessOperation,
    EntityType,
)
from hr_org.services.assignment_validator import AssignmentValidator
from hr_org.services.capacity_policy import CapacitySnapshot, HolderStatus, classify_holders
from hr_org.utils.errors import (
    CapacityBelowHoldersError,
    DepartmentSchoolMismatchError,
    DuplicatePositionCodeError,
    HasActiveAssignmentsError,
    HasAssignmentHistoryError,
    PositionNotFoundError,
    create_not_found_error,
)

logger = logging.getLogger(__name__)


AUDITED_FIELDS = (
    "code",
    "name",
    "description",
    "department_id",
    "school_id",
    "hierarchy_level",
    "max_holders",
    "is_unique",
    "is_active",
)


class PositionService:
    """
    Service for creating, updating and deleting positions.

    Every position is created together with its (empty) hierarchy record
    and deleted only after that record is removed.
    """

    def __init__(
        self,
        session: Session,
        clock: Optional[Callable[[], datetime]] = None,
        policy: Optional[AssignmentPolicySettings] = None,
        audit_service: Optional[OrganizationAuditService] = None,
    ):
        self.session = session
        self.clock = clock or datetime.utcnow
        self.policy = policy or get_settings().assignment_policy
        self.validator = AssignmentValidator(session, clock=self.clock, policy=self.policy)
        self.access = AccessControlService(session)
        self.audit = audit_service or OrganizationAuditService(session)

    # =========================================================================
    # Commands
    # =========================================================================

    def create_position(self, request: PositionCreateRequest, actor_id: str) -> PositionResponse:
        """
        Create a position and its hierarchy record.

        Raises:
            AccessDeniedError: If the actor cannot create in the owning unit
            DuplicatePositionCodeError: If the code is taken
            DepartmentSchoolMismatchError: If the department belongs to another school
        """
        context = self.access.get_user_context(actor_id)
        if request.department_id is not None:
            self.access.require_access(
                context, EntityType.DEPARTMENT, request.department_id, AccessOperation.CREATE
            )
        elif request.school_id is not None:
            self.access.require_access(
                context, EntityType.SCHOOL, request.school_id, AccessOperation.CREATE
            )
        else:
            self.access.require_access(context, EntityType.POSITION, None, AccessOperation.CREATE)

        with transaction_scope(self.session):
            existing = self.session.scalars(
                select(Position).where(Position.code == request.code)
            ).first()
            if existing is not None:
                raise DuplicatePositionCodeError(
                    message=f"Position with code '{request.code}' already exists",
                    details={"code": request.code},
                )

            self._check_unit_alignment(request.department_id, request.school_id)

            position = Position(
                **request.model_dump(),
                created_by=actor_id,
                modified_by=actor_id,
            )
            self.session.add(position)
            self.session.flush()

            self.session.add(PositionHierarchy(position_id=position.id))
            self.session.flush()

        logger.info("Created position %s (%s)", position.id, position.code)
        self.audit.safe_log(
            self.audit.log_create,
            "Position",
            position.id,
            self._snapshot(position),
            AuditContext(actor_id=actor_id),
            entity_display=position.name,
        )
        return PositionResponse.model_validate(position)

    def update_position(
        self,
        position_id: int,
        request: PositionUpdateRequest,
        actor_id: str,
    ) -> PositionResponse:
        """
        Apply a partial update to a position.

        Capacity may not be reduced below the number of current substantive
        holders.
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.UPDATE)

        changes = request.model_dump(exclude_unset=True)

        with transaction_scope(self.session):
            position = self._get_position(position_id)
            old_values = self._snapshot(position)

            holder_count = self._current_holder_count(position.id)
            new_max = changes.get("max_holders", position.max_holders)
            new_unique = changes.get("is_unique", position.is_unique)
            limit = 1 if new_unique else new_max
            if holder_count > limit:
                raise CapacityBelowHoldersError(
                    message=(
                        f"Cannot reduce max holders below current holder count "
                        f"({holder_count}). Reduce the number of holders first."
                    ),
                    details={"current_holders": holder_count, "requested_limit": limit},
                )

            self._check_unit_alignment(
                changes.get("department_id", position.department_id),
                changes.get("school_id", position.school_id),
            )

            for field, value in changes.items():
                setattr(position, field, value)
            position.modified_by = actor_id
            self.session.flush()

        logger.info("Updated position %s: %s", position.id, sorted(changes))
        self.audit.safe_log(
            self.audit.log_update,
            "Position",
            position.id,
            old_values,
            self._snapshot(position),
            AuditContext(actor_id=actor_id),
            entity_display=position.name,
        )
        return PositionResponse.model_validate(position)

    def delete_position(self, position_id: int, actor_id: str) -> None:
        """
        Delete a position that has no holders and no dependents.

        Positions with assignment history cannot be deleted because
        assignment records are kept permanently; deactivate them instead.
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.DELETE)

        with transaction_scope(self.session):
            position = self._get_position(position_id)

            active_count = self.session.scalar(
                select(func.count(UserPosition.id)).where(
                    UserPosition.position_id == position_id,
                    UserPosition.is_active.is_(True),
                )
            )
            if active_count:
                raise HasActiveAssignmentsError(
                    message=f"Cannot delete position with {active_count} active assignment(s)",
                    details={"active_assignments": active_count},
                )

            self.validator.check_no_dependents(
                position_id,
                "Cannot delete position with dependent positions in hierarchy",
            )

            history_count = self.session.scalar(
                select(func.count(UserPosition.id)).where(UserPosition.position_id == position_id)
            )
            if history_count:
                raise HasAssignmentHistoryError(
                    details={"historical_assignments": history_count},
                )

            snapshot = self._snapshot(position)
            hierarchy = self.session.scalars(
                select(PositionHierarchy).where(PositionHierarchy.position_id == position_id)
            ).first()
            if hierarchy is not None:
                self.session.delete(hierarchy)
                self.session.flush()
            self.session.delete(position)
            self.session.flush()

        logger.info("Deleted position %s (%s)", position_id, snapshot["code"])
        self.audit.safe_log(
            self.audit.log_delete,
            "Position",
            position_id,
            snapshot,
            AuditContext(actor_id=actor_id),
            entity_display=snapshot["name"],
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_holders(self, position_id: int, actor_id: str) -> PositionHoldersResponse:
        """Get current, acting and historical holders of a position."""
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.READ)

        position = self._get_position(position_id)
        rows = self.session.execute(
            select(UserPosition, UserProfile)
            .join(UserProfile, UserPosition.user_profile_id == UserProfile.id)
            .where(UserPosition.position_id == position_id)
            .order_by(UserPosition.start_date.desc())
        ).all()

        names = {assignment.id: profile.full_name for assignment, profile in rows}
        groups = classify_holders([assignment for assignment, _ in rows], self.clock())

        def entries(status: HolderStatus) -> List[HolderEntry]:
            return [self._holder_entry(a, names[a.id]) for a in groups[status]]

        return PositionHoldersResponse(
            position=PositionResponse.model_validate(position),
            current_holders=entries(HolderStatus.ACTIVE_NON_ACTING),
            acting_holders=entries(HolderStatus.ACTING_HOLDER),
            historical_holders=entries(HolderStatus.HISTORICAL),
        )

    def check_availability(self, position_id: int, actor_id: str) -> PositionAvailabilityResponse:
        """Report remaining substantive capacity of a position."""
        context = self.access.get_user_context(actor_id)
        self.access.require_access(context, EntityType.POSITION, position_id, AccessOperation.READ)

        position = self._get_position(position_id)
        now = self.clock()
        rows = self.session.execute(
            select(UserPosition, UserProfile)
            .join(UserProfile, UserPosition.user_profile_id == UserProfile.id)
            .where(
                UserPosition.position_id == position_id,
                UserPosition.is_active.is_(True),
                or_(UserPosition.end_date.is_(None), UserPosition.end_date >= now),
            )
            .order_by(UserPosition.start_date)
        ).all()

        groups = classify_holders([assignment for assignment, _ in rows], now)
        snapshot = CapacitySnapshot.from_holders(position.max_holders, position.is_unique, groups)

        return PositionAvailabilityResponse(
            position_id=position.id,
            position_name=position.name,
            is_available=snapshot.available_slots > 0,
            max_holders=position.max_holders,
            current_holders=snapshot.active_non_plt_count,
            acting_holders=snapshot.active_plt_count,
            available_slots=snapshot.available_slots,
            current_assignments=[
                self._holder_entry(assignment, profile.full_name) for assignment, profile in rows
            ],
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_position(self, position_id: int) -> Position:
        position = self.session.get(Position, position_id)
        if position is None:
            raise PositionNotFoundError(details={"position_id": position_id})
        return position

    def _current_holder_count(self, position_id: int) -> int:
        now = self.clock()
        return self.session.scalar(
            select(func.count(UserPosition.id)).where(
                UserPosition.position_id == position_id,
                UserPosition.is_active.is_(True),
                UserPosition.is_plt.is_(False),
                or_(UserPosition.end_date.is_(None), UserPosition.end_date >= now),
            )
        ) or 0

    def _check_unit_alignment(self, department_id: Optional[int], school_id: Optional[int]) -> None:
        """Department and school must exist and, when both are set, agree."""
        department = None
        if department_id is not None:
            department = self.session.get(Department, department_id)
            if department is None:
                raise create_not_found_error("Department", department_id)

        if school_id is not None and self.session.get(School, school_id) is None:
            raise create_not_found_error("School", school_id)

        if department is not None and school_id is not None and department.school_id != school_id:
            raise DepartmentSchoolMismatchError(
                details={
                    "department_id": department_id,
                    "department_school_id": department.school_id,
                    "school_id": school_id,
                },
            )

    @staticmethod
    def _holder_entry(assignment: UserPosition, user_name: str) -> HolderEntry:
        return HolderEntry(
            assignment_id=assignment.id,
            user_profile_id=assignment.user_profile_id,
            user_name=user_name,
            start_date=assignment.start_date,
            end_date=assignment.end_date,
            is_plt=assignment.is_plt,
        )

    @staticmethod
    def _snapshot(position: Position) -> Dict[str, Any]:
        return {field: getattr(position, field) for field in AUDITED_FIELDS}
