"""
Position assignment lifecycle: appoint, terminate and transfer.

Each operation checks access first, then validates and writes inside one
transaction. Audit records are written after the commit and never undo it.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from hr_org.audit.service import AuditContext, OrganizationAuditService
from hr_org.config.settings import AssignmentPolicySettings, get_settings
from hr_org.database.database import transaction_scope
from hr_org.models.organization import Position
from hr_org.models.user_position import AssignmentState, UserPosition, UserProfile
from hr_org.schemas.position_assignment import (
    AssignmentHistoryEntry,
    AssignmentRequest,
    AssignmentResponse,
    TerminationRequest,
    TransferRequest,
    TransferResponse,
    UserHistoryResponse,
)
from hr_org.services.access_control_service import (
    AccessControlService,
    AccessOperation,
    EntityType,
    UserContext,
)
from hr_org.services.assignment_validator import AssignmentValidator
from hr_org.utils.errors import (
    AccessDeniedError,
    AssignmentNotFoundError,
    InvalidDateRangeError,
    InvalidStateTransitionError,
    ValidationError,
    create_not_found_error,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Lifecycle State Machine
# =============================================================================

ALLOWED_TRANSITIONS: Dict[AssignmentState, frozenset] = {
    AssignmentState.PENDING_VALIDATION: frozenset({AssignmentState.ACTIVE}),
    AssignmentState.ACTIVE: frozenset({AssignmentState.TERMINATED, AssignmentState.TRANSFERRED}),
    AssignmentState.TERMINATED: frozenset(),
    AssignmentState.TRANSFERRED: frozenset(),
}


def transition(assignment: UserPosition, target: AssignmentState) -> None:
    """
    Move an assignment to ``target`` and keep ``is_active`` in step.

    Raises:
        InvalidStateTransitionError: If the move is not allowed from the current state
    """
    current = assignment.state
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateTransitionError(
            message=f"Cannot move assignment from {current.value} to {target.value}",
            details={"assignment_id": assignment.id, "from": current.value, "to": target.value},
        )
    assignment.status = target.value
    assignment.is_active = target == AssignmentState.ACTIVE


def format_tenure(start: datetime, end: datetime) -> str:
    """Human-readable time between two moments, e.g. ``2 years 3 months``."""
    if end <= start:
        return "0 days"

    delta = relativedelta(end, start)
    parts: List[str] = []
    if delta.years:
        parts.append(f"{delta.years} year{'s' if delta.years > 1 else ''}")
    if delta.months:
        parts.append(f"{delta.months} month{'s' if delta.months > 1 else ''}")
    if delta.days and not delta.years:
        parts.append(f"{delta.days} day{'s' if delta.days > 1 else ''}")
    return " ".join(parts) or "0 days"


def _append_note(existing: Optional[str], line: str) -> str:
    return f"{existing}\n{line}" if existing else line


class PositionAssignmentService:
    """
    Service for the position assignment lifecycle.

    Provides functionality for:
    - Appointing a person to a position (substantive or acting)
    - Terminating an assignment
    - Transferring a person between positions atomically
    - Reading a person's assignment history and current positions
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

    def assign(self, request: AssignmentRequest, actor_id: str) -> AssignmentResponse:
        """
        Appoint a person to a position.

        Args:
            request: Assignment details
            actor_id: External id of the requesting user

        Returns:
            The created assignment

        Raises:
            AccessDeniedError: If the actor cannot update the position
            APIError: Any assignment or appointer validation failure
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(
            context, EntityType.POSITION, request.position_id, AccessOperation.UPDATE
        )

        with transaction_scope(self.session):
            position = self.validator.validate_assignment(request)
            if request.appointed_by:
                self.validator.validate_appointer(request.appointed_by, request.position_id)

            profile = self._get_profile(request.user_profile_id)
            assignment = self._open_assignment(request, actor_id)

        logger.info(
            "Assigned user_profile=%s to position=%s (assignment=%s, plt=%s)",
            profile.id, position.id, assignment.id, assignment.is_plt,
        )
        self.audit.safe_log(
            self.audit.log_organizational_change,
            "UserPosition",
            assignment.id,
            "ASSIGN",
            AuditContext(actor_id=actor_id),
            entity_display=f"{position.name} - {profile.full_name}",
            new_values=self._snapshot(assignment),
        )
        return AssignmentResponse.model_validate(assignment)

    def terminate(self, request: TerminationRequest, actor_id: str) -> AssignmentResponse:
        """
        End an active assignment.

        The holder may terminate their own assignment; anyone else needs
        access to the assignment's position.
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(
            context, EntityType.USER_POSITION, request.assignment_id, AccessOperation.UPDATE
        )

        with transaction_scope(self.session):
            assignment = self.validator.validate_termination(
                request.assignment_id, request.end_date
            )
            old_values = self._snapshot(assignment)

            transition(assignment, AssignmentState.TERMINATED)
            assignment.end_date = request.end_date
            if request.reason:
                assignment.notes = _append_note(assignment.notes, f"Terminated: {request.reason}")
            self.session.flush()

        logger.info("Terminated assignment=%s effective %s", assignment.id, request.end_date)
        self.audit.safe_log(
            self.audit.log_organizational_change,
            "UserPosition",
            assignment.id,
            "TERMINATE",
            AuditContext(actor_id=actor_id, change_reason=request.reason),
            old_values=old_values,
            new_values=self._snapshot(assignment),
        )
        return AssignmentResponse.model_validate(assignment)

    def transfer(self, request: TransferRequest, actor_id: str) -> TransferResponse:
        """
        Move a person from one position to another in a single transaction.

        The current assignment ends one microsecond before ``transfer_date``
        and the new one starts at ``transfer_date``. Either both writes are
        committed or neither is.
        """
        context = self.access.get_user_context(actor_id)
        self.access.require_access(
            context, EntityType.POSITION, request.to_position_id, AccessOperation.UPDATE
        )

        if request.from_position_id == request.to_position_id:
            raise ValidationError(
                message="Cannot transfer to the same position",
                details={"position_id": request.to_position_id},
            )

        with transaction_scope(self.session):
            current = self._find_current_assignment(request.user_profile_id, request.from_position_id)
            if request.transfer_date <= current.start_date:
                raise InvalidDateRangeError(
                    message="Transfer date must be after the current assignment start date",
                    details={
                        "start_date": current.start_date.isoformat(),
                        "transfer_date": request.transfer_date.isoformat(),
                    },
                )

            candidate = AssignmentRequest(
                user_profile_id=request.user_profile_id,
                position_id=request.to_position_id,
                start_date=request.transfer_date,
                end_date=request.end_date,
                is_plt=request.is_plt,
                appointed_by=request.appointed_by,
                sk_number=request.sk_number,
                notes=request.notes,
            )
            new_position = self.validator.validate_assignment(
                candidate, exclude_assignment_id=current.id
            )
            if request.appointed_by:
                self.validator.validate_appointer(request.appointed_by, request.to_position_id)

            old_position = self.session.get(Position, current.position_id)
            old_values = self._snapshot(current)

            self._close_for_transfer(current, request.transfer_date, new_position)
            if not candidate.notes:
                candidate.notes = f"Transferred from {old_position.name}"
            created = self._open_assignment(candidate, actor_id)

        logger.info(
            "Transferred user_profile=%s from position=%s to position=%s",
            request.user_profile_id, request.from_position_id, request.to_position_id,
        )
        self.audit.safe_log(
            self.audit.log_organizational_change,
            "UserPosition",
            created.id,
            "TRANSFER",
            AuditContext(actor_id=actor_id),
            entity_display=f"{old_position.name} -> {new_position.name}",
            old_values=old_values,
            new_values=self._snapshot(created),
            details={
                "closed_assignment_id": current.id,
                "from_position": old_position.name,
                "to_position": new_position.name,
                "transfer_date": request.transfer_date,
            },
        )
        return TransferResponse(
            terminated=AssignmentResponse.model_validate(current),
            created=AssignmentResponse.model_validate(created),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_user_history(self, user_profile_id: int, actor_id: str) -> UserHistoryResponse:
        """Get every assignment of a person, most recent first, with tenure."""
        profile = self._get_profile(user_profile_id)
        context = self.access.get_user_context(actor_id)
        self._require_profile_access(context, profile)

        now = self.clock()
        rows = self.session.execute(
            select(UserPosition, Position)
            .join(Position, UserPosition.position_id == Position.id)
            .where(UserPosition.user_profile_id == user_profile_id)
            .order_by(UserPosition.start_date.desc())
        ).all()

        entries = [
            AssignmentHistoryEntry(
                **AssignmentResponse.model_validate(assignment).model_dump(),
                position_code=position.code,
                position_name=position.name,
                hierarchy_level=position.hierarchy_level,
                department_id=position.department_id,
                tenure=format_tenure(assignment.start_date, assignment.end_date or now),
            )
            for assignment, position in rows
        ]
        return UserHistoryResponse(
            user_profile_id=user_profile_id,
            total_assignments=len(entries),
            assignments=entries,
        )

    def get_active_positions(self, user_profile_id: int, actor_id: str) -> List[AssignmentResponse]:
        """Get the person's current assignments; only the person or a superadmin may ask."""
        context = self.access.get_user_context(actor_id)
        if not context.is_superadmin and context.user_profile_id != user_profile_id:
            raise AccessDeniedError(message="Access denied to view positions")

        now = self.clock()
        stmt = (
            select(UserPosition)
            .where(
                UserPosition.user_profile_id == user_profile_id,
                UserPosition.is_active.is_(True),
                or_(UserPosition.end_date.is_(None), UserPosition.end_date >= now),
            )
            .order_by(UserPosition.start_date)
        )
        return [AssignmentResponse.model_validate(a) for a in self.session.scalars(stmt).all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_profile(self, user_profile_id: int) -> UserProfile:
        profile = self.session.get(UserProfile, user_profile_id)
        if profile is None:
            raise create_not_found_error("User profile", user_profile_id)
        return profile

    def _require_profile_access(self, context: UserContext, profile: UserProfile) -> None:
        if context.is_superadmin or context.user_profile_id == profile.id:
            return

        scoped = self.session.execute(
            select(Position.department_id, Position.school_id)
            .join(UserPosition, UserPosition.position_id == Position.id)
            .where(
                UserPosition.user_profile_id == profile.id,
                UserPosition.is_active.is_(True),
            )
        ).all()
        for department_id, school_id in scoped:
            if department_id is not None and department_id in context.department_ids:
                return
            if school_id is not None and school_id in context.school_ids:
                return

        logger.warning("Access denied: actor=%s READ history of profile %s", context.external_id, profile.id)
        raise AccessDeniedError(message="Access denied to this user history")

    def _find_current_assignment(self, user_profile_id: int, position_id: int) -> UserPosition:
        stmt = (
            select(UserPosition)
            .where(
                UserPosition.user_profile_id == user_profile_id,
                UserPosition.position_id == position_id,
                UserPosition.is_active.is_(True),
            )
            .order_by(UserPosition.start_date.desc())
        )
        current = self.session.scalars(stmt).first()
        if current is None:
            raise AssignmentNotFoundError(
                message="Current position assignment not found",
                details={"user_profile_id": user_profile_id, "position_id": position_id},
            )
        return current

    def _open_assignment(self, request: AssignmentRequest, actor_id: str) -> UserPosition:
        assignment = UserPosition(
            user_profile_id=request.user_profile_id,
            position_id=request.position_id,
            start_date=request.start_date,
            end_date=request.end_date,
            is_plt=request.is_plt,
            is_active=False,
            status=AssignmentState.PENDING_VALIDATION.value,
            appointed_by=request.appointed_by or actor_id,
            sk_number=request.sk_number,
            notes=request.notes,
        )
        transition(assignment, AssignmentState.ACTIVE)
        self.session.add(assignment)
        self.session.flush()
        return assignment

    def _close_for_transfer(
        self,
        assignment: UserPosition,
        transfer_date: datetime,
        new_position: Position,
    ) -> None:
        transition(assignment, AssignmentState.TRANSFERRED)
        assignment.end_date = transfer_date - timedelta(microseconds=1)
        assignment.notes = _append_note(assignment.notes, f"Transferred to {new_position.name}")
        self.session.flush()

    @staticmethod
    def _snapshot(assignment: UserPosition) -> Dict[str, Any]:
        return {
            "user_profile_id": assignment.user_profile_id,
            "position_id": assignment.position_id,
            "start_date": assignment.start_date,
            "end_date": assignment.end_date,
            "is_plt": assignment.is_plt,
            "is_active": assignment.is_active,
            "status": assignment.status,
        }
