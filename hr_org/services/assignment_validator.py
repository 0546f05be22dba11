"""Validation rules for position assignments, terminations and appointers."""

from datetime import datetime
from typing import Callable, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from hr_org.config.settings import AssignmentPolicySettings
from hr_org.models.organization import Position, PositionHierarchy
from hr_org.models.user_position import UserPosition, UserProfile
from hr_org.schemas.position_assignment import AssignmentRequest
from hr_org.services.authority_resolver import AuthorityResolver
from hr_org.services.capacity_policy import CapacitySnapshot, check_capacity, classify_holders
from hr_org.services.hierarchy_graph import HierarchyGraph, PositionNode
from hr_org.services.interval import AssignmentInterval, overlaps, validate_interval
from hr_org.utils.errors import (
    ActingDurationExceededError,
    ActingRequiresEndDateError,
    AppointerNotFoundError,
    AssignmentNotActiveError,
    AssignmentNotFoundError,
    HasDependentPositionsError,
    InsufficientAuthorityError,
    InvalidDateRangeError,
    OverlappingAssignmentError,
    PositionInactiveError,
    PositionNotFoundError,
    SameLevelConflictError,
    TargetPositionNotFoundError,
)


class AssignmentValidator:
    """
    Validator for position assignment business rules.

    Every check reads the current state through the given session, so when
    the caller runs it inside its transaction the reads and the following
    write are isolated together.
    """

    def __init__(
        self,
        session: Session,
        clock: Optional[Callable[[], datetime]] = None,
        policy: Optional[AssignmentPolicySettings] = None,
    ):
        self.session = session
        self.clock = clock or datetime.utcnow
        self.policy = policy or AssignmentPolicySettings()

    # =========================================================================
    # Assignment
    # =========================================================================

    def validate_assignment(
        self,
        candidate: AssignmentRequest,
        exclude_assignment_id: Optional[int] = None,
    ) -> Position:
        """
        Run every assignment rule in order, stopping at the first failure.

        Args:
            candidate: Proposed assignment
            exclude_assignment_id: Assignment to ignore in the same-level
                check, used when it is being closed in the same transaction

        Returns:
            The target position

        Raises:
            InvalidDateRangeError, PositionNotFoundError, PositionInactiveError,
            UniquePositionOccupiedError, CapacityExceededError,
            ActingLimitExceededError, OverlappingAssignmentError,
            SameLevelConflictError, ActingRequiresEndDateError,
            ActingDurationExceededError
        """
        now = self.clock()
        interval = AssignmentInterval(candidate.start_date, candidate.end_date)

        validate_interval(interval, now, self.policy)

        position = self.session.get(Position, candidate.position_id)
        if position is None:
            raise PositionNotFoundError(details={"position_id": candidate.position_id})
        if not position.is_active:
            raise PositionInactiveError(details={"position_id": position.id})

        self._check_capacity(position, candidate.is_plt, now)
        self._check_overlap(candidate, interval)

        if candidate.is_plt:
            self._check_acting_duration(interval)
        else:
            self._check_same_level(candidate, position, exclude_assignment_id)

        return position

    def _current_holders(self, position_id: int, now: datetime) -> List[UserPosition]:
        stmt = select(UserPosition).where(
            UserPosition.position_id == position_id,
            UserPosition.is_active.is_(True),
            or_(UserPosition.end_date.is_(None), UserPosition.end_date >= now),
        )
        return list(self.session.scalars(stmt).all())

    def _check_capacity(self, position: Position, is_plt: bool, now: datetime) -> None:
        holders = classify_holders(self._current_holders(position.id, now), now)
        snapshot = CapacitySnapshot.from_holders(position.max_holders, position.is_unique, holders)
        check_capacity(snapshot, is_plt, self.policy.max_acting_holders)

    def _check_overlap(self, candidate: AssignmentRequest, interval: AssignmentInterval) -> None:
        stmt = select(UserPosition).where(
            UserPosition.user_profile_id == candidate.user_profile_id,
            UserPosition.position_id == candidate.position_id,
            UserPosition.is_active.is_(True),
        )
        for existing in self.session.scalars(stmt).all():
            if overlaps(interval, AssignmentInterval(existing.start_date, existing.end_date)):
                raise OverlappingAssignmentError(
                    details={
                        "existing_assignment_id": existing.id,
                        "existing_start_date": existing.start_date.isoformat(),
                        "existing_end_date": (
                            existing.end_date.isoformat() if existing.end_date else None
                        ),
                    },
                )

    def _check_same_level(
        self,
        candidate: AssignmentRequest,
        position: Position,
        exclude_assignment_id: Optional[int],
    ) -> None:
        # Acting holdings are not considered as existing conflicts
        stmt = (
            select(Position)
            .join(UserPosition, UserPosition.position_id == Position.id)
            .where(
                UserPosition.user_profile_id == candidate.user_profile_id,
                UserPosition.is_active.is_(True),
                UserPosition.is_plt.is_(False),
                or_(
                    UserPosition.end_date.is_(None),
                    UserPosition.end_date >= candidate.start_date,
                ),
                Position.hierarchy_level == position.hierarchy_level,
                Position.department_id == position.department_id,
                Position.id != position.id,
            )
            .order_by(UserPosition.start_date)
        )
        if exclude_assignment_id is not None:
            stmt = stmt.where(UserPosition.id != exclude_assignment_id)

        conflicting = self.session.scalars(stmt).first()
        if conflicting is not None:
            raise SameLevelConflictError(
                message=(
                    f'User already holds position "{conflicting.name}" at the same '
                    f"hierarchy level in this department"
                ),
                details={
                    "conflicting_position_id": conflicting.id,
                    "conflicting_position_name": conflicting.name,
                },
            )

    def _check_acting_duration(self, interval: AssignmentInterval) -> None:
        if interval.end is None:
            raise ActingRequiresEndDateError()

        latest_end = interval.start + relativedelta(months=self.policy.acting_max_months)
        if interval.end > latest_end:
            raise ActingDurationExceededError(
                message=(
                    f"PLT assignment cannot exceed {self.policy.acting_max_months} months. "
                    f"For longer assignments, please use regular position assignment."
                ),
                details={"latest_allowed_end": latest_end.isoformat()},
            )

    # =========================================================================
    # Termination
    # =========================================================================

    def validate_termination(self, assignment_id: int, end_date: datetime) -> UserPosition:
        """
        Check that an assignment can be ended at ``end_date``.

        The dependents check looks at the assignment's position, so a holder
        of a position that others report to cannot be terminated.

        Returns:
            The assignment to terminate
        """
        assignment = self.session.get(UserPosition, assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(details={"assignment_id": assignment_id})

        if not assignment.is_current(self.clock()):
            raise AssignmentNotActiveError(
                message="Position assignment is already inactive or has ended",
                details={"assignment_id": assignment_id},
            )

        if end_date <= assignment.start_date:
            raise InvalidDateRangeError(
                message="Termination date must be after the position start date",
                details={
                    "start_date": assignment.start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                },
            )

        self.check_no_dependents(
            assignment.position_id,
            "Cannot terminate position that has dependent positions in the hierarchy",
        )
        return assignment

    def check_no_dependents(self, position_id: int, message: Optional[str] = None) -> None:
        """Raise HasDependentPositionsError if any position reports to or is coordinated by ``position_id``."""
        stmt = select(PositionHierarchy).where(
            or_(
                PositionHierarchy.reports_to_id == position_id,
                PositionHierarchy.coordinator_id == position_id,
            )
        )
        graph = HierarchyGraph()
        for record in self.session.scalars(stmt).all():
            graph.set_edges(record.position_id, record.reports_to_id, record.coordinator_id)

        dependents = graph.dependents_of(position_id)
        if dependents:
            raise HasDependentPositionsError(
                message=message,
                details={"position_id": position_id, "dependent_position_ids": dependents},
            )

    # =========================================================================
    # Appointer Authority
    # =========================================================================

    def validate_appointer(self, appointer_id: str, target_position_id: int) -> Optional[int]:
        """
        Check that the appointer may appoint into the target position.

        Args:
            appointer_id: External id of the appointer
            target_position_id: Position being filled

        Returns:
            The appointer's position that grants authority, or None for a
            superadmin
        """
        appointer = self.session.scalars(
            select(UserProfile).where(UserProfile.external_id == appointer_id)
        ).first()
        if appointer is None:
            raise AppointerNotFoundError(details={"appointer_id": appointer_id})

        if appointer.is_superadmin:
            return None

        target = self.session.get(Position, target_position_id)
        if target is None:
            raise TargetPositionNotFoundError(details={"position_id": target_position_id})

        now = self.clock()
        holdings = self.session.scalars(
            select(Position)
            .join(UserPosition, UserPosition.position_id == Position.id)
            .where(
                UserPosition.user_profile_id == appointer.id,
                UserPosition.is_active.is_(True),
                UserPosition.is_plt.is_(False),
                or_(UserPosition.end_date.is_(None), UserPosition.end_date >= now),
            )
        ).all()

        graph = HierarchyGraph()
        graph.add_position(PositionNode.from_model(target))
        for holding in holdings:
            graph.add_position(PositionNode.from_model(holding))

        granting_id = AuthorityResolver(graph).resolve([h.id for h in holdings], target.id)
        if granting_id is None:
            raise InsufficientAuthorityError(
                details={"appointer_id": appointer_id, "position_id": target_position_id},
            )
        return granting_id
