"""
Record-level access control for organization data.

Scope is derived from the actor's active position assignments: the schools
and departments of the positions they hold. Superadmins bypass every check.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_org.models.organization import Department, Position
from hr_org.models.user_position import UserPosition, UserProfile
from hr_org.utils.errors import AccessDeniedError

logger = logging.getLogger(__name__)


class AccessOperation(str, Enum):
    """Operation being attempted on a record."""

    READ = "READ"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntityType(str, Enum):
    """Kinds of record the access check understands."""

    POSITION = "Position"
    USER_POSITION = "UserPosition"
    DEPARTMENT = "Department"
    SCHOOL = "School"


@dataclass
class UserContext:
    """Resolved identity and data scope of the requesting actor."""

    external_id: str
    user_profile_id: Optional[int] = None
    is_superadmin: bool = False
    school_ids: List[int] = field(default_factory=list)
    department_ids: List[int] = field(default_factory=list)
    position_ids: List[int] = field(default_factory=list)


class AccessControlService:
    """Resolve actor scope and decide record access."""

    def __init__(self, session: Session):
        """Initialize with database session."""
        self.session = session

    def get_user_context(self, actor_id: str) -> UserContext:
        """
        Build the access context for an actor.

        Unknown actors get an empty, non-superadmin context rather than an
        error, so every later check simply denies.
        """
        profile = self.session.scalars(
            select(UserProfile).where(UserProfile.external_id == actor_id)
        ).first()

        if profile is None or not profile.is_active:
            return UserContext(external_id=actor_id)

        rows = self.session.execute(
            select(Position.id, Position.department_id, Position.school_id)
            .join(UserPosition, UserPosition.position_id == Position.id)
            .where(
                UserPosition.user_profile_id == profile.id,
                UserPosition.is_active.is_(True),
            )
        ).all()

        school_ids = {row.school_id for row in rows if row.school_id is not None}
        department_ids = {row.department_id for row in rows if row.department_id is not None}

        return UserContext(
            external_id=profile.external_id,
            user_profile_id=profile.id,
            is_superadmin=profile.is_superadmin,
            school_ids=sorted(school_ids),
            department_ids=sorted(department_ids),
            position_ids=sorted({row.id for row in rows}),
        )

    def can_access_record(
        self,
        context: UserContext,
        entity_type: str,
        entity_id: Optional[int],
        operation: AccessOperation = AccessOperation.READ,
    ) -> bool:
        """
        Decide whether the actor may perform ``operation`` on a record.

        Missing records and unknown entity types are denied for everyone
        except superadmins.
        """
        if context.is_superadmin:
            return True

        if entity_id is None:
            return False

        try:
            kind = EntityType(entity_type)
        except ValueError:
            return False

        if kind == EntityType.POSITION:
            return self._can_access_position(context, entity_id)
        if kind == EntityType.USER_POSITION:
            return self._can_access_user_position(context, entity_id)
        if kind == EntityType.DEPARTMENT:
            return self._can_access_department(context, entity_id)
        return entity_id in context.school_ids

    def require_access(
        self,
        context: UserContext,
        entity_type: str,
        entity_id: Optional[int],
        operation: AccessOperation = AccessOperation.READ,
    ) -> None:
        """
        Raise AccessDeniedError unless the actor may access the record.
        """
        if self.can_access_record(context, entity_type, entity_id, operation):
            return

        label = entity_type.value if isinstance(entity_type, EntityType) else entity_type
        logger.warning(
            "Access denied: actor=%s %s %s:%s",
            context.external_id, operation.value, label, entity_id,
        )
        raise AccessDeniedError(
            message=f"Access denied to {operation.value.lower()} this {label}",
            details={"entity_type": label, "entity_id": entity_id},
        )

    # =========================================================================
    # Per-entity Rules
    # =========================================================================

    def _position_in_scope(self, context: UserContext, position: Position) -> bool:
        if position.department_id is not None and position.department_id in context.department_ids:
            return True
        return position.school_id is not None and position.school_id in context.school_ids

    def _can_access_position(self, context: UserContext, position_id: int) -> bool:
        position = self.session.get(Position, position_id)
        if position is None:
            return False
        return self._position_in_scope(context, position)

    def _can_access_user_position(self, context: UserContext, assignment_id: int) -> bool:
        assignment = self.session.get(UserPosition, assignment_id)
        if assignment is None:
            return False
        if assignment.user_profile_id == context.user_profile_id:
            return True
        position = self.session.get(Position, assignment.position_id)
        return position is not None and self._position_in_scope(context, position)

    def _can_access_department(self, context: UserContext, department_id: int) -> bool:
        if department_id in context.department_ids:
            return True
        department = self.session.get(Department, department_id)
        return (
            department is not None
            and department.school_id is not None
            and department.school_id in context.school_ids
        )
