"""Audit service for organization structure and assignment changes."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_org.models.audit_log import AuditAction, OrganizationAuditLog

logger = logging.getLogger(__name__)


# Auto-updating columns that never represent a user change
IGNORED_FIELDS = frozenset({"created_at", "updated_at"})


@dataclass
class AuditContext:
    """Context information for audit logging."""

    actor_id: str
    change_reason: Optional[str] = None


class OrganizationAuditService:
    """
    Service for writing and querying organization audit records.

    Callers invoke it after their business transaction has committed, so
    every method commits its own row.
    """

    def __init__(self, session: Session):
        """Initialize audit service with database session."""
        self.session = session

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        """Convert a value to something the JSON column can store."""
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        return value

    def _serialize(self, data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if data is None:
            return None
        return {
            key: self._serialize_value(value)
            for key, value in data.items()
            if not key.startswith("_") and key not in IGNORED_FIELDS
        }

    def _diff(
        self,
        old_data: Dict[str, Any],
        new_data: Dict[str, Any],
    ) -> tuple[Dict[str, Any], Dict[str, Any]]:
        """Keep only the fields whose value changed."""
        old_changed: Dict[str, Any] = {}
        new_changed: Dict[str, Any] = {}

        for field in set(old_data) | set(new_data):
            if field.startswith("_") or field in IGNORED_FIELDS:
                continue
            if old_data.get(field) == new_data.get(field):
                continue
            old_changed[field] = self._serialize_value(old_data.get(field))
            new_changed[field] = self._serialize_value(new_data.get(field))

        return old_changed, new_changed

    def _write(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        context: AuditContext,
        entity_display: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> OrganizationAuditLog:
        if context.change_reason:
            details = dict(details or {})
            details.setdefault("reason", context.change_reason)

        record = OrganizationAuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_display=entity_display,
            actor_id=context.actor_id,
            old_values=old_values,
            new_values=new_values,
            details=details,
        )
        self.session.add(record)
        self.session.commit()

        logger.debug(
            "Audit %s recorded for %s:%s by %s",
            action.value, entity_type, entity_id, context.actor_id,
        )
        return record

    def log_create(
        self,
        entity_type: str,
        entity_id: Any,
        data: Dict[str, Any],
        context: AuditContext,
        entity_display: Optional[str] = None,
    ) -> OrganizationAuditLog:
        """Record the creation of an organization entity."""
        return self._write(
            AuditAction.CREATE,
            entity_type,
            entity_id,
            context,
            entity_display=entity_display,
            new_values=self._serialize(data),
        )

    def log_update(
        self,
        entity_type: str,
        entity_id: Any,
        old_data: Dict[str, Any],
        new_data: Dict[str, Any],
        context: AuditContext,
        entity_display: Optional[str] = None,
    ) -> OrganizationAuditLog:
        """
        Record an update of an organization entity.

        Only fields whose value changed are stored.
        """
        old_values, new_values = self._diff(old_data, new_data)
        return self._write(
            AuditAction.UPDATE,
            entity_type,
            entity_id,
            context,
            entity_display=entity_display,
            old_values=old_values,
            new_values=new_values,
        )

    def log_delete(
        self,
        entity_type: str,
        entity_id: Any,
        data: Dict[str, Any],
        context: AuditContext,
        entity_display: Optional[str] = None,
    ) -> OrganizationAuditLog:
        """Record the deletion of an organization entity."""
        return self._write(
            AuditAction.DELETE,
            entity_type,
            entity_id,
            context,
            entity_display=entity_display,
            old_values=self._serialize(data),
        )

    def log_organizational_change(
        self,
        entity_type: str,
        entity_id: Any,
        change_type: str,
        context: AuditContext,
        entity_display: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> OrganizationAuditLog:
        """
        Record a structural change such as an appointment, termination,
        transfer or hierarchy edit.

        Args:
            change_type: Short machine-readable label, e.g. ``ASSIGN`` or ``TRANSFER``
        """
        merged_details = {"change_type": change_type}
        if details:
            merged_details.update(self._serialize(details) or {})

        return self._write(
            AuditAction.ORGANIZATIONAL_CHANGE,
            entity_type,
            entity_id,
            context,
            entity_display=entity_display,
            old_values=self._serialize(old_values),
            new_values=self._serialize(new_values),
            details=merged_details,
        )

    def safe_log(
        self,
        log_method: Callable[..., OrganizationAuditLog],
        *args: Any,
        **kwargs: Any,
    ) -> Optional[OrganizationAuditLog]:
        """
        Call one of the ``log_*`` methods without letting a failure escape.

        The business change has already been committed when this runs, so a
        failed audit write is logged and rolled back on its own.
        """
        try:
            return log_method(*args, **kwargs)
        except Exception:
            logger.exception("Failed to write audit record for %s", args[:2])
            self.session.rollback()
            return None

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: Any,
        limit: int = 100,
    ) -> Sequence[OrganizationAuditLog]:
        """Get audit records for one entity, most recent first."""
        stmt = (
            select(OrganizationAuditLog)
            .where(
                OrganizationAuditLog.entity_type == entity_type,
                OrganizationAuditLog.entity_id == str(entity_id),
            )
            .order_by(OrganizationAuditLog.id.desc())
            .limit(limit)
        )
        return self.session.scalars(stmt).all()
