"""Audit log model for organization changes."""

import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hr_org.models.base import Base


class AuditAction(enum.Enum):
    """Kind of change recorded in the organization audit log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ORGANIZATIONAL_CHANGE = "organizational_change"


class OrganizationAuditLog(Base):
    """
    Append-only record of a committed organization change.

    Written after the business transaction commits; rows are never
    updated.
    """

    __tablename__ = "organization_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, name="audit_action"),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_display: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    module: Mapped[str] = mapped_column(String(50), nullable=False, default="ORGANIZATION")

    old_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_org_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return (
            f"OrganizationAuditLog(id={self.id}, action={self.action}, "
            f"entity={self.entity_type}:{self.entity_id})"
        )
