"""SQLAlchemy models for people and their position assignments.

A ``UserPosition`` binds a person to a position over the half-open
interval ``[start_date, end_date)``. Rows are historical records: they are
closed (``end_date`` set, ``is_active`` cleared) but never deleted.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_org.models.base import Base, TimestampMixin


class AssignmentState(str, Enum):
    """Lifecycle state of a position assignment."""

    PENDING_VALIDATION = "pending_validation"
    ACTIVE = "active"
    TERMINATED = "terminated"
    TRANSFERRED = "transferred"


class UserProfile(TimestampMixin, Base):
    """
    A person known to the organization.

    ``external_id`` is the identity-provider subject used as the actor id
    on every request.
    """

    __tablename__ = "user_profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    employee_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    is_superadmin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    positions: Mapped[List["UserPosition"]] = relationship(
        "UserPosition", back_populates="user_profile"
    )

    def __repr__(self) -> str:
        return f"UserProfile(id={self.id}, external_id={self.external_id!r})"


class UserPosition(TimestampMixin, Base):
    """
    Holder record of a person in a position.

    Attributes:
        is_plt: Acting ("PLT") appointment; capped separately from max_holders
        appointed_by: External id of whoever made the appointment
        sk_number: Appointment decree reference
        status: Lifecycle state, see AssignmentState
    """

    __tablename__ = "user_position"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_profile.id", ondelete="RESTRICT"), nullable=False
    )
    position_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("position.id", ondelete="RESTRICT"), nullable=False
    )

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    is_plt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=AssignmentState.ACTIVE.value
    )

    appointed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sk_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_profile: Mapped["UserProfile"] = relationship(
        "UserProfile", back_populates="positions"
    )
    position: Mapped["Position"] = relationship("Position")

    __table_args__ = (
        Index("ix_user_position_person_position_active", "user_profile_id", "position_id", "is_active"),
        Index("ix_user_position_position_active", "position_id", "is_active"),
        Index("ix_user_position_dates", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return (
            f"UserPosition("
            f"id={self.id}, "
            f"user_profile_id={self.user_profile_id}, "
            f"position_id={self.position_id}, "
            f"is_plt={self.is_plt}, "
            f"status={self.status})"
        )

    @property
    def state(self) -> AssignmentState:
        """Get the lifecycle state as an enum."""
        return AssignmentState(self.status)

    def is_current(self, now: datetime) -> bool:
        """Active and not ended as of ``now``."""
        return self.is_active and (self.end_date is None or self.end_date >= now)
