"""SQLAlchemy models for the organization structure.

Schools own departments, departments (or schools directly) own positions,
and every position carries exactly one hierarchy record holding its
reporting line (``reports_to``) and coordination line (``coordinator``).
"""

from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_org.models.base import Base, TimestampMixin


class School(TimestampMixin, Base):
    """A school (top-level organizational unit)."""

    __tablename__ = "school"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    departments: Mapped[List["Department"]] = relationship(
        "Department", back_populates="school"
    )

    def __repr__(self) -> str:
        return f"School(id={self.id}, code={self.code!r})"


class Department(TimestampMixin, Base):
    """Department, optionally nested under a parent department within a school."""

    __tablename__ = "department"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    school_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("school.id", ondelete="SET NULL"), nullable=True, index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("department.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    school: Mapped[Optional["School"]] = relationship("School", back_populates="departments")
    parent: Mapped[Optional["Department"]] = relationship(
        "Department", remote_side=[id], foreign_keys=[parent_id]
    )

    def __repr__(self) -> str:
        return f"Department(id={self.id}, code={self.code!r}, school_id={self.school_id})"


class Position(TimestampMixin, Base):
    """
    A named organizational role that people are assigned to.

    Attributes:
        hierarchy_level: Seniority rank; lower numbers are more senior (1 = top)
        max_holders: How many substantive (non-acting) holders may hold it at once
        is_unique: At most one substantive holder when set
    """

    __tablename__ = "position"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    department_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("department.id", ondelete="SET NULL"), nullable=True, index=True
    )
    school_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("school.id", ondelete="SET NULL"), nullable=True, index=True
    )

    hierarchy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_holders: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    modified_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    department: Mapped[Optional["Department"]] = relationship("Department")
    school: Mapped[Optional["School"]] = relationship("School")
    hierarchy: Mapped[Optional["PositionHierarchy"]] = relationship(
        "PositionHierarchy",
        back_populates="position",
        foreign_keys="PositionHierarchy.position_id",
        uselist=False,
    )

    __table_args__ = (
        CheckConstraint("max_holders > 0", name="ck_position_positive_max_holders"),
        CheckConstraint("hierarchy_level > 0", name="ck_position_positive_level"),
        Index("ix_position_level_department", "hierarchy_level", "department_id"),
    )

    def __repr__(self) -> str:
        return (
            f"Position(id={self.id}, code={self.code!r}, "
            f"level={self.hierarchy_level}, department_id={self.department_id})"
        )


class PositionHierarchy(TimestampMixin, Base):
    """
    Reporting and coordination edges for a single position (1:1).

    Created in the same transaction as its position and removed before it.
    """

    __tablename__ = "position_hierarchy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("position.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    reports_to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("position.id"), nullable=True, index=True
    )
    coordinator_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("position.id"), nullable=True, index=True
    )

    position: Mapped["Position"] = relationship(
        "Position", back_populates="hierarchy", foreign_keys=[position_id]
    )
    reports_to: Mapped[Optional["Position"]] = relationship(
        "Position", foreign_keys=[reports_to_id]
    )
    coordinator: Mapped[Optional["Position"]] = relationship(
        "Position", foreign_keys=[coordinator_id]
    )

    __table_args__ = (
        CheckConstraint("position_id != reports_to_id", name="ck_hierarchy_not_own_superior"),
        CheckConstraint("position_id != coordinator_id", name="ck_hierarchy_not_own_coordinator"),
    )

    def __repr__(self) -> str:
        return (
            f"PositionHierarchy(position_id={self.position_id}, "
            f"reports_to_id={self.reports_to_id}, coordinator_id={self.coordinator_id})"
        )
