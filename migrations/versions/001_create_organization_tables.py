"""Create organization structure, position assignment and audit tables.

Revision ID: 001
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create organization tables with all constraints and indexes."""

    op.create_table(
        "school",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "department",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "school_id",
            sa.Integer,
            sa.ForeignKey("school.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "parent_id",
            sa.Integer,
            sa.ForeignKey("department.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_department_school_id", "department", ["school_id"])

    op.create_table(
        "position",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("code", sa.String(30), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "department_id",
            sa.Integer,
            sa.ForeignKey("department.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "school_id",
            sa.Integer,
            sa.ForeignKey("school.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("hierarchy_level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_holders", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_unique", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("modified_by", sa.String(100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("max_holders > 0", name="ck_position_positive_max_holders"),
        sa.CheckConstraint("hierarchy_level > 0", name="ck_position_positive_level"),
    )
    op.create_index("ix_position_department_id", "position", ["department_id"])
    op.create_index("ix_position_school_id", "position", ["school_id"])
    op.create_index("ix_position_level_department", "position", ["hierarchy_level", "department_id"])

    op.create_table(
        "position_hierarchy",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "position_id",
            sa.Integer,
            sa.ForeignKey("position.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("reports_to_id", sa.Integer, sa.ForeignKey("position.id"), nullable=True),
        sa.Column("coordinator_id", sa.Integer, sa.ForeignKey("position.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("position_id != reports_to_id", name="ck_hierarchy_not_own_superior"),
        sa.CheckConstraint("position_id != coordinator_id", name="ck_hierarchy_not_own_coordinator"),
    )
    op.create_index("ix_position_hierarchy_reports_to_id", "position_hierarchy", ["reports_to_id"])
    op.create_index("ix_position_hierarchy_coordinator_id", "position_hierarchy", ["coordinator_id"])

    op.create_table(
        "user_profile",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("external_id", sa.String(100), nullable=False, unique=True),
        sa.Column("full_name", sa.String(150), nullable=False),
        sa.Column("employee_number", sa.String(30), nullable=True),
        sa.Column("is_superadmin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Assignment rows are history: parents cannot be deleted from under them
    op.create_table(
        "user_position",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "user_profile_id",
            sa.Integer,
            sa.ForeignKey("user_profile.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "position_id",
            sa.Integer,
            sa.ForeignKey("position.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("start_date", sa.DateTime, nullable=False),
        sa.Column("end_date", sa.DateTime, nullable=True),
        sa.Column("is_plt", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        sa.Column("appointed_by", sa.String(100), nullable=True),
        sa.Column("sk_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_user_position_person_position_active",
        "user_position",
        ["user_profile_id", "position_id", "is_active"],
    )
    op.create_index("ix_user_position_position_active", "user_position", ["position_id", "is_active"])
    op.create_index("ix_user_position_dates", "user_position", ["start_date", "end_date"])

    audit_action = sa.Enum(
        "CREATE",
        "UPDATE",
        "DELETE",
        "ORGANIZATIONAL_CHANGE",
        name="audit_action",
    )

    op.create_table(
        "organization_audit_log",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("action", audit_action, nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(50), nullable=False),
        sa.Column("entity_display", sa.String(255), nullable=True),
        sa.Column("actor_id", sa.String(100), nullable=False),
        sa.Column("module", sa.String(50), nullable=False, server_default="ORGANIZATION"),
        sa.Column("old_values", sa.JSON, nullable=True),
        sa.Column("new_values", sa.JSON, nullable=True),
        sa.Column("details", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_organization_audit_log_action", "organization_audit_log", ["action"])
    op.create_index("ix_org_audit_entity", "organization_audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    """Drop organization tables."""
    op.drop_index("ix_org_audit_entity", table_name="organization_audit_log")
    op.drop_index("ix_organization_audit_log_action", table_name="organization_audit_log")
    op.drop_table("organization_audit_log")
    sa.Enum(name="audit_action").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_user_position_dates", table_name="user_position")
    op.drop_index("ix_user_position_position_active", table_name="user_position")
    op.drop_index("ix_user_position_person_position_active", table_name="user_position")
    op.drop_table("user_position")
    op.drop_table("user_profile")

    op.drop_index("ix_position_hierarchy_coordinator_id", table_name="position_hierarchy")
    op.drop_index("ix_position_hierarchy_reports_to_id", table_name="position_hierarchy")
    op.drop_table("position_hierarchy")

    op.drop_index("ix_position_level_department", table_name="position")
    op.drop_index("ix_position_school_id", table_name="position")
    op.drop_index("ix_position_department_id", table_name="position")
    op.drop_table("position")

    op.drop_index("ix_department_school_id", table_name="department")
    op.drop_table("department")
    op.drop_table("school")
