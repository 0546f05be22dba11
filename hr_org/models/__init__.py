"""Models package for the organization management core."""

from hr_org.models.audit_log import AuditAction, OrganizationAuditLog
from hr_org.models.base import Base
from hr_org.models.organization import Department, Position, PositionHierarchy, School
from hr_org.models.user_position import AssignmentState, UserPosition, UserProfile

__all__ = [
    "AssignmentState",
    "AuditAction",
    "Base",
    "Department",
    "OrganizationAuditLog",
    "Position",
    "PositionHierarchy",
    "School",
    "UserPosition",
    "UserProfile",
]
