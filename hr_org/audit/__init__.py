"""Audit package for organization change tracking."""

from hr_org.audit.service import (
    AuditContext,
    IGNORED_FIELDS,
    OrganizationAuditService,
)

__all__ = [
    "AuditContext",
    "IGNORED_FIELDS",
    "OrganizationAuditService",
]
