"""Tests for organization audit service."""

from unittest.mock import MagicMock

import pytest

from hr_org.audit.service import AuditContext, OrganizationAuditService
from hr_org.models.audit_log import AuditAction


@pytest.fixture
def audit(session):
    """Create audit service."""
    return OrganizationAuditService(session)


class TestSafeLog:
    """Tests for best-effort audit writes."""

    def test_returns_written_record(self, audit):
        record = audit.safe_log(
            audit.log_create, "Position", 7, {"code": "ENG-QA"}, AuditContext(actor_id="admin")
        )

        assert record.action == AuditAction.CREATE
        assert audit.get_entity_history("Position", 7)[0].new_values == {"code": "ENG-QA"}

    def test_failure_is_swallowed_and_rolled_back(self, audit, session, monkeypatch):
        rollback = MagicMock(wraps=session.rollback)
        monkeypatch.setattr(session, "rollback", rollback)
        failing = MagicMock(side_effect=RuntimeError("audit store down"))

        result = audit.safe_log(failing, "Position", 7, {}, AuditContext(actor_id="admin"))

        assert result is None
        failing.assert_called_once_with("Position", 7, {}, AuditContext(actor_id="admin"))
        rollback.assert_called_once()


class TestLogUpdate:
    """Tests for changed-field diffs."""

    def test_only_changed_fields_are_stored(self, audit):
        record = audit.log_update(
            "Position",
            3,
            {"name": "Lead", "max_holders": 2},
            {"name": "Lead", "max_holders": 3},
            AuditContext(actor_id="admin", change_reason="Growth"),
        )

        assert record.old_values == {"max_holders": 2}
        assert record.new_values == {"max_holders": 3}
        assert record.details == {"reason": "Growth"}
