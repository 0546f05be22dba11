"""Tests for hierarchy editing and querying."""

import pytest

from hr_org.config.settings import HierarchySettings
from hr_org.models.audit_log import OrganizationAuditLog
from hr_org.schemas.hierarchy import SetHierarchyRequest
from hr_org.services.hierarchy_service import HierarchyService
from hr_org.utils.errors import (
    AccessDeniedError,
    CircularHierarchyError,
    InvalidHierarchyError,
    PositionInactiveError,
    PositionNotFoundError,
    TargetPositionNotFoundError,
)


@pytest.fixture
def service(session):
    """Create hierarchy service with default settings."""
    return HierarchyService(session, settings=HierarchySettings())


@pytest.fixture
def chain(session, org, link):
    """Engineering reporting line: engineer -> lead -> head."""
    link(org.lead, reports_to=org.head)
    link(org.engineer, reports_to=org.lead)
    session.commit()


class TestSetHierarchy:
    """Tests for set_hierarchy."""

    def test_set_reports_to(self, service, org):
        result = service.set_hierarchy(
            org.engineer.id, SetHierarchyRequest(reports_to_id=org.lead.id), "admin"
        )

        assert result.position_id == org.engineer.id
        assert result.reports_to_id == org.lead.id
        assert result.coordinator_id is None

    def test_clearing_edges(self, service, org, chain):
        result = service.set_hierarchy(org.engineer.id, SetHierarchyRequest(), "admin")

        assert result.reports_to_id is None

    def test_self_reference(self, service, org):
        with pytest.raises(InvalidHierarchyError):
            service.set_hierarchy(
                org.lead.id, SetHierarchyRequest(reports_to_id=org.lead.id), "admin"
            )

    def test_coordinator_equal_to_superior(self, service, org):
        with pytest.raises(InvalidHierarchyError):
            service.set_hierarchy(
                org.engineer.id,
                SetHierarchyRequest(reports_to_id=org.lead.id, coordinator_id=org.lead.id),
                "admin",
            )

    def test_unknown_target(self, service, org):
        with pytest.raises(TargetPositionNotFoundError):
            service.set_hierarchy(org.engineer.id, SetHierarchyRequest(reports_to_id=9999), "admin")

    def test_inactive_target(self, service, session, org, make_position):
        retired = make_position("ENG-RET", 1, org.engineering, is_active=False)
        session.commit()

        with pytest.raises(PositionInactiveError):
            service.set_hierarchy(
                org.engineer.id, SetHierarchyRequest(reports_to_id=retired.id), "admin"
            )

    def test_superior_must_be_more_senior(self, service, org):
        with pytest.raises(InvalidHierarchyError):
            service.set_hierarchy(
                org.lead.id, SetHierarchyRequest(reports_to_id=org.engineer.id), "admin"
            )

    def test_cycle_with_existing_edges_is_rejected(self, service, session, org, link):
        # Inconsistent data written outside the service
        link(org.head, reports_to=org.lead)
        session.commit()

        with pytest.raises(CircularHierarchyError):
            service.set_hierarchy(
                org.lead.id, SetHierarchyRequest(reports_to_id=org.head.id), "admin"
            )

    def test_cross_department_within_school_is_allowed(self, service, org):
        result = service.set_hierarchy(
            org.engineer.id, SetHierarchyRequest(reports_to_id=org.finance_head.id), "admin"
        )

        assert result.reports_to_id == org.finance_head.id

    def test_cross_school_reporting_is_rejected(self, service, org):
        with pytest.raises(InvalidHierarchyError):
            service.set_hierarchy(
                org.engineer.id, SetHierarchyRequest(reports_to_id=org.remote_head.id), "admin"
            )

    def test_coordinator_at_same_level_is_allowed(self, service, org):
        result = service.set_hierarchy(
            org.engineer.id, SetHierarchyRequest(coordinator_id=org.analyst.id), "admin"
        )

        assert result.coordinator_id == org.analyst.id

    def test_junior_coordinator_is_rejected(self, service, org):
        with pytest.raises(InvalidHierarchyError):
            service.set_hierarchy(
                org.lead.id, SetHierarchyRequest(coordinator_id=org.engineer.id), "admin"
            )

    def test_out_of_scope_actor(self, service, org):
        with pytest.raises(AccessDeniedError):
            service.set_hierarchy(
                org.engineer.id, SetHierarchyRequest(reports_to_id=org.lead.id), "outsider"
            )

    def test_change_is_audited(self, service, session, org):
        service.set_hierarchy(
            org.engineer.id, SetHierarchyRequest(reports_to_id=org.lead.id), "manager"
        )

        record = session.query(OrganizationAuditLog).one()
        assert record.details["change_type"] == "HIERARCHY_CHANGE"
        assert record.old_values == {"reports_to_id": None, "coordinator_id": None}
        assert record.new_values["reports_to_id"] == org.lead.id


class TestHierarchyQueries:
    """Tests for reporting chain, subordinates and validation."""

    def test_reporting_chain(self, service, org, chain):
        entries = service.get_reporting_chain(org.engineer.id, "manager")

        assert [e.position_id for e in entries] == [org.lead.id, org.head.id]

    def test_reporting_chain_of_unknown_position(self, service, org):
        with pytest.raises(PositionNotFoundError):
            service.get_reporting_chain(9999)

    def test_reporting_chain_is_capped(self, session, org, make_position, link):
        positions = [make_position(f"CHAIN-{i}", i + 1, org.engineering) for i in range(26)]
        for junior, senior in zip(positions[1:], positions):
            link(junior, reports_to=senior)
        session.commit()

        service = HierarchyService(session, settings=HierarchySettings(max_chain_hops=20))

        assert len(service.get_reporting_chain(positions[-1].id)) == 20

    def test_subordinates(self, service, org, chain):
        subordinates = service.get_subordinates(org.head.id, "admin")

        assert [s.position_id for s in subordinates] == [org.lead.id, org.engineer.id]

    def test_validation_requires_superadmin(self, service, org):
        with pytest.raises(AccessDeniedError):
            service.validate_hierarchy("manager")

    def test_validation_of_consistent_hierarchy(self, service, org, chain):
        report = service.validate_hierarchy("admin")

        assert report.valid is True

    def test_validation_reports_cycle(self, service, session, org, link, chain):
        link(org.head, reports_to=org.engineer)
        session.commit()

        report = service.validate_hierarchy("admin")

        assert report.valid is False
        assert {c.position_id for c in report.circular_references} == {
            org.head.id,
            org.lead.id,
            org.engineer.id,
        }
