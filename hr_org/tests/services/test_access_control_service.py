"""Tests for record-level access control."""

from datetime import datetime

import pytest

from hr_org.services.access_control_service import (
    AccessControlService,
    AccessOperation,
    EntityType,
    UserContext,
)
from hr_org.utils.errors import AccessDeniedError


@pytest.fixture
def access(session):
    """Create access control service."""
    return AccessControlService(session)


class TestGetUserContext:
    """Tests for get_user_context."""

    def test_superadmin(self, access, org):
        context = access.get_user_context("admin")

        assert context.is_superadmin is True
        assert context.user_profile_id == org.admin.id

    def test_scope_from_active_assignments(self, access, org):
        context = access.get_user_context("manager")

        assert context.is_superadmin is False
        assert context.department_ids == [org.engineering.id]
        assert context.school_ids == [org.school.id]
        assert context.position_ids == [org.head.id]

    def test_inactive_assignments_grant_no_scope(self, access, session, org, make_assignment):
        make_assignment(
            org.bob, org.finance_head, datetime(2023, 7, 1), datetime(2023, 12, 1),
            is_active=False, status="terminated",
        )
        session.commit()

        context = access.get_user_context("bob")

        assert context.department_ids == []
        assert context.school_ids == []

    def test_unknown_actor_gets_empty_context(self, access, org):
        context = access.get_user_context("ghost")

        assert context == UserContext(external_id="ghost")

    def test_inactive_profile_gets_empty_context(self, access, session, org):
        org.manager.is_active = False
        session.commit()

        context = access.get_user_context("manager")

        assert context.user_profile_id is None
        assert context.department_ids == []


class TestCanAccessRecord:
    """Tests for can_access_record and require_access."""

    def test_superadmin_can_access_anything(self, access, org):
        context = access.get_user_context("admin")

        assert access.can_access_record(context, "Anything", None, AccessOperation.DELETE)

    def test_position_in_department_scope(self, access, org):
        context = access.get_user_context("manager")

        assert access.can_access_record(context, EntityType.POSITION, org.engineer.id)

    def test_position_in_school_scope(self, access, org):
        context = access.get_user_context("manager")

        assert access.can_access_record(context, EntityType.POSITION, org.finance_head.id)

    def test_position_out_of_scope(self, access, org):
        context = access.get_user_context("manager")

        assert not access.can_access_record(context, EntityType.POSITION, org.remote_head.id)

    def test_missing_record_is_denied(self, access, org):
        context = access.get_user_context("manager")

        assert not access.can_access_record(context, EntityType.POSITION, 9999)
        assert not access.can_access_record(context, EntityType.POSITION, None)

    def test_unknown_entity_type_is_denied(self, access, org):
        context = access.get_user_context("manager")

        assert not access.can_access_record(context, "Payroll", org.head.id)

    def test_own_assignment_is_accessible(self, access, session, org, make_assignment):
        assignment = make_assignment(org.bob, org.remote_head, datetime(2024, 1, 1))
        session.commit()
        context = access.get_user_context("bob")

        assert access.can_access_record(context, EntityType.USER_POSITION, assignment.id)

    def test_department_and_school(self, access, org):
        context = access.get_user_context("manager")

        assert access.can_access_record(context, EntityType.DEPARTMENT, org.finance.id)
        assert not access.can_access_record(context, EntityType.DEPARTMENT, org.remote.id)
        assert access.can_access_record(context, EntityType.SCHOOL, org.school.id)
        assert not access.can_access_record(context, EntityType.SCHOOL, org.other_school.id)

    def test_require_access_raises(self, access, org):
        context = access.get_user_context("outsider")

        with pytest.raises(AccessDeniedError) as exc_info:
            access.require_access(context, EntityType.POSITION, org.head.id, AccessOperation.UPDATE)

        assert exc_info.value.message == "Access denied to update this Position"
