"""Tests for assignment validation rules that need database state."""

from datetime import datetime

import pytest

from hr_org.models.user_position import UserProfile
from hr_org.schemas.position_assignment import AssignmentRequest
from hr_org.services.assignment_validator import AssignmentValidator
from hr_org.utils.errors import (
    HasDependentPositionsError,
    InsufficientAuthorityError,
    SameLevelConflictError,
    TargetPositionNotFoundError,
)


@pytest.fixture
def validator(session, clock, policy):
    """Create validator with a fixed clock."""
    return AssignmentValidator(session, clock=clock, policy=policy)


@pytest.fixture
def lead_holder(session, org, make_assignment):
    """A person holding the level 2 engineering lead position."""
    profile = UserProfile(external_id="lead-holder", full_name="Lee Lead")
    session.add(profile)
    session.flush()
    make_assignment(profile, org.lead, datetime(2024, 1, 1))
    session.commit()
    return profile


class TestValidateAppointer:
    """Tests for appointer authority."""

    def test_level_two_can_appoint_level_three_in_same_department(self, validator, org, lead_holder):
        assert validator.validate_appointer("lead-holder", org.engineer.id) == org.lead.id

    def test_level_two_cannot_appoint_same_level(self, validator, org, lead_holder):
        with pytest.raises(InsufficientAuthorityError):
            validator.validate_appointer("lead-holder", org.lead.id)

    def test_level_two_cannot_appoint_more_senior(self, validator, org, lead_holder):
        with pytest.raises(InsufficientAuthorityError):
            validator.validate_appointer("lead-holder", org.head.id)

    def test_level_two_cannot_appoint_in_other_department(
        self, validator, session, org, lead_holder, make_position
    ):
        finance_clerk = make_position("FIN-CLERK", 3, org.finance)
        session.commit()

        with pytest.raises(InsufficientAuthorityError):
            validator.validate_appointer("lead-holder", finance_clerk.id)

    def test_acting_holdings_grant_no_authority(self, validator, session, org, make_assignment):
        make_assignment(org.bob, org.lead, datetime(2024, 6, 1), datetime(2024, 8, 1), is_plt=True)
        session.commit()

        with pytest.raises(InsufficientAuthorityError):
            validator.validate_appointer("bob", org.engineer.id)

    def test_ended_holdings_grant_no_authority(self, validator, session, org, make_assignment):
        make_assignment(org.bob, org.lead, datetime(2024, 1, 1), datetime(2024, 5, 1))
        session.commit()

        with pytest.raises(InsufficientAuthorityError):
            validator.validate_appointer("bob", org.engineer.id)

    def test_superadmin_needs_no_holding(self, validator, org):
        assert validator.validate_appointer("admin", org.head.id) is None

    def test_unknown_target(self, validator, org, lead_holder):
        with pytest.raises(TargetPositionNotFoundError):
            validator.validate_appointer("lead-holder", 9999)


class TestSameLevel:
    """Tests for the same-level rule."""

    def test_holding_in_other_department_does_not_conflict(
        self, validator, session, org, make_position, make_assignment
    ):
        finance_clerk = make_position("FIN-CLERK", 3, org.finance)
        make_assignment(org.alice, finance_clerk, datetime(2024, 1, 1))
        session.commit()

        candidate = AssignmentRequest(
            user_profile_id=org.alice.id,
            position_id=org.engineer.id,
            start_date=datetime(2024, 7, 1),
        )

        assert validator.validate_assignment(candidate).id == org.engineer.id

    def test_holding_ending_before_start_does_not_conflict(
        self, validator, session, org, make_assignment
    ):
        make_assignment(org.alice, org.analyst, datetime(2024, 1, 1), datetime(2024, 6, 30))
        session.commit()

        candidate = AssignmentRequest(
            user_profile_id=org.alice.id,
            position_id=org.engineer.id,
            start_date=datetime(2024, 7, 1),
        )

        validator.validate_assignment(candidate)

    def test_excluded_assignment_is_ignored(self, validator, session, org, make_assignment):
        current = make_assignment(org.alice, org.analyst, datetime(2024, 1, 1))
        session.commit()

        candidate = AssignmentRequest(
            user_profile_id=org.alice.id,
            position_id=org.engineer.id,
            start_date=datetime(2024, 7, 1),
        )

        with pytest.raises(SameLevelConflictError):
            validator.validate_assignment(candidate)

        validator.validate_assignment(candidate, exclude_assignment_id=current.id)


class TestCheckNoDependents:
    """Tests for check_no_dependents."""

    def test_reporting_dependent_blocks(self, validator, session, org, link):
        link(org.engineer, reports_to=org.lead)
        session.commit()

        with pytest.raises(HasDependentPositionsError) as exc_info:
            validator.check_no_dependents(org.lead.id)

        assert exc_info.value.details["dependent_position_ids"] == [org.engineer.id]

    def test_coordinated_dependent_blocks(self, validator, session, org, link):
        link(org.analyst, coordinator=org.engineer)
        session.commit()

        with pytest.raises(HasDependentPositionsError):
            validator.check_no_dependents(org.engineer.id)

    def test_dependents_are_listed_once(self, validator, session, org, link):
        link(org.engineer, reports_to=org.lead, coordinator=org.lead)
        link(org.analyst, reports_to=org.lead)
        link(org.lead, reports_to=org.head)
        session.commit()

        with pytest.raises(HasDependentPositionsError) as exc_info:
            validator.check_no_dependents(org.lead.id)

        assert exc_info.value.details["dependent_position_ids"] == sorted(
            [org.engineer.id, org.analyst.id]
        )

    def test_no_dependents(self, validator, org):
        validator.check_no_dependents(org.engineer.id)
