"""Shared fixtures: an in-memory database seeded with a small organization."""

from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hr_org.config.settings import AssignmentPolicySettings
from hr_org.models import Base
from hr_org.models.organization import Department, Position, PositionHierarchy, School
from hr_org.models.user_position import AssignmentState, UserPosition, UserProfile

NOW = datetime(2024, 6, 15, 9, 0, 0)


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a database session."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Fixed reference time."""
    return lambda: NOW


@pytest.fixture
def policy():
    """Default assignment policy."""
    return AssignmentPolicySettings()


def add_position(session, code, level, department=None, school=None, **kwargs):
    """Insert a position with its hierarchy record."""
    position = Position(
        code=code,
        name=kwargs.pop("name", code.replace("-", " ").title()),
        hierarchy_level=level,
        department_id=department.id if department else None,
        school_id=school.id if school else (department.school_id if department else None),
        **kwargs,
    )
    session.add(position)
    session.flush()
    session.add(PositionHierarchy(position_id=position.id))
    session.flush()
    return position


def add_assignment(session, profile, position, start, end=None, is_plt=False, **kwargs):
    """Insert an active assignment."""
    assignment = UserPosition(
        user_profile_id=profile.id,
        position_id=position.id,
        start_date=start,
        end_date=end,
        is_plt=is_plt,
        is_active=kwargs.pop("is_active", True),
        status=kwargs.pop("status", AssignmentState.ACTIVE.value),
        **kwargs,
    )
    session.add(assignment)
    session.flush()
    return assignment


def set_edges(session, position, reports_to=None, coordinator=None):
    """Point a position's hierarchy record at other positions."""
    record = session.query(PositionHierarchy).filter_by(position_id=position.id).one()
    record.reports_to_id = reports_to.id if reports_to else None
    record.coordinator_id = coordinator.id if coordinator else None
    session.flush()


@pytest.fixture
def org(session):
    """
    Seed a school with two departments and a handful of positions and people.

    Engineering: head (level 1), lead (level 2, two seats), engineer
    (level 3, five seats), analyst (level 3). Finance has its own head.
    """
    school = School(code="SCH", name="Main School")
    session.add(school)
    session.flush()

    other_school = School(code="OTH", name="Other School")
    session.add(other_school)
    session.flush()

    engineering = Department(code="ENG", name="Engineering", school_id=school.id)
    finance = Department(code="FIN", name="Finance", school_id=school.id)
    remote = Department(code="REM", name="Remote", school_id=other_school.id)
    session.add_all([engineering, finance, remote])
    session.flush()

    head = add_position(session, "ENG-HEAD", 1, engineering, is_unique=True)
    lead = add_position(session, "ENG-LEAD", 2, engineering, max_holders=2)
    engineer = add_position(session, "ENG-ENG", 3, engineering, max_holders=5)
    analyst = add_position(session, "ENG-ANALYST", 3, engineering, max_holders=3)
    finance_head = add_position(session, "FIN-HEAD", 1, finance, is_unique=True)
    remote_head = add_position(session, "REM-HEAD", 1, remote)

    admin = UserProfile(external_id="admin", full_name="Ada Admin", is_superadmin=True)
    manager = UserProfile(external_id="manager", full_name="Max Manager")
    alice = UserProfile(external_id="alice", full_name="Alice Example")
    bob = UserProfile(external_id="bob", full_name="Bob Example")
    outsider = UserProfile(external_id="outsider", full_name="Olga Outsider")
    session.add_all([admin, manager, alice, bob, outsider])
    session.flush()

    add_assignment(session, manager, head, datetime(2023, 9, 1))
    add_assignment(session, outsider, remote_head, datetime(2023, 9, 1))
    session.commit()

    return SimpleNamespace(
        school=school,
        other_school=other_school,
        engineering=engineering,
        finance=finance,
        remote=remote,
        head=head,
        lead=lead,
        engineer=engineer,
        analyst=analyst,
        finance_head=finance_head,
        remote_head=remote_head,
        admin=admin,
        manager=manager,
        alice=alice,
        bob=bob,
        outsider=outsider,
    )


@pytest.fixture
def make_position(session):
    """Factory fixture for positions."""
    return lambda code, level, department=None, school=None, **kwargs: add_position(
        session, code, level, department, school, **kwargs
    )


@pytest.fixture
def make_assignment(session):
    """Factory fixture for assignments."""
    return lambda profile, position, start, end=None, is_plt=False, **kwargs: add_assignment(
        session, profile, position, start, end, is_plt, **kwargs
    )


@pytest.fixture
def link(session):
    """Factory fixture for hierarchy edges."""
    return lambda position, reports_to=None, coordinator=None: set_edges(
        session, position, reports_to, coordinator
    )
