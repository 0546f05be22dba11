"""Fixtures for API tests: the real app wired to the test database."""

import pytest
from fastapi.testclient import TestClient

from hr_org.api.dependencies import (
    get_assignment_service,
    get_hierarchy_service,
    get_position_service,
)
from hr_org.config.settings import HierarchySettings
from hr_org.main import create_app
from hr_org.services.hierarchy_service import HierarchyService
from hr_org.services.position_assignment_service import PositionAssignmentService
from hr_org.services.position_service import PositionService


@pytest.fixture
def app(session, clock, policy):
    """Create test application using the in-memory database and a fixed clock."""
    app = create_app()
    app.dependency_overrides[get_assignment_service] = lambda: PositionAssignmentService(
        session, clock=clock, policy=policy
    )
    app.dependency_overrides[get_position_service] = lambda: PositionService(
        session, clock=clock, policy=policy
    )
    app.dependency_overrides[get_hierarchy_service] = lambda: HierarchyService(
        session, settings=HierarchySettings()
    )
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers():
    """Headers for the superadmin."""
    return {"X-User-ID": "admin"}


@pytest.fixture
def manager_headers():
    """Headers for the engineering department head."""
    return {"X-User-ID": "manager"}
