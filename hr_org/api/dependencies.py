"""Shared request dependencies and error handling for the API routers."""

from typing import Annotated, Optional

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from hr_org.database.database import get_db
from hr_org.services.hierarchy_service import HierarchyService
from hr_org.services.position_assignment_service import PositionAssignmentService
from hr_org.services.position_service import PositionService
from hr_org.utils.errors import APIError, UnauthorizedError


# =============================================================================
# Dependency Injection
# =============================================================================

def get_actor_id(
    x_user_id: Annotated[Optional[str], Header(alias="X-User-ID")] = None,
) -> str:
    """
    Get the requesting user's external id from request headers.

    Token verification happens upstream; the header carries the verified
    subject.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError(message="X-User-ID header is required")
    return x_user_id.strip()


def get_assignment_service(
    session: Annotated[Session, Depends(get_db)],
) -> PositionAssignmentService:
    """Get position assignment service instance."""
    return PositionAssignmentService(session)


def get_position_service(
    session: Annotated[Session, Depends(get_db)],
) -> PositionService:
    """Get position service instance."""
    return PositionService(session)


def get_hierarchy_service(
    session: Annotated[Session, Depends(get_db)],
) -> HierarchyService:
    """Get hierarchy service instance."""
    return HierarchyService(session)


ActorId = Annotated[str, Depends(get_actor_id)]


# =============================================================================
# Error Handling
# =============================================================================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors and return structured responses."""
    response = exc.to_response()
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=response.status_code,
        content=response.to_dict(),
        headers=headers,
    )
