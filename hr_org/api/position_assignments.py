"""API endpoints for appointing, terminating and transferring position holders."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from hr_org.api.dependencies import ActorId, get_assignment_service
from hr_org.schemas.position_assignment import (
    AssignmentRequest,
    AssignmentResponse,
    TerminationBody,
    TerminationRequest,
    TransferRequest,
    TransferResponse,
    UserHistoryResponse,
)
from hr_org.services.position_assignment_service import PositionAssignmentService


# =============================================================================
# Response Wrappers
# =============================================================================

class AssignmentResponseWrapper(BaseModel):
    """Response wrapper for a single assignment."""

    data: AssignmentResponse


class AssignmentListWrapper(BaseModel):
    """Response wrapper for a list of assignments."""

    data: List[AssignmentResponse]


class TransferResponseWrapper(BaseModel):
    """Response wrapper for a transfer."""

    data: TransferResponse


class UserHistoryResponseWrapper(BaseModel):
    """Response wrapper for assignment history."""

    data: UserHistoryResponse


# =============================================================================
# Router Setup
# =============================================================================

position_assignments_router = APIRouter(
    prefix="/api/position-assignments",
    tags=["Position Assignments"],
)

AssignmentService = Annotated[PositionAssignmentService, Depends(get_assignment_service)]


@position_assignments_router.post(
    "",
    response_model=AssignmentResponseWrapper,
    status_code=status.HTTP_201_CREATED,
    summary="Assign Position",
    description="Appoint a person to a position after validating dates, capacity and conflicts.",
)
async def assign_position(
    request: AssignmentRequest,
    service: AssignmentService,
    actor_id: ActorId,
) -> AssignmentResponseWrapper:
    """
    Appoint a person to a position.

    - Acting (PLT) appointments need an end date within six months
    - Unique positions accept a single substantive holder
    - The appointer, when given, must outrank the position in its department
    """
    return AssignmentResponseWrapper(data=service.assign(request, actor_id))


@position_assignments_router.post(
    "/transfer",
    response_model=TransferResponseWrapper,
    summary="Transfer Position",
    description="Close the current assignment and open a new one in a single transaction.",
)
async def transfer_position(
    request: TransferRequest,
    service: AssignmentService,
    actor_id: ActorId,
) -> TransferResponseWrapper:
    return TransferResponseWrapper(data=service.transfer(request, actor_id))


@position_assignments_router.post(
    "/{assignment_id}/terminate",
    response_model=AssignmentResponseWrapper,
    summary="Terminate Assignment",
    description="End an active position assignment.",
)
async def terminate_assignment(
    assignment_id: int,
    body: TerminationBody,
    service: AssignmentService,
    actor_id: ActorId,
) -> AssignmentResponseWrapper:
    request = TerminationRequest(assignment_id=assignment_id, **body.model_dump())
    return AssignmentResponseWrapper(data=service.terminate(request, actor_id))


@position_assignments_router.get(
    "/users/{user_profile_id}/history",
    response_model=UserHistoryResponseWrapper,
    summary="Get Assignment History",
    description="Get every assignment of a person, most recent first.",
)
async def get_user_history(
    user_profile_id: int,
    service: AssignmentService,
    actor_id: ActorId,
) -> UserHistoryResponseWrapper:
    return UserHistoryResponseWrapper(data=service.get_user_history(user_profile_id, actor_id))


@position_assignments_router.get(
    "/users/{user_profile_id}/active",
    response_model=AssignmentListWrapper,
    summary="Get Active Positions",
    description="Get the current assignments of a person.",
)
async def get_active_positions(
    user_profile_id: int,
    service: AssignmentService,
    actor_id: ActorId,
) -> AssignmentListWrapper:
    return AssignmentListWrapper(data=service.get_active_positions(user_profile_id, actor_id))
