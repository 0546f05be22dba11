"""API endpoints for positions, their holders and their hierarchy edges."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from hr_org.api.dependencies import ActorId, get_hierarchy_service, get_position_service
from hr_org.schemas.hierarchy import (
    HierarchyResponse,
    ReportingChainResponse,
    SetHierarchyRequest,
    SubordinatesResponse,
)
from hr_org.schemas.position import (
    PositionAvailabilityResponse,
    PositionCreateRequest,
    PositionHoldersResponse,
    PositionResponse,
    PositionUpdateRequest,
)
from hr_org.services.hierarchy_service import HierarchyService
from hr_org.services.position_service import PositionService


# =============================================================================
# Response Wrappers
# =============================================================================

class PositionResponseWrapper(BaseModel):
    """Response wrapper for a single position."""

    data: PositionResponse


class PositionHoldersWrapper(BaseModel):
    """Response wrapper for position holders."""

    data: PositionHoldersResponse


class PositionAvailabilityWrapper(BaseModel):
    """Response wrapper for position availability."""

    data: PositionAvailabilityResponse


class HierarchyResponseWrapper(BaseModel):
    """Response wrapper for hierarchy edges."""

    data: HierarchyResponse


class ReportingChainWrapper(BaseModel):
    """Response wrapper for a reporting chain."""

    data: ReportingChainResponse


class SubordinatesWrapper(BaseModel):
    """Response wrapper for subordinates."""

    data: SubordinatesResponse


# =============================================================================
# Router Setup
# =============================================================================

positions_router = APIRouter(
    prefix="/api/positions",
    tags=["Positions"],
)

Positions = Annotated[PositionService, Depends(get_position_service)]
Hierarchy = Annotated[HierarchyService, Depends(get_hierarchy_service)]


# =============================================================================
# Position Management Endpoints
# =============================================================================

@positions_router.post(
    "",
    response_model=PositionResponseWrapper,
    status_code=status.HTTP_201_CREATED,
    summary="Create Position",
    description="Create a position together with its empty hierarchy record.",
)
async def create_position(
    request: PositionCreateRequest,
    service: Positions,
    actor_id: ActorId,
) -> PositionResponseWrapper:
    return PositionResponseWrapper(data=service.create_position(request, actor_id))


@positions_router.patch(
    "/{position_id}",
    response_model=PositionResponseWrapper,
    summary="Update Position",
    description="Partially update a position.",
)
async def update_position(
    position_id: int,
    request: PositionUpdateRequest,
    service: Positions,
    actor_id: ActorId,
) -> PositionResponseWrapper:
    """
    Update a position.

    - max_holders cannot drop below the number of current holders
    - department and school must stay aligned
    """
    return PositionResponseWrapper(data=service.update_position(position_id, request, actor_id))


@positions_router.delete(
    "/{position_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Position",
    description="Delete a position with no holders and no dependent positions.",
)
async def delete_position(
    position_id: int,
    service: Positions,
    actor_id: ActorId,
) -> Response:
    service.delete_position(position_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@positions_router.get(
    "/{position_id}/holders",
    response_model=PositionHoldersWrapper,
    summary="Get Position Holders",
    description="Get current, acting and historical holders of a position.",
)
async def get_position_holders(
    position_id: int,
    service: Positions,
    actor_id: ActorId,
) -> PositionHoldersWrapper:
    return PositionHoldersWrapper(data=service.get_holders(position_id, actor_id))


@positions_router.get(
    "/{position_id}/availability",
    response_model=PositionAvailabilityWrapper,
    summary="Check Position Availability",
    description="Get remaining substantive capacity of a position.",
)
async def check_position_availability(
    position_id: int,
    service: Positions,
    actor_id: ActorId,
) -> PositionAvailabilityWrapper:
    return PositionAvailabilityWrapper(data=service.check_availability(position_id, actor_id))


# =============================================================================
# Hierarchy Endpoints
# =============================================================================

@positions_router.put(
    "/{position_id}/hierarchy",
    response_model=HierarchyResponseWrapper,
    summary="Set Position Hierarchy",
    description="Replace the reporting and coordination lines of a position.",
)
async def set_position_hierarchy(
    position_id: int,
    request: SetHierarchyRequest,
    service: Hierarchy,
    actor_id: ActorId,
) -> HierarchyResponseWrapper:
    return HierarchyResponseWrapper(data=service.set_hierarchy(position_id, request, actor_id))


@positions_router.get(
    "/{position_id}/reporting-chain",
    response_model=ReportingChainWrapper,
    summary="Get Reporting Chain",
    description="Get the superiors of a position, nearest first.",
)
async def get_reporting_chain(
    position_id: int,
    service: Hierarchy,
    actor_id: ActorId,
) -> ReportingChainWrapper:
    chain = service.get_reporting_chain(position_id, actor_id)
    return ReportingChainWrapper(data=ReportingChainResponse(position_id=position_id, chain=chain))


@positions_router.get(
    "/{position_id}/subordinates",
    response_model=SubordinatesWrapper,
    summary="Get Subordinates",
    description="Get every position below a position through reporting or coordination lines.",
)
async def get_subordinates(
    position_id: int,
    service: Hierarchy,
    actor_id: ActorId,
) -> SubordinatesWrapper:
    subordinates: List = service.get_subordinates(position_id, actor_id)
    return SubordinatesWrapper(
        data=SubordinatesResponse(
            position_id=position_id,
            total=len(subordinates),
            subordinates=subordinates,
        )
    )
