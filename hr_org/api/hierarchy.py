"""API endpoints for whole-hierarchy operations."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from hr_org.api.dependencies import ActorId, get_hierarchy_service
from hr_org.schemas.hierarchy import HierarchyReport
from hr_org.services.hierarchy_service import HierarchyService


class HierarchyReportWrapper(BaseModel):
    """Response wrapper for hierarchy validation."""

    data: HierarchyReport


hierarchy_router = APIRouter(
    prefix="/api/hierarchy",
    tags=["Hierarchy"],
)


@hierarchy_router.get(
    "/validation",
    response_model=HierarchyReportWrapper,
    summary="Validate Hierarchy",
    description="Scan the whole hierarchy for circular references, orphans and excessive depth.",
)
async def validate_hierarchy(
    service: Annotated[HierarchyService, Depends(get_hierarchy_service)],
    actor_id: ActorId,
) -> HierarchyReportWrapper:
    """
    Validate the position hierarchy.

    - Superadmins only
    - Depth warnings are informational and do not make the report invalid
    """
    return HierarchyReportWrapper(data=service.validate_hierarchy(actor_id))
