"""Pydantic schemas for API request/response validation."""

from hr_org.schemas.hierarchy import (
    ChainEntry,
    CircularReference,
    DepthWarning,
    HierarchyReport,
    OrphanedPosition,
    SetHierarchyRequest,
    SubordinateEntry,
)
from hr_org.schemas.position import (
    PositionCreateRequest,
    PositionUpdateRequest,
)
from hr_org.schemas.position_assignment import (
    AssignmentRequest,
    TerminationRequest,
    TransferRequest,
)

__all__ = [
    # Assignment schemas
    "AssignmentRequest",
    "TerminationRequest",
    "TransferRequest",
    # Position schemas
    "PositionCreateRequest",
    "PositionUpdateRequest",
    # Hierarchy schemas
    "ChainEntry",
    "CircularReference",
    "DepthWarning",
    "HierarchyReport",
    "OrphanedPosition",
    "SetHierarchyRequest",
    "SubordinateEntry",
]
