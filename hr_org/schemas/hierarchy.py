"""Pydantic models for hierarchy queries and validation reports."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ChainEntry(BaseModel):
    """One superior in a reporting chain."""

    depth: int = Field(..., description="Distance from the starting position (1 = direct superior)")
    position_id: int = Field(..., description="Position ID")
    position_code: str = Field(..., description="Position code")
    position_name: str = Field(..., description="Position name")
    hierarchy_level: int = Field(..., description="Hierarchy level")
    department_id: Optional[int] = Field(None, description="Department ID")


class SubordinateEntry(BaseModel):
    """A position below another through reporting or coordination lines."""

    position_id: int = Field(..., description="Position ID")
    position_code: str = Field(..., description="Position code")
    position_name: str = Field(..., description="Position name")
    hierarchy_level: int = Field(..., description="Hierarchy level")
    department_id: Optional[int] = Field(None, description="Department ID")


class ReportingChainResponse(BaseModel):
    """Reporting chain of a position, nearest superior first."""

    position_id: int = Field(..., description="Starting position")
    chain: List[ChainEntry] = Field(default_factory=list, description="Superiors")


class SubordinatesResponse(BaseModel):
    """All positions below a position."""

    position_id: int = Field(..., description="Starting position")
    total: int = Field(..., description="Number of subordinates")
    subordinates: List[SubordinateEntry] = Field(default_factory=list, description="Subordinates")


class CircularReference(BaseModel):
    """A position whose reporting line loops back to itself."""

    position_id: int = Field(..., description="Position on the cycle")
    position_name: str = Field(..., description="Position name")
    conflict_with: int = Field(..., description="Position whose edge closes the cycle")


class OrphanedPosition(BaseModel):
    """An active position whose chain does not reach a valid root."""

    position_id: int = Field(..., description="Position ID")
    position_name: str = Field(..., description="Position name")
    reason: str = Field(..., description="Why the position is orphaned")


class DepthWarning(BaseModel):
    """A reporting chain longer than the configured maximum depth."""

    position_id: int = Field(..., description="Position ID")
    position_name: str = Field(..., description="Position name")
    depth: int = Field(..., description="Observed chain length")
    truncated: bool = Field(default=False, description="Walk stopped at the hop cap")


class HierarchyReport(BaseModel):
    """Result of a whole-graph integrity check."""

    valid: bool = Field(..., description="No cycles and no orphans")
    circular_references: List[CircularReference] = Field(default_factory=list)
    orphaned_positions: List[OrphanedPosition] = Field(default_factory=list)
    depth_warnings: List[DepthWarning] = Field(
        default_factory=list,
        description="Informational; does not affect validity",
    )


class SetHierarchyRequest(BaseModel):
    """Replace the reporting and coordination edges of a position."""

    reports_to_id: Optional[int] = Field(None, description="Direct superior position")
    coordinator_id: Optional[int] = Field(None, description="Coordinating position")


class HierarchyResponse(BaseModel):
    """Edges of a position after an update."""

    position_id: int = Field(..., description="Position ID")
    reports_to_id: Optional[int] = Field(None, description="Direct superior position")
    coordinator_id: Optional[int] = Field(None, description="Coordinating position")

    class Config:
        """Pydantic configuration."""
        from_attributes = True
