"""Pydantic models for position management endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PositionCreateRequest(BaseModel):
    """Request to create a position."""

    code: str = Field(..., min_length=1, max_length=30, description="Unique position code")
    name: str = Field(..., min_length=1, max_length=150, description="Position name")
    description: Optional[str] = Field(None, description="Description")
    department_id: Optional[int] = Field(None, description="Owning department")
    school_id: Optional[int] = Field(None, description="Owning school")
    hierarchy_level: int = Field(default=1, ge=1, description="Seniority rank (1 = top)")
    max_holders: int = Field(default=1, ge=1, description="Maximum substantive holders")
    is_unique: bool = Field(default=False, description="At most one substantive holder")
    is_active: bool = Field(default=True, description="Whether the position is active")


class PositionUpdateRequest(BaseModel):
    """Partial update of a position; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    department_id: Optional[int] = None
    school_id: Optional[int] = None
    hierarchy_level: Optional[int] = Field(None, ge=1)
    max_holders: Optional[int] = Field(None, ge=1)
    is_unique: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("name", "hierarchy_level", "max_holders", "is_unique", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        """These columns are required; omit the field to leave it unchanged."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class PositionResponse(BaseModel):
    """A persisted position."""

    id: int = Field(..., description="Position ID")
    code: str = Field(..., description="Position code")
    name: str = Field(..., description="Position name")
    description: Optional[str] = None
    department_id: Optional[int] = None
    school_id: Optional[int] = None
    hierarchy_level: int = Field(..., description="Hierarchy level")
    max_holders: int = Field(..., description="Maximum substantive holders")
    is_unique: bool = Field(..., description="Unique position")
    is_active: bool = Field(..., description="Active position")

    class Config:
        """Pydantic configuration."""
        from_attributes = True


class HolderEntry(BaseModel):
    """A person holding (or having held) a position."""

    assignment_id: int = Field(..., description="Assignment ID")
    user_profile_id: int = Field(..., description="Holder")
    user_name: str = Field(..., description="Holder name")
    start_date: datetime = Field(..., description="Start")
    end_date: Optional[datetime] = Field(None, description="End")
    is_plt: bool = Field(..., description="Acting appointment")


class PositionHoldersResponse(BaseModel):
    """Holders of a position grouped by status."""

    position: PositionResponse
    current_holders: List[HolderEntry] = Field(default_factory=list)
    acting_holders: List[HolderEntry] = Field(default_factory=list)
    historical_holders: List[HolderEntry] = Field(default_factory=list)


class PositionAvailabilityResponse(BaseModel):
    """Remaining substantive capacity of a position."""

    position_id: int = Field(..., description="Position ID")
    position_name: str = Field(..., description="Position name")
    is_available: bool = Field(..., description="At least one substantive slot is free")
    max_holders: int = Field(..., description="Maximum substantive holders")
    current_holders: int = Field(..., description="Current substantive holders")
    acting_holders: int = Field(..., description="Current acting holders")
    available_slots: int = Field(..., description="Free substantive slots")
    current_assignments: List[HolderEntry] = Field(default_factory=list)
