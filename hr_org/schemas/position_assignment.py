"""Pydantic models for position assignment endpoints."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are already UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AssignmentRequest(BaseModel):
    """Request to appoint a person to a position."""

    user_profile_id: int = Field(..., description="Person being appointed")
    position_id: int = Field(..., description="Position being filled")
    start_date: datetime = Field(..., description="First moment of the assignment (inclusive)")
    end_date: Optional[datetime] = Field(
        None,
        description="End of the assignment (exclusive); open-ended when omitted",
    )
    is_plt: bool = Field(default=False, description="Acting (PLT) appointment")
    appointed_by: Optional[str] = Field(
        None,
        description="External id of the appointer; defaults to the requesting user",
    )
    sk_number: Optional[str] = Field(None, max_length=100, description="Appointment decree number")
    notes: Optional[str] = Field(None, description="Free-form notes")

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store all moments as naive UTC."""
        return to_naive_utc(v)


class TerminationRequest(BaseModel):
    """Request to end an active assignment."""

    assignment_id: int = Field(..., description="Assignment to terminate")
    end_date: datetime = Field(..., description="Moment the assignment ends")
    reason: Optional[str] = Field(None, description="Reason recorded in the assignment notes")

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class TerminationBody(BaseModel):
    """Termination payload when the assignment id comes from the URL."""

    end_date: datetime = Field(..., description="Moment the assignment ends")
    reason: Optional[str] = Field(None, description="Reason recorded in the assignment notes")

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class TransferRequest(BaseModel):
    """Request to move a person from one position to another in one step."""

    user_profile_id: int = Field(..., description="Person being transferred")
    from_position_id: int = Field(..., description="Position currently held")
    to_position_id: int = Field(..., description="Destination position")
    transfer_date: datetime = Field(..., description="Start of the new assignment")
    end_date: Optional[datetime] = Field(None, description="End of the new assignment")
    is_plt: bool = Field(default=False, description="New assignment is an acting appointment")
    appointed_by: Optional[str] = Field(None, description="External id of the appointer")
    sk_number: Optional[str] = Field(None, max_length=100, description="Appointment decree number")
    notes: Optional[str] = Field(None, description="Notes for the new assignment")

    @field_validator("transfer_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store all moments as naive UTC."""
        return to_naive_utc(v)


class AssignmentResponse(BaseModel):
    """A persisted position assignment."""

    id: int = Field(..., description="Assignment ID")
    user_profile_id: int = Field(..., description="Holder")
    position_id: int = Field(..., description="Position held")
    start_date: datetime = Field(..., description="Start (inclusive)")
    end_date: Optional[datetime] = Field(None, description="End (exclusive)")
    is_plt: bool = Field(..., description="Acting appointment")
    is_active: bool = Field(..., description="Whether the assignment is active")
    status: str = Field(..., description="Lifecycle state")
    appointed_by: Optional[str] = Field(None, description="Appointer external id")
    sk_number: Optional[str] = Field(None, description="Appointment decree number")
    notes: Optional[str] = Field(None, description="Notes")

    class Config:
        """Pydantic configuration."""
        from_attributes = True


class TransferResponse(BaseModel):
    """Result of a transfer: the closed assignment and the new one."""

    terminated: AssignmentResponse = Field(..., description="Assignment that was closed")
    created: AssignmentResponse = Field(..., description="Assignment that was opened")


class AssignmentHistoryEntry(AssignmentResponse):
    """An assignment in a person's history, with position details."""

    position_code: str = Field(..., description="Position code")
    position_name: str = Field(..., description="Position name")
    hierarchy_level: int = Field(..., description="Position hierarchy level")
    department_id: Optional[int] = Field(None, description="Position department")
    tenure: str = Field(..., description="Human-readable time in the position")


class UserHistoryResponse(BaseModel):
    """Full assignment history of one person, most recent first."""

    user_profile_id: int = Field(..., description="Person")
    total_assignments: int = Field(..., description="Number of assignments")
    assignments: List[AssignmentHistoryEntry] = Field(
        default_factory=list,
        description="Assignments ordered by start date descending",
    )
