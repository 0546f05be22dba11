"""Custom exception classes and error response utilities.

Every business rule failure raised by the organization core is an
``APIError`` subclass with a stable ``error_code`` so callers can render
targeted guidance. Infrastructure failures surface as ``TransactionError``
and are the only errors marked retryable.
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, List, Optional


@dataclass
class FieldError:
    """Error details for a specific field."""

    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON response."""
        return {
            "field": self.field,
            "message": self.message,
            "code": self.code,
        }


@dataclass
class ErrorResponse:
    """Structured error response for API endpoints."""

    message: str
    status_code: int
    error_code: str
    details: Optional[Dict[str, Any]] = None
    field_errors: List[FieldError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "error": {
                "message": self.message,
                "code": self.error_code,
            }
        }

        if self.details:
            result["error"]["details"] = self.details

        if self.field_errors:
            result["error"]["field_errors"] = [
                fe.to_dict() for fe in self.field_errors
            ]

        return result


class APIError(Exception):
    """Base exception for API errors."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"
    message: str = "An unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        field_errors: Optional[List[FieldError]] = None,
    ):
        self.message = message or self.__class__.message
        self.details = details
        self.field_errors = field_errors or []
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to structured error response."""
        return ErrorResponse(
            message=self.message,
            status_code=self.status_code,
            error_code=self.error_code,
            details=self.details,
            field_errors=self.field_errors,
        )


class ValidationError(APIError):
    """Exception for request validation failures."""

    status_code: int = HTTPStatus.BAD_REQUEST
    error_code: str = "validation_error"
    message: str = "Request validation failed"


class NotFoundError(APIError):
    """Exception for resource not found."""

    status_code: int = HTTPStatus.NOT_FOUND
    error_code: str = "not_found"
    message: str = "Resource not found"


class DuplicateError(APIError):
    """Exception for duplicate resource conflicts."""

    status_code: int = HTTPStatus.CONFLICT
    error_code: str = "duplicate"
    message: str = "Resource already exists"


class UnauthorizedError(APIError):
    """Exception for authentication failures."""

    status_code: int = HTTPStatus.UNAUTHORIZED
    error_code: str = "unauthorized"
    message: str = "Authentication required"


class ConflictError(APIError):
    """Exception for requests that conflict with current organization state."""

    status_code: int = HTTPStatus.CONFLICT
    error_code: str = "conflict"
    message: str = "Request conflicts with the current state"


class ForbiddenError(APIError):
    """Exception for authorization failures."""

    status_code: int = HTTPStatus.FORBIDDEN
    error_code: str = "forbidden"
    message: str = "Access denied"


class DatabaseError(APIError):
    """Exception for database operation failures."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "database_error"
    message: str = "Database operation failed"


# =============================================================================
# Interval and Referential Errors
# =============================================================================

class InvalidDateRangeError(ValidationError):
    error_code = "invalid_date_range"
    message = "The assignment dates are not valid"


class PositionNotFoundError(NotFoundError):
    error_code = "position_not_found"
    message = "Position does not exist"


class PositionInactiveError(ValidationError):
    error_code = "position_inactive"
    message = "Position is not active"


class TargetPositionNotFoundError(NotFoundError):
    error_code = "target_position_not_found"
    message = "Target position not found"


class AppointerNotFoundError(NotFoundError):
    error_code = "appointer_not_found"
    message = "Appointer profile not found"


class AssignmentNotFoundError(NotFoundError):
    error_code = "assignment_not_found"
    message = "Position assignment not found"


class AssignmentNotActiveError(ValidationError):
    error_code = "assignment_not_active"
    message = "Position assignment is no longer active"


# =============================================================================
# Capacity Errors
# =============================================================================

class UniquePositionOccupiedError(ConflictError):
    error_code = "unique_position_occupied"
    message = "This is a unique position that is already occupied"


class CapacityExceededError(ConflictError):
    error_code = "capacity_exceeded"
    message = "Position has reached its maximum number of holders"


class ActingLimitExceededError(ConflictError):
    error_code = "acting_limit_exceeded"
    message = "Maximum number of acting (PLT) holders has been reached"


class CapacityBelowHoldersError(ConflictError):
    error_code = "capacity_below_holders"
    message = "Cannot reduce max holders below the current holder count"


# =============================================================================
# Temporal and Organizational Conflicts
# =============================================================================

class OverlappingAssignmentError(ConflictError):
    error_code = "overlapping_assignment"
    message = "User already has an overlapping assignment for this position"


class SameLevelConflictError(ConflictError):
    error_code = "same_level_conflict"
    message = "User already holds a position at the same hierarchy level in this department"


class ActingRequiresEndDateError(ValidationError):
    error_code = "acting_requires_end_date"
    message = "Acting (PLT) assignments must have an end date"


class ActingDurationExceededError(ValidationError):
    error_code = "acting_duration_exceeded"
    message = "Acting (PLT) assignment exceeds the maximum allowed duration"


class InvalidStateTransitionError(ConflictError):
    error_code = "invalid_state_transition"
    message = "Assignment cannot move to the requested state"


# =============================================================================
# Hierarchy and Structure Errors
# =============================================================================

class HasDependentPositionsError(ConflictError):
    error_code = "has_dependent_positions"
    message = "Position has dependent positions in the hierarchy"


class HasActiveAssignmentsError(ConflictError):
    error_code = "has_active_assignments"
    message = "Position still has active assignments"


class HasAssignmentHistoryError(ConflictError):
    error_code = "has_assignment_history"
    message = "Position has assignment history; deactivate it instead of deleting"


class InvalidHierarchyError(ConflictError):
    error_code = "invalid_hierarchy"
    message = "Invalid hierarchy relationship"


class CircularHierarchyError(InvalidHierarchyError):
    error_code = "circular_hierarchy"
    message = "This change would create a circular hierarchy"


class DepartmentSchoolMismatchError(ConflictError):
    error_code = "department_school_mismatch"
    message = "Department does not belong to the position's school"


class DuplicatePositionCodeError(DuplicateError):
    error_code = "duplicate_position_code"
    message = "A position with this code already exists"


# =============================================================================
# Authority and Access Errors
# =============================================================================

class InsufficientAuthorityError(ForbiddenError):
    error_code = "insufficient_authority"
    message = "Appointer does not have authority to make this appointment"


class AccessDeniedError(ForbiddenError):
    error_code = "access_denied"
    message = "Access denied"


# =============================================================================
# Infrastructure Errors
# =============================================================================

class TransactionError(DatabaseError):
    """The transaction could not be committed; safe to retry with the same input."""

    status_code: int = HTTPStatus.SERVICE_UNAVAILABLE
    error_code: str = "transaction_failed"
    message: str = "The operation could not be completed, please retry"
    retryable: bool = True


class DataIntegrityError(ConflictError):
    """A database constraint rejected the write; retrying the same input fails again."""

    error_code: str = "integrity_conflict"
    message: str = "The change conflicts with existing data"


def create_not_found_error(resource_type: str, identifier: Any) -> NotFoundError:
    """Create a not found error for a specific resource."""
    return NotFoundError(
        message=f"{resource_type} not found",
        details={"resource_type": resource_type, "identifier": str(identifier)},
    )
