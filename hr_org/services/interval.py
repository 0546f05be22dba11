"""
Temporal interval model for position assignments.

Assignments cover the half-open interval ``[start, end)``. An absent end
means the assignment is open-ended and is compared as ``FAR_FUTURE``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from hr_org.config.settings import AssignmentPolicySettings
from hr_org.utils.errors import InvalidDateRangeError


FAR_FUTURE = datetime.max


@dataclass(frozen=True)
class AssignmentInterval:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: Optional[datetime] = None

    @property
    def effective_end(self) -> datetime:
        return self.end if self.end is not None else FAR_FUTURE

    def contains(self, moment: datetime) -> bool:
        """Whether ``moment`` falls inside the interval."""
        return self.start <= moment < self.effective_end


def overlaps(a: AssignmentInterval, b: AssignmentInterval) -> bool:
    """
    Check whether two intervals share at least one instant.

    Symmetric; intervals that only touch (``a.end == b.start``) do not
    overlap.
    """
    return a.start < b.effective_end and b.start < a.effective_end


def validate_interval(
    interval: AssignmentInterval,
    now: datetime,
    policy: Optional[AssignmentPolicySettings] = None,
) -> None:
    """
    Validate assignment dates against the backdating and duration policy.

    Args:
        interval: Candidate interval
        now: Reference time for the backdating limit
        policy: Limits to apply; defaults to AssignmentPolicySettings()

    Raises:
        InvalidDateRangeError: If the start is too far in the past, the end
            is not after the start, or the duration exceeds the maximum
    """
    policy = policy or AssignmentPolicySettings()

    earliest_start = now - relativedelta(years=policy.max_backdate_years)
    if interval.start < earliest_start:
        raise InvalidDateRangeError(
            message=(
                f"Start date cannot be more than {policy.max_backdate_years} "
                f"year(s) in the past"
            ),
            details={
                "start_date": interval.start.isoformat(),
                "earliest_allowed": earliest_start.isoformat(),
            },
        )

    if interval.end is None:
        return

    if interval.end <= interval.start:
        raise InvalidDateRangeError(
            message="End date must be after start date",
            details={
                "start_date": interval.start.isoformat(),
                "end_date": interval.end.isoformat(),
            },
        )

    latest_end = interval.start + relativedelta(years=policy.max_duration_years)
    if interval.end > latest_end:
        raise InvalidDateRangeError(
            message=f"Assignment duration cannot exceed {policy.max_duration_years} years",
            details={
                "end_date": interval.end.isoformat(),
                "latest_allowed": latest_end.isoformat(),
            },
        )
