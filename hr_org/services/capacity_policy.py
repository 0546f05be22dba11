"""
Position capacity policy.

Holder classification is pure and computed once per snapshot; the same
classification feeds the capacity check, holder listings and availability.
Acting (PLT) holders are capped on their own and never consume a
substantive slot.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List

from hr_org.models.user_position import UserPosition
from hr_org.utils.errors import (
    ActingLimitExceededError,
    CapacityExceededError,
    UniquePositionOccupiedError,
)

DEFAULT_MAX_ACTING_HOLDERS = 2


class HolderStatus(str, Enum):
    """Status of an assignment relative to a point in time."""

    ACTIVE_NON_ACTING = "active_non_acting"
    ACTING_HOLDER = "acting_holder"
    HISTORICAL = "historical"


def classify_holder(assignment: UserPosition, now: datetime) -> HolderStatus:
    """Classify a single assignment as of ``now``."""
    if not assignment.is_active:
        return HolderStatus.HISTORICAL
    if assignment.end_date is not None and assignment.end_date < now:
        return HolderStatus.HISTORICAL
    if assignment.is_plt:
        return HolderStatus.ACTING_HOLDER
    return HolderStatus.ACTIVE_NON_ACTING


def classify_holders(
    assignments: Iterable[UserPosition],
    now: datetime,
) -> Dict[HolderStatus, List[UserPosition]]:
    """Group assignments by holder status, preserving input order."""
    groups: Dict[HolderStatus, List[UserPosition]] = {status: [] for status in HolderStatus}
    for assignment in assignments:
        groups[classify_holder(assignment, now)].append(assignment)
    return groups


@dataclass(frozen=True)
class CapacitySnapshot:
    """Capacity-relevant view of one position at one moment."""

    max_holders: int
    is_unique: bool
    active_non_plt_count: int
    active_plt_count: int

    @classmethod
    def from_holders(
        cls,
        max_holders: int,
        is_unique: bool,
        holders: Dict[HolderStatus, List[UserPosition]],
    ) -> "CapacitySnapshot":
        return cls(
            max_holders=max_holders,
            is_unique=is_unique,
            active_non_plt_count=len(holders.get(HolderStatus.ACTIVE_NON_ACTING, [])),
            active_plt_count=len(holders.get(HolderStatus.ACTING_HOLDER, [])),
        )

    @property
    def available_slots(self) -> int:
        limit = 1 if self.is_unique else self.max_holders
        return max(0, limit - self.active_non_plt_count)


def check_capacity(
    snapshot: CapacitySnapshot,
    is_plt: bool,
    max_acting_holders: int = DEFAULT_MAX_ACTING_HOLDERS,
) -> None:
    """
    Check whether one more holder of the given kind fits.

    Raises:
        UniquePositionOccupiedError: Unique position already has a substantive holder
        CapacityExceededError: Substantive holders already at max_holders
        ActingLimitExceededError: Acting holders already at the cap
    """
    if is_plt:
        if snapshot.active_plt_count >= max_acting_holders:
            raise ActingLimitExceededError(
                message=f"Maximum {max_acting_holders} acting (PLT) holders allowed per position",
                details={
                    "active_acting_holders": snapshot.active_plt_count,
                    "max_acting_holders": max_acting_holders,
                },
            )
        return

    if snapshot.is_unique and snapshot.active_non_plt_count > 0:
        raise UniquePositionOccupiedError(
            details={"active_holders": snapshot.active_non_plt_count},
        )

    if snapshot.active_non_plt_count >= snapshot.max_holders:
        raise CapacityExceededError(
            message=f"Position has reached maximum holders limit of {snapshot.max_holders}",
            details={
                "active_holders": snapshot.active_non_plt_count,
                "max_holders": snapshot.max_holders,
            },
        )
