"""
When an item is next reviewed, as a closed sum type.

A memorization item either has never been scheduled (``NeverReviewed``) or is
scheduled at a point in time (``ScheduledAt``). A never-scheduled item is
always due.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class NeverReviewed:
    """No review time has been set; the item is immediately due"""


@dataclass(frozen=True)
class ScheduledAt:
    at: datetime


ReviewSchedule = Union[NeverReviewed, ScheduledAt]

NEVER_REVIEWED = NeverReviewed()


def from_timestamp(value: Optional[datetime]) -> ReviewSchedule:
    """Build a schedule from a nullable database column"""
    if value is None:
        return NEVER_REVIEWED
    return ScheduledAt(value)


def is_due(schedule: ReviewSchedule, now: datetime) -> bool:
    if isinstance(schedule, NeverReviewed):
        return True
    return schedule.at <= now
