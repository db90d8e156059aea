"""
Round-robin candidate picker.

The cursor is threaded explicitly: callers pass the cursor in and keep the
returned next_cursor for the following pick of the same slot type.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, Set, Tuple

from .dates import week_start
from .models import Therapist

WorkedDates = Dict[Tuple[int, date], Set[date]]


@dataclass
class Pick:
    therapist: Optional[Therapist]
    next_cursor: int
    index: Optional[int] = None


def worked_dates_for(worked: WorkedDates, therapist_id: int, on: date,
                     week_starts_on: int = 0) -> Set[date]:
    return worked.get((therapist_id, week_start(on, week_starts_on)), set())


def record_worked(worked: WorkedDates, therapist_id: int, on: date, week_starts_on: int = 0) -> None:
    worked.setdefault((therapist_id, week_start(on, week_starts_on)), set()).add(on)


def exceeds_weekly_limit(worked_dates: Set[date], target: date, limit: int) -> bool:
    """Adding target would push the week past the limit (re-working a counted date is free)."""
    return target not in worked_dates and len(worked_dates) >= limit


def pick_candidate(
    pool: List[Therapist],
    cursor: int,
    on: date,
    is_allowed: Callable[[Therapist], bool],
    assigned_ids: Set[int],
    worked: WorkedDates,
    weekly_limits: Dict[int, int],
    week_starts_on: int = 0,
    override_weekly: bool = False,
) -> Pick:
    """First eligible therapist at or after cursor, wrapping once around the pool."""
    if not pool:
        return Pick(None, cursor)

    size = len(pool)
    start = cursor % size
    for offset in range(size):
        index = (start + offset) % size
        therapist = pool[index]
        if therapist.id in assigned_ids:
            continue
        if not is_allowed(therapist):
            continue
        if not override_weekly:
            dates = worked_dates_for(worked, therapist.id, on, week_starts_on)
            if exceeds_weekly_limit(dates, on, weekly_limits.get(therapist.id, 0)):
                continue
        return Pick(therapist, (index + 1) % size, index)

    return Pick(None, cursor)
