"""Calendar helpers: cycle date ranges and week bounds."""

from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple


def build_date_range(start: date, end: date) -> List[date]:
    """Inclusive list of dates; empty when start > end."""
    if start > end:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def week_bounds(d: date, week_starts_on: int = 0) -> Tuple[date, date]:
    """(first, last) day of the week containing d. week_starts_on uses date.weekday()."""
    offset = (d.weekday() - week_starts_on) % 7
    start = d - timedelta(days=offset)
    return start, start + timedelta(days=6)


def week_start(d: date, week_starts_on: int = 0) -> date:
    return week_bounds(d, week_starts_on)[0]


def weeks_in_range(dates: List[date], week_starts_on: int = 0) -> Dict[date, List[date]]:
    """Group cycle dates by week start; only dates inside the range are kept."""
    weeks: Dict[date, List[date]] = {}
    for d in dates:
        weeks.setdefault(week_start(d, week_starts_on), []).append(d)
    return weeks


def weekend_saturday(d: date) -> Optional[date]:
    """Saturday of the weekend d falls on, or None for weekdays."""
    if d.weekday() == 5:
        return d
    if d.weekday() == 6:
        return d - timedelta(days=1)
    return None


def parse_iso_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None
