"""
Data models for the coverage scheduler.
Plain dataclasses shared by the resolver, picker, validators and generator.
"""

import os
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple


SHIFT_TYPES = ("day", "night")
OVERRIDE_SHIFT_TYPES = ("day", "night", "both")
SHIFT_AFFINITIES = ("day", "night", "either")
EMPLOYMENT_TYPES = ("full_time", "part_time", "prn")
SHIFT_ROLES = ("lead", "staff")
SHIFT_STATUSES = ("scheduled", "on_call", "sick", "called_off")
ASSIGNMENT_STATUSES = ("scheduled", "call_in", "cancelled", "on_call", "left_early")
OVERRIDE_TYPES = ("force_off", "force_on")
WEEKEND_ROTATIONS = ("none", "every_other")
WORKS_DOW_MODES = ("hard", "soft")
PRN_POOL_MODES = ("per_date", "exclude")

# Statuses that count toward slot coverage and the weekly work-day quota
COVERING_STATUSES = {"scheduled", "on_call"}

MAX_WORK_DAYS_PER_WEEK = 3
PART_TIME_MAX_WORK_DAYS_PER_WEEK = 2
PRN_MAX_WORK_DAYS_PER_WEEK = 1

MIN_SHIFT_COVERAGE_PER_DAY = 3
MAX_SHIFT_COVERAGE_PER_DAY = 5
GENERATION_TARGET_PER_SHIFT = 4


def counts_toward_coverage(status: str) -> bool:
    return status in COVERING_STATUSES


@dataclass
class WorkPattern:
    """Recurring availability rules. Weekdays use date.weekday(): 0=Mon .. 6=Sun."""
    works_dow: List[int] = field(default_factory=list)
    offs_dow: List[int] = field(default_factory=list)
    works_dow_mode: str = "hard"
    weekend_rotation: str = "none"
    weekend_anchor_date: Optional[date] = None
    shift_preference: str = "either"

    @classmethod
    def normalized(cls, works_dow=None, offs_dow=None, works_dow_mode=None,
                   weekend_rotation=None, weekend_anchor_date=None,
                   shift_preference=None) -> "WorkPattern":
        """Build a pattern from loosely-typed stored values, dropping anything out of range."""
        return cls(
            works_dow=normalize_dow_values(works_dow),
            offs_dow=normalize_dow_values(offs_dow),
            works_dow_mode="soft" if works_dow_mode == "soft" else "hard",
            weekend_rotation="every_other" if weekend_rotation == "every_other" else "none",
            weekend_anchor_date=weekend_anchor_date,
            shift_preference=shift_preference if shift_preference in SHIFT_AFFINITIES else "either",
        )


def normalize_dow_values(values) -> List[int]:
    if not values:
        return []
    out = set()
    for v in values:
        try:
            n = int(v)
        except (TypeError, ValueError):
            continue
        if 0 <= n <= 6:
            out.add(n)
    return sorted(out)


@dataclass
class Therapist:
    id: int
    name: str
    shift_type: str = "day"               # affinity: day, night, either
    employment_type: str = "full_time"
    is_lead_eligible: bool = False
    max_work_days_per_week: Optional[int] = None  # explicit override of the employment default
    is_active: bool = True
    on_fmla: bool = False
    fmla_return_date: Optional[date] = None
    pattern: Optional[WorkPattern] = None

    @property
    def is_prn(self) -> bool:
        return self.employment_type == "prn"

    def works_shift_type(self, shift_type: str) -> bool:
        return self.shift_type == "either" or self.shift_type == shift_type


@dataclass
class Cycle:
    id: int
    label: str
    start_date: date
    end_date: date
    published: bool = False


@dataclass
class AvailabilityOverride:
    therapist_id: int
    cycle_id: int
    date: date
    shift_type: str            # day, night, both
    override_type: str         # force_off, force_on
    note: Optional[str] = None


@dataclass
class Assignment:
    """One stored shift row. A slot is the set of rows sharing (date, shift_type) in a cycle."""
    cycle_id: int
    user_id: int
    date: date
    shift_type: str
    role: str = "staff"
    status: str = "scheduled"
    id: Optional[int] = None

    @property
    def counts(self) -> bool:
        return counts_toward_coverage(self.status)

    @property
    def key(self) -> Tuple[int, int, date]:
        return (self.cycle_id, self.user_id, self.date)


@dataclass
class SchedulerConfig:
    """Coverage thresholds and policy knobs injected into the generator and validators."""
    min_coverage: int = MIN_SHIFT_COVERAGE_PER_DAY
    max_coverage: int = MAX_SHIFT_COVERAGE_PER_DAY
    generation_target: int = GENERATION_TARGET_PER_SHIFT
    week_starts_on: int = 0               # 0 = Monday (ISO weeks), 6 = Sunday
    prn_pool_mode: str = "per_date"       # per_date or exclude
    default_weekly_limits: Dict[str, int] = field(default_factory=lambda: {
        "full_time": MAX_WORK_DAYS_PER_WEEK,
        "part_time": PART_TIME_MAX_WORK_DAYS_PER_WEEK,
        "prn": PRN_MAX_WORK_DAYS_PER_WEEK,
    })

    def __post_init__(self):
        if self.min_coverage < 0 or self.max_coverage < self.min_coverage:
            raise ValueError(
                f"invalid coverage bounds: min={self.min_coverage} max={self.max_coverage}")
        if self.week_starts_on not in range(7):
            raise ValueError(f"week_starts_on must be 0..6, got {self.week_starts_on}")
        if self.prn_pool_mode not in PRN_POOL_MODES:
            raise ValueError(f"prn_pool_mode must be one of {PRN_POOL_MODES}")

    @property
    def fill_target(self) -> int:
        return min(self.max_coverage, self.generation_target)

    def default_weekly_limit(self, employment_type: Optional[str]) -> int:
        return self.default_weekly_limits.get(employment_type or "full_time", MAX_WORK_DAYS_PER_WEEK)

    def weekly_limit_for(self, therapist: Therapist) -> int:
        fallback = self.default_weekly_limit(therapist.employment_type)
        return sanitize_weekly_limit(therapist.max_work_days_per_week, fallback)

    @classmethod
    def from_env(cls, environ=None) -> "SchedulerConfig":
        env = os.environ if environ is None else environ
        return cls(
            min_coverage=int(env.get("RTSCHEDULE_MIN_COVERAGE", MIN_SHIFT_COVERAGE_PER_DAY)),
            max_coverage=int(env.get("RTSCHEDULE_MAX_COVERAGE", MAX_SHIFT_COVERAGE_PER_DAY)),
            generation_target=int(env.get("RTSCHEDULE_GENERATION_TARGET", GENERATION_TARGET_PER_SHIFT)),
            week_starts_on=int(env.get("RTSCHEDULE_WEEK_STARTS_ON", 0)),
            prn_pool_mode=env.get("RTSCHEDULE_PRN_POOL_MODE", "per_date"),
        )


def sanitize_weekly_limit(value: Optional[int], fallback: int = MAX_WORK_DAYS_PER_WEEK) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        n = int(value)
    except (TypeError, ValueError):
        return fallback
    if n < 1 or n > 7:
        return fallback
    return n
