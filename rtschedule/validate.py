"""
Publish-gate validation: per-slot coverage/lead rules and per-week quota rules.
Both validators return structured results and never raise on violations.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .dates import build_date_range, weeks_in_range
from .models import SHIFT_TYPES, Assignment, SchedulerConfig, Therapist, counts_toward_coverage
from .picker import WorkedDates, record_worked

SLOT_REASONS = ("under_coverage", "over_coverage", "missing_lead", "multiple_leads", "ineligible_lead")


def exceeds_coverage_limit(active_coverage: int, max_coverage: int) -> bool:
    """Adding one more covering row would go past max_coverage."""
    return active_coverage >= max_coverage


@dataclass
class SlotIssue:
    date: date
    shift_type: str
    coverage: int
    lead_count: int
    reasons: List[str] = field(default_factory=list)
    lead_ids: List[int] = field(default_factory=list)


@dataclass
class SlotValidation:
    issues: List[SlotIssue] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=lambda: {r: 0 for r in SLOT_REASONS})

    @property
    def under_coverage(self) -> int:
        return self.counts["under_coverage"]

    @property
    def over_coverage(self) -> int:
        return self.counts["over_coverage"]

    @property
    def missing_lead(self) -> int:
        return self.counts["missing_lead"]

    @property
    def multiple_leads(self) -> int:
        return self.counts["multiple_leads"]

    @property
    def ineligible_lead(self) -> int:
        return self.counts["ineligible_lead"]

    @property
    def violations(self) -> int:
        return len(self.issues)

    @property
    def ok(self) -> bool:
        return not self.issues

    def affected_summary(self, limit: int = 8) -> str:
        shown = ", ".join(f"{i.date.isoformat()} {i.shift_type}" for i in self.issues[:limit])
        extra = len(self.issues) - limit
        return f"{shown}, +{extra} more" if extra > 0 else shown


def validate_slots(
    cycle_dates: List[date],
    assignments: Iterable[Assignment],
    therapists: Dict[int, Therapist],
    config: SchedulerConfig,
) -> SlotValidation:
    """Classify every (date, shift type) slot in range, empty slots included."""
    by_slot: Dict[tuple, List[Assignment]] = {}
    for a in assignments:
        by_slot.setdefault((a.date, a.shift_type), []).append(a)

    result = SlotValidation()
    for d in cycle_dates:
        for shift_type in SHIFT_TYPES:
            rows = by_slot.get((d, shift_type), [])
            covering = [a for a in rows if counts_toward_coverage(a.status)]
            leads = [a for a in covering if a.role == "lead"]

            def eligible(a: Assignment) -> bool:
                t = therapists.get(a.user_id)
                return bool(t and t.is_lead_eligible)

            reasons = []
            if len(covering) < config.min_coverage:
                reasons.append("under_coverage")
            if len(covering) > config.max_coverage:
                reasons.append("over_coverage")
            if not leads or not any(eligible(a) for a in covering):
                reasons.append("missing_lead")
            if len(leads) > 1:
                reasons.append("multiple_leads")
            if any(not eligible(a) for a in leads):
                reasons.append("ineligible_lead")

            if reasons:
                for r in reasons:
                    result.counts[r] += 1
                result.issues.append(SlotIssue(
                    date=d,
                    shift_type=shift_type,
                    coverage=len(covering),
                    lead_count=len(leads),
                    reasons=reasons,
                    lead_ids=[a.user_id for a in leads],
                ))
    return result


@dataclass
class WeeklyViolation:
    therapist_id: int
    week_start: date
    week_end: date
    worked: int
    required: int
    kind: str  # under or over


@dataclass
class WeeklyValidation:
    violations: List[WeeklyViolation] = field(default_factory=list)

    @property
    def under_count(self) -> int:
        return sum(1 for v in self.violations if v.kind == "under")

    @property
    def over_count(self) -> int:
        return sum(1 for v in self.violations if v.kind == "over")

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def ok(self) -> bool:
        return not self.violations


def build_worked_dates(assignments: Iterable[Assignment], week_starts_on: int = 0) -> WorkedDates:
    """(therapist, week start) -> set of dates with a covering row, across every cycle given."""
    worked: WorkedDates = {}
    for a in assignments:
        if counts_toward_coverage(a.status):
            record_worked(worked, a.user_id, a.date, week_starts_on)
    return worked


def validate_weekly(
    start: date,
    end: date,
    therapists: Iterable[Therapist],
    worked: WorkedDates,
    config: SchedulerConfig,
) -> WeeklyValidation:
    """
    Each therapist-week must hit min(quota, days of that week inside the cycle).
    PRN therapists carry no minimum and are only checked for going over.
    """
    weeks = weeks_in_range(build_date_range(start, end), config.week_starts_on)
    result = WeeklyValidation()
    for t in therapists:
        if not t.is_active or t.on_fmla:
            continue
        quota = config.weekly_limit_for(t)
        for ws, days in sorted(weeks.items()):
            required = min(quota, len(days))
            count = len(worked.get((t.id, ws), ()))
            kind: Optional[str] = None
            if count > required:
                kind = "over"
            elif count < required and not t.is_prn:
                kind = "under"
            if kind:
                result.violations.append(WeeklyViolation(
                    therapist_id=t.id,
                    week_start=ws,
                    week_end=ws + timedelta(days=6),
                    worked=count,
                    required=required,
                    kind=kind,
                ))
    return result
