"""
Availability resolver: may this therapist work this (date, shift type)?

Precedence, highest first:
  1. force_off override            -> blocked (overridable by a manager)
  2. inactive / on FMLA            -> blocked, terminal
  3. force_on override             -> allowed, nothing else is checked
  4. PRN without force_on          -> not offered for the date (terminal)
  5. hard work-pattern mismatch    -> blocked
  6. every-other weekend parity    -> blocked on off weekends
  7. soft works-day / shift-preference mismatch -> advisory only
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from .dates import weekend_saturday
from .models import AvailabilityOverride, Therapist, WorkPattern

SOFT_NON_WORKS_DAY_PENALTY = 25
SHIFT_PREFERENCE_PENALTY = 10

# Never overridable from the drag/drop protocol
HARD_BLOCK_REASONS = {"inactive", "on_fmla", "prn_not_offered_for_date"}

ALLOWED_REASONS = {
    "allowed",
    "override_force_on",
    "soft_outside_works_dow",
    "shift_preference_mismatch",
}

REASON_LABELS = {
    "override_force_off": "Force off override",
    "blocked_offs_dow": "Never works this weekday",
    "blocked_every_other_weekend": "Off weekend by alternating rotation",
    "blocked_outside_works_dow_hard": "Outside hard works-day rule",
    "inactive": "Inactive therapist",
    "on_fmla": "Therapist on FMLA",
    "prn_not_offered_for_date": "PRN not offered for this date",
    "soft_outside_works_dow": "Outside preferred work days",
    "shift_preference_mismatch": "Prefers the other shift",
}


@dataclass
class Resolution:
    allowed: bool
    reason: str
    reasons: List[str] = field(default_factory=list)
    forced: bool = False          # decided by a manager override
    penalty: int = 0
    override_note: Optional[str] = None

    @property
    def is_hard_block(self) -> bool:
        return not self.allowed and self.reason in HARD_BLOCK_REASONS

    @property
    def is_soft_block(self) -> bool:
        return not self.allowed and self.reason not in HARD_BLOCK_REASONS

    @property
    def label(self) -> Optional[str]:
        return REASON_LABELS.get(self.reason)


def _resolution(reason: str, *, advisory: Optional[List[str]] = None, penalty: int = 0,
                note: Optional[str] = None) -> Resolution:
    reasons = [reason] + [r for r in (advisory or []) if r != reason]
    return Resolution(
        allowed=reason in ALLOWED_REASONS,
        reason=reason,
        reasons=reasons,
        forced=reason in ("override_force_on", "override_force_off"),
        penalty=penalty,
        override_note=note,
    )


def shift_type_matches(override_shift_type: str, shift_type: str) -> bool:
    return override_shift_type == "both" or override_shift_type == shift_type


def find_override(overrides: Iterable[AvailabilityOverride], therapist_id: int, cycle_id: int,
                  on: date, shift_type: str) -> Optional[AvailabilityOverride]:
    """Exact shift-type override wins over a 'both' override for the same date."""
    matching = [
        o for o in overrides
        if o.therapist_id == therapist_id
        and o.cycle_id == cycle_id
        and o.date == on
        and shift_type_matches(o.shift_type, shift_type)
    ]
    if not matching:
        return None
    exact = next((o for o in matching if o.shift_type == shift_type), None)
    return exact or matching[0]


def is_weekend_on(pattern: WorkPattern, on: date) -> bool:
    """Every-other-weekend parity: on-weekends are an even number of weeks from the anchor."""
    saturday = weekend_saturday(on)
    if saturday is None or pattern.weekend_rotation != "every_other":
        return True
    anchor = weekend_saturday(pattern.weekend_anchor_date) if pattern.weekend_anchor_date else None
    if anchor is None:
        return False
    return (saturday - anchor).days % 14 == 0


def resolve_availability(therapist: Therapist, cycle_id: int, on: date, shift_type: str,
                         overrides: Iterable[AvailabilityOverride]) -> Resolution:
    override = find_override(overrides, therapist.id, cycle_id, on, shift_type)

    if override is not None and override.override_type == "force_off":
        return _resolution("override_force_off", note=override.note)

    if not therapist.is_active:
        return _resolution("inactive")
    if therapist.on_fmla:
        return _resolution("on_fmla")

    if override is not None and override.override_type == "force_on":
        return _resolution("override_force_on", note=override.note)

    if therapist.is_prn:
        return _resolution("prn_not_offered_for_date")

    pattern = therapist.pattern
    if pattern is None:
        return _resolution("allowed")

    weekday = on.weekday()
    if weekday in pattern.offs_dow:
        return _resolution("blocked_offs_dow")

    in_works = not pattern.works_dow or weekday in pattern.works_dow
    if pattern.works_dow_mode == "hard" and not in_works:
        return _resolution("blocked_outside_works_dow_hard")

    if not is_weekend_on(pattern, on):
        return _resolution("blocked_every_other_weekend")

    advisory = []
    penalty = 0
    if not in_works:
        advisory.append("soft_outside_works_dow")
        penalty += SOFT_NON_WORKS_DAY_PENALTY
    if pattern.shift_preference not in ("either", shift_type):
        advisory.append("shift_preference_mismatch")
        penalty += SHIFT_PREFERENCE_PENALTY

    if advisory:
        return _resolution(advisory[0], advisory=advisory, penalty=penalty)
    return _resolution("allowed")


def format_reason(reason: str) -> Optional[str]:
    return REASON_LABELS.get(reason)
