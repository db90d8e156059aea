from datetime import date

from rtschedule.availability import (
    SOFT_NON_WORKS_DAY_PENALTY, find_override, is_weekend_on, resolve_availability,
)
from rtschedule.models import AvailabilityOverride, Therapist, WorkPattern

CYCLE = 1
MONDAY = date(2026, 1, 5)
SATURDAY = date(2026, 1, 3)


def therapist(**kw):
    kw.setdefault("id", 1)
    kw.setdefault("name", "Avery Brooks")
    return Therapist(**kw)


def override(kind, on=MONDAY, shift_type="both", therapist_id=1, note=None):
    return AvailabilityOverride(therapist_id=therapist_id, cycle_id=CYCLE, date=on,
                                shift_type=shift_type, override_type=kind, note=note)


def test_no_pattern_is_allowed():
    res = resolve_availability(therapist(), CYCLE, MONDAY, "day", [])
    assert res.allowed
    assert res.reason == "allowed"
    assert not res.forced


def test_force_off_blocks_and_is_soft():
    res = resolve_availability(therapist(), CYCLE, MONDAY, "day", [override("force_off", note="conference")])
    assert not res.allowed
    assert res.reason == "override_force_off"
    assert res.forced
    assert res.is_soft_block
    assert res.override_note == "conference"


def test_inactive_is_terminal_even_with_force_on():
    res = resolve_availability(therapist(is_active=False), CYCLE, MONDAY, "day", [override("force_on")])
    assert res.reason == "inactive"
    assert res.is_hard_block


def test_fmla_blocks_every_date():
    t = therapist(on_fmla=True, fmla_return_date=date(2026, 1, 1))
    res = resolve_availability(t, CYCLE, MONDAY, "night", [override("force_on")])
    assert res.reason == "on_fmla"
    assert res.is_hard_block


def test_prn_needs_force_on():
    t = therapist(employment_type="prn")
    blocked = resolve_availability(t, CYCLE, MONDAY, "day", [])
    assert blocked.reason == "prn_not_offered_for_date"
    assert blocked.is_hard_block

    offered = resolve_availability(t, CYCLE, MONDAY, "day", [override("force_on")])
    assert offered.allowed
    assert offered.reason == "override_force_on"


def test_force_on_skips_pattern_rules():
    t = therapist(pattern=WorkPattern(offs_dow=[0]))
    res = resolve_availability(t, CYCLE, MONDAY, "day", [override("force_on", shift_type="day")])
    assert res.allowed
    assert res.forced


def test_offs_dow_blocks():
    t = therapist(pattern=WorkPattern(offs_dow=[0]))
    res = resolve_availability(t, CYCLE, MONDAY, "day", [])
    assert res.reason == "blocked_offs_dow"
    assert res.is_soft_block


def test_hard_works_dow_blocks_outside_days():
    t = therapist(pattern=WorkPattern(works_dow=[1, 2, 3], works_dow_mode="hard"))
    res = resolve_availability(t, CYCLE, MONDAY, "day", [])
    assert res.reason == "blocked_outside_works_dow_hard"
    assert not res.allowed


def test_soft_works_dow_is_advisory():
    t = therapist(pattern=WorkPattern(works_dow=[1, 2, 3], works_dow_mode="soft"))
    res = resolve_availability(t, CYCLE, MONDAY, "day", [])
    assert res.allowed
    assert res.reason == "soft_outside_works_dow"
    assert res.penalty == SOFT_NON_WORKS_DAY_PENALTY


def test_shift_preference_mismatch_is_advisory():
    t = therapist(pattern=WorkPattern(shift_preference="night"))
    res = resolve_availability(t, CYCLE, MONDAY, "day", [])
    assert res.allowed
    assert res.reason == "shift_preference_mismatch"
    assert res.penalty > 0


def test_every_other_weekend_parity():
    pattern = WorkPattern(weekend_rotation="every_other", weekend_anchor_date=SATURDAY)
    t = therapist(pattern=pattern)
    assert resolve_availability(t, CYCLE, date(2026, 1, 17), "day", []).allowed
    assert resolve_availability(t, CYCLE, date(2026, 1, 18), "day", []).allowed
    off = resolve_availability(t, CYCLE, date(2026, 1, 10), "day", [])
    assert off.reason == "blocked_every_other_weekend"
    # Weekdays are unaffected by the rotation
    assert resolve_availability(t, CYCLE, date(2026, 1, 12), "day", []).allowed


def test_every_other_weekend_without_anchor_is_off():
    pattern = WorkPattern(weekend_rotation="every_other")
    assert not is_weekend_on(pattern, SATURDAY)


def test_exact_shift_override_wins_over_both():
    overrides = [override("force_off", shift_type="both"), override("force_on", shift_type="day")]
    assert find_override(overrides, 1, CYCLE, MONDAY, "day").override_type == "force_on"
    assert resolve_availability(therapist(), CYCLE, MONDAY, "day", overrides).allowed
    assert not resolve_availability(therapist(), CYCLE, MONDAY, "night", overrides).allowed


def test_overrides_for_other_cycles_and_therapists_are_ignored():
    overrides = [
        AvailabilityOverride(therapist_id=2, cycle_id=CYCLE, date=MONDAY, shift_type="both", override_type="force_off"),
        AvailabilityOverride(therapist_id=1, cycle_id=99, date=MONDAY, shift_type="both", override_type="force_off"),
    ]
    assert resolve_availability(therapist(), CYCLE, MONDAY, "day", overrides).allowed
