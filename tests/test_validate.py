from datetime import date, timedelta

from rtschedule.models import Assignment, SchedulerConfig, Therapist
from rtschedule.validate import build_worked_dates, validate_slots, validate_weekly

MONDAY = date(2026, 1, 5)
CONFIG = SchedulerConfig()


def staff(n, lead_ids=()):
    return {i: Therapist(id=i, name=f"T{i}", is_lead_eligible=i in lead_ids) for i in range(1, n + 1)}


def row(user_id, on=MONDAY, shift_type="day", role="staff", status="scheduled"):
    return Assignment(cycle_id=1, user_id=user_id, date=on, shift_type=shift_type, role=role, status=status)


def day_slot_issue(result, on=MONDAY):
    return next((i for i in result.issues if i.date == on and i.shift_type == "day"), None)


def test_valid_slot_has_no_issue():
    therapists = staff(3, lead_ids={1})
    rows = [row(1, role="lead"), row(2), row(3)]
    result = validate_slots([MONDAY], rows, therapists, CONFIG)
    assert day_slot_issue(result) is None


def test_empty_slots_are_reported():
    result = validate_slots([MONDAY], [], staff(0), CONFIG)
    assert result.violations == 2
    assert result.under_coverage == 2
    assert result.missing_lead == 2


def test_sick_and_called_off_do_not_count():
    therapists = staff(6, lead_ids={1})
    rows = [
        row(1, role="lead"), row(2), row(3),
        row(4, status="sick"), row(5, status="called_off"), row(6, status="sick"),
    ]
    result = validate_slots([MONDAY], rows, therapists, CONFIG)
    assert day_slot_issue(result) is None


def test_called_off_lead_counts_as_missing():
    therapists = staff(4, lead_ids={1})
    rows = [row(1, role="lead", status="called_off"), row(2), row(3), row(4)]
    issue = day_slot_issue(validate_slots([MONDAY], rows, therapists, CONFIG))
    assert issue.reasons == ["missing_lead"]


def test_over_coverage():
    therapists = staff(6, lead_ids={1})
    rows = [row(1, role="lead")] + [row(i) for i in range(2, 7)]
    issue = day_slot_issue(validate_slots([MONDAY], rows, therapists, CONFIG))
    assert issue.reasons == ["over_coverage"]
    assert issue.coverage == 6


def test_multiple_and_ineligible_leads():
    therapists = staff(3, lead_ids={1})
    rows = [row(1, role="lead"), row(2, role="lead"), row(3)]
    result = validate_slots([MONDAY], rows, therapists, CONFIG)
    issue = day_slot_issue(result)
    assert "multiple_leads" in issue.reasons
    assert "ineligible_lead" in issue.reasons
    assert sorted(issue.lead_ids) == [1, 2]
    assert result.multiple_leads == 1
    assert result.ineligible_lead == 1


def test_affected_summary_truncates():
    dates = [MONDAY + timedelta(days=i) for i in range(5)]
    result = validate_slots(dates, [], {}, CONFIG)
    summary = result.affected_summary(limit=8)
    assert summary.startswith("2026-01-05 day, 2026-01-05 night")
    assert summary.endswith("+2 more")


def test_weekly_partial_week_requirement():
    # Cycle covers Mon-Wed only, so a full-timer needs min(3, 3) days
    t = Therapist(id=1, name="Avery")
    worked = build_worked_dates([row(1), row(1, on=MONDAY + timedelta(days=1))])
    result = validate_weekly(MONDAY, MONDAY + timedelta(days=2), [t], worked, CONFIG)
    assert result.under_count == 1
    v = result.violations[0]
    assert (v.worked, v.required, v.kind) == (2, 3, "under")
    assert v.week_start == MONDAY
    assert v.week_end == MONDAY + timedelta(days=6)

    short = validate_weekly(MONDAY, MONDAY + timedelta(days=1), [t], worked, CONFIG)
    assert short.ok


def test_weekly_over_and_prn():
    ft = Therapist(id=1, name="Avery")
    prn = Therapist(id=2, name="Parker", employment_type="prn")
    rows = [row(1, on=MONDAY + timedelta(days=i)) for i in range(4)]
    rows += [row(2, on=MONDAY), row(2, on=MONDAY + timedelta(days=1))]
    worked = build_worked_dates(rows)
    result = validate_weekly(MONDAY, MONDAY + timedelta(days=6), [ft, prn], worked, CONFIG)
    assert result.over_count == 2
    assert result.under_count == 0

    idle_prn = validate_weekly(MONDAY, MONDAY + timedelta(days=6), [prn], {}, CONFIG)
    assert idle_prn.ok


def test_weekly_ignores_non_covering_and_inactive():
    t = Therapist(id=1, name="Avery")
    gone = Therapist(id=2, name="Blake", is_active=False)
    leave = Therapist(id=3, name="Casey", on_fmla=True)
    rows = [row(1, on=MONDAY + timedelta(days=i)) for i in range(3)]
    rows.append(row(1, on=MONDAY + timedelta(days=3), status="sick"))
    worked = build_worked_dates(rows)
    result = validate_weekly(MONDAY, MONDAY + timedelta(days=6), [t, gone, leave], worked, CONFIG)
    assert result.ok


def test_weekly_sunday_start_weeks():
    config = SchedulerConfig(week_starts_on=6)
    t = Therapist(id=1, name="Avery", max_work_days_per_week=1)
    sunday = MONDAY - timedelta(days=1)
    worked = build_worked_dates([row(1, on=sunday), row(1, on=MONDAY)], week_starts_on=6)
    result = validate_weekly(sunday, sunday + timedelta(days=6), [t], worked, config)
    assert result.over_count == 1
    assert result.violations[0].week_start == sunday
