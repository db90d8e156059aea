from datetime import date

from sqlalchemy import event

from conftest import make_cycle, make_shift, make_therapist
from rtschedule_web.lead import set_designated_lead
from rtschedule_web.models import Shift
from rtschedule_web.store import to_core_therapist

MON = date(2026, 1, 5)


def leads_in_slot(db, cycle, on=MON, shift_type="day"):
    return db.query(Shift).filter(
        Shift.cycle_id == cycle.id, Shift.date == on, Shift.shift_type == shift_type, Shift.role == "lead",
    ).all()


def test_single_lead_after_set(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", lead=True)
    b = make_therapist(db, "Casey Diaz", lead=True)
    make_shift(db, c, a, MON, role="lead")

    result = set_designated_lead(db, c.id, to_core_therapist(b), MON, "day")
    assert result.ok
    assert result.inserted
    assert result.previous_lead_id == a.id
    leads = leads_in_slot(db, c)
    assert [s.user_id for s in leads] == [b.id]


def test_promotes_existing_row(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", lead=True)
    s = make_shift(db, c, a, MON)
    result = set_designated_lead(db, c.id, to_core_therapist(a), MON, "day")
    assert result.ok
    assert not result.inserted
    assert result.shift.id == s.id
    assert result.shift.role == "lead"


def test_already_lead_is_a_no_op(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", lead=True)
    make_shift(db, c, a, MON, role="lead")
    result = set_designated_lead(db, c.id, to_core_therapist(a), MON, "day")
    assert result.ok
    assert result.previous_lead_id == a.id
    assert len(leads_in_slot(db, c)) == 1


def test_ineligible_writes_nothing(db):
    c = make_cycle(db)
    t = make_therapist(db, "Blake Chen", lead=False)
    result = set_designated_lead(db, c.id, to_core_therapist(t), MON, "day")
    assert result.code == "lead_not_eligible"
    assert db.query(Shift).count() == 0


def test_inactive_lead_is_not_eligible(db):
    c = make_cycle(db)
    t = make_therapist(db, "Blake Chen", lead=True, is_active=False)
    assert set_designated_lead(db, c.id, to_core_therapist(t), MON, "day").code == "lead_not_eligible"


def test_other_shift_same_day_fails(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", shift_type="either", lead=True)
    make_shift(db, c, a, MON, "night")
    result = set_designated_lead(db, c.id, to_core_therapist(a), MON, "day")
    assert result.code == "failed"
    assert leads_in_slot(db, c) == []


def write_after_demotion(session, **row):
    """Another writer's row lands between the demotion flush and the lead write."""
    values = {**dict(role="staff", status="scheduled", assignment_status="scheduled"), **row}

    def write(s, flush_context):
        s.connection().execute(Shift.__table__.insert().values(**values))

    event.listen(session, "after_flush", write, once=True)


def test_concurrent_lead_is_prevented(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", lead=True)
    b = make_therapist(db, "Casey Diaz", lead=True)
    other = make_therapist(db, "Emery Fox", lead=True)
    make_shift(db, c, a, MON, role="lead")

    write_after_demotion(db, cycle_id=c.id, user_id=other.id, date=MON, shift_type="day", role="lead")
    result = set_designated_lead(db, c.id, to_core_therapist(b), MON, "day")
    assert not result.ok
    assert result.code == "multiple_leads_prevented"
    assert [s.user_id for s in leads_in_slot(db, c)] == [a.id]


def test_duplicate_row_is_not_reported_as_lead_race(db):
    c = make_cycle(db)
    a = make_therapist(db, "Avery Brooks", lead=True)
    b = make_therapist(db, "Casey Diaz", shift_type="either", lead=True)
    make_shift(db, c, a, MON, role="lead")

    write_after_demotion(db, cycle_id=c.id, user_id=b.id, date=MON, shift_type="night")
    result = set_designated_lead(db, c.id, to_core_therapist(b), MON, "day")
    assert result.code == "failed"
    assert [s.user_id for s in leads_in_slot(db, c)] == [a.id]
