"""Load ORM rows into the core dataclasses the scheduler works on."""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from rtschedule import models as core
from rtschedule.dates import week_bounds
from rtschedule.picker import WorkedDates
from rtschedule.validate import build_worked_dates

from .errors import SchedulingError, not_found
from .models import AvailabilityOverride, ScheduleCycle, Shift, Therapist


def to_core_therapist(t: Therapist) -> core.Therapist:
    pattern = None
    if t.pattern is not None:
        p = t.pattern
        pattern = core.WorkPattern.normalized(
            works_dow=p.works_dow,
            offs_dow=p.offs_dow,
            works_dow_mode=p.works_dow_mode,
            weekend_rotation=p.weekend_rotation,
            weekend_anchor_date=p.weekend_anchor_date,
            shift_preference=p.shift_preference,
        )
    return core.Therapist(
        id=t.id,
        name=t.full_name,
        shift_type=t.shift_type or "day",
        employment_type=t.employment_type or "full_time",
        is_lead_eligible=bool(t.is_lead_eligible),
        max_work_days_per_week=t.max_work_days_per_week,
        is_active=t.is_active is not False,
        on_fmla=bool(t.on_fmla),
        fmla_return_date=t.fmla_return_date,
        pattern=pattern,
    )


def to_core_cycle(c: ScheduleCycle) -> core.Cycle:
    return core.Cycle(id=c.id, label=c.label, start_date=c.start_date,
                      end_date=c.end_date, published=bool(c.published))


def to_core_assignment(s: Shift) -> core.Assignment:
    return core.Assignment(
        cycle_id=s.cycle_id, user_id=s.user_id, date=s.date, shift_type=s.shift_type,
        role=s.role, status=s.status, id=s.id,
    )


def to_core_override(o: AvailabilityOverride) -> core.AvailabilityOverride:
    return core.AvailabilityOverride(
        therapist_id=o.therapist_id, cycle_id=o.cycle_id, date=o.date,
        shift_type=o.shift_type, override_type=o.override_type, note=o.note,
    )


def get_cycle(db: Session, cycle_id: int) -> ScheduleCycle:
    c = db.query(ScheduleCycle).filter(ScheduleCycle.id == cycle_id).first()
    if not c:
        raise not_found("Cycle")
    return c


def get_editable_cycle(db: Session, cycle_id: int) -> ScheduleCycle:
    c = get_cycle(db, cycle_id)
    if c.published:
        raise SchedulingError(
            "cycle_published", "Cycle is published. Unpublish it before making changes.", 409)
    return c


def require_date_in_cycle(cycle: ScheduleCycle, on: date) -> None:
    if on < cycle.start_date or on > cycle.end_date:
        raise SchedulingError(
            "date_outside_cycle",
            f"{on.isoformat()} is outside cycle {cycle.start_date.isoformat()} to {cycle.end_date.isoformat()}.",
        )


def get_therapist(db: Session, therapist_id: int) -> Therapist:
    t = db.query(Therapist).filter(Therapist.id == therapist_id).first()
    if not t:
        raise not_found("Therapist")
    return t


def get_shift(db: Session, cycle_id: int, shift_id: int) -> Shift:
    s = db.query(Shift).filter(Shift.id == shift_id, Shift.cycle_id == cycle_id).first()
    if not s:
        raise not_found("Shift")
    return s


def list_therapists(db: Session) -> List[core.Therapist]:
    """All therapists, ordered by name: the generator's pool order."""
    rows = db.query(Therapist).order_by(Therapist.full_name, Therapist.id).all()
    return [to_core_therapist(t) for t in rows]


def therapists_by_id(db: Session) -> Dict[int, core.Therapist]:
    return {t.id: t for t in list_therapists(db)}


def cycle_assignments(db: Session, cycle_id: int) -> List[core.Assignment]:
    rows = db.query(Shift).filter(Shift.cycle_id == cycle_id).order_by(Shift.date, Shift.id).all()
    return [to_core_assignment(s) for s in rows]


def cycle_overrides(db: Session, cycle_id: int, therapist_id: Optional[int] = None) -> List[core.AvailabilityOverride]:
    q = db.query(AvailabilityOverride).filter(AvailabilityOverride.cycle_id == cycle_id)
    if therapist_id is not None:
        q = q.filter(AvailabilityOverride.therapist_id == therapist_id)
    return [to_core_override(o) for o in q.all()]


def worked_dates(db: Session, start: date, end: date, week_starts_on: int = 0,
                 user_id: Optional[int] = None) -> WorkedDates:
    """Covering dates in the weeks overlapping [start, end], across every cycle."""
    first = week_bounds(start, week_starts_on)[0]
    last = week_bounds(end, week_starts_on)[1]
    q = db.query(Shift).filter(
        Shift.date >= first,
        Shift.date <= last,
        Shift.status.in_(sorted(core.COVERING_STATUSES)),
    )
    if user_id is not None:
        q = q.filter(Shift.user_id == user_id)
    return build_worked_dates((to_core_assignment(s) for s in q.all()), week_starts_on)


def slot_shifts(db: Session, cycle_id: int, on: date, shift_type: str) -> List[Shift]:
    return db.query(Shift).filter(
        Shift.cycle_id == cycle_id,
        Shift.date == on,
        Shift.shift_type == shift_type,
    ).all()
