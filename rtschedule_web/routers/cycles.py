from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rtschedule.models import SchedulerConfig, counts_toward_coverage

from .. import store
from ..config import get_config
from ..database import get_db
from ..drafts import generate_draft, reset_draft
from ..drag_drop import check_availability, check_capacity
from ..errors import SchedulingError
from ..lead import current_lead
from ..models import ScheduleCycle, Shift
from ..publishing import publish_cycle, unpublish_cycle, validation_report
from ..schemas import CycleCreate, CycleOut, PublishRequest, ShiftCreate, ShiftOut

router = APIRouter()


@router.get("/", response_model=list[CycleOut])
def list_cycles(db: Session = Depends(get_db)):
    rows = db.query(ScheduleCycle).order_by(ScheduleCycle.start_date.desc()).all()
    return [CycleOut.model_validate(c) for c in rows]


@router.post("/", response_model=CycleOut)
def create_cycle(data: CycleCreate, db: Session = Depends(get_db)):
    c = ScheduleCycle(label=data.label, start_date=data.start_date, end_date=data.end_date, published=False)
    db.add(c)
    db.commit()
    db.refresh(c)
    return CycleOut.model_validate(c)


@router.get("/{cycle_id}", response_model=CycleOut)
def get_cycle(cycle_id: int, db: Session = Depends(get_db)):
    return CycleOut.model_validate(store.get_cycle(db, cycle_id))


@router.delete("/{cycle_id}")
def delete_cycle(cycle_id: int, db: Session = Depends(get_db)):
    c = store.get_editable_cycle(db, cycle_id)
    db.delete(c)
    db.commit()
    return {"ok": True}


@router.post("/{cycle_id}/generate")
def generate(cycle_id: int, db: Session = Depends(get_db), config: SchedulerConfig = Depends(get_config)):
    """Auto-fill the draft. Existing rows are kept; only open capacity is filled."""
    return generate_draft(db, cycle_id, config)


@router.post("/{cycle_id}/reset")
def reset(cycle_id: int, db: Session = Depends(get_db)):
    return reset_draft(db, cycle_id)


@router.get("/{cycle_id}/validation")
def validation(cycle_id: int, db: Session = Depends(get_db), config: SchedulerConfig = Depends(get_config)):
    return validation_report(db, cycle_id, config)


@router.post("/{cycle_id}/publish")
def publish(cycle_id: int, data: Optional[PublishRequest] = None, db: Session = Depends(get_db),
            config: SchedulerConfig = Depends(get_config)):
    override = data.override_weekly_rules if data is not None else False
    return publish_cycle(db, cycle_id, config, override_weekly_rules=override)


@router.post("/{cycle_id}/unpublish")
def unpublish(cycle_id: int, db: Session = Depends(get_db)):
    return unpublish_cycle(db, cycle_id)


@router.get("/{cycle_id}/shifts", response_model=list[ShiftOut])
def list_shifts(cycle_id: int, db: Session = Depends(get_db)):
    store.get_cycle(db, cycle_id)
    rows = db.query(Shift).filter(Shift.cycle_id == cycle_id).order_by(Shift.date, Shift.shift_type, Shift.id).all()
    return [ShiftOut.model_validate(s) for s in rows]


@router.post("/{cycle_id}/shifts", response_model=ShiftOut)
def add_shift(cycle_id: int, data: ShiftCreate, db: Session = Depends(get_db),
              config: SchedulerConfig = Depends(get_config), x_actor: Optional[str] = Header(None)):
    """Manual add with an explicit status. Only hard availability blocks are enforced."""
    cycle = store.get_editable_cycle(db, cycle_id)
    store.require_date_in_cycle(cycle, data.date)
    therapist = store.to_core_therapist(store.get_therapist(db, data.user_id))
    res = check_availability(therapist, cycle.id, data.date, data.shift_type,
                             store.cycle_overrides(db, cycle.id, therapist.id), availability_override=True)

    if counts_toward_coverage(data.status) and not data.override_weekly_rules:
        check_capacity(db, cycle.id, therapist, data.date, data.shift_type, config)
    if data.role == "lead":
        if not therapist.is_lead_eligible:
            raise SchedulingError("set_lead_not_eligible", f"{therapist.name} is not eligible to lead.", 409)
        if current_lead(db, cycle.id, data.date, data.shift_type) is not None:
            raise SchedulingError("set_lead_multiple", "This slot already has a designated lead.", 409)

    s = Shift(cycle_id=cycle.id, user_id=therapist.id, date=data.date, shift_type=data.shift_type,
              role=data.role, status=data.status, assignment_status="on_call" if data.status == "on_call" else "scheduled")
    if not res.allowed:
        s.availability_override = True
        s.availability_override_reason = res.reason
        s.availability_override_by = x_actor
        s.availability_override_at = datetime.utcnow()
    db.add(s)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise SchedulingError("duplicate_shift", f"{therapist.name} already has a shift on {data.date.isoformat()}.", 409)
    db.refresh(s)
    return ShiftOut.model_validate(s)
