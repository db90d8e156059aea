"""
Designated-lead mutation. One lead per (cycle, date, shift type): demote any
other lead in the slot, then promote the therapist's row or insert a new
scheduled lead row. The partial unique index catches concurrent writers.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rtschedule import models as core

from .models import Shift

logger = logging.getLogger(__name__)

LEAD_INDEX = "uq_shift_slot_lead"
# SQLite names the columns of a violated unique index instead of the index
LEAD_INDEX_COLUMNS = "shifts.cycle_id, shifts.date, shifts.shift_type"


@dataclass
class LeadResult:
    ok: bool
    code: str  # ok, lead_not_eligible, multiple_leads_prevented, failed
    shift: Optional[Shift] = None
    inserted: bool = False
    previous_lead_id: Optional[int] = None
    message: Optional[str] = None


def is_lead_index_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return LEAD_INDEX in message or LEAD_INDEX_COLUMNS in message


def current_lead(db: Session, cycle_id: int, on: date, shift_type: str) -> Optional[Shift]:
    return db.query(Shift).filter(
        Shift.cycle_id == cycle_id,
        Shift.date == on,
        Shift.shift_type == shift_type,
        Shift.role == "lead",
    ).first()


def set_designated_lead(
    db: Session,
    cycle_id: int,
    therapist: core.Therapist,
    on: date,
    shift_type: str,
    override_reason: Optional[str] = None,
    override_by: Optional[str] = None,
) -> LeadResult:
    """Commits on success; rolls the session back on any failure."""
    if not therapist.is_lead_eligible or not therapist.is_active or therapist.on_fmla:
        return LeadResult(False, "lead_not_eligible",
                          message=f"{therapist.name} is not eligible to lead.")

    own = db.query(Shift).filter(
        Shift.cycle_id == cycle_id, Shift.user_id == therapist.id, Shift.date == on,
    ).first()
    if own is not None and own.shift_type != shift_type:
        return LeadResult(False, "failed",
                          message=f"{therapist.name} already works the {own.shift_type} shift on {on.isoformat()}.")

    previous = current_lead(db, cycle_id, on, shift_type)
    previous_id = previous.user_id if previous is not None else None
    if previous is not None and previous.user_id == therapist.id:
        return LeadResult(True, "ok", shift=previous, previous_lead_id=previous_id)

    inserted = False
    try:
        demoted = db.query(Shift).filter(
            Shift.cycle_id == cycle_id,
            Shift.date == on,
            Shift.shift_type == shift_type,
            Shift.role == "lead",
            Shift.user_id != therapist.id,
        ).all()
        for s in demoted:
            s.role = "staff"
        # Demotions must reach the database before the new lead row
        db.flush()

        if own is not None:
            own.role = "lead"
            shift = own
        else:
            shift = Shift(
                cycle_id=cycle_id, user_id=therapist.id, date=on, shift_type=shift_type,
                role="lead", status="scheduled", assignment_status="scheduled",
            )
            if override_reason is not None:
                shift.availability_override = True
                shift.availability_override_reason = override_reason
                shift.availability_override_by = override_by
                shift.availability_override_at = datetime.utcnow()
            db.add(shift)
            inserted = True
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_lead_index_violation(exc):
            logger.warning("Lead write for cycle %s %s %s lost to a concurrent lead",
                           cycle_id, on, shift_type)
            return LeadResult(False, "multiple_leads_prevented",
                              message="Another lead was assigned to this slot at the same time.")
        logger.warning("Lead write for cycle %s %s %s failed on a uniqueness constraint: %s",
                       cycle_id, on, shift_type, exc.orig)
        return LeadResult(False, "failed", message="Could not set the designated lead.")

    db.refresh(shift)
    logger.info("Lead for cycle %s %s %s: %s -> %s", cycle_id, on, shift_type, previous_id, therapist.id)
    return LeadResult(True, "ok", shift=shift, inserted=inserted, previous_lead_id=previous_id)
