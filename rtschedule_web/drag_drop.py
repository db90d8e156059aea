"""
Drag/drop reassignment: one action per request (assign, move, remove,
set_lead). Every check runs before the single write; successful mutations
return an undoAction where the change can be inverted.
"""
import logging
from datetime import date, datetime
from typing import Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rtschedule import models as core
from rtschedule.availability import Resolution, format_reason, resolve_availability
from rtschedule.dates import week_bounds
from rtschedule.picker import exceeds_weekly_limit, worked_dates_for
from rtschedule.validate import exceeds_coverage_limit

from . import store
from .errors import SchedulingError
from .lead import current_lead, set_designated_lead
from .models import Shift
from .schemas import (
    AssignAction, DragDropAction, MoveAction, RemoveAction, SetLeadAction, ShiftOut,
)

logger = logging.getLogger(__name__)

_action_adapter = TypeAdapter(DragDropAction)

LEAD_CODES = {
    "lead_not_eligible": "set_lead_not_eligible",
    "multiple_leads_prevented": "set_lead_multiple",
    "failed": "set_lead_failed",
}


def parse_action(payload: dict):
    try:
        return _action_adapter.validate_python(payload)
    except ValidationError as exc:
        errors = [
            {"loc": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]}
            for e in exc.errors()
        ]
        raise SchedulingError("invalid_request", "Invalid drag/drop request.", 422, errors=errors)


def _dump(action) -> dict:
    return action.model_dump(by_alias=True, mode="json", exclude_none=True)


def _shift_out(shift: Shift) -> dict:
    return ShiftOut.model_validate(shift).model_dump(mode="json")


def check_availability(therapist: core.Therapist, cycle_id: int, on: date, shift_type: str,
                       overrides, availability_override: bool) -> Resolution:
    """Hard blocks always reject; soft blocks reject unless the manager confirmed the override."""
    res = resolve_availability(therapist, cycle_id, on, shift_type, overrides)
    if res.allowed:
        return res
    payload = {
        "therapistId": therapist.id,
        "therapistName": therapist.name,
        "date": on.isoformat(),
        "shiftType": shift_type,
        "reason": res.reason,
    }
    label = format_reason(res.reason) or res.reason
    if res.is_hard_block:
        raise SchedulingError(
            "availability_blocked", f"{therapist.name} cannot work this shift: {label}.", 409,
            availability=payload)
    if not availability_override:
        raise SchedulingError(
            "availability_conflict",
            f"{therapist.name} is not available on {on.isoformat()} ({label}). Confirm to override.",
            409, availability=payload)
    return res


def check_capacity(db: Session, cycle_id: int, therapist: core.Therapist, on: date, shift_type: str,
                   config: core.SchedulerConfig, moving: Optional[Shift] = None) -> None:
    """Slot max coverage and weekly work-day limit. The moving shift is not counted against itself."""
    covering = [
        s for s in store.slot_shifts(db, cycle_id, on, shift_type)
        if core.counts_toward_coverage(s.status) and (moving is None or s.id != moving.id)
    ]
    if exceeds_coverage_limit(len(covering), config.max_coverage):
        raise SchedulingError(
            "coverage_max_exceeded",
            f"{on.isoformat()} {shift_type} already has {len(covering)} of {config.max_coverage} therapists.",
            409)

    worked = store.worked_dates(db, on, on, config.week_starts_on, user_id=therapist.id)
    dates = set(worked_dates_for(worked, therapist.id, on, config.week_starts_on))
    if moving is not None and moving.user_id == therapist.id and core.counts_toward_coverage(moving.status):
        dates.discard(moving.date)
    limit = config.weekly_limit_for(therapist)
    if exceeds_weekly_limit(dates, on, limit):
        ws, we = week_bounds(on, config.week_starts_on)
        raise SchedulingError(
            "weekly_limit_exceeded",
            f"{therapist.name} already works {len(dates)} of {limit} days that week.",
            409, week_start=ws.isoformat(), week_end=we.isoformat())


def _duplicate(therapist: core.Therapist, on: date) -> SchedulingError:
    return SchedulingError(
        "duplicate_shift", f"{therapist.name} already has a shift on {on.isoformat()}.", 409)


def _apply_override_metadata(shift: Shift, res: Resolution, reason: Optional[str], actor: Optional[str]) -> None:
    if res.allowed:
        return
    shift.availability_override = True
    shift.availability_override_reason = (reason or "").strip() or format_reason(res.reason) or res.reason
    shift.availability_override_by = actor
    shift.availability_override_at = datetime.utcnow()


def handle_assign(db: Session, a: AssignAction, config, actor=None) -> dict:
    cycle = store.get_editable_cycle(db, a.cycle_id)
    store.require_date_in_cycle(cycle, a.date)
    therapist = store.to_core_therapist(store.get_therapist(db, a.user_id))

    res = check_availability(therapist, cycle.id, a.date, a.shift_type,
                             store.cycle_overrides(db, cycle.id, therapist.id), a.availability_override)
    if not a.override_weekly_rules:
        check_capacity(db, cycle.id, therapist, a.date, a.shift_type, config)

    exists = db.query(Shift).filter(
        Shift.cycle_id == cycle.id, Shift.user_id == therapist.id, Shift.date == a.date,
    ).first()
    if exists is not None:
        raise _duplicate(therapist, a.date)

    shift = Shift(cycle_id=cycle.id, user_id=therapist.id, date=a.date, shift_type=a.shift_type,
                  role="staff", status="scheduled", assignment_status="scheduled")
    _apply_override_metadata(shift, res, a.availability_override_reason, actor)
    db.add(shift)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _duplicate(therapist, a.date)
    db.refresh(shift)

    undo = RemoveAction(action="remove", cycle_id=cycle.id, user_id=therapist.id,
                        date=a.date, shift_type=a.shift_type)
    return {
        "message": f"Assigned {therapist.name} to {a.date.isoformat()} {a.shift_type}.",
        "shift": _shift_out(shift),
        "undoAction": _dump(undo),
    }


def handle_move(db: Session, a: MoveAction, config, actor=None) -> dict:
    cycle = store.get_editable_cycle(db, a.cycle_id)
    shift = store.get_shift(db, cycle.id, a.shift_id)
    store.require_date_in_cycle(cycle, a.target_date)
    if shift.date == a.target_date and shift.shift_type == a.target_shift_type:
        return {"message": "Shift already on that date."}

    therapist = store.to_core_therapist(store.get_therapist(db, shift.user_id))
    res = check_availability(therapist, cycle.id, a.target_date, a.target_shift_type,
                             store.cycle_overrides(db, cycle.id, therapist.id), a.availability_override)
    if core.counts_toward_coverage(shift.status) and not a.override_weekly_rules:
        check_capacity(db, cycle.id, therapist, a.target_date, a.target_shift_type, config, moving=shift)

    clash = db.query(Shift).filter(
        Shift.cycle_id == cycle.id, Shift.user_id == therapist.id,
        Shift.date == a.target_date, Shift.id != shift.id,
    ).first()
    if clash is not None:
        raise _duplicate(therapist, a.target_date)

    old_date, old_shift_type = shift.date, shift.shift_type
    if shift.role == "lead":
        target_lead = current_lead(db, cycle.id, a.target_date, a.target_shift_type)
        if target_lead is not None and target_lead.id != shift.id:
            shift.role = "staff"
    shift.date = a.target_date
    shift.shift_type = a.target_shift_type
    _apply_override_metadata(shift, res, a.availability_override_reason, actor)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _duplicate(therapist, a.target_date)
    db.refresh(shift)

    undo = MoveAction(action="move", cycle_id=cycle.id, shift_id=shift.id, target_date=old_date,
                      target_shift_type=old_shift_type, override_weekly_rules=True,
                      availability_override=True)
    return {
        "message": f"Moved {therapist.name} to {a.target_date.isoformat()} {a.target_shift_type}.",
        "shift": _shift_out(shift),
        "undoAction": _dump(undo),
    }


def handle_remove(db: Session, a: RemoveAction, config, actor=None) -> dict:
    cycle = store.get_editable_cycle(db, a.cycle_id)
    if a.shift_id is not None:
        shift = store.get_shift(db, cycle.id, a.shift_id)
    else:
        shift = db.query(Shift).filter(
            Shift.cycle_id == cycle.id, Shift.user_id == a.user_id,
            Shift.date == a.date, Shift.shift_type == a.shift_type,
        ).first()
        if shift is None:
            raise SchedulingError("not_found", "Shift not found", 404)

    user_id, on, shift_type, role = shift.user_id, shift.date, shift.shift_type, shift.role
    name = shift.therapist_name or f"Therapist {user_id}"
    db.delete(shift)
    db.commit()

    if role == "lead":
        undo = SetLeadAction(action="set_lead", cycle_id=cycle.id, therapist_id=user_id, date=on,
                             shift_type=shift_type, override_weekly_rules=True,
                             availability_override=True, replace_existing_lead=True)
    else:
        undo = AssignAction(action="assign", cycle_id=cycle.id, user_id=user_id, date=on,
                            shift_type=shift_type, override_weekly_rules=True,
                            availability_override=True)
    return {"message": f"Removed {name} from {on.isoformat()} {shift_type}.", "undoAction": _dump(undo)}


def handle_set_lead(db: Session, a: SetLeadAction, config, actor=None) -> dict:
    cycle = store.get_editable_cycle(db, a.cycle_id)
    store.require_date_in_cycle(cycle, a.date)
    therapist = store.to_core_therapist(store.get_therapist(db, a.therapist_id))
    if not therapist.is_lead_eligible:
        raise SchedulingError("set_lead_not_eligible", f"{therapist.name} is not eligible to lead.", 409)

    res = check_availability(therapist, cycle.id, a.date, a.shift_type,
                             store.cycle_overrides(db, cycle.id, therapist.id), a.availability_override)

    own = db.query(Shift).filter(
        Shift.cycle_id == cycle.id, Shift.user_id == therapist.id, Shift.date == a.date,
    ).first()
    if own is not None and own.shift_type != a.shift_type:
        raise _duplicate(therapist, a.date)
    if own is None and not a.override_weekly_rules:
        check_capacity(db, cycle.id, therapist, a.date, a.shift_type, config)

    existing = current_lead(db, cycle.id, a.date, a.shift_type)
    if existing is not None and existing.user_id != therapist.id and not a.replace_existing_lead:
        raise SchedulingError(
            "set_lead_multiple",
            f"{existing.therapist_name} is already the lead for {a.date.isoformat()} {a.shift_type}.",
            409, current_lead_id=existing.user_id)

    override_reason = None
    if not res.allowed:
        override_reason = (a.availability_override_reason or "").strip() or format_reason(res.reason)
    result = set_designated_lead(db, cycle.id, therapist, a.date, a.shift_type,
                                 override_reason=override_reason, override_by=actor)
    if not result.ok:
        raise SchedulingError(LEAD_CODES.get(result.code, "set_lead_failed"),
                              result.message or "Could not set the designated lead.", 409)

    undo = None
    if result.previous_lead_id is not None and result.previous_lead_id != therapist.id:
        undo = SetLeadAction(action="set_lead", cycle_id=cycle.id, therapist_id=result.previous_lead_id,
                             date=a.date, shift_type=a.shift_type, override_weekly_rules=True,
                             availability_override=True, replace_existing_lead=True)
    elif result.inserted:
        undo = RemoveAction(action="remove", cycle_id=cycle.id, user_id=therapist.id,
                            date=a.date, shift_type=a.shift_type)

    body = {
        "message": f"{therapist.name} is now the lead for {a.date.isoformat()} {a.shift_type}.",
        "shift": _shift_out(result.shift),
    }
    if undo is not None:
        body["undoAction"] = _dump(undo)
    return body


def handle_drag_drop(db: Session, payload: dict, config: core.SchedulerConfig,
                     actor: Optional[str] = None) -> dict:
    action = parse_action(payload)
    if isinstance(action, AssignAction):
        body = handle_assign(db, action, config, actor)
    elif isinstance(action, MoveAction):
        body = handle_move(db, action, config, actor)
    elif isinstance(action, RemoveAction):
        body = handle_remove(db, action, config, actor)
    elif isinstance(action, SetLeadAction):
        body = handle_set_lead(db, action, config, actor)
    else:
        raise SchedulingError("invalid_request", f"Unsupported action {type(action).__name__}", 422)
    logger.info("drag-drop %s on cycle %s: %s", action.action, action.cycle_id, body.get("message"))
    return body
