import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rtschedule.models import SchedulerConfig
from rtschedule.status import InFlightGuard, OptimisticUpdate, UpdateInFlight, build_status_changes

from .. import store
from ..config import get_config
from ..database import get_db
from ..drag_drop import handle_drag_drop
from ..errors import SchedulingError, not_found
from ..models import Shift
from ..schemas import ShiftOut, StatusUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()

status_guard = InFlightGuard()


@router.post("/drag-drop")
def drag_drop(payload: dict = Body(...), db: Session = Depends(get_db),
              config: SchedulerConfig = Depends(get_config), x_actor: Optional[str] = Header(None)):
    return handle_drag_drop(db, payload, config, actor=x_actor)


@router.post("/assignment-status")
def update_assignment_status(data: StatusUpdateRequest, db: Session = Depends(get_db),
                             x_actor: Optional[str] = Header(None)):
    """Set the assignment status on one shift; a second update on the same shift while one runs is refused."""
    try:
        with status_guard.claim(data.assignment_id):
            shift = db.query(Shift).filter(Shift.id == data.assignment_id).first()
            if not shift:
                raise not_found("Assignment")
            store.get_editable_cycle(db, shift.cycle_id)
            try:
                changes = build_status_changes(data.status, data.note, data.left_early_time, updated_by=x_actor)
            except ValueError as e:
                raise SchedulingError("invalid_request", str(e), 422)

            update = OptimisticUpdate(shift)
            update.apply(changes)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                update.rollback()
                logger.exception("Status update for assignment %s failed", data.assignment_id)
                raise
            db.refresh(shift)
    except UpdateInFlight:
        raise SchedulingError(
            "status_update_in_flight", "A status update for this assignment is already in progress.", 409)
    return {"message": f"Status set to {data.status}.", "shift": ShiftOut.model_validate(shift).model_dump(mode="json")}
