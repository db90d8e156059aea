from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .. import store
from ..database import get_db
from ..models import AvailabilityOverride
from ..schemas import OverrideCreate, OverrideOut

router = APIRouter()


@router.get("/", response_model=list[OverrideOut])
def list_overrides(cycle_id: int, therapist_id: Optional[int] = None, db: Session = Depends(get_db)):
    q = db.query(AvailabilityOverride).filter(AvailabilityOverride.cycle_id == cycle_id)
    if therapist_id is not None:
        q = q.filter(AvailabilityOverride.therapist_id == therapist_id)
    rows = q.order_by(AvailabilityOverride.date, AvailabilityOverride.therapist_id).all()
    return [OverrideOut.model_validate(o) for o in rows]


@router.post("/", response_model=OverrideOut)
def create_override(data: OverrideCreate, db: Session = Depends(get_db),
                    x_actor: Optional[str] = Header(None)):
    """Create or replace the override for (cycle, therapist, date, shift type)."""
    cycle = store.get_cycle(db, data.cycle_id)
    store.require_date_in_cycle(cycle, data.date)
    store.get_therapist(db, data.therapist_id)
    o = db.query(AvailabilityOverride).filter(
        AvailabilityOverride.cycle_id == data.cycle_id,
        AvailabilityOverride.therapist_id == data.therapist_id,
        AvailabilityOverride.date == data.date,
        AvailabilityOverride.shift_type == data.shift_type,
    ).first()
    if o is None:
        o = AvailabilityOverride(**data.model_dump(), created_by=x_actor)
        db.add(o)
    else:
        o.override_type = data.override_type
        o.note = data.note
        o.source = data.source
        o.created_by = x_actor
    db.commit()
    db.refresh(o)
    return OverrideOut.model_validate(o)


@router.delete("/{override_id}")
def delete_override(override_id: int, db: Session = Depends(get_db)):
    o = db.query(AvailabilityOverride).filter(AvailabilityOverride.id == override_id).first()
    if not o:
        raise HTTPException(404, "Override not found")
    db.delete(o)
    db.commit()
    return {"ok": True}
