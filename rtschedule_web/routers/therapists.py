from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Therapist, WorkPattern
from ..schemas import TherapistCreate, TherapistOut, TherapistUpdate, WorkPatternIn, WorkPatternOut

router = APIRouter()


def _apply_pattern(t: Therapist, data: WorkPatternIn) -> WorkPattern:
    values = data.model_dump()
    if t.pattern is None:
        t.pattern = WorkPattern(**values)
    else:
        for k, v in values.items():
            setattr(t.pattern, k, v)
    return t.pattern


@router.get("/", response_model=list[TherapistOut])
def list_therapists(active_only: bool = False, db: Session = Depends(get_db)):
    q = db.query(Therapist)
    if active_only:
        q = q.filter(Therapist.is_active.is_(True), Therapist.on_fmla.is_(False))
    return [TherapistOut.model_validate(t) for t in q.order_by(Therapist.full_name).all()]


@router.get("/{therapist_id}", response_model=TherapistOut)
def get_therapist(therapist_id: int, db: Session = Depends(get_db)):
    t = db.query(Therapist).filter(Therapist.id == therapist_id).first()
    if not t:
        raise HTTPException(404, "Therapist not found")
    return TherapistOut.model_validate(t)


@router.post("/", response_model=TherapistOut)
def create_therapist(data: TherapistCreate, db: Session = Depends(get_db)):
    t = Therapist(**data.model_dump(exclude={"pattern"}))
    if data.pattern is not None:
        _apply_pattern(t, data.pattern)
    db.add(t)
    db.commit()
    db.refresh(t)
    return TherapistOut.model_validate(t)


@router.patch("/{therapist_id}", response_model=TherapistOut)
def update_therapist(therapist_id: int, data: TherapistUpdate, db: Session = Depends(get_db)):
    t = db.query(Therapist).filter(Therapist.id == therapist_id).first()
    if not t:
        raise HTTPException(404, "Therapist not found")
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(t, k, v)
    db.commit()
    db.refresh(t)
    return TherapistOut.model_validate(t)


@router.put("/{therapist_id}/pattern", response_model=WorkPatternOut)
def upsert_work_pattern(therapist_id: int, data: WorkPatternIn, db: Session = Depends(get_db)):
    """Create or replace the therapist's recurring work pattern."""
    t = db.query(Therapist).filter(Therapist.id == therapist_id).first()
    if not t:
        raise HTTPException(404, "Therapist not found")
    p = _apply_pattern(t, data)
    db.commit()
    db.refresh(p)
    return WorkPatternOut.model_validate(p)
