"""Draft generation against the database: plan, demote stale leads, batch insert-or-ignore, reconcile."""
import logging
from datetime import datetime
from typing import List

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rtschedule.generator import generation_pool, plan_draft
from rtschedule.models import SHIFT_TYPES, Assignment, SchedulerConfig

from . import store
from .errors import SchedulingError
from .lead import set_designated_lead
from .models import Shift

logger = logging.getLogger(__name__)

INSERT_CHUNK = 50
SHIFT_KEY = ["cycle_id", "user_id", "date"]


def _insert_ignore_stmt(db: Session, values: List[dict]):
    """INSERT ... ON CONFLICT (cycle_id, user_id, date) DO NOTHING; other constraints still raise."""
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(Shift)
    elif dialect == "postgresql":
        stmt = postgresql.insert(Shift)
    else:
        raise RuntimeError(f"insert-or-ignore is not supported on {dialect}")
    return stmt.values(values).on_conflict_do_nothing(index_elements=SHIFT_KEY)


def insert_ignore_shifts(db: Session, rows: List[Assignment]) -> int:
    """
    Batch insert, committing per chunk. Rows duplicating a (cycle, user, date)
    are skipped. A chunk that collides with a lead written since planning is
    retried row by row and each colliding lead row is saved as staff.
    Returns how many lead rows were saved as staff.
    """
    now = datetime.utcnow()
    values = [
        {
            "cycle_id": r.cycle_id,
            "user_id": r.user_id,
            "date": r.date,
            "shift_type": r.shift_type,
            "role": r.role,
            "status": r.status,
            "assignment_status": "scheduled",
            "availability_override": False,
            "created_at": now,
        }
        for r in rows
    ]
    downgraded = 0
    for i in range(0, len(values), INSERT_CHUNK):
        chunk = values[i:i + INSERT_CHUNK]
        try:
            db.execute(_insert_ignore_stmt(db, chunk))
            db.commit()
            continue
        except IntegrityError:
            db.rollback()
            logger.warning("Insert chunk at %d hit a lead written concurrently; retrying row by row", i)
        for v in chunk:
            try:
                db.execute(_insert_ignore_stmt(db, [v]))
                db.commit()
            except IntegrityError:
                db.rollback()
                db.execute(_insert_ignore_stmt(db, [dict(v, role="staff")]))
                db.commit()
                downgraded += 1
    return downgraded


def demote_stale_leads(db: Session, cycle_id: int, stale: List[Assignment]) -> int:
    """Lead rows that no longer cover become staff so the slot can take a new lead."""
    ids = [a.id for a in stale if a.id is not None]
    if not ids:
        return 0
    demoted = db.query(Shift).filter(
        Shift.cycle_id == cycle_id, Shift.id.in_(ids), Shift.role == "lead",
    ).update({Shift.role: "staff"}, synchronize_session=False)
    db.commit()
    logger.info("Cycle %s: demoted %d lead rows that no longer cover", cycle_id, demoted)
    return demoted


def confirmed_count(db: Session, cycle_id: int, rows: List[Assignment]) -> int:
    """How many requested (user, date, shift type) rows exist after the insert."""
    if not rows:
        return 0
    requested = {(r.user_id, r.date, r.shift_type) for r in rows}
    found = db.query(Shift.user_id, Shift.date, Shift.shift_type).filter(
        Shift.cycle_id == cycle_id,
    ).all()
    return len(requested & {tuple(f) for f in found})


def generate_draft(db: Session, cycle_id: int, config: SchedulerConfig) -> dict:
    cycle = store.get_cycle(db, cycle_id)
    if cycle.published:
        raise SchedulingError(
            "auto_cycle_published", "Cycle is published. Unpublish it before auto-generating.", 409)

    therapists = store.list_therapists(db)
    if not any(generation_pool(therapists, st, config) for st in SHIFT_TYPES):
        raise SchedulingError("auto_no_therapists", "No active therapists are available to schedule.")

    core_cycle = store.to_core_cycle(cycle)
    plan = plan_draft(
        core_cycle,
        therapists,
        store.cycle_assignments(db, cycle_id),
        store.worked_dates(db, cycle.start_date, cycle.end_date, config.week_starts_on),
        store.cycle_overrides(db, cycle_id),
        config,
    )

    demote_stale_leads(db, cycle_id, plan.stale_leads)
    lead_conflicts = insert_ignore_shifts(db, plan.new_rows) if plan.new_rows else 0
    inserted = confirmed_count(db, cycle_id, plan.new_rows)
    dropped = len(plan.new_rows) - inserted
    if dropped:
        logger.warning("Cycle %s: %d of %d generated rows were dropped on insert",
                       cycle_id, dropped, len(plan.new_rows))

    by_id = {t.id: t for t in therapists}
    promoted = 0
    lead_failures = []
    for p in plan.promotions:
        result = set_designated_lead(db, cycle_id, by_id[p.user_id], p.date, p.shift_type)
        if result.ok:
            promoted += 1
        else:
            lead_failures.append({"date": p.date.isoformat(), "shift_type": p.shift_type, "reason": result.code})

    body = {
        "message": f"Generated {inserted} shifts for {cycle.label}.",
        "inserted": inserted,
        "requested": len(plan.new_rows),
        "dropped": dropped,
        "promoted": promoted,
        "unfilled_slots": plan.unfilled_slots,
        "missing_lead_slots": plan.missing_lead_slots,
        "lead_conflicts": lead_conflicts,
    }
    if lead_failures:
        logger.warning("Cycle %s: %d lead promotions failed", cycle_id, len(lead_failures))
        body["code"] = "auto_generate_lead_assignment_failed"
        body["error"] = "Some designated leads could not be assigned."
        body["lead_failures"] = lead_failures
    elif dropped:
        body["code"] = "auto_generate_coverage_incomplete"
        body["error"] = f"{dropped} shifts could not be saved because they were taken concurrently."
    logger.info("Cycle %s generated: %s", cycle_id, body)
    return body


def reset_draft(db: Session, cycle_id: int) -> dict:
    cycle = store.get_editable_cycle(db, cycle_id)
    removed = db.query(Shift).filter(Shift.cycle_id == cycle.id).delete(synchronize_session=False)
    db.commit()
    logger.info("Cycle %s reset: %d shifts removed", cycle_id, removed)
    return {"message": f"Removed {removed} shifts from {cycle.label}.", "removed": removed}
