"""Publish gate: weekly quota rules (bypassable) then slot rules (never bypassable)."""
import logging

from sqlalchemy.orm import Session

from rtschedule.dates import build_date_range
from rtschedule.models import SchedulerConfig
from rtschedule.validate import SlotValidation, WeeklyValidation, validate_slots, validate_weekly

from . import store
from .errors import SchedulingError
from .models import ScheduleCycle

logger = logging.getLogger(__name__)


def run_validators(db: Session, cycle: ScheduleCycle, config: SchedulerConfig):
    therapists = store.therapists_by_id(db)
    slots = validate_slots(
        build_date_range(cycle.start_date, cycle.end_date),
        store.cycle_assignments(db, cycle.id),
        therapists,
        config,
    )
    weekly = validate_weekly(
        cycle.start_date,
        cycle.end_date,
        therapists.values(),
        store.worked_dates(db, cycle.start_date, cycle.end_date, config.week_starts_on),
        config,
    )
    return slots, weekly


def slot_report(slots: SlotValidation) -> dict:
    return {
        "ok": slots.ok,
        "counts": dict(slots.counts),
        "issues": [
            {
                "date": i.date.isoformat(),
                "shift_type": i.shift_type,
                "coverage": i.coverage,
                "lead_count": i.lead_count,
                "reasons": i.reasons,
            }
            for i in slots.issues
        ],
    }


def weekly_report(weekly: WeeklyValidation) -> dict:
    return {
        "ok": weekly.ok,
        "violations": weekly.violation_count,
        "under": weekly.under_count,
        "over": weekly.over_count,
        "details": [
            {
                "therapist_id": v.therapist_id,
                "week_start": v.week_start.isoformat(),
                "week_end": v.week_end.isoformat(),
                "worked": v.worked,
                "required": v.required,
                "kind": v.kind,
            }
            for v in weekly.violations
        ],
    }


def validation_report(db: Session, cycle_id: int, config: SchedulerConfig) -> dict:
    cycle = store.get_cycle(db, cycle_id)
    slots, weekly = run_validators(db, cycle, config)
    return {"cycle_id": cycle.id, "slots": slot_report(slots), "weekly": weekly_report(weekly)}


def publish_cycle(db: Session, cycle_id: int, config: SchedulerConfig,
                  override_weekly_rules: bool = False) -> dict:
    cycle = store.get_cycle(db, cycle_id)
    if cycle.published:
        return {"message": f"{cycle.label} is already published.", "published": True}

    slots, weekly = run_validators(db, cycle, config)

    if not override_weekly_rules and not weekly.ok:
        logger.warning("Publish of cycle %s refused: %d weekly violations", cycle_id, weekly.violation_count)
        raise SchedulingError(
            "publish_weekly_rule_violation",
            f"{weekly.violation_count} therapist-weeks break the weekly work-day rules "
            f"({weekly.under_count} under, {weekly.over_count} over).",
            409,
            violations=weekly.violation_count,
            under=weekly.under_count,
            over=weekly.over_count,
        )

    if not slots.ok:
        logger.warning("Publish of cycle %s refused: %d slot violations", cycle_id, slots.violations)
        raise SchedulingError(
            "publish_shift_rule_violation",
            f"{slots.violations} slots break coverage or lead rules: {slots.affected_summary()}",
            409,
            under_coverage=slots.under_coverage,
            over_coverage=slots.over_coverage,
            lead_missing=slots.missing_lead,
            lead_multiple=slots.multiple_leads,
            lead_ineligible=slots.ineligible_lead,
            affected=slots.affected_summary(),
        )

    cycle.published = True
    db.commit()
    logger.info("Cycle %s published (weekly override=%s)", cycle_id, override_weekly_rules)
    return {"message": f"{cycle.label} published.", "published": True}


def unpublish_cycle(db: Session, cycle_id: int) -> dict:
    cycle = store.get_cycle(db, cycle_id)
    cycle.published = False
    db.commit()
    logger.info("Cycle %s unpublished", cycle_id)
    return {"message": f"{cycle.label} moved back to draft.", "published": False}
