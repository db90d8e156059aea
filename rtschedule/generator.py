"""
Greedy draft generation for one cycle.

For every date and each shift type, fill the slot with a designated lead
first (promoting an existing lead-eligible row when possible), then staff up
to the fill target. This is a round-robin heuristic, not an optimizer.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Set, Tuple

from .availability import resolve_availability
from .dates import build_date_range
from .models import (
    SHIFT_TYPES, Assignment, AvailabilityOverride, Cycle, SchedulerConfig, Therapist,
    counts_toward_coverage,
)
from .picker import WorkedDates, pick_candidate, record_worked

logger = logging.getLogger(__name__)


@dataclass
class Promotion:
    date: date
    shift_type: str
    user_id: int


@dataclass
class DraftPlan:
    cycle_id: int
    new_rows: List[Assignment] = field(default_factory=list)
    promotions: List[Promotion] = field(default_factory=list)
    # Lead rows that no longer cover (sick, called off) but still hold the slot's lead
    stale_leads: List[Assignment] = field(default_factory=list)
    unfilled_slots: int = 0
    missing_lead_slots: int = 0
    short_slots: List[Tuple[date, str]] = field(default_factory=list)

    @property
    def requested_keys(self) -> Set[Tuple[int, int, date]]:
        return {r.key for r in self.new_rows}


def generation_pool(therapists: List[Therapist], shift_type: str,
                    config: SchedulerConfig) -> List[Therapist]:
    """Ordered pool for one shift type. Inactive and FMLA therapists never enter it."""
    pool = []
    for t in therapists:
        if not t.is_active or t.on_fmla:
            continue
        if not t.works_shift_type(shift_type):
            continue
        if t.is_prn and config.prn_pool_mode == "exclude":
            continue
        pool.append(t)
    return pool


def plan_draft(
    cycle: Cycle,
    therapists: List[Therapist],
    existing: List[Assignment],
    worked: WorkedDates,
    overrides: List[AvailabilityOverride],
    config: SchedulerConfig,
) -> DraftPlan:
    """
    existing: rows already stored for this cycle.
    worked: covering dates per (therapist, week) across every cycle; not mutated.
    """
    plan = DraftPlan(cycle_id=cycle.id)
    worked = copy.deepcopy(worked)
    limits = {t.id: config.weekly_limit_for(t) for t in therapists}
    by_id = {t.id: t for t in therapists}

    overrides_by_therapist: Dict[int, List[AvailabilityOverride]] = {}
    for o in overrides:
        overrides_by_therapist.setdefault(o.therapist_id, []).append(o)

    slot_rows: Dict[Tuple[date, str], List[Assignment]] = {}
    assigned_by_date: Dict[date, Set[int]] = {}
    for a in existing:
        slot_rows.setdefault((a.date, a.shift_type), []).append(a)
        assigned_by_date.setdefault(a.date, set()).add(a.user_id)

    pools = {st: generation_pool(therapists, st, config) for st in SHIFT_TYPES}
    lead_pools = {st: [t for t in pools[st] if t.is_lead_eligible] for st in SHIFT_TYPES}
    staff_cursor = {st: 0 for st in SHIFT_TYPES}
    lead_cursor = {st: 0 for st in SHIFT_TYPES}
    target = config.fill_target

    for d in build_date_range(cycle.start_date, cycle.end_date):
        assigned = assigned_by_date.setdefault(d, set())
        for shift_type in SHIFT_TYPES:
            rows = slot_rows.get((d, shift_type), [])
            coverage = sum(1 for a in rows if counts_toward_coverage(a.status))
            has_lead = any(a.role == "lead" and counts_toward_coverage(a.status) for a in rows)
            plan.stale_leads.extend(
                a for a in rows if a.role == "lead" and not counts_toward_coverage(a.status))

            def is_allowed(t: Therapist, _d=d, _st=shift_type) -> bool:
                return resolve_availability(
                    t, cycle.id, _d, _st, overrides_by_therapist.get(t.id, ())).allowed

            def place(t: Therapist, role: str) -> None:
                plan.new_rows.append(Assignment(
                    cycle_id=cycle.id, user_id=t.id, date=d, shift_type=shift_type, role=role))
                assigned.add(t.id)
                record_worked(worked, t.id, d, config.week_starts_on)

            if not has_lead:
                promotable = sorted(
                    (a for a in rows
                     if a.role != "lead" and counts_toward_coverage(a.status)
                     and by_id.get(a.user_id) is not None and by_id[a.user_id].is_lead_eligible),
                    key=lambda a: by_id[a.user_id].name,
                )
                if promotable:
                    plan.promotions.append(Promotion(d, shift_type, promotable[0].user_id))
                    has_lead = True
                elif coverage < target:
                    pick = pick_candidate(
                        lead_pools[shift_type], lead_cursor[shift_type], d, is_allowed,
                        assigned, worked, limits, config.week_starts_on)
                    lead_cursor[shift_type] = pick.next_cursor
                    if pick.therapist is not None:
                        place(pick.therapist, "lead")
                        coverage += 1
                        has_lead = True

            while coverage < target:
                pick = pick_candidate(
                    pools[shift_type], staff_cursor[shift_type], d, is_allowed,
                    assigned, worked, limits, config.week_starts_on)
                staff_cursor[shift_type] = pick.next_cursor
                if pick.therapist is None:
                    break
                role = "staff"
                if not has_lead and pick.therapist.is_lead_eligible:
                    role = "lead"
                    has_lead = True
                place(pick.therapist, role)
                coverage += 1

            if coverage < config.min_coverage:
                plan.unfilled_slots += 1
                plan.short_slots.append((d, shift_type))
            if not has_lead:
                plan.missing_lead_slots += 1
            logger.debug("slot %s %s: coverage=%d lead=%s", d, shift_type, coverage, has_lead)

    logger.info(
        "Planned cycle %s: %d new rows, %d promotions, %d unfilled slots, %d missing leads",
        cycle.id, len(plan.new_rows), len(plan.promotions),
        plan.unfilled_slots, plan.missing_lead_slots,
    )
    return plan
