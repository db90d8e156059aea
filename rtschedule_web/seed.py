"""Seed the database with a demo staff roster and one draft cycle."""
import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from .models import ScheduleCycle, Therapist, WorkPattern

logger = logging.getLogger(__name__)

# (name, shift affinity, employment, lead eligible)
ROSTER = [
    ("Avery Brooks", "day", "full_time", True),
    ("Blake Chen", "day", "full_time", False),
    ("Casey Diaz", "day", "full_time", True),
    ("Devon Ellis", "day", "part_time", False),
    ("Emery Flores", "day", "full_time", False),
    ("Finley Grant", "either", "full_time", True),
    ("Harper Ito", "night", "full_time", True),
    ("Jordan Kim", "night", "full_time", False),
    ("Kai Lopez", "night", "full_time", True),
    ("Logan Moore", "night", "part_time", False),
    ("Morgan Nash", "night", "full_time", False),
    ("Parker Owens", "either", "prn", False),
]


def next_monday(today: date) -> date:
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def seed(db: Session, start: date = None, weeks: int = 6) -> ScheduleCycle:
    if db.query(Therapist).count() == 0:
        for i, (name, shift_type, employment, lead) in enumerate(ROSTER):
            t = Therapist(full_name=name, shift_type=shift_type, employment_type=employment,
                          is_lead_eligible=lead, is_active=True, on_fmla=False)
            if i % 4 == 1:
                # Never works Sundays
                t.pattern = WorkPattern(works_dow=[], offs_dow=[6], works_dow_mode="soft")
            db.add(t)
        db.commit()
        logger.info("Seeded %d therapists", len(ROSTER))

    start = start or next_monday(date.today())
    cycle = db.query(ScheduleCycle).filter(ScheduleCycle.start_date == start).first()
    if not cycle:
        end = start + timedelta(days=7 * weeks - 1)
        cycle = ScheduleCycle(label=f"{start:%b %d} - {end:%b %d, %Y}", start_date=start,
                              end_date=end, published=False)
        db.add(cycle)
        db.commit()
        db.refresh(cycle)
        logger.info("Seeded cycle %s (%s to %s)", cycle.id, start, end)
    return cycle
