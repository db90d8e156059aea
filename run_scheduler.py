#!/usr/bin/env python3
"""
RT Coverage Scheduler CLI.

The database (RTSCHEDULE_DATABASE_URL, SQLite by default) is the source of truth.

Usage:
  # Create tables
  python run_scheduler.py init-db

  # Demo roster and a six-week draft cycle
  python run_scheduler.py seed --weeks 6

  # Auto-fill a draft cycle, then check it against the publish rules
  python run_scheduler.py generate --cycle 1
  python run_scheduler.py validate --cycle 1

  # Run the API
  python run_scheduler.py serve --port 8000
"""

import argparse
import logging
import os
import sys
from datetime import date

from rtschedule.models import SchedulerConfig

logger = logging.getLogger("run_scheduler")


def cmd_init_db(args):
    """Create all tables."""
    from rtschedule_web.database import DATABASE_URL, init_db
    init_db()
    print(f"Database ready: {DATABASE_URL}")


def cmd_seed(args):
    """Insert the demo roster and one draft cycle."""
    from rtschedule_web.database import SessionLocal, init_db
    from rtschedule_web.seed import seed

    init_db()
    db = SessionLocal()
    try:
        start = date.fromisoformat(args.start) if args.start else None
        cycle = seed(db, start=start, weeks=args.weeks)
        print(f"Cycle {cycle.id}: {cycle.label} ({cycle.start_date} to {cycle.end_date})")
    finally:
        db.close()


def cmd_generate(args):
    """Run the draft generator on one cycle."""
    from rtschedule_web.database import SessionLocal
    from rtschedule_web.drafts import generate_draft
    from rtschedule_web.errors import SchedulingError

    db = SessionLocal()
    try:
        result = generate_draft(db, args.cycle, SchedulerConfig.from_env())
    except SchedulingError as e:
        print(f"Generate failed [{e.code}]: {e.message}")
        sys.exit(1)
    finally:
        db.close()

    print(result["message"])
    print(f"  Inserted: {result['inserted']} (dropped {result['dropped']})")
    print(f"  Leads promoted: {result['promoted']}")
    print(f"  Unfilled slots: {result['unfilled_slots']}")
    print(f"  Slots without lead: {result['missing_lead_slots']}")
    if result.get("code"):
        print(f"  Warning [{result['code']}]: {result['error']}")


def cmd_validate(args):
    """Print both publish-gate validators for one cycle."""
    from rtschedule_web.database import SessionLocal
    from rtschedule_web.errors import SchedulingError
    from rtschedule_web.publishing import validation_report

    db = SessionLocal()
    try:
        report = validation_report(db, args.cycle, SchedulerConfig.from_env())
    except SchedulingError as e:
        print(f"Validate failed [{e.code}]: {e.message}")
        sys.exit(1)
    finally:
        db.close()

    slots, weekly = report["slots"], report["weekly"]
    if slots["ok"]:
        print("Slots: OK")
    else:
        print(f"Slots: {len(slots['issues'])} issue(s) {slots['counts']}")
        for i in slots["issues"][:15]:
            print(f"    {i['date']} {i['shift_type']}: {', '.join(i['reasons'])} (coverage {i['coverage']})")
        if len(slots["issues"]) > 15:
            print(f"    ... and {len(slots['issues']) - 15} more")
    if weekly["ok"]:
        print("Weekly: OK")
    else:
        print(f"Weekly: {weekly['violations']} violation(s), {weekly['under']} under, {weekly['over']} over")
    if not (slots["ok"] and weekly["ok"]):
        sys.exit(2)


def cmd_serve(args):
    import uvicorn
    from rtschedule_web.main import app
    uvicorn.run(app, host=args.host, port=args.port, workers=1)


def main():
    parser = argparse.ArgumentParser(
        description="RT Coverage Scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default=os.environ.get("RTSCHEDULE_LOG_LEVEL", "INFO"))
    sub = parser.add_subparsers(dest="command", help="Command")

    sub.add_parser("init-db", help="Create database tables")

    p_seed = sub.add_parser("seed", help="Insert demo roster and a draft cycle")
    p_seed.add_argument("--start", default=None, help="Cycle start date (YYYY-MM-DD)")
    p_seed.add_argument("--weeks", type=int, default=6)

    p_gen = sub.add_parser("generate", help="Auto-fill a draft cycle")
    p_gen.add_argument("--cycle", type=int, required=True, help="Cycle id")

    p_val = sub.add_parser("validate", help="Run the publish-gate validators")
    p_val.add_argument("--cycle", type=int, required=True, help="Cycle id")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    dispatch = {
        "init-db": cmd_init_db,
        "seed": cmd_seed,
        "generate": cmd_generate,
        "validate": cmd_validate,
        "serve": cmd_serve,
    }
    dispatch[args.command](args)


if __name__ == "__main__":
    main()
