"""
Coaching ledger maintenance commands.

    python migrate.py seed-courses
    python migrate.py import nariyawal "student data.csv"
    python migrate.py import thiriya "bytecore thiriya.csv"
    python migrate.py standardize
    python migrate.py sync-stats
    python migrate.py resolve-rekey 1001 2001
    python migrate.py reminders
"""
import argparse
import logging
import sys
from pathlib import Path

from config import settings
from database import Base, SessionLocal, engine
from errors import BatchCommitError
from models import courses, stats, students  # noqa: F401  (register tables)
from services.csv_parser import ImportFormat
from services.importer import run_import
from services.ledger import resolve_rekey
from services.reminders import run_fee_audit
from services.standardization import standardize_fees, upsert_course_fees
from services.stats import sync_aggregate_stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Coaching centre fee ledger maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed-courses", help="Write the canonical course fee table")

    imp = sub.add_parser("import", help="Import students from a CSV export")
    imp.add_argument("format", choices=[f.value for f in ImportFormat])
    imp.add_argument("csv_path", help="Path to the CSV file")
    imp.add_argument("--delimiter", default=",", help="Column delimiter (default ',')")

    sub.add_parser("standardize", help="Apply canonical course fees to every student")
    sub.add_parser("sync-stats", help="Recompute the global dashboard totals")

    rk = sub.add_parser("resolve-rekey", help="Clean up a half-finished registration change")
    rk.add_argument("old_registration")
    rk.add_argument("new_registration")

    sub.add_parser("reminders", help="List students whose monthly fee is due today")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if args.command == "seed-courses":
            count = upsert_course_fees(db)
            print(f"✅ {count} course fees saved")

        elif args.command == "import":
            path = Path(args.csv_path)
            if not path.exists():
                print(f"❌ File not found: {path}")
                return 1
            csv_text = path.read_text(encoding="utf-8-sig")
            result = run_import(db, csv_text, ImportFormat(args.format), args.delimiter)
            print(f"✅ {result.processed_count} students processed "
                  f"({result.created_count} new, {result.merged_count} merged, {len(result.failed)} failed)")

        elif args.command == "standardize":
            try:
                updated = standardize_fees(db)
            except BatchCommitError as e:
                print(f"❌ {e}")
                return 1
            print(f"✅ {updated} students updated")

        elif args.command == "sync-stats":
            totals = sync_aggregate_stats(db)
            for key, value in totals.items():
                print(f"{key}: {value}")

        elif args.command == "resolve-rekey":
            if resolve_rekey(db, args.old_registration, args.new_registration):
                print(f"✅ Removed stale record {args.old_registration}")
            else:
                print("ℹ️ Nothing to clean up")

        elif args.command == "reminders":
            due = run_fee_audit(db)
            for i, s in enumerate(due, start=1):
                print(f"{i}. {s['full_name']} (Reg: {s['registration']}) Bal: ₹{s['balance']} "
                      f"| {s['last_interaction_type']}: {s['last_interaction_date']}")
            print(f"{len(due)} students due today")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
