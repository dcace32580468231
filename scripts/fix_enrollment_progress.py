#!/usr/bin/env python3
"""
Recompute progress and status for every course enrollment from lesson completions.
Run from the project root: python -m scripts.fix_enrollment_progress [--dry-run]
or: PYTHONPATH=. python scripts/fix_enrollment_progress.py
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.logging import configure_logging
from app.services.enrollment_progress import ReconcilerConfig, enrollment_progress_service

logger = logging.getLogger("app.scripts.fix_enrollment_progress")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fix drifted enrollment progress.")
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="SQLAlchemy database URL (defaults to $DATABASE_URL)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report drift without writing")
    parser.add_argument("--batch-size", type=int, default=500)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if not args.database_url:
        print("DATABASE_URL is not set; pass --database-url or export DATABASE_URL.", file=sys.stderr)
        return 2

    configure_logging(os.environ.get("LOG_DIR", "logs"), os.environ.get("LOG_LEVEL", "INFO"))
    config = ReconcilerConfig(database_url=args.database_url, dry_run=args.dry_run, batch_size=args.batch_size)
    logger.info(f"Starting enrollment progress reconciliation (dry_run={config.dry_run})")

    summary = enrollment_progress_service.run(config)

    print("\nSummary:")
    print(f"  Total processed:   {summary.total_processed}")
    print(f"  Fixed:             {summary.fixed_count}")
    print(f"  Already correct:   {summary.already_correct_count}")
    print(f"  Skipped:           {summary.skipped_count}")
    print(f"  Failed:            {summary.failed_count}")
    return 1 if summary.failed_count else 0


if __name__ == "__main__":
    sys.exit(main())
