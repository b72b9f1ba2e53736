#!/usr/bin/env python3
"""
Reconcile recent approved vacation requests with Google Calendar.

Creates missing events, updates moved ones and repairs stale event ids.
Exits with status 1 when any request failed.

Usage:
    uv run python src/scripts/reconcile_calendar.py --days=90 [--dry-run]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.calendar_client import GoogleCalendarClient
from core.config import DB_PATH, LOG_LEVEL
from core.database import get_connection
from services.calendar import ReconciliationReport, reconcile_recent_requests


def print_report(report: ReconciliationReport, dry_run: bool):
    print("\n" + "=" * 60)
    print("RECONCILIATION REPORT")
    print("=" * 60)
    print(f"Total Approved Requests: {report.total_approved}")
    print(f"Already Synced: {report.already_synced}")
    if dry_run:
        print(f"Would Create: {report.created}")
    else:
        print(f"Created: {report.created}")
        print(f"Updated: {report.updated}")
        print(f"Recreated (stale event id): {report.recreated}")
    print(f"Failed: {report.failed}")

    if report.errors:
        print("\nERRORS:")
        for idx, (request_id, user_name, error) in enumerate(report.errors, start=1):
            print(f"  {idx}. {user_name} ({request_id}): {error}")

    print("=" * 60)


async def main(days: int, dry_run: bool) -> int:
    print(f"Starting reconciliation (last {days} days, dry-run: {dry_run})...")

    conn = get_connection(DB_PATH)
    try:
        async with GoogleCalendarClient.from_env() as calendar:
            print(f"Calendar: {calendar.calendar_id} as {calendar.identity}")
            report = await reconcile_recent_requests(conn, calendar, days=days, dry_run=dry_run)
    finally:
        conn.close()

    print_report(report, dry_run)
    return 1 if report.failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reconcile approved vacations with Google Calendar")
    parser.add_argument("--days", type=int, default=90, help="Look back this many days (default 90)")
    parser.add_argument("--dry-run", action="store_true", help="Report without calling the calendar")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(main(args.days, args.dry_run)))
