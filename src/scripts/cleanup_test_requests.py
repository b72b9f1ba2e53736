#!/usr/bin/env python3
"""
Delete vacation requests created by test users, with their calendar events.

Without --pattern, known test names and example/test/mock email domains
are matched.

Usage:
    uv run python src/scripts/cleanup_test_requests.py [--pattern TEXT] [--dry-run]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.calendar_client import GoogleCalendarClient
from core.config import DB_PATH, GOOGLE_SERVICE_ACCOUNT_KEY, SYNC_DELAY_SECONDS
from core.database import batch_delete, get_connection
from services.calendar import delete_event_for_request
from services.vacations import find_test_requests


async def main(pattern: str | None, dry_run: bool) -> int:
    conn = get_connection(DB_PATH)
    try:
        requests = find_test_requests(conn, pattern)
        print(f"Found {len(requests)} test requests")
        for r in requests:
            print(f"  - {r['user_name']} <{r['user_email']}> {r['start_date']}..{r['end_date']} ({r['id']})")

        if dry_run or not requests:
            if dry_run:
                print("\n[DRY RUN] Nothing deleted")
            return 0

        failed = []
        linked = [r for r in requests if r.get("calendar_event_id")]
        if linked and GOOGLE_SERVICE_ACCOUNT_KEY:
            async with GoogleCalendarClient.from_env() as calendar:
                for r in linked:
                    result = await delete_event_for_request(conn, calendar, r)
                    if not result.success:
                        print(f"  Could not delete event for {r['id']}: {result.error}")
                        failed.append(r["id"])
                    await asyncio.sleep(SYNC_DELAY_SECONDS)
        elif linked:
            print("GOOGLE_SERVICE_ACCOUNT_KEY not set; linked requests are kept")
            failed = [r["id"] for r in linked]

        deletable = [r["id"] for r in requests if r["id"] not in failed]
        deleted = batch_delete(conn, deletable)
    finally:
        conn.close()

    print(f"\nDeleted {deleted} requests, kept {len(failed)}")
    return 1 if failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Remove test vacation requests")
    parser.add_argument("--pattern", help="Match name or email containing this text")
    parser.add_argument("--dry-run", action="store_true", help="List matches without deleting")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.pattern, args.dry_run)))
