#!/usr/bin/env python3
"""
List the vacation events on the shared Google Calendar.

Useful to check which service account is in use and whether events are
linked to stored requests.

Usage:
    uv run python src/scripts/list_calendar_events.py --start 2025-11-01 --end 2025-11-30
"""

import argparse
import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.calendar_client import GoogleCalendarClient
from core.config import DB_PATH
from core.database import get_connection, get_request
from services.calendar import list_vacation_events


async def main(start: str, end: str):
    """List calendar events and whether each one maps to a stored request."""
    conn = get_connection(DB_PATH)
    try:
        async with GoogleCalendarClient.from_env() as calendar:
            print(f"Calendar: {calendar.calendar_id}")
            print(f"Service account: {calendar.identity}\n")

            events = await list_vacation_events(calendar, start, end)
            print(f"Found {len(events)} events between {start} and {end}\n")
            print("=" * 80)

            for event in events:
                print(f"\n{event['summary']}")
                print(f"  Dates: {event['start_date']} to {event['end_date']}"
                      f"{'' if event['all_day'] else ' (half day)'}")
                print(f"  Event ID: {event['event_id']}")

                request_id = event["request_id"]
                request = get_request(conn, request_id) if request_id else None
                if not request_id:
                    print("  Request: not created by this app")
                elif request is None:
                    print(f"  Request: {request_id} (missing from database)")
                elif request.get("calendar_event_id") != event["event_id"]:
                    print(f"  Request: {request_id} (linked to {request.get('calendar_event_id')})")
                else:
                    print(f"  Request: {request_id} ({request['status']})")
                print("-" * 80)
    finally:
        conn.close()

    print("\nDone!")


if __name__ == "__main__":
    today = date.today()
    parser = argparse.ArgumentParser(description="List vacation events on Google Calendar")
    parser.add_argument("--start", default=today.replace(day=1).isoformat(), help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", default=(today + timedelta(days=60)).isoformat(), help="Last day (YYYY-MM-DD)")
    args = parser.parse_args()

    asyncio.run(main(args.start, args.end))
