#!/usr/bin/env python3
"""
Import vacation requests from a legacy JSON export.

The export is a list of camelCase records (or {"vacationRequests": [...]}).
Any of calendarEventId, googleCalendarEventId or googleEventId becomes the
request's calendar_event_id; statuses and types are normalized on the way in.

Usage:
    uv run python src/scripts/import_requests.py export.json [--dry-run]
"""

import argparse
import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import get_connection, init_schema
from services.vacations import import_legacy_requests


def load_records(path: Path) -> list[dict]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("vacationRequests", [])
    return data


def main(path: Path, dry_run: bool = False) -> int:
    records = load_records(path)
    print(f"Loaded {len(records)} records from {path}")

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(DB_PATH)
    try:
        init_schema(conn)
        report = import_legacy_requests(conn, records, dry_run=dry_run)
    finally:
        conn.close()

    label = "Would import" if dry_run else "Imported"
    print(f"\n{label}: {report.imported}")
    print(f"Skipped (already present): {report.skipped}")
    print(f"Failed: {len(report.errors)}")
    for record_id, error in report.errors:
        print(f"  - {record_id}: {error}")

    return 1 if report.errors else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import legacy vacation requests")
    parser.add_argument("path", type=Path, help="JSON export file")
    parser.add_argument("--dry-run", action="store_true", help="Validate without writing")
    args = parser.parse_args()

    sys.exit(main(args.path, args.dry_run))
