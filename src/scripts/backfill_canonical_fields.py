#!/usr/bin/env python3
"""
Rewrite stored status and type labels to their canonical values.

Safe to run repeatedly; a second run reports nothing to update.

Usage:
    uv run python src/scripts/backfill_canonical_fields.py [--dry-run]
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import get_connection
from services.vacations import backfill_canonical_fields


def main(dry_run: bool = False):
    conn = get_connection(DB_PATH)
    try:
        scanned, updated = backfill_canonical_fields(conn, dry_run=dry_run)
    finally:
        conn.close()

    print(f"Scanned {scanned} requests")
    if dry_run:
        print(f"[DRY RUN] Would update {updated} requests")
    else:
        print(f"Updated {updated} requests")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill canonical status/type labels")
    parser.add_argument("--dry-run", action="store_true", help="Count changes without writing")
    args = parser.parse_args()

    main(args.dry_run)
