#!/usr/bin/env python3
"""
Send the admins a digest of pending requests not reminded in the last 5 days.

Meant to run daily; requests are only included again once the interval has
passed. Set REMINDER_ENABLED=false to turn it off.

Usage:
    uv run python src/scripts/send_pending_reminder.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, LOG_LEVEL
from core.database import get_connection
from core.graph_client import create_graph_client
from services.reminders import run_pending_reminder


async def main() -> int:
    graph = create_graph_client()
    conn = get_connection(DB_PATH)
    try:
        result = await run_pending_reminder(conn, graph)
    finally:
        conn.close()

    if result.skipped_reason:
        print(f"Reminder skipped: {result.skipped_reason}")
        return 0

    print(f"Pending requests: {result.total_pending}")
    print(f"  Included: {result.included}")
    print(f"  Recently reminded: {result.excluded}")
    print(f"  Admins notified: {result.notified}")
    for error in result.errors:
        print(f"  Error: {error}")

    return 0 if result.success else 1


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(main()))
