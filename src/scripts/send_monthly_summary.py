#!/usr/bin/env python3
"""
Email the monthly validated-vacations summary to accounting.

The email carries an HTML table (one row per request) plus CSV and Excel
attachments. A copy of the workbook is saved under output/reports/monthly.

Usage:
    uv run python src/scripts/send_monthly_summary.py --month 2025-11
"""

import argparse
import asyncio
import logging
import sys
import traceback
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, LOG_LEVEL, OUTPUT_DIR
from core.database import get_connection
from core.graph_client import create_graph_client
from services.email import send_error_email
from services.reports import process_monthly_summary


async def main(month: str | None = None) -> int:
    """Main entry point for the monthly summary."""
    graph = create_graph_client()
    conn = get_connection(DB_PATH)
    try:
        result = await process_monthly_summary(
            conn, graph, month=month, output_dir=OUTPUT_DIR / "reports" / "monthly"
        )

        print(f"\nSummary for {result.display_label} ({result.start} to {result.end})")
        print(f"  Validated requests: {result.validated}")
        print(f"  Total days: {result.total_days:.1f}")
        if result.email_sent:
            print(f"  Sent to: {', '.join(result.recipients)}")
        else:
            print(f"  Email failed: {result.email_error}")

        print("\nDone!")
        return 0 if result.ok else 1

    except Exception as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        await send_error_email(graph, e, "Monthly vacation summary")
        raise

    finally:
        conn.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send monthly validated vacations summary")
    parser.add_argument(
        "--month",
        help="Target month (YYYY-MM). Defaults to the current month in Europe/Monaco.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(main(args.month)))
