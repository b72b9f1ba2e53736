"""
Periodic admin reminder for requests still waiting for review.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from core.config import ADMIN_EMAILS, REMINDER_ENABLED, REMINDER_INTERVAL_DAYS
from core.database import batch_update, list_requests_by_status
from services.email import build_pending_reminder_email, send_email

logger = logging.getLogger(__name__)

PENDING_LABELS = ["pending"]


@dataclass
class ReminderResult:
    success: bool
    total_pending: int = 0
    included: int = 0
    excluded: int = 0
    notified: int = 0
    errors: list[str] = field(default_factory=list)
    skipped_reason: str | None = None


def _parse_timestamp(value: str) -> datetime | None:
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def is_due_for_reminder(request: dict, now: datetime, interval_days: int = REMINDER_INTERVAL_DAYS) -> bool:
    """Never reminded, or last reminded at least interval_days ago."""
    last = request.get("last_reminded_at")
    if not last:
        return True
    reminded_at = _parse_timestamp(last)
    if reminded_at is None:
        logger.warning("Request %s has unreadable last_reminded_at %r", request.get("id"), last)
        return True
    return reminded_at <= now - timedelta(days=interval_days)


def find_pending_requests_for_reminder(conn: sqlite3.Connection, now: datetime | None = None) -> tuple[list[dict], int]:
    """Return (requests due for a reminder, total pending count)."""
    now = now or datetime.now(timezone.utc)
    pending = list_requests_by_status(conn, PENDING_LABELS)
    due = [r for r in pending if is_due_for_reminder(r, now)]
    logger.info("%d of %d pending requests are due for a reminder", len(due), len(pending))
    return due, len(pending)


async def run_pending_reminder(
    conn: sqlite3.Connection,
    graph,
    now: datetime | None = None,
    recipients: list[str] | None = None,
    enabled: bool = REMINDER_ENABLED,
) -> ReminderResult:
    """
    Send one digest email for all due pending requests.

    last_reminded_at is only advanced when the email went out, so a failed
    send is retried on the next run.
    """
    if not enabled:
        logger.info("Pending reminders disabled")
        return ReminderResult(success=True, skipped_reason="disabled")

    now = now or datetime.now(timezone.utc)
    recipients = recipients or ADMIN_EMAILS

    due, total = find_pending_requests_for_reminder(conn, now)
    result = ReminderResult(success=True, total_pending=total, included=len(due), excluded=total - len(due))
    if not due:
        return result

    subject, html, text = build_pending_reminder_email(due)
    email = await send_email(graph, recipients, subject, html, text=text)
    if not email.success:
        result.success = False
        result.errors.append(email.error or "Email not sent")
        return result

    result.notified = len(recipients)
    stamp = now.isoformat()
    batch_update(conn, [(r["id"], {"last_reminded_at": stamp}) for r in due])
    return result
