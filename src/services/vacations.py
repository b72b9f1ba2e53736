"""
Vacation request lifecycle: submit, review, edit and delete.

Status changes and date edits are followed by a calendar reconciliation
when a calendar client is supplied. Notification emails are best effort
and never block the change itself.
"""

import logging
import sqlite3
from dataclasses import dataclass, field

from core.config import ADMIN_EMAILS
from core.database import (
    batch_update,
    delete_request,
    get_request,
    insert_request,
    list_requests,
    update_request_fields,
    utc_now_iso,
)
from core.duration import parse_iso_date
from core.normalization import normalize_fields, normalize_status
from models.vacations import HalfDayType, VacationStatus
from services.calendar import CalendarSyncResult, delete_event_for_request, event_window, reconcile_request
from services.email import build_admin_notification_email, build_decision_email, send_email

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "user_name", "user_email", "company", "start_date", "end_date", "type", "status",
    "is_half_day", "half_day_type", "duration_days", "reason",
    "reviewed_by", "reviewer_email", "admin_comment",
}
# Changes to these fields alter the calendar event
CALENDAR_FIELDS = {"status", "start_date", "end_date", "is_half_day", "half_day_type"}
REVIEWER_FIELDS = ("reviewed_by", "reviewer_email", "admin_comment")


class RequestNotFoundError(LookupError):
    def __init__(self, request_id: str):
        super().__init__(f"Vacation request not found: {request_id}")
        self.request_id = request_id


def validate_request_dates(request: dict):
    """
    Raises:
        ValueError: missing/invalid dates, end before start, or a multi-day half day
    """
    start = parse_iso_date(request.get("start_date"))
    end = parse_iso_date(request.get("end_date") or request.get("start_date"))
    if start is None:
        raise ValueError(f"Invalid start date: {request.get('start_date')!r}")
    if end is None:
        raise ValueError(f"Invalid end date: {request.get('end_date')!r}")
    if end < start:
        raise ValueError(f"End date {end} is before start date {start}")
    if request.get("is_half_day") and end != start:
        raise ValueError("A half day request must start and end on the same day")
    if request.get("half_day_type") not in (None, *[h.value for h in HalfDayType]):
        raise ValueError(f"Invalid half day type: {request.get('half_day_type')!r}")


async def _notify(graph, recipients: list[str], message: tuple[str, str, str]):
    if graph is None or not recipients:
        return
    subject, html, text = message
    result = await send_email(graph, recipients, subject, html, text=text)
    if not result.success:
        logger.warning("Notification '%s' not delivered: %s", subject, result.error)


async def create_request(conn: sqlite3.Connection, fields: dict, graph=None, admin_emails: list[str] | None = None) -> dict:
    """
    Submit a new request. It is always stored Pending and unlinked.

    Raises:
        ValueError: invalid dates or unknown fields
    """
    record = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS - {"status", *REVIEWER_FIELDS}}
    record["start_date"] = str(record.get("start_date") or "")[:10]
    record["end_date"] = str(record.get("end_date") or record["start_date"])[:10]
    if record.get("is_half_day"):
        record["half_day_type"] = record.get("half_day_type") or HalfDayType.MORNING.value
    else:
        record["half_day_type"] = None
    validate_request_dates(record)

    record.update(normalize_fields({"type": record.get("type") or "", "status": VacationStatus.PENDING}))
    request = insert_request(conn, record)
    logger.info("Created vacation request %s for %s", request["id"], request.get("user_email"))

    await _notify(graph, admin_emails or ADMIN_EMAILS, build_admin_notification_email(request))
    return request


async def update_request(
    conn: sqlite3.Connection,
    request_id: str,
    changes: dict,
    calendar=None,
    graph=None,
) -> tuple[dict, CalendarSyncResult | None]:
    """
    Apply an edit or a review decision and reconcile the calendar.

    Reviewer fields are stamped only when the status first leaves Pending.
    Returns the stored request and the reconciliation result (None when no
    calendar-relevant field changed or no calendar client was given).

    Raises:
        RequestNotFoundError: unknown request_id
        ValueError: invalid dates or non-editable fields
    """
    current = get_request(conn, request_id)
    if current is None:
        raise RequestNotFoundError(request_id)

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

    updates = {k: v for k, v in changes.items() if k not in REVIEWER_FIELDS}
    updates.update(normalize_fields(changes))

    old_status = normalize_status(current.get("status"))
    new_status = normalize_status(updates.get("status", current.get("status")))
    status_changed = new_status is not old_status

    if status_changed and old_status is VacationStatus.PENDING and not current.get("reviewed_at"):
        updates["reviewed_at"] = utc_now_iso()
        for key in REVIEWER_FIELDS:
            if changes.get(key) is not None:
                updates[key] = changes[key]
    elif changes.get("admin_comment") is not None:
        updates["admin_comment"] = changes["admin_comment"]

    merged = {**current, **updates}
    if "is_half_day" in updates:
        half_day_type = None
        if merged["is_half_day"]:
            half_day_type = merged.get("half_day_type") or HalfDayType.MORNING.value
        updates["half_day_type"] = merged["half_day_type"] = half_day_type
    validate_request_dates(merged)

    update_request_fields(conn, request_id, updates)
    stored = get_request(conn, request_id)
    if status_changed:
        logger.info("Request %s moved from %s to %s", request_id, old_status.value, new_status.value)

    sync = None
    if calendar is not None and CALENDAR_FIELDS & set(updates):
        sync = await reconcile_request(conn, calendar, stored)
        stored = get_request(conn, request_id)

    if status_changed and new_status is not VacationStatus.PENDING and stored.get("user_email"):
        await _notify(graph, [stored["user_email"]], build_decision_email(stored))

    return stored, sync


async def review_request(
    conn: sqlite3.Connection,
    request_id: str,
    status,
    reviewed_by: str | None = None,
    reviewer_email: str | None = None,
    admin_comment: str | None = None,
    calendar=None,
    graph=None,
) -> tuple[dict, CalendarSyncResult | None]:
    """Approve or deny a request (any status label is normalized)."""
    changes = {
        "status": status,
        "reviewed_by": reviewed_by,
        "reviewer_email": reviewer_email,
        "admin_comment": admin_comment,
    }
    return await update_request(
        conn, request_id, {k: v for k, v in changes.items() if v is not None}, calendar, graph
    )


async def delete_vacation_request(conn: sqlite3.Connection, request_id: str, calendar=None) -> CalendarSyncResult | None:
    """
    Remove the request's calendar event, then the request itself.

    The row is kept when the event could not be deleted, so the deletion can
    be retried without orphaning the event.

    Raises:
        RequestNotFoundError: unknown request_id
    """
    request = get_request(conn, request_id)
    if request is None:
        raise RequestNotFoundError(request_id)

    sync = None
    if calendar is not None and request.get("calendar_event_id"):
        sync = await delete_event_for_request(conn, calendar, request)
        if not sync.success:
            logger.warning("Keeping request %s: calendar event could not be deleted", request_id)
            return sync

    delete_request(conn, request_id)
    logger.info("Deleted vacation request %s", request_id)
    return sync


# =============================================================================
# MAINTENANCE
# =============================================================================

# Legacy export keys -> column names
LEGACY_FIELD_MAP = {
    "id": "id",
    "userName": "user_name",
    "userEmail": "user_email",
    "company": "company",
    "startDate": "start_date",
    "endDate": "end_date",
    "type": "type",
    "status": "status",
    "isHalfDay": "is_half_day",
    "halfDayType": "half_day_type",
    "durationDays": "duration_days",
    "reason": "reason",
    "calendarSyncedAt": "calendar_synced_at",
    "calendarSyncError": "calendar_sync_error",
    "reviewedBy": "reviewed_by",
    "reviewerEmail": "reviewer_email",
    "reviewedAt": "reviewed_at",
    "adminComment": "admin_comment",
    "lastRemindedAt": "last_reminded_at",
    "createdAt": "created_at",
}
# Historical names for the calendar linkage, first non-empty wins
LEGACY_EVENT_ID_KEYS = ("calendarEventId", "googleCalendarEventId", "googleEventId")

TEST_USER_NAMES = ["John Smith", "Mike Wilson", "Jane Doe"]
TEST_EMAIL_DOMAINS = ["@example.com", "@test.com", "@mock.com"]


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)  # (id, error)


def legacy_record_to_fields(record: dict) -> dict:
    """
    Map one exported record onto request columns.

    The legacy event id aliases collapse into calendar_event_id; status and
    type are normalized. A linked event keeps its current dates as the
    synced dates.
    """
    fields = {column: record[key] for key, column in LEGACY_FIELD_MAP.items() if record.get(key) is not None}
    for key in ("start_date", "end_date", "reviewed_at", "created_at", "calendar_synced_at", "last_reminded_at"):
        if key in fields:
            fields[key] = str(fields[key])
    for key in ("start_date", "end_date"):
        if key in fields:
            fields[key] = fields[key][:10]
    fields.setdefault("end_date", fields.get("start_date"))

    event_id = next((record[k] for k in LEGACY_EVENT_ID_KEYS if record.get(k)), None)
    if event_id:
        fields["calendar_event_id"] = str(event_id)
        fields["calendar_synced_start"] = fields.get("start_date")
        fields["calendar_synced_end"] = fields.get("end_date")
        fields["calendar_synced_window"] = event_window(fields)

    fields.update(normalize_fields({"status": fields.get("status") or "", "type": fields.get("type") or ""}))
    return fields


def import_legacy_requests(conn: sqlite3.Connection, records: list[dict], dry_run: bool = False) -> ImportReport:
    """Insert exported records; ids already present are skipped."""
    report = ImportReport()
    for record in records:
        record_id = str(record.get("id") or "")
        if record_id and get_request(conn, record_id):
            report.skipped += 1
            continue
        try:
            fields = legacy_record_to_fields(record)
            validate_request_dates(fields)
            if not dry_run:
                insert_request(conn, fields)
        except (ValueError, sqlite3.Error) as e:
            report.errors.append((record_id or "?", str(e)))
            continue
        report.imported += 1
    return report


def canonical_field_updates(requests: list[dict]) -> list[tuple[str, dict]]:
    """(id, fields) for every request whose stored status or type is not canonical."""
    updates = []
    for request in requests:
        canonical = normalize_fields({"status": request.get("status") or "", "type": request.get("type") or ""})
        changed = {k: v for k, v in canonical.items() if request.get(k) != v}
        if changed:
            updates.append((request["id"], changed))
    return updates


def backfill_canonical_fields(conn: sqlite3.Connection, dry_run: bool = False) -> tuple[int, int]:
    """
    Rewrite stored status/type labels to their canonical form.

    Idempotent: a second run finds nothing to change. Returns
    (requests scanned, requests updated).
    """
    requests = list_requests(conn)
    updates = canonical_field_updates(requests)
    if updates and not dry_run:
        batch_update(conn, updates)
    return len(requests), len(updates)


def is_test_request(request: dict, names: list[str] = TEST_USER_NAMES, domains: list[str] = TEST_EMAIL_DOMAINS) -> bool:
    email = (request.get("user_email") or "").lower()
    return request.get("user_name") in names or any(email.endswith(d) for d in domains)


def find_test_requests(conn: sqlite3.Connection, pattern: str | None = None) -> list[dict]:
    """Requests from known test users, or whose name/email contains pattern."""
    if pattern:
        needle = pattern.lower()
        return [
            r for r in list_requests(conn)
            if needle in (r.get("user_name") or "").lower() or needle in (r.get("user_email") or "").lower()
        ]
    return [r for r in list_requests(conn) if is_test_request(r)]
