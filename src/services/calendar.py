"""
Mirroring of vacation requests onto the shared Google Calendar.

reconcile_request() decides, for one request, whether its calendar event
must be created, updated, deleted or repaired, and records the outcome on
the request. Calendar and database failures come back as a failed
CalendarSyncResult instead of an exception.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from zoneinfo import ZoneInfo

from core.calendar_client import CalendarError, CalendarNotFoundError
from core.config import (
    APP_TIMEZONE,
    COMPANY_COLOR_IDS,
    COMPANY_DISPLAY_NAMES,
    DEFAULT_COLOR_ID,
    ICAL_UID_DOMAIN,
    MIDDAY_END,
    MIDDAY_START,
    SYNC_DELAY_SECONDS,
    WORKDAY_END,
    WORKDAY_START,
)
from core.database import (
    CALENDAR_LINK_CLEARED,
    get_request,
    list_requests,
    update_request_fields,
    utc_now_iso,
)
from core.duration import calculate_request_duration, format_duration, parse_iso_date
from core.normalization import normalize_status
from models.vacations import CalendarEventInfo, HalfDayType, VacationStatus

logger = logging.getLogger(__name__)

ALL_DAY = "all-day"


class SyncState(str, Enum):
    NO_EVENT = "NoEvent"
    EVENT_LINKED = "EventLinked"
    EVENT_STALE = "EventStale"


@dataclass
class CalendarSyncResult:
    """Outcome of one reconciliation attempt."""

    success: bool
    state: SyncState
    action: str = "none"  # none, created, updated, recreated, deleted, failed
    event_id: str | None = None
    error: str | None = None


# =============================================================================
# EVENT CONSTRUCTION
# =============================================================================


def ical_uid_for(request_id: str) -> str:
    """Stable event identifier derived from the request id."""
    return f"vacation-{request_id}@{ICAL_UID_DOMAIN}"


def company_display_name(company: str | None) -> str:
    if not company:
        return "Unknown"
    return COMPANY_DISPLAY_NAMES.get(company, company)


def color_id_for_company(company: str | None) -> str:
    return COMPANY_COLOR_IDS.get(company or "", DEFAULT_COLOR_ID)


def add_days(iso_date: str, days: int) -> str:
    return (parse_iso_date(iso_date) + timedelta(days=days)).isoformat()


def _local_datetime(day: date, hhmm: str) -> str:
    hour, minute = map(int, hhmm.split(":"))
    return datetime.combine(day, time(hour, minute), tzinfo=ZoneInfo(APP_TIMEZONE)).isoformat()


def event_window(request: dict) -> str:
    """ALL_DAY, or the half-day period (morning/afternoon) the event covers."""
    if request.get("is_half_day"):
        return request.get("half_day_type") or HalfDayType.MORNING.value
    return ALL_DAY


def build_event_times(request: dict) -> tuple[dict, dict]:
    """
    Start and end boundaries for the calendar event.

    Half days become a timed morning or afternoon window; everything else is
    an all-day event whose end date is exclusive (stored end + 1 day).
    """
    start_date = request["start_date"]
    end_date = request.get("end_date") or start_date
    window = event_window(request)

    if window != ALL_DAY:
        day = parse_iso_date(start_date)
        if window == HalfDayType.MORNING.value:
            hours = (WORKDAY_START, MIDDAY_START)
        else:
            hours = (MIDDAY_END, WORKDAY_END)
        return (
            {"dateTime": _local_datetime(day, hours[0]), "timeZone": APP_TIMEZONE},
            {"dateTime": _local_datetime(day, hours[1]), "timeZone": APP_TIMEZONE},
        )

    return {"date": start_date}, {"date": add_days(end_date, 1)}


def build_event_description(request: dict) -> str:
    duration = calculate_request_duration(request)
    lines = [
        f"Name: {request.get('user_name') or 'Unknown'}",
        f"Company: {company_display_name(request.get('company'))}",
        f"Type: {request.get('type') or 'Other'}",
        f"Dates: {request['start_date']} - {request.get('end_date') or request['start_date']}",
        f"Duration: {format_duration(duration)}",
    ]
    if request.get("is_half_day") and request.get("half_day_type"):
        lines.append(f"Half day: {request['half_day_type']}")
    if request.get("reason"):
        lines.append(f"Reason: {request['reason']}")
    return "\n".join(lines)


def build_event_body(request: dict) -> dict:
    """Google Calendar event resource for an approved request."""
    start, end = build_event_times(request)
    body = {
        "summary": f"{request.get('user_name') or 'Unknown'} - {company_display_name(request.get('company'))}",
        "description": build_event_description(request),
        "start": start,
        "end": end,
        "transparency": "opaque",
        "colorId": color_id_for_company(request.get("company")),
        "iCalUID": ical_uid_for(request["id"]),
        "extendedProperties": {"private": {"requestId": request["id"]}},
    }
    if request.get("user_email"):
        body["attendees"] = [{"email": request["user_email"], "responseStatus": "accepted"}]
    return body


# =============================================================================
# READ BACK
# =============================================================================


def _event_date(boundary: dict) -> date | None:
    if boundary.get("date"):
        return parse_iso_date(boundary["date"])
    if boundary.get("dateTime"):
        moment = datetime.fromisoformat(boundary["dateTime"].replace("Z", "+00:00"))
        return moment.astimezone(ZoneInfo(APP_TIMEZONE)).date()
    return None


def parse_calendar_event(event: dict) -> CalendarEventInfo:
    """Convert a calendar event back to inclusive request dates."""
    start = event.get("start") or {}
    end = event.get("end") or {}
    all_day = bool(start.get("date"))

    start_day = _event_date(start)
    end_day = _event_date(end)
    if all_day and end_day:
        # Exclusive end on the calendar side
        end_day -= timedelta(days=1)

    private = (event.get("extendedProperties") or {}).get("private") or {}
    return {
        "event_id": event.get("id", ""),
        "request_id": private.get("requestId"),
        "summary": event.get("summary") or "",
        "start_date": start_day.isoformat() if start_day else "",
        "end_date": end_day.isoformat() if end_day else "",
        "all_day": all_day,
    }


async def list_vacation_events(calendar, start_date: str, end_date: str) -> list[CalendarEventInfo]:
    """Events overlapping [start_date, end_date], with inclusive end dates."""
    time_min = _local_datetime(parse_iso_date(start_date), "00:00")
    time_max = _local_datetime(parse_iso_date(end_date) + timedelta(days=1), "00:00")
    events = await calendar.list_events(time_min, time_max)
    return [parse_calendar_event(e) for e in events if e.get("status") != "cancelled"]


# =============================================================================
# RECONCILIATION
# =============================================================================


def event_changed(request: dict) -> bool:
    """
    True when the dates or the all-day/half-day window differ from what was
    last written to the event.

    Rows linked before the window was recorded (no calendar_synced_window)
    are compared on dates only.
    """
    synced_window = request.get("calendar_synced_window")
    return (
        request.get("calendar_synced_start") != request.get("start_date")
        or request.get("calendar_synced_end") != request.get("end_date")
        or (synced_window is not None and synced_window != event_window(request))
    )


async def probe_linkage(calendar, request: dict) -> SyncState:
    """
    Classify the request's linkage against the calendar.

    Raises CalendarError when the probe itself fails for a reason other than
    not-found.
    """
    event_id = request.get("calendar_event_id")
    if not event_id:
        return SyncState.NO_EVENT
    if await calendar.event_exists(event_id):
        return SyncState.EVENT_LINKED
    return SyncState.EVENT_STALE


def _linked_fields(request: dict, event_id: str) -> dict:
    return {
        "calendar_event_id": event_id,
        "calendar_synced_start": request["start_date"],
        "calendar_synced_end": request.get("end_date") or request["start_date"],
        "calendar_synced_window": event_window(request),
        "calendar_synced_at": utc_now_iso(),
        "calendar_sync_error": None,
    }


async def create_event_for_request(
    conn: sqlite3.Connection, calendar, request: dict, action: str = "created"
) -> CalendarSyncResult:
    """
    Create (or adopt) the event for an approved request and store its id.

    An event already carrying this request's iCalUID is patched instead of
    inserting a duplicate.
    """
    body = build_event_body(request)
    try:
        existing = await calendar.find_event_by_ical_uid(body["iCalUID"])
        if existing:
            event = await calendar.patch_event(existing["id"], {**body, "status": "confirmed"})
            logger.info("Adopted existing event %s for request %s", existing["id"], request["id"])
        else:
            event = await calendar.create_event(body)
    except CalendarError as e:
        logger.error("Calendar event creation failed for request %s: %s", request["id"], e)
        update_request_fields(
            conn,
            request["id"],
            {"calendar_sync_error": str(e), "calendar_synced_at": utc_now_iso()},
        )
        return CalendarSyncResult(
            success=False, state=SyncState.NO_EVENT, action="failed", error=str(e)
        )

    event_id = event["id"]
    update_request_fields(conn, request["id"], _linked_fields(request, event_id))
    logger.info("Linked request %s to calendar event %s (%s)", request["id"], event_id, action)
    return CalendarSyncResult(
        success=True, state=SyncState.EVENT_LINKED, action=action, event_id=event_id
    )


async def delete_event_for_request(
    conn: sqlite3.Connection, calendar, request: dict
) -> CalendarSyncResult:
    """Delete the linked event (if any) and clear the linkage fields."""
    event_id = request.get("calendar_event_id")
    if not event_id:
        return CalendarSyncResult(success=True, state=SyncState.NO_EVENT)

    try:
        await calendar.delete_event(event_id)
    except CalendarNotFoundError:
        logger.info("Event %s for request %s was already gone", event_id, request["id"])
    except CalendarError as e:
        logger.error("Calendar event deletion failed for request %s: %s", request["id"], e)
        update_request_fields(
            conn,
            request["id"],
            {"calendar_sync_error": str(e), "calendar_synced_at": utc_now_iso()},
        )
        return CalendarSyncResult(
            success=False, state=SyncState.EVENT_LINKED, action="failed",
            event_id=event_id, error=str(e),
        )

    update_request_fields(
        conn,
        request["id"],
        {**CALENDAR_LINK_CLEARED, "calendar_synced_at": utc_now_iso(), "calendar_sync_error": None},
    )
    return CalendarSyncResult(success=True, state=SyncState.NO_EVENT, action="deleted")


def _patch_boundary(boundary: dict) -> dict:
    # Null out the other representation when switching between all-day and timed
    if "date" in boundary:
        return {**boundary, "dateTime": None, "timeZone": None}
    return {**boundary, "date": None}


async def _update_event(conn: sqlite3.Connection, calendar, request: dict) -> CalendarSyncResult:
    event_id = request["calendar_event_id"]
    start, end = build_event_times(request)
    try:
        await calendar.patch_event(
            event_id,
            {
                "start": _patch_boundary(start),
                "end": _patch_boundary(end),
                "description": build_event_description(request),
            },
        )
    except CalendarError as e:
        logger.warning(
            "Updating event %s for request %s failed (%s), creating a fresh one",
            event_id, request["id"], e,
        )
        return await create_event_for_request(conn, calendar, request, action="recreated")

    update_request_fields(conn, request["id"], _linked_fields(request, event_id))
    return CalendarSyncResult(
        success=True, state=SyncState.EVENT_LINKED, action="updated", event_id=event_id
    )


async def _verify_event(conn: sqlite3.Connection, calendar, request: dict) -> CalendarSyncResult:
    try:
        state = await probe_linkage(calendar, request)
    except CalendarError as e:
        # Fails open: a duplicate is avoided only by the iCalUID lookup
        logger.warning(
            "Existence probe for event %s (request %s) failed: %s; attempting creation",
            request["calendar_event_id"], request["id"], e,
        )
        return await create_event_for_request(conn, calendar, request)

    if state is SyncState.EVENT_LINKED:
        return CalendarSyncResult(
            success=True, state=SyncState.EVENT_LINKED, event_id=request["calendar_event_id"]
        )

    logger.info(
        "Event %s for request %s not found on calendar, clearing stale id",
        request["calendar_event_id"], request["id"],
    )
    update_request_fields(conn, request["id"], CALENDAR_LINK_CLEARED)
    stale_cleared = {**request, **CALENDAR_LINK_CLEARED}
    return await create_event_for_request(conn, calendar, stale_cleared, action="recreated")


async def reconcile_request(conn: sqlite3.Connection, calendar, request: dict) -> CalendarSyncResult:
    """
    Bring the calendar in line with one request.

    - not approved: delete the linked event, clear linkage
    - approved, unlinked: create the event
    - approved, linked, dates or half-day window changed: update (recreate on failure)
    - approved, linked, unchanged: probe; recreate if stale
    """
    try:
        current = get_request(conn, request["id"]) or request
        status = normalize_status(current.get("status"))

        if status is not VacationStatus.APPROVED:
            return await delete_event_for_request(conn, calendar, current)
        if not current.get("calendar_event_id"):
            return await create_event_for_request(conn, calendar, current)
        if event_changed(current):
            return await _update_event(conn, calendar, current)
        return await _verify_event(conn, calendar, current)

    except (CalendarError, sqlite3.Error) as e:
        logger.exception("Reconciliation failed for request %s", request.get("id"))
        return CalendarSyncResult(
            success=False, state=SyncState.NO_EVENT, action="failed", error=str(e)
        )


# =============================================================================
# BULK RECONCILIATION
# =============================================================================


@dataclass
class ReconciliationReport:
    total_approved: int = 0
    already_synced: int = 0
    created: int = 0
    updated: int = 0
    recreated: int = 0
    failed: int = 0
    errors: list[tuple[str, str, str]] = field(default_factory=list)  # (id, user_name, error)


def _record(report: ReconciliationReport, request: dict, result: CalendarSyncResult):
    if not result.success:
        report.failed += 1
        report.errors.append((request["id"], request.get("user_name") or "Unknown", result.error or "Unknown error"))
    elif result.action == "created":
        report.created += 1
    elif result.action == "updated":
        report.updated += 1
    elif result.action == "recreated":
        report.recreated += 1
    else:
        report.already_synced += 1


async def reconcile_recent_requests(
    conn: sqlite3.Connection,
    calendar,
    days: int = 90,
    dry_run: bool = False,
    today: date | None = None,
    delay_seconds: float = SYNC_DELAY_SECONDS,
) -> ReconciliationReport:
    """
    Reconcile every approved request starting within the last `days` days.

    Requests are processed one at a time with a pause between calendar
    calls; a failure is counted and the loop moves on. In dry-run mode
    nothing is called or written: linked requests count as synced and
    unlinked ones as would-create.
    """
    today = today or datetime.now(ZoneInfo(APP_TIMEZONE)).date()
    threshold = (today - timedelta(days=days)).isoformat()

    approved = [
        r for r in list_requests(conn)
        if normalize_status(r.get("status")) is VacationStatus.APPROVED
        and (r.get("start_date") or "") >= threshold
    ]
    report = ReconciliationReport(total_approved=len(approved))
    logger.info("%d approved requests since %s (dry run: %s)", len(approved), threshold, dry_run)

    for request in approved:
        if dry_run:
            if request.get("calendar_event_id"):
                report.already_synced += 1
            else:
                report.created += 1
            continue

        _record(report, request, await reconcile_request(conn, calendar, request))
        await asyncio.sleep(delay_seconds)

    return report
