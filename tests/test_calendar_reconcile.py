"""Tests for calendar reconciliation."""

from datetime import date

import pytest

from core.calendar_client import CalendarPermissionError
from core.database import get_request, update_request_fields
from services.calendar import (
    SyncState,
    build_event_body,
    build_event_times,
    ical_uid_for,
    list_vacation_events,
    parse_calendar_event,
    reconcile_recent_requests,
    reconcile_request,
)


@pytest.fixture
def approved(make_request):
    return make_request(status="Approved")


class TestEventBody:
    def test_all_day_end_is_exclusive(self, approved):
        start, end = build_event_times(approved)
        assert start == {"date": "2025-03-10"}
        assert end == {"date": "2025-03-15"}

    def test_morning_half_day_window(self, sample_request):
        request = {**sample_request, "id": "r1", "end_date": "2025-03-10", "is_half_day": True, "half_day_type": "morning"}
        start, end = build_event_times(request)
        assert start["dateTime"] == "2025-03-10T09:00:00+01:00"
        assert end["dateTime"] == "2025-03-10T13:00:00+01:00"
        assert start["timeZone"] == "Europe/Monaco"

    def test_afternoon_half_day_window_in_summer_time(self, sample_request):
        request = {**sample_request, "id": "r1", "start_date": "2025-07-01", "end_date": "2025-07-01",
                   "is_half_day": True, "half_day_type": "afternoon"}
        start, end = build_event_times(request)
        assert start["dateTime"] == "2025-07-01T14:00:00+02:00"
        assert end["dateTime"] == "2025-07-01T18:00:00+02:00"

    def test_identity_and_presentation(self, approved):
        body = build_event_body(approved)
        assert body["iCalUID"] == ical_uid_for(approved["id"]) == f"vacation-{approved['id']}@stars.mc"
        assert body["extendedProperties"]["private"]["requestId"] == approved["id"]
        assert body["summary"] == "Alice Martin - Stars MC"
        assert body["colorId"] == "1"
        assert body["attendees"] == [{"email": "alice@stars.mc", "responseStatus": "accepted"}]
        assert "Duration: 5 days" in body["description"]

    def test_read_back_reverses_exclusive_end(self, approved):
        event = {**build_event_body(approved), "id": "evt1"}
        info = parse_calendar_event(event)
        assert info["start_date"] == "2025-03-10"
        assert info["end_date"] == "2025-03-14"
        assert info["request_id"] == approved["id"]
        assert info["all_day"] is True


@pytest.mark.asyncio
async def test_approval_creates_and_links(conn, calendar, approved):
    result = await reconcile_request(conn, calendar, approved)

    assert result.success
    assert result.action == "created"
    assert result.state is SyncState.EVENT_LINKED
    stored = get_request(conn, approved["id"])
    assert stored["calendar_event_id"] == result.event_id
    assert stored["calendar_synced_start"] == "2025-03-10"
    assert stored["calendar_synced_end"] == "2025-03-14"
    assert stored["calendar_synced_window"] == "all-day"
    assert stored["calendar_synced_at"]
    assert stored["calendar_sync_error"] is None


@pytest.mark.asyncio
async def test_reconcile_is_idempotent(conn, calendar, approved):
    first = await reconcile_request(conn, calendar, approved)
    second = await reconcile_request(conn, calendar, get_request(conn, approved["id"]))

    assert second.success
    assert second.action == "none"
    assert second.event_id == first.event_id
    assert len(calendar.live_events()) == 1


@pytest.mark.asyncio
async def test_pending_without_event_is_noop(conn, calendar, make_request):
    request = make_request()
    result = await reconcile_request(conn, calendar, request)

    assert result.success
    assert result.state is SyncState.NO_EVENT
    assert calendar.calls == []


@pytest.mark.asyncio
async def test_denial_deletes_and_clears(conn, calendar, approved):
    await reconcile_request(conn, calendar, approved)
    update_request_fields(conn, approved["id"], {"status": "Denied"})

    result = await reconcile_request(conn, calendar, get_request(conn, approved["id"]))

    assert result.success
    assert result.action == "deleted"
    stored = get_request(conn, approved["id"])
    assert stored["calendar_event_id"] is None
    assert stored["calendar_synced_start"] is None
    assert calendar.live_events() == []

    deletes_before = [c for c in calendar.calls if c[0] == "delete_event"]
    again = await reconcile_request(conn, calendar, stored)

    assert again.success
    assert again.state is SyncState.NO_EVENT
    assert again.action == "none"
    assert len(deletes_before) == 1
    assert [c for c in calendar.calls if c[0] == "delete_event"] == deletes_before


@pytest.mark.asyncio
async def test_delete_of_missing_event_counts_as_gone(conn, calendar, approved):
    await reconcile_request(conn, calendar, approved)
    event_id = get_request(conn, approved["id"])["calendar_event_id"]
    calendar.forget(event_id)
    update_request_fields(conn, approved["id"], {"status": "Denied"})

    result = await reconcile_request(conn, calendar, get_request(conn, approved["id"]))

    assert result.success
    assert get_request(conn, approved["id"])["calendar_event_id"] is None


@pytest.mark.asyncio
async def test_reapproval_adopts_cancelled_event(conn, calendar, approved):
    first = await reconcile_request(conn, calendar, approved)
    update_request_fields(conn, approved["id"], {"status": "Denied"})
    await reconcile_request(conn, calendar, approved)
    update_request_fields(conn, approved["id"], {"status": "Approved"})

    result = await reconcile_request(conn, calendar, approved)

    assert result.success
    assert result.event_id == first.event_id
    assert len(calendar.events) == 1
    assert calendar.events[first.event_id]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_stale_event_id_self_heals(conn, calendar, approved):
    update_request_fields(conn, approved["id"], {
        "calendar_event_id": "gone123",
        "calendar_synced_start": approved["start_date"],
        "calendar_synced_end": approved["end_date"],
    })

    result = await reconcile_request(conn, calendar, approved)

    assert result.success
    assert result.action == "recreated"
    assert result.event_id != "gone123"
    assert get_request(conn, approved["id"])["calendar_event_id"] == result.event_id
    assert len(calendar.live_events()) == 1


@pytest.mark.asyncio
async def test_date_change_patches_event(conn, calendar, approved):
    first = await reconcile_request(conn, calendar, approved)
    update_request_fields(conn, approved["id"], {"end_date": "2025-03-20"})

    result = await reconcile_request(conn, calendar, approved)

    assert result.action == "updated"
    assert result.event_id == first.event_id
    assert calendar.events[first.event_id]["end"]["date"] == "2025-03-21"
    assert get_request(conn, approved["id"])["calendar_synced_end"] == "2025-03-20"


@pytest.mark.asyncio
async def test_failed_patch_falls_back_to_create(conn, calendar, approved, calendar_error):
    await reconcile_request(conn, calendar, approved)
    update_request_fields(conn, approved["id"], {"end_date": "2025-03-20"})
    calendar.failures["patch_event"] = calendar_error
    calendar.events.clear()

    result = await reconcile_request(conn, calendar, approved)

    assert result.success
    assert result.action == "recreated"
    assert get_request(conn, approved["id"])["calendar_synced_end"] == "2025-03-20"


@pytest.mark.asyncio
async def test_probe_error_fails_open_without_duplicate(conn, calendar, approved, calendar_error):
    first = await reconcile_request(conn, calendar, approved)
    calendar.failures["get_event"] = calendar_error

    result = await reconcile_request(conn, calendar, approved)

    assert result.success
    assert result.event_id == first.event_id
    assert len(calendar.events) == 1


@pytest.mark.asyncio
async def test_create_failure_is_recorded(conn, calendar, approved):
    calendar.failures["create_event"] = CalendarPermissionError(
        "Create event: permission denied",
        status_code=403,
        calendar_id=calendar.calendar_id,
        expected_identity="expected@project.iam.gserviceaccount.com",
        actual_identity=calendar.identity,
    )

    result = await reconcile_request(conn, calendar, approved)

    assert not result.success
    assert result.action == "failed"
    stored = get_request(conn, approved["id"])
    assert stored["calendar_event_id"] is None
    assert "expected@project.iam.gserviceaccount.com" in stored["calendar_sync_error"]
    assert calendar.identity in stored["calendar_sync_error"]


@pytest.mark.asyncio
async def test_list_vacation_events_skips_cancelled(conn, calendar, make_request):
    kept = make_request(status="Approved")
    dropped = make_request(status="Approved", user_name="Bob")
    await reconcile_request(conn, calendar, kept)
    await reconcile_request(conn, calendar, dropped)
    update_request_fields(conn, dropped["id"], {"status": "Denied"})
    await reconcile_request(conn, calendar, dropped)

    events = await list_vacation_events(calendar, "2025-03-01", "2025-03-31")

    assert [e["request_id"] for e in events] == [kept["id"]]


@pytest.mark.asyncio
async def test_bulk_reconcile_counts_and_continues(conn, calendar, make_request):
    make_request(status="Approved", start_date="2025-03-01", end_date="2025-03-02")
    make_request(status="validated", start_date="2025-03-05", end_date="2025-03-06")
    make_request(status="Approved", start_date="2024-01-01", end_date="2024-01-02")
    make_request(status="Pending", start_date="2025-03-05", end_date="2025-03-06")

    report = await reconcile_recent_requests(conn, calendar, days=90, today=date(2025, 4, 1), delay_seconds=0)

    assert report.total_approved == 2
    assert report.created == 2
    assert report.failed == 0
    assert len(calendar.live_events()) == 2


@pytest.mark.asyncio
async def test_bulk_reconcile_dry_run_writes_nothing(conn, calendar, make_request):
    make_request(status="Approved")
    report = await reconcile_recent_requests(conn, calendar, dry_run=True, today=date(2025, 4, 1))

    assert report.created == 1
    assert calendar.calls == []
