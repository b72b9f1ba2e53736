"""API tests against the ASGI app with in-memory database and fake clients."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api import dependencies
from api.dependencies import get_calendar, get_db, get_graph
from api.main import app

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}

NEW_REQUEST = {
    "user_name": "Alice Martin",
    "user_email": "alice@stars.mc",
    "company": "STARS_MC",
    "start_date": "2025-03-10",
    "end_date": "2025-03-14",
    "type": "paid vacation",
}


@pytest_asyncio.fixture
async def client(conn, calendar, graph, monkeypatch):
    monkeypatch.setattr(dependencies, "VACATION_API_KEY", API_KEY)
    app.dependency_overrides[get_db] = lambda: conn
    app.dependency_overrides[get_calendar] = lambda: calendar
    app.dependency_overrides[get_graph] = lambda: graph
    # require_calendar/require_graph read app.state directly
    app.state.calendar = calendar
    app.state.graph = graph

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.calendar = None
    app.state.graph = None


async def _create(client, **overrides) -> dict:
    response = await client.post("/v1/vacation-requests", json={**NEW_REQUEST, **overrides}, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_available"] is True
    assert data["calendar_configured"] is True
    assert data["email_configured"] is True


@pytest.mark.asyncio
async def test_wrong_api_key_is_rejected(client):
    response = await client.get("/v1/vacation-requests", headers={"X-API-Key": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_missing_api_key_is_rejected(client):
    response = await client.get("/v1/vacation-requests")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_stores_pending_and_notifies_admins(client, graph):
    created = await _create(client)

    assert created["status"] == "Pending"
    assert created["type"] == "Paid Vacation"
    assert created["duration"] == 5
    assert created["conflicts"] == []
    assert graph.subjects() == ["New vacation request from Alice Martin"]


@pytest.mark.asyncio
async def test_create_reports_same_company_overlap(client):
    first = await _create(client)
    second = await _create(client, user_name="Bob Martin", user_email="bob@stars.mc", start_date="2025-03-12")

    assert len(second["conflicts"]) == 1
    assert second["conflicts"][0]["conflicting_requests"][0]["id"] == first["id"]


@pytest.mark.asyncio
async def test_create_rejects_end_before_start(client):
    response = await client.post(
        "/v1/vacation-requests",
        json={**NEW_REQUEST, "start_date": "2025-03-14", "end_date": "2025-03-10"},
        headers=HEADERS,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_request_is_404(client):
    response = await client.get("/v1/vacation-requests/missing", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_approval_creates_calendar_event(client, calendar, graph):
    created = await _create(client)

    response = await client.patch(
        f"/v1/vacation-requests/{created['id']}",
        json={"status": "approved", "reviewed_by": "Johnny", "reviewer_email": "johnny@stars.mc"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Approved"
    assert data["reviewed_by"] == "Johnny"
    assert data["calendar_sync"]["success"] is True
    assert data["calendar_sync"]["action"] == "created"
    assert data["calendar_event_id"] == data["calendar_sync"]["event_id"]
    assert len(calendar.live_events()) == 1
    assert graph.subjects()[-1] == "Your vacation request has been approved"


@pytest.mark.asyncio
async def test_manual_sync_is_idempotent(client, calendar):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)

    response = await client.post(f"/v1/sync/request/{created['id']}", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["action"] == "none"
    assert response.json()["state"] == "EventLinked"
    assert len(calendar.live_events()) == 1


@pytest.mark.asyncio
async def test_manual_sync_failure_is_502(client, calendar, calendar_error):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)
    calendar.failures["get_event"] = calendar_error
    calendar.failures["find_event_by_ical_uid"] = calendar_error
    calendar.failures["create_event"] = calendar_error

    response = await client.post(f"/v1/sync/request/{created['id']}", headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert response.json()["error"]


@pytest.mark.asyncio
async def test_delete_removes_event_and_request(client, calendar):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)

    response = await client.delete(f"/v1/vacation-requests/{created['id']}", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["deleted"] is True
    assert calendar.live_events() == []
    missing = await client.get(f"/v1/vacation-requests/{created['id']}", headers=HEADERS)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_conflict_lookup(client):
    await _create(client)

    response = await client.get(
        "/v1/conflicts",
        params={"start": "2025-03-13", "end": "2025-03-20", "company": "STARS_MC"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["count"] == 1


@pytest.mark.asyncio
async def test_conflict_lookup_rejects_bad_date(client):
    response = await client.get("/v1/conflicts", params={"start": "13/03/2025"}, headers=HEADERS)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_monthly_csv(client):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)

    response = await client.get("/v1/reports/monthly.csv", params={"month": "2025-03"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0] == "employee,company,type,status,startDate,endDate,days"
    assert lines[1].startswith("Alice Martin,")


@pytest.mark.asyncio
async def test_analytics(client):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)
    await _create(client, user_name="Bob", user_email="bob@stars.mc")

    response = await client.get(
        "/v1/reports/analytics", params={"start": "2025-03-01", "end": "2025-03-31"}, headers=HEADERS
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_requests"] == 1
    assert data["total_days"] == 5
    assert data["by_person"][0]["user_email"] == "alice@stars.mc"
    assert data["by_type"][0]["name"] == "Paid Vacation"
    assert data["start"] == "2025-03-01"


@pytest.mark.asyncio
async def test_analytics_rejects_bad_date(client):
    response = await client.get("/v1/reports/analytics", params={"end": "31/03/2025"}, headers=HEADERS)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_monthly_summary_email(client, graph):
    created = await _create(client)
    await client.patch(f"/v1/vacation-requests/{created['id']}", json={"status": "Approved"}, headers=HEADERS)

    response = await client.post(
        "/v1/reports/monthly-summary", json={"month": "2025-03"}, headers=HEADERS
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["validated"] == 1
    assert data["total_days"] == 5
    assert graph.subjects()[-1].startswith("Monthly validated vacations summary")


@pytest.mark.asyncio
async def test_pending_reminder(client, graph):
    await _create(client)

    response = await client.post("/v1/reminders/pending", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["included"] == 1
    assert graph.subjects()[-1].startswith("Pending vacation requests - reminder")


@pytest.mark.asyncio
async def test_requests_are_logged(client, conn):
    await client.get("/v1/vacation-requests/missing", headers=HEADERS)

    row = conn.execute("SELECT endpoint, status_code, error_code FROM api_requests").fetchone()
    assert row["endpoint"] == "/v1/vacation-requests/missing"
    assert row["status_code"] == 404
    assert row["error_code"] == "NOT_FOUND"
