"""
Pytest configuration and shared fixtures.
"""

import copy
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.calendar_client import CalendarError, CalendarNotFoundError  # noqa: E402
from core.database import get_connection, init_schema, insert_request  # noqa: E402


class FakeCalendar:
    """
    In-memory stand-in for GoogleCalendarClient.

    Deleted events stay listed as cancelled (like the real API with
    showDeleted); forget() drops an event entirely to simulate an id that
    no longer exists. Set failures[method] to an exception to make that
    method raise.
    """

    calendar_id = "vacations@group.calendar.google.com"
    identity = "sync@project.iam.gserviceaccount.com"

    def __init__(self):
        self.events: dict[str, dict] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.failures: dict[str, Exception] = {}
        self._next_id = 1

    def _check(self, method: str, event_id: str | None = None):
        self.calls.append((method, event_id))
        if method in self.failures:
            raise self.failures[method]

    def _get(self, event_id: str) -> dict:
        if event_id not in self.events:
            raise CalendarNotFoundError(f"not found: {event_id}", status_code=404, calendar_id=self.calendar_id)
        return self.events[event_id]

    def forget(self, event_id: str):
        self.events.pop(event_id, None)

    def live_events(self) -> list[dict]:
        return [e for e in self.events.values() if e.get("status") != "cancelled"]

    async def create_event(self, body: dict) -> dict:
        self._check("create_event")
        event_id = f"evt{self._next_id}"
        self._next_id += 1
        self.events[event_id] = {**copy.deepcopy(body), "id": event_id, "status": "confirmed"}
        return copy.deepcopy(self.events[event_id])

    async def patch_event(self, event_id: str, body: dict) -> dict:
        self._check("patch_event", event_id)
        event = self._get(event_id)
        event.update(copy.deepcopy(body))
        return copy.deepcopy(event)

    async def delete_event(self, event_id: str):
        self._check("delete_event", event_id)
        event = self._get(event_id)
        if event.get("status") == "cancelled":
            raise CalendarNotFoundError(f"already deleted: {event_id}", status_code=410)
        event["status"] = "cancelled"

    async def get_event(self, event_id: str) -> dict:
        self._check("get_event", event_id)
        return copy.deepcopy(self._get(event_id))

    async def event_exists(self, event_id: str) -> bool:
        try:
            event = await self.get_event(event_id)
        except CalendarNotFoundError:
            return False
        return event.get("status") != "cancelled"

    async def find_event_by_ical_uid(self, ical_uid: str, show_deleted: bool = True) -> dict | None:
        self._check("find_event_by_ical_uid")
        for event in self.events.values():
            if event.get("iCalUID") != ical_uid:
                continue
            if event.get("status") == "cancelled" and not show_deleted:
                continue
            return copy.deepcopy(event)
        return None

    async def list_events(self, time_min: str, time_max: str, private_property: str | None = None) -> list[dict]:
        self._check("list_events")
        return [copy.deepcopy(e) for e in self.events.values()]


class FakeGraph:
    """Records Graph sendMail calls (graph.users.by_user_id(x).send_mail.post(body))."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.senders = []
        self.fail = fail

    @property
    def users(self):
        return self

    def by_user_id(self, user_id: str):
        self.senders.append(user_id)
        return self

    @property
    def send_mail(self):
        return self

    async def post(self, body):
        if self.fail:
            raise RuntimeError("Graph sendMail refused")
        self.sent.append(body)

    def subjects(self) -> list[str]:
        return [body.message.subject for body in self.sent]

    def recipients(self, index: int = -1) -> list[str]:
        return [r.email_address.address for r in self.sent[index].message.to_recipients]


@pytest.fixture
def conn():
    """In-memory database with the full schema."""
    connection = get_connection(":memory:")
    init_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def failing_graph():
    return FakeGraph(fail=True)


@pytest.fixture
def calendar_error():
    return CalendarError("HTTP 500: backend error", status_code=500)


@pytest.fixture
def sample_request():
    """Sample vacation request fields for testing."""
    return {
        "user_name": "Alice Martin",
        "user_email": "alice@stars.mc",
        "company": "STARS_MC",
        "start_date": "2025-03-10",
        "end_date": "2025-03-14",
        "type": "Paid Vacation",
        "status": "Pending",
        "is_half_day": False,
        "half_day_type": None,
        "reason": "Family trip",
    }


@pytest.fixture
def make_request(conn, sample_request):
    """Insert a request built from sample_request with overrides."""

    def _make(**overrides) -> dict:
        return insert_request(conn, {**sample_request, **overrides})

    return _make
