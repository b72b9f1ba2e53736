"""
Data models for vacation requests, conflicts and report rows.

Records travel as plain dicts (TypedDict for type hints); the canonical
status and type labels are closed enums produced by core.normalization.
"""

from enum import Enum
from typing import TypedDict


class VacationStatus(str, Enum):
    """Canonical request status."""

    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"


class VacationType(str, Enum):
    """Canonical request type."""

    PAID_VACATION = "Paid Vacation"
    UNPAID_LEAVE = "Unpaid Leave"
    SICK_LEAVE = "Sick Leave"
    OTHER = "Other"


class HalfDayType(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class VacationRequest(TypedDict, total=False):
    """Persisted vacation request record."""
    id: str
    user_name: str
    user_email: str
    company: str
    start_date: str
    end_date: str
    type: str
    status: str
    is_half_day: bool
    half_day_type: str | None
    duration_days: float | None
    reason: str | None
    calendar_event_id: str | None
    calendar_synced_at: str | None
    calendar_sync_error: str | None
    calendar_synced_start: str | None
    calendar_synced_end: str | None
    calendar_synced_window: str | None  # all-day, morning or afternoon
    reviewed_by: str | None
    reviewer_email: str | None
    reviewed_at: str | None
    admin_comment: str | None
    last_reminded_at: str | None
    created_at: str


class ConflictingRequest(TypedDict):
    id: str
    user_name: str
    company: str
    start_date: str
    end_date: str
    status: str


class ConflictEvent(TypedDict):
    """Same-company date overlap found for a request."""
    type: str
    severity: str
    details: str
    conflicting_requests: list[ConflictingRequest]


class VacationRow(TypedDict):
    """One line of the monthly summary (one per request, never merged)."""
    id: str
    employee: str
    company: str
    type: str
    status: str
    start_date: str
    end_date: str
    days: float


class CalendarEventInfo(TypedDict):
    """Calendar event read back for display (inclusive end date)."""
    event_id: str
    request_id: str | None
    summary: str
    start_date: str
    end_date: str
    all_day: bool
