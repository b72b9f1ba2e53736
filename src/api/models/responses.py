"""Pydantic response models for API endpoints."""

from fastapi import HTTPException
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    calendar_configured: bool
    email_configured: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class CalendarSyncResponse(BaseModel):
    """Outcome of a calendar reconciliation."""

    request_id: str
    success: bool
    state: str  # NoEvent, EventLinked, EventStale
    action: str
    event_id: str | None = None
    error: str | None = None


class MonthlySummaryResponse(BaseModel):
    ok: bool
    month: str
    display_label: str
    validated: int
    total_days: float
    start: str
    end: str
    recipients: list[str]
    email_sent: bool
    email_error: str | None = None


class ReminderResponse(BaseModel):
    success: bool
    total_pending: int
    included: int
    excluded: int
    notified: int
    errors: list[str] = []
    skipped_reason: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CALENDAR_ERROR = "CALENDAR_ERROR"
    EMAIL_ERROR = "EMAIL_ERROR"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def api_error(status_code: int, error: str, code: str, details: list[str] | None = None) -> HTTPException:
    """HTTPException carrying an ErrorResponse-shaped detail."""
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error=error, code=code, details=details or []).model_dump(),
    )
