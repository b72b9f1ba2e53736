"""API Pydantic models."""

from .requests import MonthlySummaryRequest, VacationRequestCreate, VacationRequestUpdate
from .responses import (
    CalendarSyncResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    MonthlySummaryResponse,
    ReminderResponse,
    api_error,
)

__all__ = [
    "HealthResponse",
    "CalendarSyncResponse",
    "MonthlySummaryResponse",
    "ReminderResponse",
    "ErrorResponse",
    "ErrorCodes",
    "api_error",
    "VacationRequestCreate",
    "VacationRequestUpdate",
    "MonthlySummaryRequest",
]
