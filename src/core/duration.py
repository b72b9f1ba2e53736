"""
Vacation duration calculation.

Explicit and half-day durations are returned untouched (0.5, 1.5, ...);
only the date-range fallback uses whole-day arithmetic.
"""

import logging
from datetime import date

from core.normalization import normalize_status
from models.vacations import VacationStatus

logger = logging.getLogger(__name__)


class DurationValidationError(ValueError):
    """A reviewed or approved request resolves to a non-positive duration."""


def parse_iso_date(value) -> date | None:
    """Parse 'YYYY-MM-DD' (a trailing time part is ignored). Returns None if invalid."""
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def days_in_range(start_date, end_date=None) -> int:
    """Inclusive day count; same-day is 1, never less than 1 for a valid start."""
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date or start_date)
    if start is None or end is None:
        logger.warning("Invalid date range: %s to %s", start_date, end_date)
        return 0
    days = (end - start).days + 1
    return days if days > 0 else 1


def calculate_duration(
    duration_days=None,
    is_half_day=None,
    half_day_type=None,
    start_date=None,
    end_date=None,
) -> float:
    """
    Calculate a vacation's length in days.

    Priority:
    1. duration_days when it is a number > 0 (returned verbatim)
    2. is_half_day is True -> 0.5
    3. inclusive day count between start_date and end_date
    4. 0 when there is no start date
    """
    if isinstance(duration_days, (int, float)) and not isinstance(duration_days, bool):
        if duration_days > 0:
            return duration_days

    if is_half_day is True:
        return 0.5

    if start_date:
        return days_in_range(start_date, end_date)

    return 0


def calculate_request_duration(request: dict) -> float:
    """Duration of a stored request record."""
    return calculate_duration(
        duration_days=request.get("duration_days"),
        is_half_day=request.get("is_half_day"),
        half_day_type=request.get("half_day_type"),
        start_date=request.get("start_date"),
        end_date=request.get("end_date"),
    )


def validate_duration(request: dict) -> float:
    """
    Return the duration of a reviewed/approved request, raising if it is not positive.

    Raises:
        DurationValidationError: duration resolves to 0 for an approved or reviewed request
    """
    duration = calculate_request_duration(request)
    reviewed = bool(request.get("reviewed_at"))
    approved = normalize_status(request.get("status")) is VacationStatus.APPROVED

    if duration <= 0 and (approved or reviewed):
        request_id = request.get("id")
        message = (
            f"Vacation {request_id} computes to 0 days "
            f"(duration_days={request.get('duration_days')}, "
            f"is_half_day={request.get('is_half_day')}, "
            f"start_date={request.get('start_date')}, end_date={request.get('end_date')})"
        )
        logger.error(message)
        raise DurationValidationError(message)

    return duration


def sum_durations(durations) -> float:
    """Plain addition; fractional days are preserved."""
    total = 0.0
    for days in durations:
        total += days or 0
    return total


def format_duration(days: float) -> str:
    """Format as '0.5 day', '1 day', '1.5 days', '3 days'."""
    if days == 0.5:
        return "0.5 day"
    if days == 1:
        return "1 day"
    if days % 1 != 0:
        return f"{days:.1f} days"
    return f"{int(days)} days"
