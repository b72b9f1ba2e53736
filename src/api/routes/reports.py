"""Monthly summary and CSV export endpoints."""

from dataclasses import asdict
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response

from api.dependencies import get_db, require_graph, verify_api_key
from api.logging import logged_request
from api.models.requests import MonthlySummaryRequest
from api.models.responses import ErrorCodes, MonthlySummaryResponse, api_error
from core.config import APP_TIMEZONE
from core.duration import DurationValidationError
from services.reports import (
    TotalsMismatchError,
    calculate_totals,
    get_approved_for_month,
    get_month_range,
    get_vacation_analytics,
    get_reviewed_requests_for_month,
    process_monthly_summary,
    reviewed_requests_to_csv,
    rows_to_csv,
)

router = APIRouter(prefix="/v1/reports", dependencies=[Depends(verify_api_key)])

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def _report_error(e: ValueError):
    return api_error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Monthly summary could not be computed",
        ErrorCodes.VALIDATION_ERROR,
        [str(e)],
    )


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/monthly-summary", response_model=MonthlySummaryResponse)
async def send_monthly_summary(
    request: Request,
    body: MonthlySummaryRequest | None = None,
    conn=Depends(get_db),
    graph=Depends(require_graph),
):
    """Email the validated-vacation summary (current month unless one is given)."""
    with logged_request(conn, request) as request_log:
        try:
            result = await process_monthly_summary(conn, graph, month=body.month if body else None)
        except (DurationValidationError, TotalsMismatchError) as e:
            raise _report_error(e)

        if not result.email_sent:
            request_log.details.append(("warning", f"Email not sent: {result.email_error}"))
        return MonthlySummaryResponse(**asdict(result))


@router.get("/monthly.csv")
async def monthly_csv(
    request: Request,
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    conn=Depends(get_db),
):
    """One CSV line per validated request overlapping the month."""
    with logged_request(conn, request):
        month_range = get_month_range(month=month)
        try:
            rows = get_approved_for_month(conn, month_range.start, month_range.end)
            calculate_totals(rows)
        except (DurationValidationError, TotalsMismatchError) as e:
            raise _report_error(e)
        return _csv_response(rows_to_csv(rows), f"vacations_{month_range.label}.csv")


@router.get("/reviewed.csv")
async def reviewed_csv(
    request: Request,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    conn=Depends(get_db),
):
    """Requests reviewed during the month (defaults to the current month)."""
    with logged_request(conn, request):
        today = datetime.now(ZoneInfo(APP_TIMEZONE)).date()
        year = year or today.year
        month = month or today.month
        reviewed = get_reviewed_requests_for_month(conn, year, month)
        return _csv_response(
            reviewed_requests_to_csv(reviewed), f"vacation_requests_{year}-{month:02d}.csv"
        )


@router.get("/analytics")
async def vacation_analytics(
    request: Request,
    start: str | None = Query(default=None, description="YYYY-MM-DD"),
    end: str | None = Query(default=None, description="YYYY-MM-DD"),
    conn=Depends(get_db),
):
    """Approved vacation totals by person, type and company, optionally for a period."""
    with logged_request(conn, request):
        try:
            analytics = get_vacation_analytics(conn, start=start, end=end)
        except ValueError:
            raise api_error(
                status.HTTP_400_BAD_REQUEST,
                "Invalid date",
                ErrorCodes.INVALID_REQUEST,
                ["Expected format: YYYY-MM-DD"],
            )
        return asdict(analytics)
