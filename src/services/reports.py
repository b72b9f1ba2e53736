"""
Monthly vacation summary: month boundaries, validated rows, totals and
their CSV / HTML / Excel presentations.

Every approved request overlapping the month becomes exactly one row; rows
are never merged per employee, and fractional days (0.5, 1.5) are summed
as-is.
"""

import csv
import io
import logging
import sqlite3
from calendar import monthrange
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from html import escape
from pathlib import Path
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.styles import Font

from core.config import (
    ACCOUNTING_EMAILS,
    APP_TIMEZONE,
    REVIEWED_CSV_HEADERS,
    SUMMARY_CSV_HEADERS,
    TOTALS_TOLERANCE,
)
from core.database import list_requests, list_requests_by_status
from core.duration import (
    calculate_request_duration,
    format_duration,
    parse_iso_date,
    sum_durations,
    validate_duration,
)
from core.normalization import normalize_status, normalize_type
from models.vacations import VacationRow, VacationStatus
from services.email import Attachment, send_email

logger = logging.getLogger(__name__)

# Stored labels counted as validated, compared case-insensitively
VALIDATED_STATUSES = ["approved", "validated"]

CSV_CONTENT_TYPE = "text/csv"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class TotalsMismatchError(ValueError):
    """Per-employee totals do not add up to the overall total."""


@dataclass
class MonthRange:
    start: str  # YYYY-MM-DD, first day
    end: str  # YYYY-MM-DD, last day
    label: str  # YYYY-MM
    display_label: str  # "January 2025"


@dataclass
class MonthlyTotals:
    total_days: float
    per_employee: dict[str, float] = field(default_factory=dict)
    request_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class MonthlySummaryResult:
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


# =============================================================================
# MONTH SELECTION
# =============================================================================


def get_month_range(tz: str = APP_TIMEZONE, today: date | None = None, month: str | None = None) -> MonthRange:
    """
    Boundaries of a calendar month.

    month ("YYYY-MM") selects it explicitly; otherwise the month containing
    today, where today defaults to the current date in tz (not the host's
    zone), so the last evening of a month never rolls into the next one.
    """
    if month:
        year, month_num = (int(part) for part in month.split("-"))
    else:
        today = today or datetime.now(ZoneInfo(tz)).date()
        year, month_num = today.year, today.month

    last_day = monthrange(year, month_num)[1]
    first = date(year, month_num, 1)
    return MonthRange(
        start=first.isoformat(),
        end=date(year, month_num, last_day).isoformat(),
        label=f"{year}-{month_num:02d}",
        display_label=first.strftime("%B %Y"),
    )


def vacation_overlaps_month(request: dict, month_start: str, month_end: str) -> bool:
    """True if the request starts in, ends in, or spans the month."""
    start = parse_iso_date(request.get("start_date"))
    end = parse_iso_date(request.get("end_date")) or start
    if start is None:
        return False

    first, last = parse_iso_date(month_start), parse_iso_date(month_end)
    return (
        first <= start <= last
        or first <= end <= last
        or (start <= first and end >= last)
    )


def request_to_row(request: dict, days: float) -> VacationRow:
    return {
        "id": request["id"],
        "employee": request.get("user_name") or "Unknown",
        "company": request.get("company") or "-",
        "type": request.get("type") or ("Half day" if request.get("is_half_day") else "Full day"),
        "status": request.get("status") or "",
        "start_date": request.get("start_date") or "",
        "end_date": request.get("end_date") or request.get("start_date") or "",
        "days": days,
    }


def get_approved_for_month(conn: sqlite3.Connection, month_start: str, month_end: str) -> list[VacationRow]:
    """
    One row per approved request overlapping the month, in storage order.

    Raises:
        DurationValidationError: an approved request resolves to 0 days
    """
    approved = list_requests_by_status(conn, VALIDATED_STATUSES)
    in_range = [r for r in approved if vacation_overlaps_month(r, month_start, month_end)]
    rows = [request_to_row(r, validate_duration(r)) for r in in_range]

    logger.info(
        "%d validated requests overlap %s to %s (%d employees)",
        len(rows), month_start, month_end, len({r["employee"] for r in rows}),
    )
    return rows


def calculate_totals(rows: list[VacationRow]) -> MonthlyTotals:
    """
    Overall and per-employee day totals.

    Raises:
        TotalsMismatchError: per-employee sums differ from the total by more than TOTALS_TOLERANCE
    """
    total = sum_durations(r["days"] for r in rows)

    per_employee: dict[str, float] = {}
    for row in rows:
        per_employee[row["employee"]] = per_employee.get(row["employee"], 0.0) + (row["days"] or 0)
    counts = Counter(row["employee"] for row in rows)

    employee_sum = sum_durations(per_employee.values())
    if abs(employee_sum - total) > TOTALS_TOLERANCE:
        raise TotalsMismatchError(
            f"Per-employee totals ({employee_sum:.2f}) do not match overall total ({total:.2f})"
        )

    return MonthlyTotals(total_days=total, per_employee=per_employee, request_counts=dict(counts))


# =============================================================================
# ANALYTICS
# =============================================================================


@dataclass
class PersonAnalytics:
    user_name: str
    user_email: str | None
    company: str
    count: int = 0
    total_days: float = 0.0
    avg_days: float = 0.0


@dataclass
class GroupAnalytics:
    """Totals for one vacation type or one company."""

    name: str
    count: int = 0
    total_days: float = 0.0
    employees: list[str] = field(default_factory=list)


@dataclass
class VacationAnalytics:
    total_requests: int
    total_days: float
    by_person: list[PersonAnalytics]
    by_type: list[GroupAnalytics]
    by_company: list[GroupAnalytics]
    start: str | None = None
    end: str | None = None


def _in_period(request: dict, start: date | None, end: date | None) -> bool:
    request_start = parse_iso_date(request.get("start_date"))
    request_end = parse_iso_date(request.get("end_date")) or request_start
    if request_start is None:
        return False
    return (end is None or request_start <= end) and (start is None or request_end >= start)


def _add_to_group(groups: dict[str, GroupAnalytics], name: str, employee: str, days: float):
    group = groups.setdefault(name, GroupAnalytics(name=name))
    group.count += 1
    group.total_days += days
    if employee not in group.employees:
        group.employees.append(employee)


def get_vacation_analytics(
    conn: sqlite3.Connection, start: str | None = None, end: str | None = None
) -> VacationAnalytics:
    """
    Approved vacation totals by person, type and company.

    With start and/or end (YYYY-MM-DD) only requests overlapping that period
    are counted; whole request durations are used, not the days inside the
    period. People and companies are ordered by total days, types by number
    of requests, descending (ties keep storage order).

    Raises:
        ValueError: start or end is not a valid date
    """
    period_start, period_end = parse_iso_date(start), parse_iso_date(end)
    if (start and period_start is None) or (end and period_end is None):
        raise ValueError(f"Invalid analytics period: {start!r} to {end!r}")

    approved = [
        r for r in list_requests_by_status(conn, VALIDATED_STATUSES)
        if _in_period(r, period_start, period_end)
    ]

    people: dict[str, PersonAnalytics] = {}
    types: dict[str, GroupAnalytics] = {}
    companies: dict[str, GroupAnalytics] = {}
    total = 0.0

    for request in approved:
        days = calculate_request_duration(request)
        total += days
        name = request.get("user_name") or "Unknown"
        company = request.get("company") or "-"

        key = (request.get("user_email") or "").lower() or request.get("user_name") or request["id"]
        person = people.setdefault(
            key, PersonAnalytics(user_name=name, user_email=request.get("user_email"), company=company)
        )
        person.count += 1
        person.total_days += days
        person.avg_days = person.total_days / person.count

        _add_to_group(types, normalize_type(request.get("type")).value, name, days)
        _add_to_group(companies, company, name, days)

    logger.info(
        "Analytics: %d approved requests, %.1f days, %d people (period %s to %s)",
        len(approved), total, len(people), start or "-", end or "-",
    )
    return VacationAnalytics(
        total_requests=len(approved),
        total_days=total,
        by_person=sorted(people.values(), key=lambda p: p.total_days, reverse=True),
        by_type=sorted(types.values(), key=lambda g: g.count, reverse=True),
        by_company=sorted(companies.values(), key=lambda g: g.total_days, reverse=True),
        start=start,
        end=end,
    )


# =============================================================================
# PRESENTATIONS
# =============================================================================


def _summary_values(row: VacationRow) -> list:
    return [
        row["employee"], row["company"], row["type"], row["status"],
        row["start_date"], row["end_date"], row["days"],
    ]


def rows_to_csv(rows: list[VacationRow]) -> str:
    """Header line plus one line per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(SUMMARY_CSV_HEADERS)
    for row in rows:
        writer.writerow(_summary_values(row))
    return buffer.getvalue()


def render_summary_html(rows: list[VacationRow], month: MonthRange, totals: MonthlyTotals) -> str:
    if rows:
        table_rows = "".join(
            "<tr>"
            f"<td style=\"padding: 8px;\">{escape(r['employee'])}</td>"
            f"<td style=\"padding: 8px;\">{escape(r['company'])}</td>"
            f"<td style=\"padding: 8px;\">{escape(r['type'])}</td>"
            f"<td style=\"padding: 8px;\">{r['start_date']}</td>"
            f"<td style=\"padding: 8px;\">{r['end_date']}</td>"
            f"<td style=\"padding: 8px; text-align: right;\">{format_duration(r['days'])}</td>"
            "</tr>"
            for r in rows
        )
    else:
        table_rows = (
            "<tr><td colspan=\"6\" style=\"text-align: center; padding: 20px; color: #666;\">"
            "No validated vacations for this month.</td></tr>"
        )

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
<div style="max-width: 900px; margin: 0 auto; padding: 20px;">
<h1>Monthly Vacation Summary</h1>
<p>{month.display_label}</p>
<p><strong>Period:</strong> {month.start} to {month.end}</p>
<p><strong>Total Validated Vacations:</strong> {len(rows)} requests</p>
<p><strong>Total Days:</strong> {totals.total_days:.1f} days</p>
<table style="width: 100%; border-collapse: collapse;">
<thead><tr>
<th align="left">Employee Name</th><th align="left">Company</th><th align="left">Type</th>
<th align="left">Start Date</th><th align="left">End Date</th><th align="right">Days</th>
</tr></thead>
<tbody>{table_rows}</tbody>
</table>
<p style="color: #666; font-size: 14px;"><em>This summary includes only validated vacation requests for {month.display_label}.</em></p>
</div>
</body>
</html>"""


def write_summary_workbook(rows: list[VacationRow], totals: MonthlyTotals, output_path: Path | None = None) -> bytes:
    """
    Excel workbook with two sheets.

    Sheet 1: "Validated Vacations" - one data row per request
    Sheet 2: "Totals" - days per employee and a SUM total

    Saved to output_path when given; the workbook bytes are always returned.
    """
    wb = Workbook()

    ws_rows = wb.active
    ws_rows.title = "Validated Vacations"
    for col_idx, header in enumerate(SUMMARY_CSV_HEADERS, start=1):
        ws_rows.cell(row=1, column=col_idx, value=header).font = Font(bold=True)
    for row_idx, row in enumerate(rows, start=2):
        for col_idx, value in enumerate(_summary_values(row), start=1):
            ws_rows.cell(row=row_idx, column=col_idx, value=value)

    ws_totals = wb.create_sheet(title="Totals")
    for col_idx, header in enumerate(["employee", "requests", "days"], start=1):
        ws_totals.cell(row=1, column=col_idx, value=header).font = Font(bold=True)
    employees = sorted(totals.per_employee)
    for row_idx, employee in enumerate(employees, start=2):
        ws_totals.cell(row=row_idx, column=1, value=employee)
        ws_totals.cell(row=row_idx, column=2, value=totals.request_counts.get(employee, 0))
        ws_totals.cell(row=row_idx, column=3, value=totals.per_employee[employee])
    total_row = len(employees) + 2
    ws_totals.cell(row=total_row, column=1, value="Total").font = Font(bold=True)
    ws_totals.cell(row=total_row, column=3, value=f"=SUM(C2:C{total_row - 1})" if employees else 0)

    buffer = io.BytesIO()
    wb.save(buffer)
    content = buffer.getvalue()

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(content)
        logger.info("Saved Excel summary to %s", output_path)

    return content


# =============================================================================
# MONTHLY SUMMARY
# =============================================================================


async def process_monthly_summary(
    conn: sqlite3.Connection,
    graph,
    month: str | None = None,
    recipients: list[str] | None = None,
    output_dir: Path | None = None,
) -> MonthlySummaryResult:
    """
    Build the month's validated-vacation summary and email it to accounting.

    Duration and totals failures propagate; an email failure is reported in
    the result.
    """
    month_range = get_month_range(month=month)
    recipients = recipients or ACCOUNTING_EMAILS
    logger.info("Processing monthly summary for %s (%s to %s)", month_range.label, month_range.start, month_range.end)

    rows = get_approved_for_month(conn, month_range.start, month_range.end)
    totals = calculate_totals(rows)

    csv_content = rows_to_csv(rows)
    html = render_summary_html(rows, month_range, totals)
    workbook_path = output_dir / f"vacations_{month_range.label}.xlsx" if output_dir else None
    workbook = write_summary_workbook(rows, totals, workbook_path)

    subject = f"Monthly validated vacations summary – {month_range.display_label}"
    email = await send_email(
        graph,
        recipients,
        subject,
        html,
        attachments=[
            Attachment(f"vacations_{month_range.label}.csv", CSV_CONTENT_TYPE, csv_content.encode("utf-8")),
            Attachment(f"vacations_{month_range.label}.xlsx", XLSX_CONTENT_TYPE, workbook),
        ],
    )

    return MonthlySummaryResult(
        ok=email.success,
        month=month_range.label,
        display_label=month_range.display_label,
        validated=len(rows),
        total_days=totals.total_days,
        start=month_range.start,
        end=month_range.end,
        recipients=recipients,
        email_sent=email.success,
        email_error=email.error,
    )


# =============================================================================
# REVIEWED REQUESTS EXPORT
# =============================================================================


def local_date(timestamp: str | None, tz: str = APP_TIMEZONE) -> date | None:
    """Calendar date of a stored timestamp in tz (naive stamps are UTC)."""
    if not timestamp:
        return None
    try:
        moment = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz)).date()


def _in_month(timestamp: str | None, year: int, month: int, tz: str = APP_TIMEZONE) -> bool:
    day = local_date(timestamp, tz)
    return day is not None and day.year == year and day.month == month


def get_reviewed_requests_for_month(
    conn: sqlite3.Connection, year: int, month: int, tz: str = APP_TIMEZONE
) -> list[dict]:
    """
    Non-pending requests reviewed in the month (created month when never
    stamped). Stamps are UTC and bucketed by their date in tz.
    """
    reviewed = []
    for request in list_requests(conn):
        if normalize_status(request.get("status")) is VacationStatus.PENDING:
            continue
        stamp = request.get("reviewed_at") or request.get("created_at")
        if _in_month(stamp, year, month, tz):
            reviewed.append(request)
    return reviewed


def reviewed_requests_to_csv(requests: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REVIEWED_CSV_HEADERS)
    for r in requests:
        writer.writerow([
            r.get("id") or "",
            r.get("user_email") or "",
            r.get("user_name") or "",
            r.get("start_date") or "",
            r.get("end_date") or "",
            r.get("reason") or "",
            r.get("company") or "",
            r.get("type") or "",
            r.get("status") or "",
            r.get("created_at") or "",
            r.get("reviewed_by") or "",
            r.get("reviewer_email") or "",
            r.get("reviewed_at") or "",
            r.get("admin_comment") or "",
        ])
    return buffer.getvalue()
