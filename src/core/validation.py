"""
Vacation conflict detection.

Two requests conflict when they belong to the same company and their date
ranges touch or cross (inclusive on both ends).
"""

from core.duration import parse_iso_date
from core.normalization import normalize_status
from models.vacations import ConflictEvent, VacationStatus

BLOCKING_STATUSES = {VacationStatus.APPROVED, VacationStatus.PENDING}


def dates_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Inclusive overlap of two date ranges, compared as calendar dates."""
    a_start, a_end = parse_iso_date(a_start), parse_iso_date(a_end or a_start)
    b_start, b_end = parse_iso_date(b_start), parse_iso_date(b_end or b_start)
    if None in (a_start, a_end, b_start, b_end):
        return False
    return b_start <= a_end and b_end >= a_start


def is_blocking(request: dict) -> bool:
    """Approved and pending requests can collide; denied ones never do."""
    return normalize_status(request.get("status")) in BLOCKING_STATUSES


def build_conflict(candidate: dict) -> ConflictEvent:
    """Conflict record describing the colliding request."""
    user_name = candidate.get("user_name") or candidate.get("user_email") or "Unknown"
    request_type = candidate.get("type") or "Vacation"
    return {
        "type": "same-company",
        "severity": "high",
        "details": (
            f"Overlap with {user_name}'s {request_type} "
            f"from {candidate.get('start_date')} to {candidate.get('end_date')}"
        ),
        "conflicting_requests": [
            {
                "id": candidate.get("id") or "unknown",
                "user_name": user_name,
                "company": candidate.get("company") or "",
                "start_date": candidate.get("start_date") or "",
                "end_date": candidate.get("end_date") or "",
                "status": candidate.get("status") or "",
            }
        ],
    }


def find_conflicts(target: dict, candidates: list[dict]) -> list[ConflictEvent]:
    """
    Find same-company overlaps for target among candidates.

    Only approved/pending candidates count, the target itself is skipped by
    id, and results keep the candidates' order.
    """
    conflicts = []

    for candidate in candidates:
        if candidate.get("id") == target.get("id"):
            continue
        if candidate.get("company") != target.get("company"):
            continue
        if not is_blocking(candidate):
            continue

        if dates_overlap(
            target.get("start_date"),
            target.get("end_date"),
            candidate.get("start_date"),
            candidate.get("end_date"),
        ):
            conflicts.append(build_conflict(candidate))

    return conflicts


def annotate_conflicts(requests: list[dict]) -> list[dict]:
    """Return a copy of every request with its 'conflicts' list attached."""
    candidates = [r for r in requests if is_blocking(r)]
    return [{**request, "conflicts": find_conflicts(request, candidates)} for request in requests]


def find_conflicts_in_range(
    requests: list[dict],
    start_date: str,
    end_date: str,
    company: str | None = None,
    exclude_id: str | None = None,
) -> list[ConflictEvent]:
    """Conflicts for a prospective request that has not been saved yet."""
    if company is not None:
        probe = {"id": exclude_id, "company": company, "start_date": start_date, "end_date": end_date}
        return find_conflicts(probe, requests)

    # Without a company every blocking request in range is reported
    return [
        build_conflict(r)
        for r in requests
        if r.get("id") != exclude_id
        and is_blocking(r)
        and dates_overlap(start_date, end_date, r.get("start_date"), r.get("end_date"))
    ]
