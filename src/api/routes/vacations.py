"""Vacation request endpoints."""

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies import get_calendar, get_db, get_graph, verify_api_key
from api.logging import logged_request
from api.models.requests import VacationRequestCreate, VacationRequestUpdate
from api.models.responses import ErrorCodes, api_error
from core.database import get_request, list_requests
from core.duration import calculate_request_duration, parse_iso_date
from core.normalization import normalize_status
from core.validation import annotate_conflicts, find_conflicts, find_conflicts_in_range
from services.vacations import (
    RequestNotFoundError,
    create_request,
    delete_vacation_request,
    update_request,
)

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])


def _not_found(request_id: str):
    return api_error(
        status.HTTP_404_NOT_FOUND,
        "Vacation request not found",
        ErrorCodes.NOT_FOUND,
        [request_id],
    )


def _invalid(e: ValueError):
    return api_error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Invalid vacation request",
        ErrorCodes.VALIDATION_ERROR,
        [str(e)],
    )


def _with_duration(request: dict) -> dict:
    return {**request, "duration": calculate_request_duration(request)}


def _sync_payload(sync) -> dict | None:
    if sync is None:
        return None
    return {
        "success": sync.success,
        "state": sync.state.value,
        "action": sync.action,
        "event_id": sync.event_id,
        "error": sync.error,
    }


@router.get("/vacation-requests")
async def list_vacation_requests(
    request: Request,
    status_filter: str | None = Query(default=None, alias="status"),
    conn=Depends(get_db),
):
    """All requests, each with its same-company conflicts."""
    with logged_request(conn, request):
        requests = annotate_conflicts(list_requests(conn))
        if status_filter:
            wanted = normalize_status(status_filter)
            requests = [r for r in requests if normalize_status(r.get("status")) is wanted]
        return {"requests": [_with_duration(r) for r in requests], "count": len(requests)}


@router.post("/vacation-requests", status_code=status.HTTP_201_CREATED)
async def create_vacation_request(
    request: Request,
    body: VacationRequestCreate,
    conn=Depends(get_db),
    graph=Depends(get_graph),
):
    with logged_request(conn, request) as request_log:
        fields = body.model_dump()
        fields["start_date"] = body.start_date.isoformat()
        fields["end_date"] = (body.end_date or body.start_date).isoformat()
        try:
            created = await create_request(conn, fields, graph=graph)
        except ValueError as e:
            raise _invalid(e)

        request_log.vacation_request_id = created["id"]
        request_log.status_code = status.HTTP_201_CREATED
        conflicts = find_conflicts(created, list_requests(conn))
        for conflict in conflicts:
            request_log.details.append(("warning", conflict["details"]))
        return {**_with_duration(created), "conflicts": conflicts}


@router.get("/vacation-requests/{request_id}")
async def get_vacation_request(request: Request, request_id: str, conn=Depends(get_db)):
    with logged_request(conn, request, request_id):
        found = get_request(conn, request_id)
        if found is None:
            raise _not_found(request_id)
        return {**_with_duration(found), "conflicts": find_conflicts(found, list_requests(conn))}


@router.patch("/vacation-requests/{request_id}")
async def patch_vacation_request(
    request: Request,
    request_id: str,
    body: VacationRequestUpdate,
    conn=Depends(get_db),
    calendar=Depends(get_calendar),
    graph=Depends(get_graph),
):
    """
    Review (status, reviewer, comment) and/or edit a request.

    Status and date changes are reconciled with the calendar; the outcome is
    returned under "calendar_sync" (null when nothing needed syncing).
    """
    with logged_request(conn, request, request_id) as request_log:
        try:
            updated, sync = await update_request(
                conn, request_id, body.changes(), calendar=calendar, graph=graph
            )
        except RequestNotFoundError:
            raise _not_found(request_id)
        except ValueError as e:
            raise _invalid(e)

        if sync is not None:
            request_log.details.append(("calendar_sync", f"{sync.action}: {sync.error or 'ok'}"))
        return {**_with_duration(updated), "calendar_sync": _sync_payload(sync)}


@router.delete("/vacation-requests/{request_id}")
async def delete_vacation_request_endpoint(
    request: Request,
    request_id: str,
    conn=Depends(get_db),
    calendar=Depends(get_calendar),
):
    with logged_request(conn, request, request_id) as request_log:
        try:
            sync = await delete_vacation_request(conn, request_id, calendar=calendar)
        except RequestNotFoundError:
            raise _not_found(request_id)

        if sync is not None and not sync.success:
            raise api_error(
                status.HTTP_502_BAD_GATEWAY,
                "Calendar event could not be deleted; request kept",
                ErrorCodes.CALENDAR_ERROR,
                [sync.error or "unknown error"],
            )
        request_log.details.append(("calendar_sync", "deleted" if sync else "no event"))
        return {"deleted": True, "id": request_id, "calendar_sync": _sync_payload(sync)}


@router.get("/conflicts")
async def get_conflicts(
    request: Request,
    start: str,
    end: str | None = None,
    company: str | None = None,
    exclude_id: str | None = None,
    conn=Depends(get_db),
):
    """Conflicts a prospective request for [start, end] would have."""
    with logged_request(conn, request, exclude_id):
        if parse_iso_date(start) is None or (end and parse_iso_date(end) is None):
            raise api_error(
                status.HTTP_400_BAD_REQUEST,
                "Invalid date",
                ErrorCodes.INVALID_REQUEST,
                ["Expected format: YYYY-MM-DD"],
            )
        conflicts = find_conflicts_in_range(
            list_requests(conn), start, end or start, company=company, exclude_id=exclude_id
        )
        return {"conflicts": conflicts, "count": len(conflicts)}
