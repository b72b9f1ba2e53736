"""Calendar sync endpoint."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from api.dependencies import get_db, require_calendar, verify_api_key
from api.logging import logged_request
from api.models.responses import CalendarSyncResponse, ErrorCodes, api_error
from core.database import get_request
from services.calendar import reconcile_request

router = APIRouter(prefix="/v1/sync", dependencies=[Depends(verify_api_key)])


@router.post("/request/{request_id}", response_model=CalendarSyncResponse)
async def sync_request(
    request: Request,
    request_id: str,
    conn=Depends(get_db),
    calendar=Depends(require_calendar),
):
    """
    Reconcile one request with the calendar.

    Returns 200 when the calendar matches the request afterwards, 502 with
    the same body when the calendar call failed.
    """
    with logged_request(conn, request, request_id) as request_log:
        vacation = get_request(conn, request_id)
        if vacation is None:
            raise api_error(
                status.HTTP_404_NOT_FOUND,
                "Vacation request not found",
                ErrorCodes.NOT_FOUND,
                [request_id],
            )

        result = await reconcile_request(conn, calendar, vacation)
        response = CalendarSyncResponse(
            request_id=request_id,
            success=result.success,
            state=result.state.value,
            action=result.action,
            event_id=result.event_id,
            error=result.error,
        )
        request_log.details.append(("calendar_sync", f"{result.action}: {result.error or 'ok'}"))

        if not result.success:
            request_log.status_code = status.HTTP_502_BAD_GATEWAY
            request_log.error_code = ErrorCodes.CALENDAR_ERROR
            request_log.error_message = result.error
            return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=response.model_dump())
        return response
