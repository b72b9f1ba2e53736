"""Pending reminder trigger."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_db, require_graph, verify_api_key
from api.logging import logged_request
from api.models.responses import ReminderResponse
from services.reminders import run_pending_reminder

router = APIRouter(prefix="/v1/reminders", dependencies=[Depends(verify_api_key)])


@router.post("/pending", response_model=ReminderResponse)
async def send_pending_reminder(request: Request, conn=Depends(get_db), graph=Depends(require_graph)):
    with logged_request(conn, request) as request_log:
        result = await run_pending_reminder(conn, graph)
        for error in result.errors:
            request_log.details.append(("warning", error))
        return ReminderResponse(**asdict(result))
