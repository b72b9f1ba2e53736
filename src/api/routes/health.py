"""Health check endpoint."""

import sqlite3
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_calendar, get_db, get_graph
from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(conn=Depends(get_db), calendar=Depends(get_calendar), graph=Depends(get_graph)):
    """
    Health check endpoint for monitoring.

    Returns 200 if the database answers, 503 otherwise. Missing calendar or
    email configuration is reported but does not make the service unhealthy.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        conn.execute("SELECT 1 FROM vacation_requests LIMIT 1")
    except sqlite3.Error as e:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                calendar_configured=calendar is not None,
                email_configured=graph is not None,
                timestamp=timestamp,
                error=f"Database unavailable: {e}",
            ).model_dump(),
        )

    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        database_available=True,
        calendar_configured=calendar is not None,
        email_configured=graph is not None,
        timestamp=timestamp,
    )
