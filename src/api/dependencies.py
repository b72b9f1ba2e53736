"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Header, Request, status

from api.models.responses import ErrorCodes, api_error
from core.config import VACATION_API_KEY
from core.database import get_connection


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not VACATION_API_KEY:
        raise api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "API key not configured on server",
            ErrorCodes.INTERNAL_ERROR,
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, VACATION_API_KEY):
        raise api_error(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid or missing API key",
            ErrorCodes.UNAUTHORIZED,
        )

    return x_api_key


def get_db():
    """One SQLite connection per request."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def get_calendar(request: Request):
    """Google Calendar client built at startup, or None when not configured."""
    return getattr(request.app.state, "calendar", None)


def get_graph(request: Request):
    """MS Graph client built at startup, or None when not configured."""
    return getattr(request.app.state, "graph", None)


def require_calendar(request: Request):
    calendar = get_calendar(request)
    if calendar is None:
        raise api_error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Google Calendar is not configured",
            ErrorCodes.NOT_CONFIGURED,
            ["Set GOOGLE_SERVICE_ACCOUNT_KEY"],
        )
    return calendar


def require_graph(request: Request):
    graph = get_graph(request)
    if graph is None:
        raise api_error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Email is not configured",
            ErrorCodes.NOT_CONFIGURED,
            ["Set MICROSOFT_GRAPH_TENANT_ID, MICROSOFT_GRAPH_APP_ID and MICROSOFT_GRAPH_CLIENT_SECRET"],
        )
    return graph
