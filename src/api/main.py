"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import (
    health_router,
    reminders_router,
    reports_router,
    sync_router,
    vacations_router,
)
from core.calendar_client import GoogleCalendarClient
from core.config import (
    API_DEBUG,
    API_VERSION,
    DB_PATH,
    GOOGLE_SERVICE_ACCOUNT_KEY,
    GRAPH_APP_ID,
    GRAPH_CLIENT_SECRET,
    GRAPH_TENANT_ID,
    LOG_LEVEL,
)
from core.database import get_connection, init_schema
from core.graph_client import create_graph_client

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: schema and external clients
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection()
    try:
        init_schema(conn)
    finally:
        conn.close()

    app.state.calendar = None
    if GOOGLE_SERVICE_ACCOUNT_KEY:
        app.state.calendar = GoogleCalendarClient.from_env()
    else:
        logger.warning("GOOGLE_SERVICE_ACCOUNT_KEY not set, calendar sync disabled")

    app.state.graph = None
    if GRAPH_TENANT_ID and GRAPH_APP_ID and GRAPH_CLIENT_SECRET:
        app.state.graph = create_graph_client()
    else:
        logger.warning("MS Graph credentials not set, emails disabled")

    yield

    # Shutdown
    if app.state.calendar is not None:
        await app.state.calendar.aclose()


app = FastAPI(
    title="Vacation Request API",
    description="REST API for vacation requests, Google Calendar sync and monthly summaries",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

# CORS middleware (for development)
if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


# Include routers
app.include_router(health_router)
app.include_router(vacations_router)
app.include_router(sync_router)
app.include_router(reports_router)
app.include_router(reminders_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
