"""API route modules."""

from .health import router as health_router
from .reminders import router as reminders_router
from .reports import router as reports_router
from .sync import router as sync_router
from .vacations import router as vacations_router

__all__ = [
    "health_router",
    "vacations_router",
    "sync_router",
    "reports_router",
    "reminders_router",
]
