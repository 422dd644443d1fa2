"""Routes package for the salon booking API."""

from .appointments import router as appointments_router
from .calendar import router as calendar_router
from .health import router as health_router

__all__ = ["appointments_router", "calendar_router", "health_router"]
