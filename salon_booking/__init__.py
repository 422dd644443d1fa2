"""Salon booking - appointment lifecycle and scheduling backend."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"
__license__ = "MIT"

if TYPE_CHECKING:
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .core.settings import get_settings as get_settings
    from .models.database import Database as Database
    from .services.appointment_lifecycle import AppointmentLifecycle as AppointmentLifecycle
    from .services.availability import AvailabilityService as AvailabilityService
    from .services.booking_orchestrator import BookingOrchestrator as BookingOrchestrator
    from .services.business_calendar import BusinessCalendar as BusinessCalendar
    from .services.conflict_detector import ConflictDetector as ConflictDetector

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    # Core
    "setup_structured_logging": ("salon_booking.core.logger", "setup_structured_logging"),
    "get_settings": ("salon_booking.core.settings", "get_settings"),
    # Models
    "Database": ("salon_booking.models.database", "Database"),
    # Services
    "AppointmentLifecycle": ("salon_booking.services.appointment_lifecycle", "AppointmentLifecycle"),
    "AvailabilityService": ("salon_booking.services.availability", "AvailabilityService"),
    "BookingOrchestrator": ("salon_booking.services.booking_orchestrator", "BookingOrchestrator"),
    "BusinessCalendar": ("salon_booking.services.business_calendar", "BusinessCalendar"),
    "ConflictDetector": ("salon_booking.services.conflict_detector", "ConflictDetector"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
