"""Core infrastructure: settings, errors, enums, logging, clock and policy."""

from salon_booking.core.clock import Clock, ensure_utc, utc_now
from salon_booking.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolation,
    ConcurrentModificationError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    DatabaseNotConnectedError,
    DatabasePoolTimeoutError,
    NotFoundError,
    SalonBookingError,
    SlotUnavailableError,
    ValidationError,
)
from salon_booking.core.logger import correlation_id_ctx, setup_structured_logging
from salon_booking.core.policy import BookingPolicy
from salon_booking.core.settings import BookingSettings, get_settings, reset_settings

__all__ = [
    "Clock",
    "ensure_utc",
    "utc_now",
    "AuthenticationError",
    "AuthorizationError",
    "BusinessRuleViolation",
    "ConcurrentModificationError",
    "ConfigurationError",
    "ConflictError",
    "DatabaseError",
    "DatabaseNotConnectedError",
    "DatabasePoolTimeoutError",
    "NotFoundError",
    "SalonBookingError",
    "SlotUnavailableError",
    "ValidationError",
    "correlation_id_ctx",
    "setup_structured_logging",
    "BookingPolicy",
    "BookingSettings",
    "get_settings",
    "reset_settings",
]
