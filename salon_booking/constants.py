"""Booking policy constants and defaults."""

from typing import Final


class BookingDefaults:
    """Scheduling policy defaults. Durations in MINUTES unless noted."""

    CANCELLATION_WINDOW_HOURS: Final[int] = 2
    CONFIRMATION_LEAD_MINUTES: Final[int] = 60
    BOOKING_HORIZON_MONTHS: Final[int] = 6
    DURATION_STEP_MINUTES: Final[int] = 15
    MIN_DURATION_MINUTES: Final[int] = 15
    MAX_DURATION_MINUTES: Final[int] = 480  # 8 hours
    DEFAULT_SLOT_MINUTES: Final[int] = 30
    MIN_CALENDAR_WINDOW_MINUTES: Final[int] = 30
    MAX_NOTE_LENGTH: Final[int] = 500


class Idempotency:
    """Idempotency store settings (SECONDS)."""

    TTL_SECONDS: Final[int] = 86400  # 24 hours
    CLEANUP_INTERVAL_SECONDS: Final[int] = 300


class Database:
    """Database connection defaults."""

    DEFAULT_URL: Final[str] = "postgresql://localhost:5432/salon_booking"
    TEST_URL: Final[str] = "postgresql://localhost:5432/salon_booking_test"
    POOL_SIZE_MIN: Final[int] = 5
    POOL_SIZE_MAX: Final[int] = 20
    CONNECTION_TIMEOUT_SECONDS: Final[float] = 30.0
    COMMAND_TIMEOUT_SECONDS: Final[float] = 60.0


class Headers:
    """HTTP header names used at the API boundary."""

    USER_ID: Final[str] = "X-User-Id"
    REQUEST_ID: Final[str] = "X-Request-ID"
    IDEMPOTENCY_KEY: Final[str] = "Idempotency-Key"
