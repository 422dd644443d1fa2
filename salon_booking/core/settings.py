"""Application settings with Pydantic validation."""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from salon_booking.constants import BookingDefaults, Database, Idempotency


class BookingSettings(BaseSettings):
    """Application settings with validation and environment variable support."""

    # Environment
    env: str = Field(
        default="production", description="Environment (production, development, testing)"
    )

    # Database Configuration
    database_url: str = Field(
        default=Database.DEFAULT_URL, description="PostgreSQL database connection URL"
    )
    db_pool_size: int = Field(default=10, ge=1, le=100, description="Database connection pool size")
    db_connection_timeout: float = Field(
        default=Database.CONNECTION_TIMEOUT_SECONDS,
        gt=0,
        description="Database connection timeout in seconds",
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(default=True, description="Write JSON lines to the log file sink")

    # Scheduling policy
    cancellation_window_hours: int = Field(
        default=BookingDefaults.CANCELLATION_WINDOW_HOURS,
        ge=0,
        le=168,
        description="Minimum notice (hours) required to cancel an appointment",
    )
    confirmation_lead_minutes: int = Field(
        default=BookingDefaults.CONFIRMATION_LEAD_MINUTES,
        ge=0,
        le=1440,
        description="Minimum notice (minutes) required to confirm an appointment",
    )
    booking_horizon_months: int = Field(
        default=BookingDefaults.BOOKING_HORIZON_MONTHS,
        ge=1,
        le=24,
        description="How many calendar months ahead appointments may be booked",
    )
    duration_step_minutes: int = Field(
        default=BookingDefaults.DURATION_STEP_MINUTES,
        ge=1,
        le=120,
        description="Granularity of caller-supplied durations",
    )
    min_duration_minutes: int = Field(
        default=BookingDefaults.MIN_DURATION_MINUTES, ge=1, description="Shortest appointment"
    )
    max_duration_minutes: int = Field(
        default=BookingDefaults.MAX_DURATION_MINUTES, ge=1, description="Longest appointment"
    )
    default_slot_minutes: int = Field(
        default=BookingDefaults.DEFAULT_SLOT_MINUTES,
        ge=1,
        description="Slot length used by availability when no duration is given",
    )
    min_calendar_window_minutes: int = Field(
        default=BookingDefaults.MIN_CALENDAR_WINDOW_MINUTES,
        ge=1,
        description="Shortest calendar window accepted by calendar administration",
    )
    enforce_business_hours: bool = Field(
        default=True, description="Reject bookings that do not fit inside a calendar window"
    )
    admin_bypasses_cancellation_window: bool = Field(
        default=False,
        description="Let callers with the administer capability cancel inside the window",
    )
    max_note_length: int = Field(
        default=BookingDefaults.MAX_NOTE_LENGTH, ge=1, description="Max length of notes/reasons"
    )

    # Idempotency
    idempotency_ttl_seconds: int = Field(
        default=Idempotency.TTL_SECONDS, ge=1, description="Lifetime of idempotent booking results"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["production", "development", "testing", "staging"]
        if v.lower() not in allowed:
            raise ValueError(f'ENV must be one of: {", ".join(allowed)}')
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of: {", ".join(allowed)}')
        return v_upper

    @model_validator(mode="after")
    def validate_duration_bounds(self) -> "BookingSettings":
        """Duration bounds must be consistent with the step."""
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError("MIN_DURATION_MINUTES must not exceed MAX_DURATION_MINUTES")
        if self.min_duration_minutes % self.duration_step_minutes != 0:
            raise ValueError("MIN_DURATION_MINUTES must be a multiple of DURATION_STEP_MINUTES")
        return self

    def is_development(self) -> bool:
        """
        Check if running in development mode.

        Returns:
            True if development environment
        """
        return self.env == "development"

    def is_production(self) -> bool:
        """
        Check if running in production mode.

        Returns:
            True if production environment
        """
        return self.env == "production"


# Singleton instance
_settings: Optional[BookingSettings] = None


def get_settings() -> BookingSettings:
    """
    Get application settings singleton.

    Returns:
        BookingSettings instance

    Raises:
        ValidationError: If settings are invalid
    """
    global _settings
    if _settings is None:
        _settings = BookingSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
