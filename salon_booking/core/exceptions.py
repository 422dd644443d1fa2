"""Custom exception classes for the salon booking backend."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

_ERROR_URN_PREFIX = "urn:salonbooking:error:"


class SalonBookingError(Exception):
    """Base exception for salon booking."""

    http_status: int = 500
    title: str = "Internal Server Error"
    error_slug: str = "internal-server"

    def __init__(
        self, message: str, recoverable: bool = False, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize salon booking error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    @property
    def error_type_uri(self) -> str:
        """RFC 7807 problem type for this error."""
        return f"{_ERROR_URN_PREFIX}{self.error_slug}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Domain errors
class ValidationError(SalonBookingError):
    """Malformed or out-of-policy input."""

    http_status = 400
    title = "Bad Request"
    error_slug = "validation"

    def __init__(self, message: str = "Validation error", field: Optional[str] = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
        """
        self.field = field
        super().__init__(message, recoverable=False, details={"field": field} if field else {})


class NotFoundError(SalonBookingError):
    """Referenced entity does not exist."""

    http_status = 404
    title = "Not Found"
    error_slug = "not-found"

    def __init__(self, resource_type: str, resource_id: Any, message: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message or f"{resource_type} with id '{resource_id}' not found",
            recoverable=False,
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class ConflictError(SalonBookingError):
    """Request collides with existing state."""

    http_status = 409
    title = "Conflict"
    error_slug = "conflict"

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, recoverable=False, details=details)


class SlotUnavailableError(ConflictError):
    """Candidate time slot overlaps an existing appointment."""

    def __init__(
        self,
        message: str = "Time slot unavailable",
        conflicting_ids: Optional[list] = None,
    ):
        self.conflicting_ids = conflicting_ids or []
        details = {"conflicting_appointment_ids": self.conflicting_ids} if conflicting_ids else {}
        super().__init__(message, details=details)


class ConcurrentModificationError(ConflictError):
    """Appointment changed between read and write."""

    def __init__(self, appointment_id: str):
        super().__init__(
            f"Appointment '{appointment_id}' was modified concurrently. Reload and retry.",
            details={"appointment_id": appointment_id},
        )


class BusinessRuleViolation(SalonBookingError):
    """State machine or policy breach."""

    http_status = 409
    title = "Business Rule Violation"
    error_slug = "business-rule"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, recoverable=False, details=details)


class AuthorizationError(SalonBookingError):
    """Requester lacks standing to act on the resource."""

    http_status = 403
    title = "Forbidden"
    error_slug = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        requester_id: Optional[str] = None,
    ):
        self.requester_id = requester_id
        super().__init__(
            message,
            recoverable=False,
            details={"requester_id": requester_id} if requester_id else {},
        )


class AuthenticationError(SalonBookingError):
    """Caller identity is missing."""

    http_status = 401
    title = "Unauthorized"
    error_slug = "unauthorized"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, recoverable=False)


# Configuration Errors
class ConfigurationError(SalonBookingError):
    """Configuration error occurred."""

    error_slug = "configuration"

    def __init__(
        self,
        message: str = "Configuration error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable=False, details=details)


# Database Errors
class DatabaseError(SalonBookingError):
    """Base class for database-related errors."""

    error_slug = "database"

    def __init__(
        self,
        message: str = "Database error occurred",
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class DatabaseNotConnectedError(DatabaseError):
    """Raised when operation attempted without connection."""

    http_status = 503
    title = "Service Unavailable"
    error_slug = "service-unavailable"

    def __init__(self):
        super().__init__(
            "Database connection is not established. Call connect() first.", recoverable=False
        )


class DatabasePoolTimeoutError(DatabaseError):
    """Raised when database connection pool is exhausted and timeout occurs."""

    http_status = 503
    title = "Service Unavailable"
    error_slug = "service-unavailable"

    def __init__(self, timeout: float, pool_size: int):
        super().__init__(
            f"Database connection pool exhausted after {timeout}s (pool size: {pool_size}). "
            "Consider increasing DB_POOL_SIZE or optimizing database queries.",
            recoverable=True,
            details={"timeout": timeout, "pool_size": pool_size},
        )
