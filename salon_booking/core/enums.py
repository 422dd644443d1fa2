"""Centralized enum definitions for salon booking."""

from enum import Enum


class AppointmentStatusName(str, Enum):
    """Catalog names of appointment lifecycle states."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]

    @classmethod
    def terminal(cls) -> frozenset:
        """States with no outgoing transitions."""
        return frozenset({cls.CANCELLED, cls.COMPLETED, cls.NO_SHOW})

    @property
    def is_terminal(self) -> bool:
        return self in AppointmentStatusName.terminal()

    @property
    def occupies_slot(self) -> bool:
        """Whether an appointment in this state still holds its time slot."""
        return self not in (AppointmentStatusName.CANCELLED, AppointmentStatusName.NO_SHOW)


# Human labels seeded into the status catalog
STATUS_LABELS = {
    AppointmentStatusName.PENDING: "Booked, awaiting confirmation",
    AppointmentStatusName.CONFIRMED: "Confirmed by the salon",
    AppointmentStatusName.CANCELLED: "Cancelled before it took place",
    AppointmentStatusName.COMPLETED: "Service delivered",
    AppointmentStatusName.NO_SHOW: "Client did not attend",
}


class DayOfWeek(str, Enum):
    """Weekday names, indexed Monday=0 like datetime.weekday()."""
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]

    @classmethod
    def from_weekday(cls, index: int) -> "DayOfWeek":
        """Map datetime.weekday() (Monday=0) to a DayOfWeek."""
        return list(cls)[index]


class CancelledBy(str, Enum):
    """Party a cancellation is attributed to."""
    CLIENT = "client"
    STYLIST = "stylist"
    ADMIN = "admin"
    SYSTEM = "system"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class AppointmentEventType(str, Enum):
    """Audit trail event types."""
    BOOKED = "BOOKED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    RESCHEDULED = "RESCHEDULED"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class NotificationType(str, Enum):
    """Client notifications the lifecycle may request."""
    APPOINTMENT_CONFIRMATION = "APPOINTMENT_CONFIRMATION"
    APPOINTMENT_CANCELLATION = "APPOINTMENT_CANCELLATION"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class Capability(str, Enum):
    """Capabilities resolved through the capability collaborator."""
    ADMINISTER_APPOINTMENTS = "appointments:administer"
    MANAGE_CALENDAR = "calendar:manage"
