"""Appointment aggregate, status catalog entry and audit event entities."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class AppointmentStatus:
    """Named lifecycle state from the status catalog."""

    def __init__(self, id: int, name: str, label: str = ""):
        self.id = id
        self.name = name
        self.label = label

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "label": self.label}


class Appointment:
    """Appointment entity model (aggregate root)."""

    def __init__(
        self,
        id: str,
        start_time: datetime,
        duration_minutes: int,
        creator_id: str,
        client_id: str,
        status_id: int,
        service_ids: List[str],
        staff_id: Optional[str] = None,
        calendar_window_id: Optional[int] = None,
        notes: Optional[str] = None,
        confirmed_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        active: bool = True,
        status_name: Optional[str] = None,
    ):
        """Initialize appointment entity."""
        self.id = id
        self.start_time = start_time
        self.duration_minutes = duration_minutes
        self.creator_id = creator_id
        self.client_id = client_id
        self.status_id = status_id
        self.service_ids = list(service_ids)
        self.staff_id = staff_id
        self.calendar_window_id = calendar_window_id
        self.notes = notes
        self.confirmed_at = confirmed_at
        self.created_at = created_at
        self.updated_at = updated_at
        self.active = active
        self.status_name = status_name

    @property
    def end_time(self) -> datetime:
        """Derived end of the slot, exclusive."""
        return self.start_time + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open [start, end) overlap with this appointment's slot."""
        return self.start_time < end and start < self.end_time

    def involves(self, user_id: str) -> bool:
        """Whether the user booked, receives, or delivers this appointment."""
        return user_id in (self.creator_id, self.client_id, self.staff_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert appointment to dictionary."""
        return {
            "id": self.id,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_minutes": self.duration_minutes,
            "creator_id": self.creator_id,
            "client_id": self.client_id,
            "staff_id": self.staff_id,
            "calendar_window_id": self.calendar_window_id,
            "status_id": self.status_id,
            "status": self.status_name,
            "service_ids": list(self.service_ids),
            "notes": self.notes,
            "confirmed_at": _iso(self.confirmed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return (
            f"Appointment(id={self.id!r}, start={self.start_time.isoformat()}, "
            f"duration={self.duration_minutes}, status={self.status_name or self.status_id})"
        )


class AppointmentEvent:
    """Audit record written with every lifecycle transition."""

    def __init__(
        self,
        appointment_id: str,
        event_type: str,
        to_status: str,
        actor_id: str,
        from_status: Optional[str] = None,
        reason: Optional[str] = None,
        cancelled_by: Optional[str] = None,
        notes: Optional[str] = None,
        notify_client: bool = True,
        notification: Optional[str] = None,
        created_at: Optional[datetime] = None,
        id: Optional[int] = None,
    ):
        self.id = id
        self.appointment_id = appointment_id
        self.event_type = event_type
        self.from_status = from_status
        self.to_status = to_status
        self.actor_id = actor_id
        self.reason = reason
        self.cancelled_by = cancelled_by
        self.notes = notes
        self.notify_client = notify_client
        self.notification = notification
        self.created_at = created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "event_type": self.event_type,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "reason": self.reason,
            "cancelled_by": self.cancelled_by,
            "notes": self.notes,
            "notify_client": self.notify_client,
            "notification": self.notification,
            "created_at": _iso(self.created_at),
        }


@dataclass
class BookingRequest:
    """
    Unvalidated booking intent as received from the boundary layer.

    ``start_time`` may be an ISO-8601 string or a datetime; the orchestrator
    parses and validates every field.
    """

    client_id: Optional[str] = None
    start_time: Optional[Union[str, datetime]] = None
    service_ids: List[str] = field(default_factory=list)
    staff_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class StatusChange:
    """Payload handed to the store for a compare-and-swap status update."""

    appointment_id: str
    expected_status_id: int
    new_status_id: int
    occupies_slot: bool
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass
class RescheduleRequest:
    """
    Requested changes to a pending or confirmed appointment.

    ``None`` leaves a field as it is. A new ``service_ids`` list replaces the
    current one and, without an explicit duration, recomputes the duration.
    """

    start_time: Optional[Union[str, datetime]] = None
    staff_id: Optional[str] = None
    service_ids: Optional[List[str]] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    reason: Optional[str] = None
    notify_client: bool = True

    def has_changes(self) -> bool:
        return any(
            value is not None
            for value in (
                self.start_time,
                self.staff_id,
                self.service_ids,
                self.duration_minutes,
                self.notes,
                self.reason,
            )
        )


@dataclass(frozen=True)
class AppointmentUpdate:
    """Payload handed to the store to move or re-scope an appointment."""

    appointment_id: str
    expected_status_id: int
    start_time: datetime
    duration_minutes: int
    staff_id: Optional[str]
    calendar_window_id: Optional[int]
    service_ids: List[str]
    updated_at: datetime
    notes: Optional[str] = None


@dataclass
class AppointmentStatistics:
    """Status breakdown of a set of appointments with derived rates."""

    by_status: Dict[str, int]
    scope: str = "global"
    scope_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @property
    def total(self) -> int:
        return sum(self.by_status.values())

    def _count(self, name: str) -> int:
        return self.by_status.get(name, 0)

    @property
    def completion_rate(self) -> float:
        """Completed share of finished appointments (completed, cancelled, no-show), in percent."""
        completed = self._count("COMPLETED")
        finished = completed + self._count("CANCELLED") + self._count("NO_SHOW")
        return round(100.0 * completed / finished, 2) if finished else 0.0

    @property
    def show_rate(self) -> float:
        """Completed share of appointments the client was due to attend, in percent."""
        completed = self._count("COMPLETED")
        due = completed + self._count("NO_SHOW")
        return round(100.0 * completed / due, 2) if due else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.scope,
            "scope_id": self.scope_id,
            "period_start": _iso(self.period_start),
            "period_end": _iso(self.period_end),
            "total": self.total,
            "by_status": dict(self.by_status),
            "completion_rate": self.completion_rate,
            "show_rate": self.show_rate,
        }
