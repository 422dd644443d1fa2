"""Appointment request/response models."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AppointmentCreateRequest(BaseModel):
    """
    Booking request body.

    Fields are loosely typed on purpose: the booking orchestrator performs the
    field-level validation and reports domain messages.
    """

    client_id: Optional[str] = None
    start_time: Optional[str] = Field(default=None, description="ISO-8601 start instant")
    service_ids: List[str] = Field(default_factory=list)
    staff_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None


class AppointmentUpdateRequest(BaseModel):
    """
    Reschedule body. Omitted fields stay as they are.

    A new ``service_ids`` list replaces the current one.
    """

    start_time: Optional[str] = Field(default=None, description="ISO-8601 start instant")
    staff_id: Optional[str] = None
    service_ids: Optional[List[str]] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    reason: Optional[str] = None
    notify_client: bool = True


class ConfirmAppointmentRequest(BaseModel):
    notes: Optional[str] = None
    notify_client: bool = True


class CancelAppointmentRequest(BaseModel):
    reason: Optional[str] = None
    cancelled_by: Optional[str] = Field(default=None, description="client, stylist, admin or system")
    notify_client: bool = True


class CloseAppointmentRequest(BaseModel):
    """Body for completing an appointment or marking a no-show."""

    notes: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Appointment response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    creator_id: str
    client_id: str
    staff_id: Optional[str] = None
    calendar_window_id: Optional[int] = None
    status_id: int
    status: Optional[str] = None
    service_ids: List[str]
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentEventResponse(BaseModel):
    id: Optional[int] = None
    appointment_id: str
    event_type: str
    from_status: Optional[str] = None
    to_status: str
    actor_id: str
    reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    notes: Optional[str] = None
    notify_client: bool
    notification: Optional[str] = None
    created_at: Optional[datetime] = None


class AvailableSlotResponse(BaseModel):
    time: str
    duration_minutes: int
    available: bool
    conflict_reason: Optional[str] = None
    overlapping_appointments: int = 0


class WorkingHours(BaseModel):
    start: str
    end: str


class DayAvailabilityResponse(BaseModel):
    date: str
    day_of_week: str
    is_working_day: bool
    total_slots: int
    available_slots: int
    working_hours: List[WorkingHours]
    slots: List[AvailableSlotResponse]


class AppointmentStatisticsResponse(BaseModel):
    scope: str
    scope_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    total: int
    by_status: Dict[str, int]
    completion_rate: float
    show_rate: float
