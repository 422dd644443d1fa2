"""Appointment booking and lifecycle routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query
from loguru import logger

from salon_booking.constants import Headers
from salon_booking.core.exceptions import ValidationError
from salon_booking.models.appointment import Appointment, BookingRequest, RescheduleRequest
from salon_booking.repositories import AppointmentEventRepository
from salon_booking.services import AppointmentLifecycle, AvailabilityService, BookingOrchestrator
from web.dependencies import (
    get_availability_service,
    get_booking_orchestrator,
    get_current_user_id,
    get_event_repository,
    get_lifecycle,
)
from web.models.appointments import (
    AppointmentCreateRequest,
    AppointmentEventResponse,
    AppointmentResponse,
    AppointmentStatisticsResponse,
    AppointmentUpdateRequest,
    CancelAppointmentRequest,
    CloseAppointmentRequest,
    ConfirmAppointmentRequest,
    DayAvailabilityResponse,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(**appointment.to_dict())


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    request_data: AppointmentCreateRequest,
    user_id: str = Depends(get_current_user_id),
    idempotency_key: Optional[str] = Header(default=None, alias=Headers.IDEMPOTENCY_KEY),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """
    Book an appointment in PENDING.

    Send an ``Idempotency-Key`` header to make retries safe.
    """
    booking = BookingRequest(**request_data.model_dump())
    appointment = await orchestrator.book(booking, user_id, idempotency_key=idempotency_key)
    return _to_response(appointment)


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    client_id: Optional[str] = Query(default=None),
    staff_id: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    """List appointments of one client or one staff member."""
    if bool(client_id) == bool(staff_id):
        raise ValidationError("Provide exactly one of client_id or staff_id", field="client_id")
    if client_id:
        appointments = await lifecycle.list_for_client(client_id, limit)
    else:
        appointments = await lifecycle.list_for_staff(staff_id, limit)
    logger.debug(f"User {user_id} listed {len(appointments)} appointments")
    return [_to_response(a) for a in appointments]


@router.get("/statistics", response_model=AppointmentStatisticsResponse)
async def get_statistics(
    staff_id: Optional[str] = Query(default=None),
    client_id: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD, inclusive"),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    """Counts per status with completion and show rates, globally or for one staff member or client."""
    stats = await lifecycle.statistics(
        staff_id=staff_id, client_id=client_id, start_date=start_date, end_date=end_date
    )
    return stats.to_dict()


@router.get("/date-range", response_model=List[AppointmentResponse])
async def list_appointments_in_range(
    start_date: str = Query(..., description="YYYY-MM-DD"),
    end_date: str = Query(..., description="YYYY-MM-DD, inclusive"),
    staff_id: Optional[str] = Query(default=None),
    client_id: Optional[str] = Query(default=None),
    limit: int = Query(default=500, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    """Appointments starting between two days, earliest first, in any status."""
    appointments = await lifecycle.list_in_range(
        start_date, end_date, staff_id=staff_id, client_id=client_id, limit=limit
    )
    return [_to_response(a) for a in appointments]


@router.get("/availability", response_model=DayAvailabilityResponse)
async def get_availability(
    date: str = Query(..., description="YYYY-MM-DD"),
    duration: Optional[int] = Query(default=None),
    staff_id: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Slots for a day, each flagged available or with the conflict reason."""
    result = await availability.day_availability(date, duration_minutes=duration, staff_id=staff_id)
    return result.to_dict()


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    return _to_response(await lifecycle.get_appointment(appointment_id))


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    body: AppointmentUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """Reschedule a pending or confirmed appointment or change its staff or services."""
    changes = RescheduleRequest(**body.model_dump())
    return _to_response(await orchestrator.reschedule(appointment_id, changes, user_id))


@router.get("/{appointment_id}/events", response_model=List[AppointmentEventResponse])
async def get_appointment_events(
    appointment_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
    events: AppointmentEventRepository = Depends(get_event_repository),
):
    """Audit trail of an appointment, oldest first."""
    await lifecycle.get_appointment(appointment_id)
    return [e.to_dict() for e in await events.get_by_appointment(appointment_id)]


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(
    appointment_id: str,
    body: Optional[ConfirmAppointmentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    body = body or ConfirmAppointmentRequest()
    appointment = await lifecycle.confirm(
        appointment_id, user_id, notes=body.notes, notify_client=body.notify_client
    )
    return _to_response(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    body: Optional[CancelAppointmentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    body = body or CancelAppointmentRequest()
    appointment = await lifecycle.cancel(
        appointment_id,
        user_id,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
        notify_client=body.notify_client,
    )
    return _to_response(appointment)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: str,
    body: Optional[CloseAppointmentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    notes = body.notes if body else None
    return _to_response(await lifecycle.complete(appointment_id, user_id, notes=notes))


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
    appointment_id: str,
    body: Optional[CloseAppointmentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    notes = body.notes if body else None
    return _to_response(await lifecycle.mark_no_show(appointment_id, user_id, notes=notes))
