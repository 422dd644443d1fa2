"""Booking orchestration: validate, resolve, check, construct, persist."""

import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from loguru import logger

from salon_booking.core.clock import Clock, ensure_utc, utc_now
from salon_booking.core.enums import AppointmentEventType, AppointmentStatusName, Capability
from salon_booking.core.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from salon_booking.core.policy import BookingPolicy
from salon_booking.models.appointment import (
    Appointment,
    AppointmentEvent,
    AppointmentUpdate,
    BookingRequest,
    RescheduleRequest,
)
from salon_booking.models.calendar import BusinessCalendarWindow
from salon_booking.services.business_calendar import BusinessCalendar
from salon_booking.services.collaborators import (
    AppointmentStore,
    CapabilityChecker,
    ClientDirectory,
    OfferingLookup,
    StaffDirectory,
    StatusCatalog,
)
from salon_booking.services.conflict_detector import ConflictDetector
from salon_booking.services.notification_policy import decide_notification
from salon_booking.utils.idempotency import IdempotencyStore


class BookingOrchestrator:
    """
    Turns a booking request into a persisted PENDING appointment, and moves
    existing appointments under the same slot rules.

    Every step before the insert is a read, so a failure leaves nothing behind.
    The insert itself is guarded by the store's per-staff exclusion constraint,
    which closes the gap between the conflict check and the write.
    """

    def __init__(
        self,
        appointments: AppointmentStore,
        statuses: StatusCatalog,
        offerings: OfferingLookup,
        clients: ClientDirectory,
        staff: StaffDirectory,
        calendar: BusinessCalendar,
        conflicts: ConflictDetector,
        policy: Optional[BookingPolicy] = None,
        clock: Clock = utc_now,
        idempotency: Optional[IdempotencyStore] = None,
        capabilities: Optional[CapabilityChecker] = None,
    ):
        self.appointments = appointments
        self.statuses = statuses
        self.offerings = offerings
        self.clients = clients
        self.staff = staff
        self.calendar = calendar
        self.conflicts = conflicts
        self.policy = policy or BookingPolicy()
        self.clock = clock
        self.idempotency = idempotency
        self.capabilities = capabilities

    async def book(
        self,
        request: BookingRequest,
        creator_id: str,
        idempotency_key: Optional[str] = None,
    ) -> Appointment:
        """
        Book an appointment.

        Args:
            request: Booking intent
            creator_id: User performing the booking
            idempotency_key: Client-supplied key; repeats within the TTL return
                the first successful result for the same request body

        Returns:
            The stored appointment in PENDING

        Raises:
            ValidationError: Malformed or out-of-policy request
            NotFoundError: Client, staff member, service, PENDING status or
                calendar window missing
            BusinessRuleViolation: Slot outside business hours
            SlotUnavailableError: Staff member already booked for the slot
            IdempotencyKeyReusedError: Key already used for a different request
        """
        start, explicit_duration, notes = self._validate(request, creator_id)

        if idempotency_key and self.idempotency is not None:
            appointment, cached = await self.idempotency.check_and_set(
                "book_appointment",
                {"creator_id": creator_id, "key": idempotency_key},
                lambda: self._book(request, creator_id, start, explicit_duration, notes),
                fingerprint=IdempotencyStore.fingerprint(
                    {
                        "client_id": request.client_id,
                        "start_time": start.isoformat(),
                        "service_ids": list(request.service_ids),
                        "staff_id": request.staff_id,
                        "duration_minutes": explicit_duration,
                        "notes": notes,
                    }
                ),
            )
            if cached:
                logger.info(f"Replayed booking {appointment.id} for idempotency key from {creator_id}")
            return appointment

        return await self._book(request, creator_id, start, explicit_duration, notes)

    async def reschedule(
        self,
        appointment_id: str,
        request: RescheduleRequest,
        requester_id: str,
    ) -> Appointment:
        """
        Move a pending or confirmed appointment, or change its staff or services.

        The status is kept. The new slot goes through the same horizon,
        duration, business-hours and staff-conflict checks as a booking,
        ignoring the appointment's own current slot.

        Raises:
            ValidationError: Empty or malformed change set
            NotFoundError: Unknown appointment, staff member or service
            AuthorizationError: Requester is not creator, client, staff or admin
            BusinessRuleViolation: Terminal or started appointment, inside the
                modification window, or a confirmed appointment moved without
                notes or a reason
            SlotUnavailableError: Staff member already booked for the new slot
            ConcurrentModificationError: Status changed while rescheduling
        """
        if not requester_id or not str(requester_id).strip():
            raise ValidationError("Requester ID is required", field="requester_id")
        new_start, explicit_duration, notes, reason = self._validate_changes(request)

        appointment = await self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        current = await self.statuses.get_by_id(appointment.status_id)
        if current is None:
            raise NotFoundError("AppointmentStatus", appointment.status_id)
        current_name = AppointmentStatusName(current.name)
        if current_name.is_terminal:
            raise BusinessRuleViolation(
                f"Cannot reschedule a {current_name.value.lower()} appointment",
                details={"status": current_name.value},
            )

        is_admin = await self._is_admin(requester_id)
        if not appointment.involves(requester_id) and not is_admin:
            logger.warning(f"User {requester_id} may not reschedule appointment {appointment_id}")
            raise AuthorizationError(
                "You do not have permission to update this appointment", requester_id=requester_id
            )

        now = self._now()
        current_start = ensure_utc(appointment.start_time)
        if current_start <= now:
            raise BusinessRuleViolation(
                "Cannot update appointments that have already occurred",
                details={"start_time": current_start.isoformat()},
            )
        bypass = is_admin and self.policy.admin_bypasses_cancellation_window
        if not bypass and current_start - now < self.policy.cancellation_window:
            hours = self.policy.cancellation_window.total_seconds() / 3600
            raise BusinessRuleViolation(
                f"Appointments can only be modified at least {hours:g} hours in advance",
                details={"start_time": current_start.isoformat()},
            )
        if current_name is AppointmentStatusName.CONFIRMED and new_start and not (notes or reason):
            raise BusinessRuleViolation(
                "A note or reason is required when moving a confirmed appointment"
            )

        start = new_start or current_start
        staff_id = request.staff_id if request.staff_id is not None else appointment.staff_id
        service_ids = list(request.service_ids) if request.service_ids is not None else appointment.service_ids

        if request.staff_id is not None and await self.staff.find_staff(staff_id) is None:
            raise NotFoundError("Staff", staff_id)
        duration = explicit_duration or appointment.duration_minutes
        if request.service_ids is not None:
            durations = await self.offerings.find_offering_durations(service_ids)
            for service_id in service_ids:
                if service_id not in durations:
                    raise NotFoundError("Service", service_id)
            duration = explicit_duration or self._total_duration(service_ids, durations)
        end = start + timedelta(minutes=duration)

        conflicting = await self.conflicts.find_conflicts(
            start, end, staff_id=staff_id, exclude_id=appointment.id
        )
        if conflicting:
            raise SlotUnavailableError(
                "Time slot unavailable: there are conflicting appointments at this time",
                conflicting_ids=[a.id for a in conflicting],
            )
        window = await self._resolve_window(start, end)

        notification = decide_notification(AppointmentEventType.RESCHEDULED, request.notify_client)
        update = AppointmentUpdate(
            appointment_id=appointment.id,
            expected_status_id=current.id,
            start_time=start,
            duration_minutes=duration,
            staff_id=staff_id,
            calendar_window_id=window.id,
            service_ids=service_ids,
            updated_at=now,
            notes=notes,
        )
        event = AppointmentEvent(
            appointment_id=appointment.id,
            event_type=AppointmentEventType.RESCHEDULED.value,
            from_status=current.name,
            to_status=current.name,
            actor_id=requester_id,
            reason=reason,
            notes=notes,
            notify_client=request.notify_client,
            notification=notification.value if notification else None,
            created_at=now,
        )

        updated = await self.appointments.update_schedule(update, event)
        updated.status_name = current.name
        logger.info(
            f"Appointment {appointment.id} rescheduled by {requester_id}: "
            f"{current_start.isoformat()} -> {start.isoformat()} ({duration} min, "
            f"staff={staff_id or 'unassigned'})"
        )
        return updated

    async def _book(
        self,
        request: BookingRequest,
        creator_id: str,
        start: datetime,
        explicit_duration: Optional[int],
        notes: Optional[str],
    ) -> Appointment:
        service_ids = list(request.service_ids)
        durations = await self._resolve_references(request.client_id, request.staff_id, service_ids)

        duration = explicit_duration or self._total_duration(service_ids, durations)
        end = start + timedelta(minutes=duration)

        await self.conflicts.ensure_available(start, end, staff_id=request.staff_id)

        pending = await self.statuses.find_by_name(AppointmentStatusName.PENDING.value)
        if pending is None:
            raise NotFoundError("AppointmentStatus", AppointmentStatusName.PENDING.value)
        window = await self._resolve_window(start, end)

        now = self._now()
        appointment = Appointment(
            id=str(uuid.uuid4()),
            start_time=start,
            duration_minutes=duration,
            creator_id=creator_id,
            client_id=request.client_id,
            staff_id=request.staff_id,
            calendar_window_id=window.id,
            status_id=pending.id,
            service_ids=service_ids,
            notes=notes,
            created_at=now,
            updated_at=now,
            status_name=pending.name,
        )
        notification = decide_notification(AppointmentEventType.BOOKED)
        event = AppointmentEvent(
            appointment_id=appointment.id,
            event_type=AppointmentEventType.BOOKED.value,
            to_status=pending.name,
            actor_id=creator_id,
            notes=notes,
            notification=notification.value if notification else None,
            created_at=now,
        )

        stored = await self.appointments.create(appointment, event)
        stored.status_name = pending.name
        logger.info(
            f"Appointment {stored.id} booked for client {stored.client_id} at "
            f"{start.isoformat()} ({duration} min, staff={stored.staff_id or 'unassigned'})"
        )
        return stored

    def _validate(
        self, request: BookingRequest, creator_id: str
    ) -> Tuple[datetime, Optional[int], Optional[str]]:
        """Structural checks; runs before any collaborator is consulted."""
        if not creator_id or not str(creator_id).strip():
            raise ValidationError("User ID is required", field="creator_id")
        if not request.client_id or not str(request.client_id).strip():
            raise ValidationError("Client ID is required", field="client_id")
        if request.start_time is None or request.start_time == "":
            raise ValidationError("Appointment date and time is required", field="start_time")
        if not request.service_ids:
            raise ValidationError("At least one service must be selected", field="service_ids")
        if any(not sid or not str(sid).strip() for sid in request.service_ids):
            raise ValidationError("Service IDs cannot be empty", field="service_ids")
        if request.staff_id is not None and not str(request.staff_id).strip():
            raise ValidationError("Staff ID cannot be empty if provided", field="staff_id")

        start = self._parse_start(request.start_time)
        now = self._now()
        if start <= now:
            raise ValidationError("Appointment cannot be scheduled in the past", field="start_time")
        if start > self.policy.booking_horizon(now):
            raise ValidationError(
                f"Appointment cannot be scheduled more than "
                f"{self.policy.booking_horizon_months} months in advance",
                field="start_time",
            )

        duration = None
        if request.duration_minutes is not None:
            duration = self.policy.validate_duration(request.duration_minutes)
        notes = self.policy.validate_note(request.notes, "Notes")
        return start, duration, notes

    def _validate_changes(
        self, request: RescheduleRequest
    ) -> Tuple[Optional[datetime], Optional[int], Optional[str], Optional[str]]:
        """Structural checks on a change set, before anything is loaded."""
        if not request.has_changes():
            raise ValidationError("At least one field must be provided for update")
        if request.service_ids is not None:
            if not request.service_ids:
                raise ValidationError("At least one service must be selected", field="service_ids")
            if any(not sid or not str(sid).strip() for sid in request.service_ids):
                raise ValidationError("Service IDs cannot be empty", field="service_ids")
        if request.staff_id is not None and not str(request.staff_id).strip():
            raise ValidationError("Staff ID cannot be empty if provided", field="staff_id")

        start = None
        if request.start_time is not None:
            start = self._parse_start(request.start_time)
            now = self._now()
            if start <= now:
                raise ValidationError("Appointment cannot be rescheduled to the past", field="start_time")
            if start > self.policy.booking_horizon(now):
                raise ValidationError(
                    f"Appointment cannot be scheduled more than "
                    f"{self.policy.booking_horizon_months} months in advance",
                    field="start_time",
                )

        duration = None
        if request.duration_minutes is not None:
            duration = self.policy.validate_duration(request.duration_minutes)
        notes = self.policy.validate_note(request.notes, "Notes")
        reason = self.policy.validate_note(request.reason, "Reason")
        return start, duration, notes, reason

    async def _is_admin(self, user_id: str) -> bool:
        if self.capabilities is None:
            return False
        return await self.capabilities.has_capability(user_id, Capability.ADMINISTER_APPOINTMENTS)

    @staticmethod
    def _parse_start(value) -> datetime:
        if isinstance(value, datetime):
            return ensure_utc(value)
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("Invalid date format", field="start_time")
        return ensure_utc(parsed)

    async def _resolve_references(
        self, client_id: str, staff_id: Optional[str], service_ids: List[str]
    ) -> Dict[str, int]:
        if await self.clients.find_client(client_id) is None:
            raise NotFoundError("Client", client_id)
        if staff_id is not None and await self.staff.find_staff(staff_id) is None:
            raise NotFoundError("Staff", staff_id)

        durations = await self.offerings.find_offering_durations(service_ids)
        for service_id in service_ids:
            if service_id not in durations:
                raise NotFoundError("Service", service_id)
        return durations

    def _total_duration(self, service_ids: List[str], durations: Dict[str, int]) -> int:
        """Sum per listed service (repeats count again), floored at the minimum duration."""
        total = sum(durations[service_id] for service_id in service_ids)
        return max(total, self.policy.min_duration_minutes)

    async def _resolve_window(self, start: datetime, end: datetime) -> BusinessCalendarWindow:
        if self.policy.enforce_business_hours:
            return await self.calendar.window_for_slot(start, end)
        return await self.calendar.window_for(start)

    def _now(self) -> datetime:
        return ensure_utc(self.clock())
