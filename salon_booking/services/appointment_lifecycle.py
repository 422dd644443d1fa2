"""Appointment status state machine."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from loguru import logger

from salon_booking.core.clock import Clock, ensure_utc, utc_now
from salon_booking.core.enums import (
    AppointmentEventType,
    AppointmentStatusName,
    CancelledBy,
    Capability,
)
from salon_booking.core.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    NotFoundError,
    ValidationError,
)
from salon_booking.core.policy import BookingPolicy
from salon_booking.models.appointment import (
    Appointment,
    AppointmentEvent,
    AppointmentStatistics,
    AppointmentStatus,
    StatusChange,
)
from salon_booking.services.collaborators import (
    AppointmentStore,
    CapabilityChecker,
    StatusCatalog,
)
from salon_booking.services.notification_policy import decide_notification

Status = AppointmentStatusName

ALLOWED_TRANSITIONS: Dict[AppointmentStatusName, FrozenSet[AppointmentStatusName]] = {
    Status.PENDING: frozenset({Status.CONFIRMED, Status.CANCELLED}),
    Status.CONFIRMED: frozenset({Status.CANCELLED, Status.COMPLETED, Status.NO_SHOW}),
    Status.CANCELLED: frozenset(),
    Status.COMPLETED: frozenset(),
    Status.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatusName, target: AppointmentStatusName) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _parse_date(value: Union[date, str], field: str) -> date:
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be in YYYY-MM-DD format", field=field)


def _day_range(start_date: Union[date, str], end_date: Union[date, str]) -> Tuple[datetime, datetime]:
    """UTC instants covering whole days from start_date through end_date."""
    first = _parse_date(start_date, "start_date")
    last = _parse_date(end_date, "end_date")
    if last < first:
        raise ValidationError("end_date must not be before start_date", field="end_date")
    start = datetime.combine(first, time.min, tzinfo=timezone.utc)
    return start, datetime.combine(last, time.min, tzinfo=timezone.utc) + timedelta(days=1)


class AppointmentLifecycle:
    """
    Owns every status change of a persisted appointment.

    Each transition is checked against ``ALLOWED_TRANSITIONS``, written as a
    compare-and-swap on the status the decision was based on, and recorded as
    an ``AppointmentEvent`` in the same transaction.
    """

    def __init__(
        self,
        appointments: AppointmentStore,
        statuses: StatusCatalog,
        capabilities: CapabilityChecker,
        policy: Optional[BookingPolicy] = None,
        clock: Clock = utc_now,
    ):
        self.appointments = appointments
        self.statuses = statuses
        self.capabilities = capabilities
        self.policy = policy or BookingPolicy()
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_appointment(self, appointment_id: str) -> Appointment:
        """
        Raises:
            NotFoundError: If the appointment does not exist
        """
        appointment, _ = await self._load(appointment_id)
        return appointment

    async def list_for_client(self, client_id: str, limit: int = 100) -> List[Appointment]:
        return await self._with_status_names(await self.appointments.get_by_client(client_id, limit))

    async def list_for_staff(self, staff_id: str, limit: int = 100) -> List[Appointment]:
        return await self._with_status_names(await self.appointments.get_by_staff(staff_id, limit))

    async def list_in_range(
        self,
        start_date: Union[date, str],
        end_date: Union[date, str],
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[Appointment]:
        """
        Appointments starting on any day from ``start_date`` to ``end_date`` inclusive.

        Raises:
            ValidationError: Malformed dates or an end before the start
        """
        start, end = _day_range(start_date, end_date)
        found = await self.appointments.find_in_range(
            start, end, staff_id=staff_id, client_id=client_id, limit=limit
        )
        return await self._with_status_names(found)

    async def statistics(
        self,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        start_date: Optional[Union[date, str]] = None,
        end_date: Optional[Union[date, str]] = None,
    ) -> AppointmentStatistics:
        """
        Status breakdown across all appointments, one staff member's or one client's.

        Every catalog status is reported, with zero where nothing matches.
        A period needs both dates.

        Raises:
            ValidationError: Conflicting scope filters or an incomplete period
        """
        if staff_id and client_id:
            raise ValidationError("Provide at most one of staff_id or client_id", field="staff_id")
        if (start_date is None) != (end_date is None):
            raise ValidationError("Provide both start_date and end_date, or neither", field="start_date")

        start = end = None
        if start_date is not None:
            start, end = _day_range(start_date, end_date)

        counts = await self.appointments.count_by_status(
            staff_id=staff_id, client_id=client_id, start=start, end=end
        )
        by_status = {s.name: 0 for s in await self.statuses.find_all()}
        by_status.update(counts)

        if staff_id:
            scope, scope_id = "staff", staff_id
        elif client_id:
            scope, scope_id = "client", client_id
        else:
            scope, scope_id = "global", None
        return AppointmentStatistics(
            by_status=by_status, scope=scope, scope_id=scope_id, period_start=start, period_end=end
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def confirm(
        self,
        appointment_id: str,
        confirming_user_id: str,
        notes: Optional[str] = None,
        notify_client: bool = True,
    ) -> Appointment:
        """
        PENDING -> CONFIRMED.

        Checks run in order: status, start passed, requester standing,
        confirmation lead time.

        Raises:
            ValidationError: Blank or oversized notes
            NotFoundError: Unknown appointment
            BusinessRuleViolation: Appointment is not pending, already started
                or starts within the confirmation lead time
            AuthorizationError: Requester is not creator, assigned staff or admin
        """
        self._require_actor(confirming_user_id)
        notes = self.policy.validate_note(notes, "Confirmation notes")

        appointment, current = await self._load(appointment_id)
        current_name = Status(current.name)
        if current_name is not Status.PENDING:
            if current_name is Status.CONFIRMED:
                message = "Appointment is already confirmed"
            else:
                message = f"Cannot confirm a {current_name.value.lower()} appointment"
            logger.warning(f"Confirm rejected for {appointment_id}: {message}")
            raise BusinessRuleViolation(message, details={"status": current_name.value})

        now = self._now()
        start = ensure_utc(appointment.start_time)
        if start <= now:
            raise BusinessRuleViolation(
                "Cannot confirm appointments that have already occurred",
                details={"start_time": start.isoformat()},
            )

        allowed = confirming_user_id in (appointment.creator_id, appointment.staff_id)
        if not allowed:
            allowed = await self.capabilities.has_capability(
                confirming_user_id, Capability.ADMINISTER_APPOINTMENTS
            )
        if not allowed:
            logger.warning(f"User {confirming_user_id} may not confirm appointment {appointment_id}")
            raise AuthorizationError(
                "You do not have permission to confirm this appointment",
                requester_id=confirming_user_id,
            )

        if start - now <= self.policy.confirmation_lead:
            minutes = int(self.policy.confirmation_lead.total_seconds() // 60)
            raise BusinessRuleViolation(
                f"Appointments can only be confirmed at least {minutes} minutes in advance",
                details={"start_time": start.isoformat()},
            )

        return await self._transition(
            appointment,
            current,
            Status.CONFIRMED,
            actor_id=confirming_user_id,
            event_type=AppointmentEventType.CONFIRMED,
            notes=notes,
            notify_client=notify_client,
        )

    async def cancel(
        self,
        appointment_id: str,
        requester_id: str,
        reason: Optional[str] = None,
        cancelled_by: Optional[str] = None,
        notify_client: bool = True,
    ) -> Appointment:
        """
        PENDING/CONFIRMED -> CANCELLED.

        Checks run in order and the first violation wins: existence, already
        cancelled, finished, requester standing, start passed, cancellation
        window.

        Raises:
            ValidationError: Blank/oversized reason or unknown ``cancelled_by``
            NotFoundError: Unknown appointment
            BusinessRuleViolation: State or timing forbids cancelling
            AuthorizationError: Requester is not creator, client, staff or admin
        """
        self._require_actor(requester_id)
        reason = self.policy.validate_note(reason, "Cancellation reason")
        if cancelled_by is not None and cancelled_by not in CancelledBy.values():
            raise ValidationError(
                f"Cancelled by must be one of: {', '.join(CancelledBy.values())}",
                field="cancelled_by",
            )

        appointment, current = await self._load(appointment_id)
        current_name = Status(current.name)
        if current_name is Status.CANCELLED:
            raise BusinessRuleViolation("Appointment is already cancelled")
        if current_name in (Status.COMPLETED, Status.NO_SHOW):
            raise BusinessRuleViolation(
                "Cannot cancel a finished appointment", details={"status": current_name.value}
            )

        involved = appointment.involves(requester_id)
        is_admin = False
        if not involved or self.policy.admin_bypasses_cancellation_window:
            is_admin = await self.capabilities.has_capability(
                requester_id, Capability.ADMINISTER_APPOINTMENTS
            )
        if not involved and not is_admin:
            logger.warning(f"User {requester_id} may not cancel appointment {appointment_id}")
            raise AuthorizationError(
                "You do not have permission to cancel this appointment", requester_id=requester_id
            )

        now = self._now()
        start = ensure_utc(appointment.start_time)
        if start <= now:
            raise BusinessRuleViolation(
                "Cannot cancel past appointments", details={"start_time": start.isoformat()}
            )

        bypass = is_admin and self.policy.admin_bypasses_cancellation_window
        if not bypass and start - now < self.policy.cancellation_window:
            hours = self.policy.cancellation_window.total_seconds() / 3600
            logger.warning(
                f"Cancel rejected for {appointment_id}: starts {start.isoformat()}, now {now.isoformat()}"
            )
            raise BusinessRuleViolation(
                f"Cancellation window elapsed: appointments must be cancelled at least "
                f"{hours:g} hours in advance",
                details={"start_time": start.isoformat()},
            )

        return await self._transition(
            appointment,
            current,
            Status.CANCELLED,
            actor_id=requester_id,
            event_type=AppointmentEventType.CANCELLED,
            reason=reason,
            cancelled_by=cancelled_by or self._infer_cancelled_by(appointment, requester_id),
            notify_client=notify_client,
        )

    async def complete(
        self, appointment_id: str, requester_id: str, notes: Optional[str] = None
    ) -> Appointment:
        """CONFIRMED -> COMPLETED, by the assigned staff member or an admin once started."""
        return await self._finish(
            appointment_id, requester_id, notes, Status.COMPLETED, AppointmentEventType.COMPLETED
        )

    async def mark_no_show(
        self, appointment_id: str, requester_id: str, notes: Optional[str] = None
    ) -> Appointment:
        """CONFIRMED -> NO_SHOW, by the assigned staff member or an admin once started."""
        return await self._finish(
            appointment_id, requester_id, notes, Status.NO_SHOW, AppointmentEventType.NO_SHOW
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _finish(
        self,
        appointment_id: str,
        requester_id: str,
        notes: Optional[str],
        target: AppointmentStatusName,
        event_type: AppointmentEventType,
    ) -> Appointment:
        self._require_actor(requester_id)
        notes = self.policy.validate_note(notes, "Notes")

        appointment, current = await self._load(appointment_id)
        self._check_transition(Status(current.name), target)

        if requester_id != appointment.staff_id and not await self.capabilities.has_capability(
            requester_id, Capability.ADMINISTER_APPOINTMENTS
        ):
            logger.warning(f"User {requester_id} may not set {appointment_id} to {target.value}")
            raise AuthorizationError(
                "Only the assigned staff member or an administrator can close an appointment",
                requester_id=requester_id,
            )

        if self._now() < ensure_utc(appointment.start_time):
            raise BusinessRuleViolation(
                f"Cannot mark an appointment as {target.value} before it starts",
                details={"start_time": appointment.start_time.isoformat()},
            )

        return await self._transition(
            appointment,
            current,
            target,
            actor_id=requester_id,
            event_type=event_type,
            notes=notes,
            notify_client=True,
        )

    async def _transition(
        self,
        appointment: Appointment,
        current: AppointmentStatus,
        target_name: AppointmentStatusName,
        actor_id: str,
        event_type: AppointmentEventType,
        notify_client: bool,
        reason: Optional[str] = None,
        cancelled_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        self._check_transition(Status(current.name), target_name)
        target = await self._status_named(target_name)
        now = self._now()
        notification = decide_notification(event_type, notify_client)

        change = StatusChange(
            appointment_id=appointment.id,
            expected_status_id=current.id,
            new_status_id=target.id,
            occupies_slot=target_name.occupies_slot,
            updated_at=now,
            confirmed_at=now if target_name is Status.CONFIRMED else None,
            notes=notes,
        )
        event = AppointmentEvent(
            appointment_id=appointment.id,
            event_type=event_type.value,
            from_status=current.name,
            to_status=target.name,
            actor_id=actor_id,
            reason=reason,
            cancelled_by=cancelled_by,
            notes=notes,
            notify_client=notify_client,
            notification=notification.value if notification else None,
            created_at=now,
        )

        updated = await self.appointments.apply_transition(change, event)
        updated.status_name = target.name
        logger.info(
            f"Appointment {appointment.id} {current.name} -> {target.name} by {actor_id}"
            + (f" (notify: {notification.value})" if notification else "")
        )
        return updated

    @staticmethod
    def _check_transition(current: AppointmentStatusName, target: AppointmentStatusName) -> None:
        if not can_transition(current, target):
            raise BusinessRuleViolation(
                f"Cannot transition from {current.value} to {target.value}",
                details={"from": current.value, "to": target.value},
            )

    @staticmethod
    def _require_actor(user_id: Optional[str]) -> None:
        if not user_id or not str(user_id).strip():
            raise ValidationError("Requester ID is required", field="requester_id")

    @staticmethod
    def _infer_cancelled_by(appointment: Appointment, requester_id: str) -> str:
        if requester_id in (appointment.client_id, appointment.creator_id):
            return CancelledBy.CLIENT.value
        if requester_id == appointment.staff_id:
            return CancelledBy.STYLIST.value
        return CancelledBy.ADMIN.value

    async def _load(self, appointment_id: str) -> Tuple[Appointment, AppointmentStatus]:
        appointment = await self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        status = await self.statuses.get_by_id(appointment.status_id)
        if status is None:
            raise NotFoundError("AppointmentStatus", appointment.status_id)
        appointment.status_name = status.name
        return appointment, status

    async def _status_named(self, name: AppointmentStatusName) -> AppointmentStatus:
        status = await self.statuses.find_by_name(name.value)
        if status is None:
            raise NotFoundError("AppointmentStatus", name.value)
        return status

    async def _with_status_names(self, appointments: List[Appointment]) -> List[Appointment]:
        names = {s.id: s.name for s in await self.statuses.find_all()}
        for appointment in appointments:
            appointment.status_name = names.get(appointment.status_id)
        return appointments

    def _now(self) -> datetime:
        return ensure_utc(self.clock())
