"""Decides which client notification a lifecycle event warrants."""

from typing import Dict, Optional

from salon_booking.core.enums import AppointmentEventType, NotificationType

_NOTIFICATIONS: Dict[AppointmentEventType, Optional[NotificationType]] = {
    # Booking is announced once the salon confirms it.
    AppointmentEventType.BOOKED: None,
    AppointmentEventType.CONFIRMED: NotificationType.APPOINTMENT_CONFIRMATION,
    AppointmentEventType.CANCELLED: NotificationType.APPOINTMENT_CANCELLATION,
    AppointmentEventType.COMPLETED: None,
    AppointmentEventType.NO_SHOW: None,
    AppointmentEventType.RESCHEDULED: NotificationType.APPOINTMENT_RESCHEDULED,
}


def decide_notification(
    event_type: AppointmentEventType, notify_client: bool = True
) -> Optional[NotificationType]:
    """
    Return the notification to send for an event, or None.

    Delivery is not handled here; callers record the decision.
    """
    if not notify_client:
        return None
    return _NOTIFICATIONS.get(AppointmentEventType(event_type))
