"""Dependency injection for the salon booking API."""

from typing import AsyncIterator, Optional

from fastapi import Depends, Header
from loguru import logger

from salon_booking.constants import Headers
from salon_booking.core.clock import Clock, utc_now
from salon_booking.core.enums import Capability
from salon_booking.core.exceptions import AuthenticationError, AuthorizationError
from salon_booking.core.policy import BookingPolicy
from salon_booking.core.settings import get_settings
from salon_booking.models.database import Database
from salon_booking.models.db_factory import DatabaseFactory
from salon_booking.repositories import (
    AppointmentEventRepository,
    AppointmentRepository,
    AppointmentStatusRepository,
    CalendarWindowRepository,
    DirectoryRepository,
)
from salon_booking.services import (
    AppointmentLifecycle,
    AvailabilityService,
    BookingOrchestrator,
    BusinessCalendar,
    ConflictDetector,
)
from salon_booking.utils.idempotency import IdempotencyStore

# Process-wide idempotency store (single worker)
_idempotency_store: Optional[IdempotencyStore] = None


async def get_db() -> AsyncIterator[Database]:
    """
    FastAPI dependency - singleton DB via DatabaseFactory.

    Do NOT close the database in route handlers; the lifespan handler does.
    """
    db = await DatabaseFactory.ensure_connected()
    yield db


def get_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(get_settings())


def get_clock() -> Clock:
    return utc_now


def get_idempotency_store() -> IdempotencyStore:
    """Get global idempotency store instance."""
    global _idempotency_store
    if _idempotency_store is None:
        _idempotency_store = IdempotencyStore(ttl_seconds=get_settings().idempotency_ttl_seconds)
    return _idempotency_store


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=Headers.USER_ID),
) -> str:
    """
    Caller identity, asserted by the upstream auth gateway.

    Raises:
        AuthenticationError: If the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError(f"Missing {Headers.USER_ID} header")
    return x_user_id.strip()


# Repository dependency functions
async def get_appointment_repository(db: Database = Depends(get_db)) -> AppointmentRepository:
    return AppointmentRepository(db)


async def get_status_repository(db: Database = Depends(get_db)) -> AppointmentStatusRepository:
    return AppointmentStatusRepository(db)


async def get_calendar_window_repository(
    db: Database = Depends(get_db),
) -> CalendarWindowRepository:
    return CalendarWindowRepository(db)


async def get_event_repository(db: Database = Depends(get_db)) -> AppointmentEventRepository:
    return AppointmentEventRepository(db)


async def get_directory_repository(db: Database = Depends(get_db)) -> DirectoryRepository:
    return DirectoryRepository(db)


# Service dependency functions
async def get_business_calendar(
    windows: CalendarWindowRepository = Depends(get_calendar_window_repository),
    policy: BookingPolicy = Depends(get_policy),
) -> BusinessCalendar:
    return BusinessCalendar(windows, policy)


async def get_conflict_detector(
    appointments: AppointmentRepository = Depends(get_appointment_repository),
) -> ConflictDetector:
    return ConflictDetector(appointments)


async def get_booking_orchestrator(
    appointments: AppointmentRepository = Depends(get_appointment_repository),
    statuses: AppointmentStatusRepository = Depends(get_status_repository),
    directory: DirectoryRepository = Depends(get_directory_repository),
    calendar: BusinessCalendar = Depends(get_business_calendar),
    conflicts: ConflictDetector = Depends(get_conflict_detector),
    policy: BookingPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
    idempotency: IdempotencyStore = Depends(get_idempotency_store),
) -> BookingOrchestrator:
    return BookingOrchestrator(
        appointments=appointments,
        statuses=statuses,
        offerings=directory,
        clients=directory,
        staff=directory,
        calendar=calendar,
        conflicts=conflicts,
        policy=policy,
        clock=clock,
        idempotency=idempotency,
        capabilities=directory,
    )


async def get_lifecycle(
    appointments: AppointmentRepository = Depends(get_appointment_repository),
    statuses: AppointmentStatusRepository = Depends(get_status_repository),
    directory: DirectoryRepository = Depends(get_directory_repository),
    policy: BookingPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
) -> AppointmentLifecycle:
    return AppointmentLifecycle(appointments, statuses, directory, policy=policy, clock=clock)


async def get_availability_service(
    appointments: AppointmentRepository = Depends(get_appointment_repository),
    calendar: BusinessCalendar = Depends(get_business_calendar),
    policy: BookingPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(appointments, calendar, policy=policy, clock=clock)


async def require_calendar_manager(
    user_id: str = Depends(get_current_user_id),
    directory: DirectoryRepository = Depends(get_directory_repository),
) -> str:
    """
    Raises:
        AuthorizationError: If the caller may not administer the calendar
    """
    if not await directory.has_capability(user_id, Capability.MANAGE_CALENDAR):
        logger.warning(f"User {user_id} denied calendar administration")
        raise AuthorizationError("Calendar administration requires the calendar:manage capability", user_id)
    return user_id
