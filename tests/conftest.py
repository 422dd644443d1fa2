"""Pytest configuration and common fixtures."""

import os
import sys
import warnings
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

# CRITICAL: Set environment variables BEFORE any salon_booking imports
# pydantic_settings reads them when the settings singleton is first built.
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/salon_booking_test")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from fakes import (
    FakeAppointmentStore,
    FakeCalendarWindowCatalog,
    FakeDirectory,
    FakeStatusCatalog,
    MutableClock,
)
from salon_booking.core.policy import BookingPolicy
from salon_booking.services.appointment_lifecycle import AppointmentLifecycle
from salon_booking.services.availability import AvailabilityService
from salon_booking.services.booking_orchestrator import BookingOrchestrator
from salon_booking.services.business_calendar import BusinessCalendar
from salon_booking.services.conflict_detector import ConflictDetector
from salon_booking.utils.idempotency import IdempotencyStore, InMemoryIdempotencyBackend

# Sunday 2025-06-01 12:00 UTC; the following Monday is 2025-06-02
DEFAULT_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")
    config.addinivalue_line("markers", "integration: requires a PostgreSQL database")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Automatically set up test environment for all tests."""
    monkeypatch.setenv("ENV", "testing")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost:5432/salon_booking_test")

    # Reset settings singleton so each test gets fresh settings
    from salon_booking.core.settings import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock():
    """Clock pinned to DEFAULT_NOW; tests may advance it."""
    return MutableClock(DEFAULT_NOW)


@pytest.fixture
def policy():
    return BookingPolicy()


@pytest.fixture
def statuses():
    return FakeStatusCatalog()


@pytest.fixture
def directory():
    """Directory with two clients, two staff members and a small service menu."""
    return FakeDirectory(
        clients={"client-1", "client-2"},
        staff={"staff-1", "staff-2"},
        services={"svc-cut": 45, "svc-wash": 15, "svc-color": 90, "svc-trim": 5},
        capabilities={"admin-1": {"appointments:administer", "calendar:manage"}},
    )


@pytest.fixture
def windows():
    """Monday to Friday 09:00-17:00, Saturday 10:00-14:00, Sunday closed."""
    catalog = FakeCalendarWindowCatalog()
    for weekday in ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"):
        catalog.seed(weekday, "09:00", "17:00")
    catalog.seed("SATURDAY", "10:00", "14:00")
    return catalog


@pytest.fixture
def store(statuses):
    return FakeAppointmentStore(statuses)


@pytest.fixture
def calendar(windows, policy):
    return BusinessCalendar(windows, policy)


@pytest.fixture
def conflicts(store):
    return ConflictDetector(store)


@pytest.fixture
def idempotency(clock):
    return IdempotencyStore(ttl_seconds=3600, backend=InMemoryIdempotencyBackend(clock=clock))


@pytest.fixture
def orchestrator(store, statuses, directory, calendar, conflicts, policy, clock, idempotency):
    return BookingOrchestrator(
        appointments=store,
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


@pytest.fixture
def lifecycle(store, statuses, directory, policy, clock):
    return AppointmentLifecycle(store, statuses, directory, policy=policy, clock=clock)


@pytest.fixture
def availability(store, calendar, policy, clock):
    return AvailabilityService(store, calendar, policy=policy, clock=clock)
