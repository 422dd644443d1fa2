"""End-to-end API tests with in-memory collaborators behind FastAPI dependencies."""

from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from salon_booking.models.appointment import AppointmentEvent
from salon_booking.models.db_factory import DatabaseFactory
from salon_booking.utils.idempotency import IdempotencyStore
import web.dependencies as web_dependencies
from web.app import create_app
from web.dependencies import (
    get_availability_service,
    get_booking_orchestrator,
    get_business_calendar,
    get_directory_repository,
    get_event_repository,
    get_lifecycle,
)

CLIENT = {"X-User-Id": "client-1"}
STAFF = {"X-User-Id": "staff-1"}
ADMIN = {"X-User-Id": "admin-1"}

BOOKING = {
    "client_id": "client-1",
    "start_time": "2025-06-02T09:00:00Z",
    "service_ids": ["svc-cut"],
    "staff_id": "staff-1",
}


class EventLog:
    """Event reads served from the fake store's event list."""

    def __init__(self, store):
        self.store = store

    async def get_by_appointment(self, appointment_id: str) -> List[AppointmentEvent]:
        return self.store.events_for(appointment_id)


@pytest.fixture
def client(orchestrator, lifecycle, availability, calendar, directory, store):
    app = create_app(env_override="testing", use_lifespan=False)
    app.dependency_overrides[get_booking_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_availability_service] = lambda: availability
    app.dependency_overrides[get_business_calendar] = lambda: calendar
    app.dependency_overrides[get_directory_repository] = lambda: directory
    app.dependency_overrides[get_event_repository] = lambda: EventLog(store)
    with TestClient(app) as test_client:
        yield test_client


def book(client, **overrides):
    payload = {**BOOKING, **overrides}
    return client.post("/api/v1/appointments", json=payload, headers=CLIENT)


class TestBookingEndpoint:
    def test_book_returns_201(self, client):
        response = book(client)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["duration_minutes"] == 45
        assert body["creator_id"] == "client-1"

    def test_missing_identity_is_401(self, client):
        response = client.post("/api/v1/appointments", json=BOOKING)
        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["type"] == "urn:salonbooking:error:unauthorized"

    def test_empty_services_is_400(self, client):
        response = book(client, service_ids=[])
        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "At least one service must be selected"
        assert body["field"] == "service_ids"

    def test_unknown_client_is_404(self, client):
        response = book(client, client_id="ghost")
        assert response.status_code == 404
        assert response.json()["resource_type"] == "Client"

    def test_overlap_is_409(self, client):
        assert book(client).status_code == 201
        response = book(client, client_id="client-2", start_time="2025-06-02T09:30:00Z")
        assert response.status_code == 409
        assert response.json()["conflicting_appointment_ids"]

    def test_outside_hours_is_409(self, client):
        response = book(client, start_time="2025-06-02T16:45:00Z")
        assert response.status_code == 409
        assert response.json()["type"] == "urn:salonbooking:error:business-rule"

    def test_idempotency_key_replays(self, client):
        headers = {**CLIENT, "Idempotency-Key": "retry-1"}
        first = client.post("/api/v1/appointments", json=BOOKING, headers=headers)
        second = client.post("/api/v1/appointments", json=BOOKING, headers=headers)
        assert first.status_code == second.status_code == 201
        assert first.json()["id"] == second.json()["id"]

    def test_idempotency_key_reused_for_other_booking_is_409(self, client):
        headers = {**CLIENT, "Idempotency-Key": "retry-1"}
        assert client.post("/api/v1/appointments", json=BOOKING, headers=headers).status_code == 201
        response = client.post(
            "/api/v1/appointments",
            json={**BOOKING, "staff_id": "staff-2", "start_time": "2025-06-02T11:00:00Z"},
            headers=headers,
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Idempotency key was already used for a different request"

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"duration_minutes": "long"}, "duration_minutes"),
            ({"service_ids": "svc-cut"}, "service_ids"),
        ],
    )
    def test_malformed_body_is_400(self, client, overrides, field):
        response = client.post("/api/v1/appointments", json={**BOOKING, **overrides}, headers=CLIENT)
        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "urn:salonbooking:error:validation"
        assert body["field"] == field
        assert field in body["errors"]


class TestLifecycleEndpoints:
    def test_confirm_then_cancel(self, client):
        appointment_id = book(client).json()["id"]

        confirmed = client.post(f"/api/v1/appointments/{appointment_id}/confirm", headers=STAFF)
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "CONFIRMED"
        assert confirmed.json()["confirmed_at"] is not None

        cancelled = client.post(
            f"/api/v1/appointments/{appointment_id}/cancel",
            json={"reason": "Schedule change"},
            headers=CLIENT,
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "CANCELLED"

    def test_second_cancel_is_409(self, client):
        appointment_id = book(client).json()["id"]
        client.post(f"/api/v1/appointments/{appointment_id}/cancel", headers=CLIENT)
        response = client.post(f"/api/v1/appointments/{appointment_id}/cancel", headers=CLIENT)
        assert response.status_code == 409
        assert response.json()["detail"] == "Appointment is already cancelled"

    def test_stranger_cancel_is_403(self, client):
        appointment_id = book(client).json()["id"]
        response = client.post(
            f"/api/v1/appointments/{appointment_id}/cancel", headers={"X-User-Id": "client-2"}
        )
        assert response.status_code == 403

    def test_unknown_appointment_is_404(self, client):
        response = client.get("/api/v1/appointments/nope", headers=CLIENT)
        assert response.status_code == 404

    def test_events_trail(self, client):
        appointment_id = book(client).json()["id"]
        client.post(f"/api/v1/appointments/{appointment_id}/confirm", headers=STAFF)

        response = client.get(f"/api/v1/appointments/{appointment_id}/events", headers=CLIENT)
        assert response.status_code == 200
        assert [e["event_type"] for e in response.json()] == ["BOOKED", "CONFIRMED"]
        assert response.json()[1]["notification"] == "APPOINTMENT_CONFIRMATION"

    def test_complete_before_start_is_409(self, client):
        appointment_id = book(client).json()["id"]
        client.post(f"/api/v1/appointments/{appointment_id}/confirm", headers=STAFF)
        response = client.post(f"/api/v1/appointments/{appointment_id}/complete", headers=STAFF)
        assert response.status_code == 409

    def test_list_by_client(self, client):
        book(client)
        response = client.get("/api/v1/appointments", params={"client_id": "client-1"}, headers=CLIENT)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_list_requires_one_filter(self, client):
        response = client.get("/api/v1/appointments", headers=CLIENT)
        assert response.status_code == 400


class TestUpdateEndpoint:
    TUESDAY = {"start_time": "2025-06-03T10:00:00Z"}

    def test_put_moves_appointment(self, client):
        appointment_id = book(client, **self.TUESDAY).json()["id"]
        response = client.put(
            f"/api/v1/appointments/{appointment_id}",
            json={"start_time": "2025-06-04T11:00:00Z", "notes": "Later slot"},
            headers=CLIENT,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["start_time"].startswith("2025-06-04T11:00:00")
        assert body["status"] == "PENDING"
        assert body["notes"] == "Later slot"

        events = client.get(f"/api/v1/appointments/{appointment_id}/events", headers=CLIENT).json()
        assert [e["event_type"] for e in events] == ["BOOKED", "RESCHEDULED"]

    def test_put_by_stranger_is_403(self, client):
        appointment_id = book(client, **self.TUESDAY).json()["id"]
        response = client.put(
            f"/api/v1/appointments/{appointment_id}",
            json={"start_time": "2025-06-04T11:00:00Z"},
            headers={"X-User-Id": "client-2"},
        )
        assert response.status_code == 403

    def test_put_without_changes_is_400(self, client):
        appointment_id = book(client, **self.TUESDAY).json()["id"]
        response = client.put(f"/api/v1/appointments/{appointment_id}", json={}, headers=CLIENT)
        assert response.status_code == 400

    def test_put_into_taken_slot_is_409(self, client):
        appointment_id = book(client, **self.TUESDAY).json()["id"]
        book(client, client_id="client-2", start_time="2025-06-04T11:00:00Z")
        response = client.put(
            f"/api/v1/appointments/{appointment_id}",
            json={"start_time": "2025-06-04T11:00:00Z"},
            headers=CLIENT,
        )
        assert response.status_code == 409
        assert response.json()["conflicting_appointment_ids"]

    def test_put_unknown_is_404(self, client):
        response = client.put("/api/v1/appointments/nope", json={"notes": "x"}, headers=CLIENT)
        assert response.status_code == 404


class TestReportEndpoints:
    def test_statistics(self, client):
        book(client)
        book(client, client_id="client-2", staff_id="staff-2")
        response = client.get("/api/v1/appointments/statistics", headers=ADMIN)
        assert response.status_code == 200
        body = response.json()
        assert body["scope"] == "global"
        assert body["total"] == 2
        assert body["by_status"]["PENDING"] == 2
        assert body["completion_rate"] == 0.0

    def test_statistics_per_staff(self, client):
        book(client)
        book(client, client_id="client-2", staff_id="staff-2")
        response = client.get(
            "/api/v1/appointments/statistics", params={"staff_id": "staff-2"}, headers=STAFF
        )
        assert response.json()["total"] == 1
        assert response.json()["scope_id"] == "staff-2"

    def test_statistics_two_scopes_is_400(self, client):
        response = client.get(
            "/api/v1/appointments/statistics",
            params={"staff_id": "staff-1", "client_id": "client-1"},
            headers=ADMIN,
        )
        assert response.status_code == 400

    def test_date_range(self, client):
        first = book(client).json()["id"]
        second = book(client, start_time="2025-06-03T10:00:00Z").json()["id"]
        book(client, start_time="2025-06-05T10:00:00Z")
        response = client.get(
            "/api/v1/appointments/date-range",
            params={"start_date": "2025-06-02", "end_date": "2025-06-03"},
            headers=CLIENT,
        )
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [first, second]

    def test_date_range_requires_both_dates(self, client):
        response = client.get(
            "/api/v1/appointments/date-range", params={"start_date": "2025-06-02"}, headers=CLIENT
        )
        assert response.status_code == 400
        assert response.json()["field"] == "end_date"


class TestAvailabilityEndpoint:
    def test_day_availability(self, client):
        book(client)
        response = client.get(
            "/api/v1/appointments/availability",
            params={"date": "2025-06-02", "staff_id": "staff-1"},
            headers=CLIENT,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total_slots"] == 16
        assert body["available_slots"] == 14
        assert body["working_hours"] == [{"start": "09:00", "end": "17:00"}]

    def test_bad_date_is_400(self, client):
        response = client.get(
            "/api/v1/appointments/availability", params={"date": "tomorrow"}, headers=CLIENT
        )
        assert response.status_code == 400


class TestCalendarEndpoints:
    def test_list_windows(self, client):
        response = client.get("/api/v1/calendar/windows", headers=CLIENT)
        assert response.status_code == 200
        assert len(response.json()) == 6

    def test_add_window_requires_capability(self, client):
        response = client.post(
            "/api/v1/calendar/windows",
            json={"weekday": "SUNDAY", "start_time": "10:00", "end_time": "14:00"},
            headers=CLIENT,
        )
        assert response.status_code == 403

    def test_add_and_remove_window(self, client):
        created = client.post(
            "/api/v1/calendar/windows",
            json={"weekday": "SUNDAY", "start_time": "10:00", "end_time": "14:00"},
            headers=ADMIN,
        )
        assert created.status_code == 201
        window_id = created.json()["id"]

        assert client.delete(f"/api/v1/calendar/windows/{window_id}", headers=ADMIN).status_code == 204
        assert client.delete(f"/api/v1/calendar/windows/{window_id}", headers=ADMIN).status_code == 404

    def test_overlapping_window_is_409(self, client):
        response = client.post(
            "/api/v1/calendar/windows",
            json={"weekday": "MONDAY", "start_time": "16:00", "end_time": "18:00"},
            headers=ADMIN,
        )
        assert response.status_code == 409


class TestPlumbing:
    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/calendar/windows", headers={**CLIENT, "X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_unknown_route_problem_json(self, client):
        response = client.get("/api/v1/nowhere", headers=CLIENT)
        assert response.status_code == 404
        assert response.json()["type"] == "urn:salonbooking:error:not-found"

    def test_health_reports_database(self, client, monkeypatch):
        db = MagicMock()
        db.health_check = AsyncMock(return_value=True)
        monkeypatch.setattr(DatabaseFactory, "ensure_connected", AsyncMock(return_value=db))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_unhealthy_is_503(self, client, monkeypatch):
        db = MagicMock()
        db.health_check = AsyncMock(return_value=False)
        monkeypatch.setattr(DatabaseFactory, "ensure_connected", AsyncMock(return_value=db))
        assert client.get("/health").status_code == 503


class TestLifespan:
    def test_idempotency_cleanup_runs_with_app(self, monkeypatch):
        store = IdempotencyStore(ttl_seconds=60)
        monkeypatch.setattr(web_dependencies, "_idempotency_store", store)
        monkeypatch.setattr(DatabaseFactory, "ensure_connected", AsyncMock())
        monkeypatch.setattr(DatabaseFactory, "close_instance", AsyncMock())

        app = create_app(env_override="testing")
        with TestClient(app):
            assert store._cleanup_task is not None
            assert not store._cleanup_task.done()
        assert store._cleanup_task is None
        DatabaseFactory.close_instance.assert_awaited_once()
