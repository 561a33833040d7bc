"""HTTP tests for /appointments: slot listing, booking, admin management, calendar."""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, Session, create_engine, select

from salon_booking.db import get_session
from salon_booking.main import app
from salon_booking.models import Appointment, User
from salon_booking.schemas import AppointmentStatus, TimeBlockType
from tests.conftest import (
    FUTURE_DAY,
    PAST_DAY,
    make_appointment,
    make_service,
    make_time_block,
    make_user,
    set_working_hours,
)


def at(hour: int, minute: int = 0, day=FUTURE_DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def booking(service, slot="11:00", day=FUTURE_DAY, name="Anna", phone="+7 (909) 123-45-67"):
    return {
        "serviceId": str(service.id),
        "date": day.isoformat(),
        "time": slot,
        "name": name,
        "phone": phone,
    }


class TestAvailableSlots:
    def test_lists_slots(self, client, session):
        service = make_service(session, duration_minutes=60)
        make_appointment(session, service, at(10))

        response = client.get(
            "/appointments/available-slots",
            params={"serviceId": str(service.id), "date": FUTURE_DAY.isoformat()},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["date"] == FUTURE_DAY.isoformat()
        assert data["serviceId"] == str(service.id)
        assert data["availableSlots"][0] == "11:00"
        assert data["availableSlots"][-1] == "17:00"

    def test_unknown_service(self, client):
        response = client.get(
            "/appointments/available-slots",
            params={"serviceId": str(uuid.uuid4()), "date": FUTURE_DAY.isoformat()},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Service not found"}

    def test_inactive_service(self, client, session):
        service = make_service(session, is_active=False)
        response = client.get(
            "/appointments/available-slots",
            params={"serviceId": str(service.id), "date": FUTURE_DAY.isoformat()},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Service is inactive"

    def test_past_date(self, client, session):
        service = make_service(session)
        response = client.get(
            "/appointments/available-slots",
            params={"serviceId": str(service.id), "date": PAST_DAY.isoformat()},
        )
        assert response.status_code == 400

    def test_malformed_parameters(self, client):
        response = client.get(
            "/appointments/available-slots",
            params={"serviceId": "not-a-uuid", "date": "10.06.2030"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert {d["field"] for d in body["details"]} == {"serviceId", "date"}


class TestCreateAppointment:
    def test_books_pending_appointment(self, client, session):
        service = make_service(session)

        response = client.post("/appointments", json=booking(service))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["date"] == "2030-06-10T11:00:00.000Z"
        assert data["clientName"] == "Anna"
        assert data["service"]["id"] == str(service.id)
        assert data["user"]["phone"] == "9091234567"

    def test_slot_disappears_after_booking(self, client, session):
        service = make_service(session)
        client.post("/appointments", json=booking(service, slot="12:00"))

        slots = client.get(
            "/appointments/available-slots",
            params={"serviceId": str(service.id), "date": FUTURE_DAY.isoformat()},
        ).json()["availableSlots"]

        assert "12:00" not in slots
        assert "11:30" not in slots
        assert "13:00" in slots

    def test_same_phone_in_any_format_is_one_client(self, client, session):
        service = make_service(session)
        first = client.post("/appointments", json=booking(service, slot="10:00", phone="+7 (909) 123-45-67"))
        second = client.post("/appointments", json=booking(service, slot="14:00", phone="89091234567"))

        assert first.json()["userId"] == second.json()["userId"]
        assert len(session.exec(select(User)).all()) == 1

    def test_conflict_with_other_service(self, client, session):
        brows = make_service(session, duration_minutes=30, name="Brows")
        nails = make_service(session, duration_minutes=90, name="Nails")
        make_appointment(session, brows, at(12))

        response = client.post("/appointments", json=booking(nails, slot="11:00"))

        assert response.status_code == 409
        assert response.json() == {"error": "Time already taken"}

    def test_blocked_time(self, client, session):
        service = make_service(session)
        make_time_block(session, at(13), at(14), TimeBlockType.break_)

        response = client.post("/appointments", json=booking(service, slot="12:30"))

        assert response.status_code == 409
        assert response.json() == {"error": "Time blocked"}

    def test_past_date(self, client, session):
        service = make_service(session)
        response = client.post("/appointments", json=booking(service, day=PAST_DAY))
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot book an appointment in the past"

    def test_invalid_phone(self, client, session):
        service = make_service(session)
        response = client.post("/appointments", json=booking(service, phone="12345"))
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "phone"

    def test_invalid_time(self, client, session):
        service = make_service(session)
        response = client.post("/appointments", json=booking(service, slot="9:00"))
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "time"

    def test_inactive_service(self, client, session):
        service = make_service(session, is_active=False)
        response = client.post("/appointments", json=booking(service))
        assert response.status_code == 400

    def test_outside_working_hours(self, client, session):
        service = make_service(session, duration_minutes=60)
        response = client.post("/appointments", json=booking(service, slot="17:30"))
        assert response.status_code == 409
        assert response.json() == {"error": "Outside working hours"}


class TestAdminAppointments:
    def test_requires_authentication(self, client):
        response = client.get("/appointments")
        assert response.status_code == 401

    def test_list_filters(self, admin_client, session):
        service = make_service(session)
        other = make_service(session, name="Brows")
        olga = make_user(session, phone="9161112233", name="Olga")
        make_appointment(session, service, at(10), user=olga, client_name="Olga")
        make_appointment(session, other, at(12), status=AppointmentStatus.pending, client_name="Maria")
        make_appointment(
            session, service, at(10, day=FUTURE_DAY + timedelta(days=3)), status=AppointmentStatus.canceled
        )

        def names(**params):
            response = admin_client.get("/appointments", params=params)
            assert response.status_code == 200
            return [a["clientName"] for a in response.json()]

        assert len(names()) == 3
        assert names(status="PENDING") == ["Maria"]
        assert names(serviceId=str(other.id)) == ["Maria"]
        assert names(dateFrom=FUTURE_DAY.isoformat(), dateTo=FUTURE_DAY.isoformat()) == ["Olga", "Maria"]
        assert names(search="olg") == ["Olga"]
        assert names(search="916-111") == ["Olga"]

    def test_search_by_phone_with_country_code(self, admin_client, session):
        service = make_service(session)
        olga = make_user(session, phone="9161112233", name="Olga")
        maria = make_user(session, phone="9057161234", name="Maria")
        make_appointment(session, service, at(10), user=olga, client_name="Olga")
        make_appointment(session, service, at(12), user=maria, client_name="Maria")

        def names(term):
            return [a["clientName"] for a in admin_client.get("/appointments", params={"search": term}).json()]

        assert names("+7 916") == ["Olga"]
        assert names("8 (916) 111-22-33") == ["Olga"]
        assert names("716") == ["Maria"]

    def test_get_one(self, admin_client, session):
        appointment = make_appointment(session, make_service(session), at(10))
        response = admin_client.get(f"/appointments/{appointment.id}")
        assert response.status_code == 200
        assert response.json()["id"] == str(appointment.id)

    def test_get_missing(self, admin_client):
        response = admin_client.get(f"/appointments/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Appointment not found"}

    def test_get_malformed_id(self, admin_client):
        assert admin_client.get("/appointments/abc").status_code == 400


class TestUpdateAppointment:
    def test_keeping_own_slot_is_not_a_conflict(self, admin_client, session):
        service = make_service(session)
        appointment = make_appointment(session, service, at(15), status=AppointmentStatus.pending)

        response = admin_client.put(
            f"/appointments/{appointment.id}",
            json={"time": "15:00", "status": "CONFIRMED"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

    def test_moving_by_less_than_duration(self, admin_client, session):
        service = make_service(session)
        appointment = make_appointment(session, service, at(15))

        response = admin_client.put(f"/appointments/{appointment.id}", json={"time": "15:30"})

        assert response.status_code == 200
        assert response.json()["date"] == "2030-06-10T15:30:00.000Z"

    def test_moving_onto_another_appointment(self, admin_client, session):
        service = make_service(session)
        make_appointment(session, service, at(12))
        appointment = make_appointment(session, service, at(15))

        response = admin_client.put(f"/appointments/{appointment.id}", json={"time": "12:30"})

        assert response.status_code == 409
        session.refresh(appointment)
        assert appointment.date == at(15)

    def test_changing_service_revalidates(self, admin_client, session):
        short = make_service(session, duration_minutes=30)
        long = make_service(session, duration_minutes=120, name="Coloring")
        make_appointment(session, short, at(11))
        appointment = make_appointment(session, short, at(10))

        response = admin_client.put(f"/appointments/{appointment.id}", json={"serviceId": str(long.id)})

        assert response.status_code == 409

    def test_update_client_details(self, admin_client, session):
        appointment = make_appointment(session, make_service(session), at(10))

        response = admin_client.put(
            f"/appointments/{appointment.id}",
            json={"name": "Irina", "phone": "8 916 555 44 33"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["clientName"] == "Irina"
        assert data["user"]["phone"] == "9165554433"

    def test_moving_to_existing_client_keeps_their_name(self, admin_client, session):
        olga = make_user(session, phone="9161112233", name="Olga")
        appointment = make_appointment(session, make_service(session), at(10))

        response = admin_client.put(
            f"/appointments/{appointment.id}",
            json={"name": "Irina", "phone": "+7 916 111 22 33"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["clientName"] == "Irina"
        assert data["userId"] == str(olga.id)
        assert data["user"]["name"] == "Olga"
        session.refresh(olga)
        assert olga.name == "Olga"

    def test_empty_update(self, admin_client, session):
        appointment = make_appointment(session, make_service(session), at(10))
        response = admin_client.put(f"/appointments/{appointment.id}", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Nothing to update"}

    def test_missing(self, admin_client):
        response = admin_client.put(f"/appointments/{uuid.uuid4()}", json={"status": "CONFIRMED"})
        assert response.status_code == 404

    def test_canceled_cannot_be_revived(self, admin_client, session):
        appointment = make_appointment(
            session, make_service(session), at(10), status=AppointmentStatus.canceled
        )
        response = admin_client.put(f"/appointments/{appointment.id}", json={"status": "CONFIRMED"})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "status"


class TestStatusAndDelete:
    def test_confirm_then_cancel(self, admin_client, session):
        appointment = make_appointment(
            session, make_service(session), at(10), status=AppointmentStatus.pending
        )
        url = f"/appointments/{appointment.id}/status"

        assert admin_client.patch(url, json={"status": "CONFIRMED"}).json()["status"] == "CONFIRMED"
        assert admin_client.patch(url, json={"status": "CANCELED"}).json()["status"] == "CANCELED"
        assert admin_client.patch(url, json={"status": "PENDING"}).status_code == 400

    def test_unknown_status(self, admin_client, session):
        appointment = make_appointment(session, make_service(session), at(10))
        response = admin_client.patch(f"/appointments/{appointment.id}/status", json={"status": "DONE"})
        assert response.status_code == 400

    def test_cancel_frees_the_slot(self, admin_client, session):
        service = make_service(session)
        appointment = make_appointment(session, service, at(10))
        params = {"serviceId": str(service.id), "date": FUTURE_DAY.isoformat()}
        assert "10:00" not in admin_client.get("/appointments/available-slots", params=params).json()["availableSlots"]

        admin_client.patch(f"/appointments/{appointment.id}/status", json={"status": "CANCELED"})

        assert "10:00" in admin_client.get("/appointments/available-slots", params=params).json()["availableSlots"]

    def test_delete(self, admin_client, session):
        appointment = make_appointment(session, make_service(session), at(10))
        appointment_id = appointment.id

        response = admin_client.delete(f"/appointments/{appointment_id}")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        session.expire_all()
        assert session.get(Appointment, appointment_id) is None
        assert admin_client.delete(f"/appointments/{appointment_id}").status_code == 404


class TestCalendar:
    def test_merges_appointments_and_blocks(self, admin_client, session):
        service = make_service(session, duration_minutes=45, name="Brows")
        olga = make_user(session, phone="9161112233", name="Olga")
        make_appointment(session, service, at(11), user=olga, client_name="Olga")
        make_appointment(session, service, at(15), status=AppointmentStatus.canceled, client_name="Maria")
        make_time_block(session, at(13), at(14), TimeBlockType.break_, description="Lunch")
        make_appointment(session, service, at(11, day=FUTURE_DAY + timedelta(days=1)))

        response = admin_client.get(
            "/appointments/calendar",
            params={"dateFrom": FUTURE_DAY.isoformat(), "dateTo": FUTURE_DAY.isoformat()},
        )

        assert response.status_code == 200
        events = response.json()
        assert [e["type"] for e in events] == ["appointment", "timeBlock", "appointment"]

        first = events[0]
        assert first["title"] == "Olga"
        assert first["start"] == "2030-06-10T11:00:00.000Z"
        assert first["end"] == "2030-06-10T11:45:00.000Z"
        assert first["phone"] == "+7 (916) 111-22-33"
        assert first["serviceName"] == "Brows"

        block = events[1]
        assert block["title"] == "Break"
        assert block["blockType"] == "BREAK"
        assert block["description"] == "Lunch"

        assert events[2]["status"] == "CANCELED"

    def test_reversed_range(self, admin_client):
        response = admin_client.get(
            "/appointments/calendar",
            params={"dateFrom": FUTURE_DAY.isoformat(), "dateTo": (FUTURE_DAY - timedelta(days=1)).isoformat()},
        )
        assert response.status_code == 400


@pytest.fixture(name="file_engine")
def file_engine_fixture(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'salon.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)

    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    yield engine
    app.dependency_overrides.clear()
    engine.dispose()


class TestWriteSafety:
    def test_concurrent_bookings_of_one_slot(self, file_engine):
        with Session(file_engine) as setup:
            service_id = make_service(setup).id
        payloads = [
            {
                "serviceId": str(service_id),
                "date": FUTURE_DAY.isoformat(),
                "time": "11:00",
                "name": f"Client {i}",
                "phone": f"+7 909 000 00 {i:02d}",
            }
            for i in range(8)
        ]

        with ThreadPoolExecutor(max_workers=len(payloads)) as pool:
            responses = list(pool.map(lambda body: TestClient(app).post("/appointments", json=body), payloads))

        codes = sorted(r.status_code for r in responses)
        assert codes == [201] + [409] * (len(payloads) - 1)
        with Session(file_engine) as check:
            assert len(check.exec(select(Appointment)).all()) == 1

    def test_integrity_error_on_commit_is_a_conflict(self, client, session, monkeypatch):
        service = make_service(session)
        set_working_hours(session)

        def failing_commit():
            raise IntegrityError("INSERT INTO appointment", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(session, "commit", failing_commit)

        response = client.post("/appointments", json=booking(service))

        assert response.status_code == 409
        assert response.json() == {"error": "Appointment could not be saved, please pick another time"}

    def test_unexpected_error_is_not_leaked(self):
        def broken_session():
            raise RuntimeError("connection refused")

        app.dependency_overrides[get_session] = broken_session
        try:
            response = TestClient(app, raise_server_exceptions=False).get(
                "/appointments/available-slots",
                params={"serviceId": str(uuid.uuid4()), "date": FUTURE_DAY.isoformat()},
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
