"""Shared fixtures: in-memory database, API client and record factories."""

import os

# Must be set before salon_booking.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import uuid
from datetime import date, datetime
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from salon_booking import models  # noqa: F401
from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.main import app
from salon_booking.models import Appointment, Service, Settings, TimeBlock, User
from salon_booking.schemas import AppointmentStatus, TimeBlockType, UserRole

# Far enough ahead that "no booking in the past" never interferes
FUTURE_DAY = date(2030, 6, 10)
PAST_DAY = date(2020, 1, 15)

ADMIN_USER = {
    "id": uuid.UUID("00000000-0000-0000-0000-000000000001"),
    "phone": "9990000000",
    "name": "Admin",
    "email": None,
    "role": UserRole.admin.value,
}


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_client")
def admin_client_fixture(client: TestClient):
    app.dependency_overrides[get_current_admin] = lambda: ADMIN_USER
    return client


def make_service(
    session: Session,
    duration_minutes: int = 60,
    is_active: bool = True,
    name: str = "Manicure",
    price: float = 1500.0,
) -> Service:
    service = Service(name=name, price=price, duration_minutes=duration_minutes, is_active=is_active)
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def make_user(session: Session, phone: str = "9091234567", name: str = "Anna") -> User:
    user = User(phone=phone, name=name)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_appointment(
    session: Session,
    service: Service,
    start: datetime,
    status: AppointmentStatus = AppointmentStatus.confirmed,
    user: Optional[User] = None,
    client_name: str = "Anna",
) -> Appointment:
    if user is None:
        user = make_user(session, phone=f"9{uuid.uuid4().int % 10**9:09d}", name=client_name)
    appointment = Appointment(
        date=start,
        status=status,
        client_name=client_name,
        service_id=service.id,
        user_id=user.id,
    )
    session.add(appointment)
    session.commit()
    session.refresh(appointment)
    return appointment


def make_time_block(
    session: Session,
    start: datetime,
    end: datetime,
    block_type: TimeBlockType = TimeBlockType.break_,
    description: Optional[str] = None,
) -> TimeBlock:
    block = TimeBlock(type=block_type, start_date_time=start, end_date_time=end, description=description)
    session.add(block)
    session.commit()
    session.refresh(block)
    return block


def set_working_hours(session: Session, start_hour: int = 10, end_hour: int = 18, interval: int = 30) -> Settings:
    settings = Settings(work_start_hour=start_hour, work_end_hour=end_hour, time_slot_interval_minutes=interval)
    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings
