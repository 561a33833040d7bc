# salon_booking/models.py

import uuid
from typing import Optional, List
from datetime import datetime

from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship

from salon_booking.schemas import AppointmentStatus, TimeBlockType, UserRole

# Every datetime column holds naive UTC and is declared NaiveDatetime on a plain
# DateTime column, never a timezone-aware type. Appointment.date is the
# wall-clock time the client picked, stored verbatim as UTC (10:00 -> 10:00Z).


def utc_now() -> datetime:
    return datetime.utcnow().replace(microsecond=0)


class Service(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int
    is_active: bool = Field(default=True, index=True)
    created_at: NaiveDatetime = Field(default_factory=utc_now, sa_type=DateTime)

    appointments: List["Appointment"] = Relationship(back_populates="service")


class User(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    phone: str = Field(index=True, unique=True)  # 10-digit national form
    name: str = ""
    email: Optional[str] = None
    password_hash: Optional[str] = None  # admins only
    role: UserRole = Field(default=UserRole.client)
    created_at: NaiveDatetime = Field(default_factory=utc_now, sa_type=DateTime)

    appointments: List["Appointment"] = Relationship(back_populates="user")


class Appointment(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    date: NaiveDatetime = Field(index=True, sa_type=DateTime)
    status: AppointmentStatus = Field(default=AppointmentStatus.pending, index=True)
    client_name: Optional[str] = None
    service_id: uuid.UUID = Field(foreign_key="service.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    created_at: NaiveDatetime = Field(default_factory=utc_now, sa_type=DateTime)

    service: Optional[Service] = Relationship(back_populates="appointments")
    user: Optional[User] = Relationship(back_populates="appointments")


class TimeBlock(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    type: TimeBlockType
    start_date_time: NaiveDatetime = Field(index=True, sa_type=DateTime)
    end_date_time: NaiveDatetime = Field(index=True, sa_type=DateTime)
    description: Optional[str] = None
    created_at: NaiveDatetime = Field(default_factory=utc_now, sa_type=DateTime)


class Settings(SQLModel, table=True):
    # Singleton: the scheduling layer only ever reads/writes the first row
    id: Optional[int] = Field(default=None, primary_key=True)
    work_start_hour: int
    work_end_hour: int
    time_slot_interval_minutes: int
    updated_at: NaiveDatetime = Field(default_factory=utc_now, sa_type=DateTime)
