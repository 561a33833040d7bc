# salon_booking/schemas.py

from datetime import datetime, date as Date, timezone
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

TIME_REGEX = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


class UserRole(str, Enum):
    client = "CLIENT"
    admin = "ADMIN"


class AppointmentStatus(str, Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    canceled = "CANCELED"


class TimeBlockType(str, Enum):
    day_off = "DAY_OFF"
    vacation = "VACATION"
    break_ = "BREAK"


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _utc_isoformat(value: datetime) -> str:
    return _naive_utc(value).isoformat(timespec="milliseconds") + "Z"


# Stored datetimes are naive UTC; render them the way clients expect: 2025-06-10T10:00:00.000Z
UtcDateTime = Annotated[datetime, PlainSerializer(_utc_isoformat, return_type=str)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Services

class ServiceCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    duration_minutes: int = Field(gt=0)
    is_active: bool = True


class ServiceUpdate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0)
    duration_minutes: int = Field(gt=0)
    is_active: Optional[bool] = None


class ServicePublic(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int
    is_active: bool
    created_at: UtcDateTime


class ServiceSummary(CamelModel):
    id: UUID
    name: str
    price: float
    duration_minutes: int


# Users

class UserSummary(CamelModel):
    id: UUID
    name: str
    phone: str


class UserPublic(CamelModel):
    id: UUID
    phone: str
    name: str
    email: Optional[str] = None
    role: UserRole
    created_at: UtcDateTime


class AdminCreate(CamelModel):
    phone: str = Field(min_length=1)
    name: str = Field(min_length=2)
    email: Optional[str] = None
    password: str = Field(min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def blank_email_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        if "@" not in value:
            raise ValueError("Invalid email format")
        return value.strip()


# Appointments

class AppointmentCreate(CamelModel):
    service_id: UUID
    date: Date
    time: str = Field(pattern=TIME_REGEX)
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class AppointmentUpdate(CamelModel):
    service_id: Optional[UUID] = None
    date: Optional[Date] = None
    time: Optional[str] = Field(default=None, pattern=TIME_REGEX)
    status: Optional[AppointmentStatus] = None
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus


class AppointmentPublic(CamelModel):
    id: UUID
    date: UtcDateTime
    status: AppointmentStatus
    client_name: Optional[str] = None
    service_id: UUID
    user_id: UUID
    created_at: UtcDateTime
    service: ServiceSummary
    user: UserSummary


class AvailableSlotsResponse(CamelModel):
    date: Date
    service_id: UUID
    available_slots: List[str]


# Time blocks

class TimeBlockCreate(CamelModel):
    type: TimeBlockType
    start_date_time: datetime
    end_date_time: datetime
    description: Optional[str] = None

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def as_naive_utc(cls, value: datetime) -> datetime:
        return _naive_utc(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date_time <= self.start_date_time:
            raise ValueError("endDateTime must be later than startDateTime")
        return self


class TimeBlockPublic(CamelModel):
    id: UUID
    type: TimeBlockType
    start_date_time: UtcDateTime
    end_date_time: UtcDateTime
    description: Optional[str] = None
    created_at: UtcDateTime


# Settings

class SettingsUpdate(CamelModel):
    work_start_hour: int = Field(ge=0, le=23)
    work_end_hour: int = Field(ge=0, le=23)
    time_slot_interval_minutes: int = Field(gt=0)

    @model_validator(mode="after")
    def start_before_end(self):
        if self.work_start_hour >= self.work_end_hour:
            raise ValueError("workStartHour must be lower than workEndHour")
        return self


class SettingsPublic(CamelModel):
    work_start_hour: int
    work_end_hour: int
    time_slot_interval_minutes: int
