# salon_booking/events.py

"""
Admin calendar feed: appointments and time blocks as one ordered stream.

Each event is built from the same ``core.BookedSlot`` / ``core.BlockedSlot``
the availability engine uses, and answers ``occupies(interval)`` the same way.
"""

from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import Field
from sqlmodel import Session, select

from salon_booking import core
from salon_booking.models import Appointment, Service, TimeBlock, User
from salon_booking.phone import format_phone
from salon_booking.scheduling import get_overlapping_time_blocks
from salon_booking.schemas import AppointmentStatus, CamelModel, TimeBlockType, UtcDateTime

BLOCK_TITLES = {
    TimeBlockType.day_off: "Day off",
    TimeBlockType.vacation: "Vacation",
    TimeBlockType.break_: "Break",
}


class AppointmentEvent(CamelModel):
    type: Literal["appointment"] = "appointment"
    id: UUID
    title: str
    start: UtcDateTime
    end: UtcDateTime
    status: AppointmentStatus
    client_name: Optional[str] = None
    service_name: str
    service_duration_minutes: int
    phone: str

    def slot(self) -> core.BookedSlot:
        return core.BookedSlot(
            appointment_id=self.id,
            interval=core.TimeInterval(self.start, self.end),
            status=self.status,
        )

    def occupies(self, interval: core.TimeInterval) -> bool:
        return self.slot().occupies(interval)


class TimeBlockEvent(CamelModel):
    type: Literal["timeBlock"] = "timeBlock"
    id: UUID
    title: str
    start: UtcDateTime
    end: UtcDateTime
    block_type: TimeBlockType
    description: Optional[str] = None

    def slot(self) -> core.BlockedSlot:
        return core.BlockedSlot(
            time_block_id=self.id,
            block_type=self.block_type,
            interval=core.TimeInterval(self.start, self.end),
        )

    def occupies(self, interval: core.TimeInterval) -> bool:
        return self.slot().occupies(interval)


# Told apart by "type" on the wire
CalendarEvent = Annotated[Union[AppointmentEvent, TimeBlockEvent], Field(discriminator="type")]


def appointment_event(appointment: Appointment, service: Service, user: User) -> AppointmentEvent:
    slot = core.BookedSlot(
        appointment_id=appointment.id,
        interval=core.TimeInterval.starting_at(appointment.date, service.duration_minutes),
        status=appointment.status,
    )
    return AppointmentEvent(
        id=slot.appointment_id,
        title=appointment.client_name or "No name",
        start=slot.interval.start,
        end=slot.interval.end,
        status=slot.status,
        client_name=appointment.client_name,
        service_name=service.name,
        service_duration_minutes=service.duration_minutes,
        phone=format_phone(user.phone),
    )


def time_block_event(block: TimeBlock) -> TimeBlockEvent:
    slot = core.BlockedSlot(
        time_block_id=block.id,
        block_type=block.type,
        interval=core.TimeInterval(block.start_date_time, block.end_date_time),
    )
    return TimeBlockEvent(
        id=slot.time_block_id,
        title=BLOCK_TITLES.get(slot.block_type, slot.block_type.value),
        start=slot.interval.start,
        end=slot.interval.end,
        block_type=slot.block_type,
        description=block.description,
    )


def get_calendar_events(session: Session, interval: core.TimeInterval) -> List[Union[AppointmentEvent, TimeBlockEvent]]:
    """
    Every appointment starting in ``interval`` (canceled ones included, the
    calendar greys them out) and every time block overlapping it, by start.
    """
    rows = session.exec(
        select(Appointment, Service, User)
        .join(Service, Appointment.service_id == Service.id)
        .join(User, Appointment.user_id == User.id)
        .where(Appointment.date >= interval.start)
        .where(Appointment.date < interval.end)
    ).all()

    events = [appointment_event(appointment, service, user) for appointment, service, user in rows]
    events.extend(time_block_event(block) for block in get_overlapping_time_blocks(session, interval))
    events.sort(key=lambda event: (event.start, event.type))
    return events
