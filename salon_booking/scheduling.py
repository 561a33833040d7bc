# salon_booking/scheduling.py

"""
Database side of the availability engine.

Loads working hours, the booking ledger and time blocks for a day, then
hands them to the pure rules in ``salon_booking.core``. ``check_availability``
is the authoritative verdict used on every create/update; the slot list from
``get_available_slots`` is only what the booking form shows.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, select

from salon_booking import core
from salon_booking.config import config
from salon_booking.errors import InactiveServiceError, NotFoundError, PastDateError, SlotConflictError
from salon_booking.models import Appointment, Service, Settings, TimeBlock
from salon_booking.schemas import AppointmentStatus

logger = logging.getLogger(__name__)

# Held around validate-then-commit so two requests in this process cannot
# both pass the check for the same slot before either writes.
booking_lock = threading.Lock()


@dataclass(frozen=True)
class AvailabilityVerdict:
    available: bool
    reason: Optional[str] = None


def get_settings(session: Session) -> Settings:
    """The persisted settings row, created from the configured defaults on first read."""
    settings = session.exec(select(Settings).order_by(Settings.id)).first()
    if settings is None:
        defaults = config.schedule
        settings = Settings(
            work_start_hour=defaults.work_start_hour,
            work_end_hour=defaults.work_end_hour,
            time_slot_interval_minutes=defaults.time_slot_interval_minutes,
        )
        session.add(settings)
        session.commit()
        session.refresh(settings)
        logger.info(
            "Created default settings %02d:00-%02d:00 every %d min",
            settings.work_start_hour,
            settings.work_end_hour,
            settings.time_slot_interval_minutes,
        )
    return settings


def get_working_hours(session: Session) -> core.WorkingHours:
    settings = get_settings(session)
    return core.WorkingHours(
        work_start_hour=settings.work_start_hour,
        work_end_hour=settings.work_end_hour,
        time_slot_interval_minutes=settings.time_slot_interval_minutes,
    )


def get_service(session: Session, service_id: UUID) -> Service:
    service = session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")
    return service


def get_bookable_service(session: Session, service_id: UUID) -> Service:
    service = get_service(session, service_id)
    if not service.is_active:
        raise InactiveServiceError()
    return service


def get_overlapping_time_blocks(session: Session, interval: core.TimeInterval) -> List[TimeBlock]:
    return session.exec(
        select(TimeBlock)
        .where(TimeBlock.start_date_time < interval.end)
        .where(TimeBlock.end_date_time > interval.start)
        .order_by(TimeBlock.start_date_time)
    ).all()


def get_blocked_slots(session: Session, interval: core.TimeInterval) -> List[core.BlockedSlot]:
    return [
        core.BlockedSlot(
            time_block_id=block.id,
            block_type=block.type,
            interval=core.TimeInterval(block.start_date_time, block.end_date_time),
        )
        for block in get_overlapping_time_blocks(session, interval)
    ]


def get_booked_slots(
    session: Session,
    interval: core.TimeInterval,
    service_id: Optional[UUID] = None,
    exclude_appointment_id: Optional[UUID] = None,
) -> List[core.BookedSlot]:
    """Non-canceled appointments starting inside ``interval``, with the time they hold."""
    stmt = (
        select(Appointment, Service.duration_minutes)
        .join(Service, Appointment.service_id == Service.id)
        .where(Appointment.date >= interval.start)
        .where(Appointment.date < interval.end)
        .where(Appointment.status != AppointmentStatus.canceled)
    )
    if service_id is not None:
        stmt = stmt.where(Appointment.service_id == service_id)
    if exclude_appointment_id is not None:
        stmt = stmt.where(Appointment.id != exclude_appointment_id)

    return [
        core.BookedSlot(
            appointment_id=appointment.id,
            interval=core.TimeInterval.starting_at(appointment.date, duration_minutes),
            status=appointment.status,
        )
        for appointment, duration_minutes in session.exec(stmt.order_by(Appointment.date)).all()
    ]


def get_available_slots(
    session: Session,
    service_id: UUID,
    day: date,
    today: Optional[date] = None,
) -> List[str]:
    service = get_bookable_service(session, service_id)

    if day < (today or date.today()):
        raise PastDateError("Cannot list slots for a past date")

    bounds = core.day_bounds(day)
    return core.list_available_slots(
        service,
        day,
        get_working_hours(session),
        get_booked_slots(session, bounds),
        get_blocked_slots(session, bounds),
    )


def check_availability(
    session: Session,
    service_id: UUID,
    day: date,
    slot_time: str,
    exclude_appointment_id: Optional[UUID] = None,
) -> AvailabilityVerdict:
    """
    Decide whether ``service_id`` can start at ``day`` ``slot_time``.

    Conflicts are checked against every non-canceled appointment of the day
    regardless of service, then against time blocks, then against working
    hours. ``exclude_appointment_id`` is the appointment being edited: it
    never conflicts with itself.
    """
    service = get_bookable_service(session, service_id)

    start = core.wall_clock_instant(day, core.parse_time(slot_time))
    interval = core.TimeInterval.starting_at(start, service.duration_minutes)
    bounds = core.day_bounds(day)

    reason = core.evaluate_booking(
        interval,
        get_working_hours(session),
        get_booked_slots(session, bounds, exclude_appointment_id=exclude_appointment_id),
        get_blocked_slots(session, interval),
    )
    if reason is not None:
        return AvailabilityVerdict(available=False, reason=reason)
    return AvailabilityVerdict(available=True)


def lock_schedule(session: Session) -> None:
    """
    Take a row lock on the settings row for the rest of the transaction.

    Every booking write locks the same row, so on databases with
    SELECT ... FOR UPDATE concurrent writers from other processes queue up
    behind each other. SQLite has no row locks and relies on ``booking_lock``.
    """
    get_settings(session)
    session.exec(select(Settings).order_by(Settings.id).with_for_update()).first()


def ensure_available(
    session: Session,
    service_id: UUID,
    day: date,
    slot_time: str,
    exclude_appointment_id: Optional[UUID] = None,
) -> None:
    """Validate a slot right before writing it; call with ``booking_lock`` held."""
    lock_schedule(session)
    verdict = check_availability(session, service_id, day, slot_time, exclude_appointment_id)
    if not verdict.available:
        logger.warning(
            "Rejected booking for service %s at %s %s: %s",
            service_id,
            day.isoformat(),
            slot_time,
            verdict.reason,
        )
        raise SlotConflictError(verdict.reason)
