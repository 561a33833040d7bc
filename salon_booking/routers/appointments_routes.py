# salon_booking/routers/appointments_routes.py

import logging
from datetime import datetime, timedelta, date
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon_booking import core
from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.errors import NotFoundError, PastDateError, ValidationError
from salon_booking.events import CalendarEvent, get_calendar_events
from salon_booking.models import Appointment, User
from salon_booking.phone import normalize_phone, phone_search_digits
from salon_booking.scheduling import booking_lock, ensure_available, get_available_slots, get_service
from salon_booking.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailableSlotsResponse,
    UserRole,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


def _to_public(appointment: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appointment)


def _get_appointment(session: Session, appointment_id: UUID) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def _require_phone(raw: str) -> str:
    phone = normalize_phone(raw)
    if phone is None:
        raise ValidationError("Invalid phone number, expected 10 digits", field="phone")
    return phone


def _upsert_client(session: Session, phone: str, name: str, rename: bool = True) -> User:
    """Find the user by normalized phone or create a client for it.

    With ``rename`` an existing client takes the new name; admin edits keep
    the stored name and record the new one on the appointment only.
    """
    user = session.exec(select(User).where(User.phone == phone)).first()
    if user is None:
        user = User(phone=phone, name=name, role=UserRole.client)
        session.add(user)
        session.flush()
    elif rename and user.role == UserRole.client and name and user.name != name:
        user.name = name
        session.add(user)
    return user


def _commit(session: Session):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Appointment could not be saved, please pick another time")


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def available_slots(
    service_id: UUID = Query(alias="serviceId"),
    on_date: date = Query(alias="date"),
    session: Session = Depends(get_session),
):
    slots = get_available_slots(session, service_id, on_date)
    return AvailableSlotsResponse(date=on_date, service_id=service_id, available_slots=slots)


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
):
    # 1) Phone must reduce to 10 digits
    phone = _require_phone(appt.phone)

    # 2) Build the start instant: wall-clock time stored verbatim as UTC
    start = core.wall_clock_instant(appt.date, core.parse_time(appt.time))

    # 3) Prevent booking in the past (naive wall clock against local now)
    if start < datetime.now():
        logger.warning("Rejected booking in the past: %s", start.isoformat())
        raise PastDateError("Cannot book an appointment in the past")

    # 4) Authoritative check and write, serialized against other bookings
    with booking_lock:
        ensure_available(session, appt.service_id, appt.date, appt.time)

        user = _upsert_client(session, phone, appt.name)
        db_appt = Appointment(
            date=start,
            status=AppointmentStatus.pending,
            client_name=appt.name,
            service_id=appt.service_id,
            user_id=user.id,
        )
        session.add(db_appt)
        _commit(session)

    session.refresh(db_appt)
    logger.info("Appointment %s booked for %s", db_appt.id, start.isoformat())
    return _to_public(db_appt)


@router.get("", response_model=List[AppointmentPublic])
def list_appointments(
    status: Optional[AppointmentStatus] = None,
    service_id: Optional[UUID] = Query(default=None, alias="serviceId"),
    date_from: Optional[date] = Query(default=None, alias="dateFrom"),
    date_to: Optional[date] = Query(default=None, alias="dateTo"),
    search: Optional[str] = None,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    stmt = select(Appointment).join(User, Appointment.user_id == User.id)

    if status is not None:
        stmt = stmt.where(Appointment.status == status)
    if service_id is not None:
        stmt = stmt.where(Appointment.service_id == service_id)
    if date_from is not None:
        stmt = stmt.where(Appointment.date >= datetime.combine(date_from, datetime.min.time()))
    if date_to is not None:
        stmt = stmt.where(Appointment.date < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))
    if search:
        term = search.strip()
        conditions = [Appointment.client_name.ilike(f"%{term}%"), User.name.ilike(f"%{term}%")]
        digits = phone_search_digits(term)
        if digits:
            conditions.append(User.phone.contains(digits))
        stmt = stmt.where(or_(*conditions))

    appointments = session.exec(stmt.order_by(Appointment.date)).all()
    return [_to_public(a) for a in appointments]


@router.get("/calendar", response_model=List[CalendarEvent])
def calendar(
    date_from: date = Query(alias="dateFrom"),
    date_to: date = Query(alias="dateTo"),
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    if date_to < date_from:
        raise ValidationError("dateTo must not be earlier than dateFrom", field="dateTo")

    interval = core.TimeInterval(
        core.day_bounds(date_from).start,
        core.day_bounds(date_to).end,
    )
    return get_calendar_events(session, interval)


@router.get("/{appointment_id}", response_model=AppointmentPublic)
def get_appointment(
    appointment_id: UUID,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    return _to_public(_get_appointment(session, appointment_id))


@router.put("/{appointment_id}", response_model=AppointmentPublic)
def update_appointment(
    appointment_id: UUID,
    update: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    if not update.model_dump(exclude_none=True):
        raise ValidationError("Nothing to update")

    appointment = _get_appointment(session, appointment_id)

    # 1) Status must follow PENDING -> CONFIRMED -> CANCELED
    target_status = update.status or appointment.status
    core.check_status_transition(appointment.status, target_status)

    phone = _require_phone(update.phone) if update.phone else None

    # 2) Resolve the target slot, falling back to the stored values
    target_service_id = update.service_id or appointment.service_id
    target_day = update.date or appointment.date.date()
    target_time = update.time or core.format_time(appointment.date)
    rescheduled = any(v is not None for v in (update.service_id, update.date, update.time))

    with booking_lock:
        # 3) Re-validate a moved or re-serviced appointment, ignoring its own slot
        if rescheduled and target_status != AppointmentStatus.canceled:
            ensure_available(
                session,
                target_service_id,
                target_day,
                target_time,
                exclude_appointment_id=appointment.id,
            )
        elif update.service_id is not None:
            get_service(session, update.service_id)

        if update.service_id is not None:
            appointment.service_id = update.service_id
        if update.date is not None or update.time is not None:
            appointment.date = core.wall_clock_instant(target_day, core.parse_time(target_time))
        if update.name is not None:
            appointment.client_name = update.name
        if phone is not None:
            user = _upsert_client(session, phone, update.name or appointment.client_name or "", rename=False)
            appointment.user_id = user.id
        appointment.status = target_status

        session.add(appointment)
        _commit(session)

    session.refresh(appointment)
    logger.info("Appointment %s updated by admin %s", appointment.id, current_admin["phone"])
    return _to_public(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic)
def change_status(
    appointment_id: UUID,
    body: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    appointment = _get_appointment(session, appointment_id)
    core.check_status_transition(appointment.status, body.status)

    appointment.status = body.status
    session.add(appointment)
    session.commit()
    session.refresh(appointment)

    logger.info("Appointment %s is now %s", appointment.id, appointment.status.value)
    return _to_public(appointment)


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: UUID,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    appointment = _get_appointment(session, appointment_id)
    session.delete(appointment)
    session.commit()

    logger.info("Appointment %s deleted by admin %s", appointment_id, current_admin["phone"])
    return {"success": True}
