# salon_booking/routers/services_routes.py

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.models import Appointment, Service
from salon_booking.scheduling import get_service
from salon_booking.schemas import ServiceCreate, ServicePublic, ServiceUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


@router.get("", response_model=List[ServicePublic])
def list_services(
    active_only: bool = Query(default=False, alias="activeOnly"),
    session: Session = Depends(get_session),
):
    stmt = select(Service)
    if active_only:
        stmt = stmt.where(Service.is_active == True)  # noqa: E712
    services = session.exec(stmt.order_by(Service.created_at.desc())).all()
    return [ServicePublic.model_validate(s) for s in services]


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_service = Service(**service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)

    logger.info("Service %s (%s, %d min) created", db_service.id, db_service.name, db_service.duration_minutes)
    return ServicePublic.model_validate(db_service)


@router.put("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: UUID,
    service: ServiceUpdate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_service = get_service(session, service_id)

    db_service.name = service.name
    db_service.description = service.description
    db_service.price = service.price
    db_service.duration_minutes = service.duration_minutes
    if service.is_active is not None:
        db_service.is_active = service.is_active

    session.add(db_service)
    session.commit()
    session.refresh(db_service)

    logger.info("Service %s updated", db_service.id)
    return ServicePublic.model_validate(db_service)


@router.delete("/{service_id}")
def delete_service(
    service_id: UUID,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_service = get_service(session, service_id)

    # Appointments keep pointing at their service; retire it instead
    booked = session.exec(select(Appointment.id).where(Appointment.service_id == service_id)).first()
    if booked is not None:
        raise HTTPException(status_code=409, detail="Service has appointments, deactivate it instead")

    session.delete(db_service)
    session.commit()

    logger.info("Service %s deleted", service_id)
    return {"success": True}
