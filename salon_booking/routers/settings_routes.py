# salon_booking/routers/settings_routes.py

import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.models import Settings, utc_now
from salon_booking.scheduling import get_settings
from salon_booking.schemas import SettingsPublic, SettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
)


@router.get("", response_model=SettingsPublic)
def read_settings(session: Session = Depends(get_session)):
    return SettingsPublic.model_validate(get_settings(session))


@router.put("", response_model=SettingsPublic)
def update_settings(
    settings: SettingsUpdate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    # DB upsert: the first row is the only one ever read
    db_settings = session.exec(select(Settings).order_by(Settings.id)).first()
    if db_settings is None:
        db_settings = Settings(**settings.model_dump())
        session.add(db_settings)
    else:
        db_settings.work_start_hour = settings.work_start_hour
        db_settings.work_end_hour = settings.work_end_hour
        db_settings.time_slot_interval_minutes = settings.time_slot_interval_minutes
        db_settings.updated_at = utc_now()
        session.add(db_settings)

    session.commit()
    session.refresh(db_settings)

    logger.info(
        "Working hours set to %02d:00-%02d:00 every %d min",
        db_settings.work_start_hour,
        db_settings.work_end_hour,
        db_settings.time_slot_interval_minutes,
    )
    return SettingsPublic.model_validate(db_settings)
