# salon_booking/routers/time_blocks_routes.py

import logging
from datetime import date
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from salon_booking import core
from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.errors import NotFoundError
from salon_booking.models import TimeBlock
from salon_booking.schemas import TimeBlockCreate, TimeBlockPublic, TimeBlockType

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/time-blocks",
    tags=["time-blocks"],
)


def _get_time_block(session: Session, time_block_id: UUID) -> TimeBlock:
    block = session.get(TimeBlock, time_block_id)
    if block is None:
        raise NotFoundError("Time block not found")
    return block


@router.get("", response_model=List[TimeBlockPublic])
def list_time_blocks(
    date_from: Optional[date] = Query(default=None, alias="dateFrom"),
    date_to: Optional[date] = Query(default=None, alias="dateTo"),
    block_type: Optional[TimeBlockType] = Query(default=None, alias="type"),
    session: Session = Depends(get_session),
):
    stmt = select(TimeBlock)

    # A block is listed when it overlaps [dateFrom 00:00, dateTo + 1 day 00:00)
    if date_from is not None:
        stmt = stmt.where(TimeBlock.end_date_time > core.day_bounds(date_from).start)
    if date_to is not None:
        stmt = stmt.where(TimeBlock.start_date_time < core.day_bounds(date_to).end)
    if block_type is not None:
        stmt = stmt.where(TimeBlock.type == block_type)

    blocks = session.exec(stmt.order_by(TimeBlock.start_date_time)).all()
    return [TimeBlockPublic.model_validate(b) for b in blocks]


@router.post("", response_model=TimeBlockPublic, status_code=201)
def create_time_block(
    block: TimeBlockCreate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_block = TimeBlock(**block.model_dump())
    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    logger.info(
        "%s block %s created: %s - %s",
        db_block.type.value,
        db_block.id,
        db_block.start_date_time.isoformat(),
        db_block.end_date_time.isoformat(),
    )
    return TimeBlockPublic.model_validate(db_block)


@router.put("/{time_block_id}", response_model=TimeBlockPublic)
def update_time_block(
    time_block_id: UUID,
    block: TimeBlockCreate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_block = _get_time_block(session, time_block_id)

    db_block.type = block.type
    db_block.start_date_time = block.start_date_time
    db_block.end_date_time = block.end_date_time
    db_block.description = block.description

    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    logger.info("Time block %s updated", db_block.id)
    return TimeBlockPublic.model_validate(db_block)


@router.delete("/{time_block_id}")
def delete_time_block(
    time_block_id: UUID,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    db_block = _get_time_block(session, time_block_id)
    session.delete(db_block)
    session.commit()

    logger.info("Time block %s deleted", time_block_id)
    return {"success": True}
