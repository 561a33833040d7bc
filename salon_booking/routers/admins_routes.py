# salon_booking/routers/admins_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon_booking.auth import hash_password
from salon_booking.db import get_session
from salon_booking.deps import get_current_admin
from salon_booking.errors import NotFoundError, ValidationError
from salon_booking.models import User
from salon_booking.phone import normalize_phone
from salon_booking.schemas import AdminCreate, UserPublic, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admins",
    tags=["admins"],
)


@router.get("", response_model=List[UserPublic])
def list_admins(
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    admins = session.exec(
        select(User).where(User.role == UserRole.admin).order_by(User.created_at.desc())
    ).all()
    return [UserPublic.model_validate(a) for a in admins]


@router.post("", status_code=201, response_model=UserPublic)
def create_admin(
    admin: AdminCreate,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    phone = normalize_phone(admin.phone)
    if phone is None:
        raise ValidationError("Invalid phone number, use +7 (XXX) XXX-XX-XX", field="phone")

    # 1) Phone is the login, so it must be unused
    existing = session.exec(select(User).where(User.phone == phone)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="A user with this phone already exists")

    # 2) Create admin in DB
    db_user = User(
        phone=phone,
        name=admin.name,
        email=admin.email,
        password_hash=hash_password(admin.password),
        role=UserRole.admin,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)  # fills db_user.created_at

    logger.info("Admin %s created by %s", db_user.phone, current_admin["phone"])
    return UserPublic.model_validate(db_user)


@router.delete("/{phone}")
def remove_admin(
    phone: str,
    session: Session = Depends(get_session),
    current_admin: dict = Depends(get_current_admin),
):
    normalized = normalize_phone(phone)
    if normalized is None:
        raise ValidationError("Invalid phone number", field="phone")

    if normalized == current_admin["phone"]:
        raise HTTPException(status_code=400, detail="You cannot remove yourself")

    user = session.exec(select(User).where(User.phone == normalized)).first()
    if user is None:
        raise NotFoundError("Admin not found")
    if user.role != UserRole.admin:
        raise HTTPException(status_code=400, detail="User is not an admin")

    # Demote rather than delete: the user may still have appointments
    user.role = UserRole.client
    session.add(user)
    session.commit()

    logger.info("Admin %s demoted by %s", normalized, current_admin["phone"])
    return {"success": True}
