# salon_booking/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from salon_booking.auth import credentials_error, get_current_user, verify_password, create_access_token
from salon_booking.db import get_session
from salon_booking.models import User
from salon_booking.phone import normalize_phone
from salon_booking.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # The OAuth2 form calls it "username"; here it is the phone number
    phone = normalize_phone(form_data.username)
    user = None
    if phone is not None:
        user = session.exec(select(User).where(User.phone == phone)).first()

    if user is None or not user.password_hash or not verify_password(form_data.password, user.password_hash):
        logger.warning("Failed login for %r", form_data.username)
        raise credentials_error("Invalid credentials")

    token = create_access_token({"sub": user.phone, "role": user.role.value})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me")
def me(current_user: dict = Depends(get_current_user)):
    return {
        "id": current_user["id"],
        "phone": current_user["phone"],
        "name": current_user["name"],
        "email": current_user["email"],
        "role": current_user["role"],
    }
