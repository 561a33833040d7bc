# salon_booking/auth.py

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from salon_booking.config import config
from salon_booking.db import get_session
from salon_booking.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes or config.auth.access_token_expire_minutes
    to_encode["exp"] = datetime.utcnow() + timedelta(minutes=minutes)
    return jwt.encode(to_encode, config.auth.secret_key, algorithm=config.auth.algorithm)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    try:
        payload = jwt.decode(token, config.auth.secret_key, algorithms=[config.auth.algorithm])
    except JWTError:
        raise credentials_error("Invalid token")

    phone = payload.get("sub")
    if phone is None:
        raise credentials_error("Invalid token")

    user = session.exec(select(User).where(User.phone == phone)).first()
    if user is None:
        raise credentials_error("User not found")

    return {
        "id": user.id,
        "phone": user.phone,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
    }
