# salon_booking/deps.py

from fastapi import Depends, HTTPException

from salon_booking.auth import get_current_user
from salon_booking.schemas import UserRole


def require_role(user: dict, role: str):
    if user["role"] != role:
        raise HTTPException(status_code=403, detail="Forbidden: admin role required")


def get_current_admin(current_user: dict = Depends(get_current_user)) -> dict:
    require_role(current_user, UserRole.admin.value)
    return current_user
