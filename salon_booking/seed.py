# salon_booking/seed.py

"""
Create (or promote) the first admin so the admin endpoints become usable.

    python -m salon_booking.seed --phone "+7 909 511-73-46" --name Admin --password secret123
"""

import argparse
import logging
import sys

from sqlmodel import Session, select

from salon_booking.auth import hash_password
from salon_booking.db import create_db_and_tables, engine
from salon_booking.models import User
from salon_booking.phone import normalize_phone
from salon_booking.schemas import UserRole

logger = logging.getLogger(__name__)


def seed_admin(session: Session, phone: str, name: str, password: str) -> User:
    normalized = normalize_phone(phone)
    if normalized is None:
        raise ValueError(f"Invalid phone number: {phone!r}")

    user = session.exec(select(User).where(User.phone == normalized)).first()
    if user is None:
        user = User(phone=normalized, name=name)
    user.role = UserRole.admin
    user.password_hash = hash_password(password)

    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Admin %s created/updated", user.phone)
    return user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("--phone", required=True)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    create_db_and_tables()
    with Session(engine) as session:
        try:
            seed_admin(session, args.phone, args.name, args.password)
        except ValueError as exc:
            logger.error("%s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
