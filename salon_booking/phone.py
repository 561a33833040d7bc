# salon_booking/phone.py

import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> Optional[str]:
    """
    Reduce a phone number to its 10-digit national form.

    "+7 (909) 511-73-46", "89095117346" and "909 511 73 46" all give
    "9095117346". Returns None when the digits do not form a valid number.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 11 and digits[0] in ("7", "8"):
        digits = digits[1:]
    if len(digits) != 10:
        return None
    return digits


def format_phone(phone: str) -> str:
    """Display form +7 (XXX) XXX-XX-XX; unrecognised input is returned as is."""
    digits = normalize_phone(phone)
    if digits is None:
        return phone
    return f"+7 ({digits[:3]}) {digits[3:6]}-{digits[6:8]}-{digits[8:]}"


def phone_search_digits(term: str) -> str:
    """
    Digits of a search term in the stored 10-digit form.

    "+7 909" gives "909"; a full 11-digit number loses its leading 7/8 the
    way ``normalize_phone`` drops it. Other fragments are kept as typed.
    """
    digits = _NON_DIGITS.sub("", term or "")
    if term.strip().startswith("+7") or (len(digits) == 11 and digits[0] in ("7", "8")):
        digits = digits[1:]
    return digits
