# salon_booking/errors.py

"""
Domain errors raised by the scheduling layer.

Each error carries the HTTP status it maps to; the handlers registered in
``salon_booking.main`` turn them into ``{"error": ...}`` responses. None of
them is fatal: the client is expected to correct the request and retry.
"""

from typing import Any, Dict, List, Optional


class BookingError(Exception):
    status_code = 400

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BookingError):
    """Malformed input: bad id, bad date/time format, end before start."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = [{"field": field, "message": message}] if field else None
        super().__init__(message, details)
        self.field = field


class NotFoundError(BookingError):
    status_code = 404


class InactiveServiceError(BookingError):
    status_code = 400

    def __init__(self, message: str = "Service is inactive"):
        super().__init__(message)


class PastDateError(BookingError):
    status_code = 400


class SlotConflictError(BookingError):
    """The requested interval overlaps an appointment or a time block."""

    status_code = 409

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
