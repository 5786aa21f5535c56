"""
Typed failures raised by the booking engine.

Every check runs before the first write of a unit of work, and the service
rolls the session back on any of these, so a failure never leaves partial rows.
The HTTP layer maps each kind to a status code (see main.py).
"""


class BookingError(Exception):
    """Base class for all engine failures"""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class NotFound(BookingError):
    kind = "NotFound"
    status_code = 404


class Unauthenticated(BookingError):
    kind = "Unauthenticated"
    status_code = 401


class Forbidden(BookingError):
    kind = "Forbidden"
    status_code = 403


class ValidationError(BookingError):
    """Booking window, missing required answers, malformed time"""

    kind = "ValidationError"
    status_code = 400


class Conflict(BookingError):
    """Capacity exceeded or slot no longer available"""

    kind = "Conflict"
    status_code = 409


class PolicyViolation(BookingError):
    """Cancellation policy or deadline"""

    kind = "PolicyViolation"
    status_code = 422


class InvalidState(BookingError):
    """Operation not valid for the booking's current status"""

    kind = "InvalidState"
    status_code = 409
