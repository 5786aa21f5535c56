"""Status and kind enumerations shared by models and services"""

import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class ProviderKind(str, enum.Enum):
    STAFF = "STAFF"
    RESOURCE = "RESOURCE"


class ScopeKind(str, enum.Enum):
    """Owner of a WorkingHours / AvailabilityException row"""

    APPOINTMENT_TYPE = "APPOINTMENT_TYPE"
    STAFF = "STAFF"
    RESOURCE = "RESOURCE"


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    REFUNDED = "REFUNDED"


class HistoryAction(str, enum.Enum):
    CREATED = "CREATED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
