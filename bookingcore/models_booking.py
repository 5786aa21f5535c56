"""
Booking Models: bookings, their audit trail and payment bookkeeping
"""

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.enums import BookingStatus, HistoryAction, PaymentStatus, ProviderKind
from .shared.refs import ProviderRef
from .shared.validators import generate_public_id


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Provider: exactly one (kind, id) pair, see shared.refs.ProviderRef
    provider_kind = Column(SQLEnum(ProviderKind, native_enum=False, length=20), nullable=False)
    provider_id = Column(Integer, nullable=False, index=True)

    # Scheduling; end_time = start_time + appointment_type.duration_minutes
    date = Column(Date, nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    # Status workflow: PENDING -> CONFIRMED -> COMPLETED, PENDING/CONFIRMED -> CANCELLED
    status = Column(
        SQLEnum(BookingStatus, native_enum=False, length=20),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    capacity = Column(Integer, default=1, nullable=False)
    answers = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    confirmation_message = Column(Text, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment_type = relationship("AppointmentType")
    customer = relationship("User")
    history = relationship(
        "BookingHistory",
        back_populates="booking",
        order_by="BookingHistory.id",
        cascade="all, delete-orphan",
    )
    payment = relationship("Payment", back_populates="booking", uselist=False)

    @property
    def provider(self) -> ProviderRef:
        return ProviderRef(self.provider_kind, self.provider_id)

    @provider.setter
    def provider(self, ref: ProviderRef) -> None:
        self.provider_kind = ref.kind
        self.provider_id = ref.id


class BookingHistory(Base):
    """Append-only audit trail; rows are never updated"""

    __tablename__ = "booking_history"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    action = Column(SQLEnum(HistoryAction, native_enum=False, length=30), nullable=False)
    performed_by = Column(Integer, nullable=True)
    old_status = Column(SQLEnum(BookingStatus, native_enum=False, length=20), nullable=True)
    new_status = Column(SQLEnum(BookingStatus, native_enum=False, length=20), nullable=True)
    old_start_time = Column(DateTime, nullable=True)
    new_start_time = Column(DateTime, nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="history")


class Payment(Base):
    """Bookkeeping only; capture and refund happen at the external gateway"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), default="USD")
    provider = Column(String(50), nullable=True)  # STRIPE, etc.
    status = Column(
        SQLEnum(PaymentStatus, native_enum=False, length=20),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    external_transaction_id = Column(String(255), nullable=True, index=True)

    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="payment")
