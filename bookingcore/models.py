from sqlalchemy import (
    Boolean,
    Column,
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

from .config import DEFAULT_CURRENCY
from .database import Base
from .shared.enums import ProviderKind, UserRole


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole, native_enum=False, length=20), default=UserRole.CUSTOMER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment_types = relationship("AppointmentType", back_populates="organizer")


class AppointmentType(Base):
    """Service definition: duration, capacity and booking rules"""

    __tablename__ = "appointment_types"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    max_bookings_per_slot = Column(Integer, default=1, nullable=False)
    buffer_time_minutes = Column(Integer, default=0, nullable=False)
    min_advance_booking_minutes = Column(Integer, default=120, nullable=True)
    max_advance_booking_days = Column(Integer, default=30, nullable=True)
    requires_payment = Column(Boolean, default=False, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(10), default=DEFAULT_CURRENCY)
    manual_confirmation = Column(Boolean, default=False, nullable=False)
    is_published = Column(Boolean, default=True, nullable=False)
    confirmation_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organizer = relationship("User", back_populates="appointment_types")
    questions = relationship(
        "Question",
        back_populates="appointment_type",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    cancellation_policy = relationship(
        "CancellationPolicy",
        back_populates="appointment_type",
        uselist=False,
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=False, index=True)
    question_text = Column(String(500), nullable=False)
    question_type = Column(String(50), default="text")  # text, select, checkbox
    is_required = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, default=0)

    appointment_type = relationship("AppointmentType", back_populates="questions")


class CancellationPolicy(Base):
    """One per appointment type"""

    __tablename__ = "cancellation_policies"

    id = Column(Integer, primary_key=True, index=True)
    appointment_type_id = Column(
        Integer, ForeignKey("appointment_types.id"), unique=True, nullable=False
    )
    allow_cancellation = Column(Boolean, default=True, nullable=False)
    cancellation_deadline_hours = Column(Integer, default=24, nullable=False)
    refund_percentage = Column(Integer, default=100, nullable=False)
    cancellation_fee = Column(Numeric(10, 2), default=0, nullable=True)
    no_show_policy = Column(Text, nullable=True)

    appointment_type = relationship("AppointmentType", back_populates="cancellation_policy")


class StaffMember(Base):
    __tablename__ = "staff_members"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    kind = ProviderKind.STAFF


class Resource(Base):
    """Physical or equipment resource (room, court, machine)"""

    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    kind = ProviderKind.RESOURCE


PROVIDER_MODELS = {
    ProviderKind.STAFF: StaffMember,
    ProviderKind.RESOURCE: Resource,
}
