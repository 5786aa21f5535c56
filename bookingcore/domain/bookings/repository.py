"""Booking repository - Database operations for bookings, payments and customers"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...errors import ValidationError
from ...models import AppointmentType, CancellationPolicy, User
from ...models_booking import Booking, Payment
from ...shared.enums import BookingStatus
from ...shared.refs import ProviderRef

MAX_PAGE_SIZE = 100


@dataclass
class BookingFilter:
    """
    Customer booking list filters.

    Each field maps to one bound SQLAlchemy predicate; upcoming and past are
    relative to the service clock.
    """

    status: Optional[BookingStatus] = None
    upcoming: bool = False
    past: bool = False
    page: int = 1
    limit: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError("page must be 1 or greater")
        if self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.upcoming and self.past:
            raise ValidationError("upcoming and past cannot be combined")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class OrganizerBookingFilter:
    """
    Organizer booking list filters.

    start_date and end_date bound start_time and are both inclusive; search
    matches the customer name or email case-insensitively.
    """

    status: Optional[BookingStatus] = None
    appointment_type_id: Optional[int] = None
    provider: Optional[ProviderRef] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 20

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError("page must be 1 or greater")
        if self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("startDate must not be after endDate")
        if self.search is not None:
            self.search = self.search.strip() or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int, for_update: bool = False) -> Optional[Booking]:
        """Get a booking by ID, optionally locking the row"""
        query = db.query(Booking).filter(Booking.id == booking_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    @staticmethod
    def get_payment(db: Session, booking_id: int, for_update: bool = False) -> Optional[Payment]:
        query = db.query(Payment).filter(Payment.booking_id == booking_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_cancellation_policy(db: Session, appointment_type_id: int) -> Optional[CancellationPolicy]:
        return (
            db.query(CancellationPolicy)
            .filter(CancellationPolicy.appointment_type_id == appointment_type_id)
            .first()
        )

    @staticmethod
    def add_booking(db: Session, **booking_data) -> Booking:
        """Insert a booking and flush so its id is available; the caller commits"""
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_payment(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def list_customer_bookings(
        db: Session, customer_id: int, filters: BookingFilter, now: datetime
    ) -> tuple[list[Booking], int]:
        """
        Bookings of a customer, newest start first.

        Returns (page_rows, total_matching)
        """
        query = db.query(Booking).filter(Booking.customer_id == customer_id)

        if filters.status is not None:
            query = query.filter(Booking.status == filters.status)
        if filters.upcoming:
            query = query.filter(Booking.start_time >= now)
        if filters.past:
            query = query.filter(Booking.start_time < now)

        total = query.count()
        rows = (
            query.options(
                joinedload(Booking.appointment_type).joinedload(AppointmentType.cancellation_policy)
            )
            .order_by(Booking.start_time.desc(), Booking.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return rows, total

    @staticmethod
    def list_organizer_bookings(
        db: Session, organizer_id: int, filters: OrganizerBookingFilter
    ) -> tuple[list[Booking], int]:
        """
        Bookings on any of the organizer's appointment types, newest start first.

        Returns (page_rows, total_matching)
        """
        query = (
            db.query(Booking)
            .join(AppointmentType, Booking.appointment_type_id == AppointmentType.id)
            .join(User, Booking.customer_id == User.id)
            .filter(AppointmentType.organizer_id == organizer_id)
        )

        if filters.status is not None:
            query = query.filter(Booking.status == filters.status)
        if filters.appointment_type_id is not None:
            query = query.filter(Booking.appointment_type_id == filters.appointment_type_id)
        if filters.provider is not None:
            query = query.filter(
                Booking.provider_kind == filters.provider.kind,
                Booking.provider_id == filters.provider.id,
            )
        if filters.start_date is not None:
            query = query.filter(Booking.start_time >= datetime.combine(filters.start_date, time.min))
        if filters.end_date is not None:
            query = query.filter(
                Booking.start_time < datetime.combine(filters.end_date + timedelta(days=1), time.min)
            )
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(or_(User.full_name.ilike(pattern), User.email.ilike(pattern)))

        total = query.count()
        rows = (
            query.options(joinedload(Booking.customer), joinedload(Booking.payment))
            .order_by(Booking.start_time.desc(), Booking.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return rows, total

    @staticmethod
    def count_organizer_bookings_by_status(db: Session, organizer_id: int) -> dict[BookingStatus, int]:
        """Per-status totals across every booking of the organizer, unfiltered"""
        rows = (
            db.query(Booking.status, func.count(Booking.id))
            .join(AppointmentType, Booking.appointment_type_id == AppointmentType.id)
            .filter(AppointmentType.organizer_id == organizer_id)
            .group_by(Booking.status)
            .all()
        )
        counts = {status: 0 for status in BookingStatus}
        counts.update({status: count for status, count in rows})
        return counts
