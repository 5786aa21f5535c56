"""
Overlap Detection Service

Detects conflicts between a candidate slot and existing bookings:
- Half-open intervals, adjacent bookings (end == start) never conflict
- CANCELLED bookings are ignored
- Capacity is counted in seats (sum of Booking.capacity)

When called from a mutating transaction with lock=True, the overlapping rows are
read FOR UPDATE so the count and the following insert are atomic.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models_booking import Booking
from ...shared.enums import BookingStatus
from ...shared.refs import ProviderRef


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """[start_a, end_a) and [start_b, end_b) conflict iff start_a < end_b and end_a > start_b"""
    return start_a < end_b and end_a > start_b


@dataclass
class CapacityCheck:
    available: bool
    remaining_capacity: int
    used: int
    max_capacity: int
    overlapping_booking_ids: list[int] = field(default_factory=list)


def overlapping_bookings_query(
    db: Session,
    start: datetime,
    end: datetime,
    on_date: Optional[date] = None,
    provider: Optional[ProviderRef] = None,
    appointment_type_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> Query:
    """
    Non-cancelled bookings overlapping [start, end).

    Scoped to a provider when given, otherwise to an appointment type.
    """
    query = db.query(Booking).filter(
        Booking.status != BookingStatus.CANCELLED,
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if provider is not None:
        query = query.filter(Booking.provider_kind == provider.kind, Booking.provider_id == provider.id)
    if appointment_type_id is not None:
        query = query.filter(Booking.appointment_type_id == appointment_type_id)
    if on_date is not None:
        query = query.filter(Booking.date == on_date)
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.id)


def check_capacity(
    db: Session,
    start: datetime,
    end: datetime,
    max_capacity: int,
    requested_capacity: int = 1,
    on_date: Optional[date] = None,
    provider: Optional[ProviderRef] = None,
    appointment_type_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
    lock: bool = False,
) -> CapacityCheck:
    """
    available = used + requested_capacity <= max_capacity

    Aggregates cannot be combined with FOR UPDATE, so rows are locked and summed here.
    """
    query = overlapping_bookings_query(
        db,
        start,
        end,
        on_date=on_date,
        provider=provider,
        appointment_type_id=appointment_type_id,
        exclude_booking_id=exclude_booking_id,
    )
    if lock:
        query = query.with_for_update()

    overlapping = query.all()
    used = sum(booking.capacity or 1 for booking in overlapping)
    max_capacity = max_capacity or 1

    return CapacityCheck(
        available=used + requested_capacity <= max_capacity,
        remaining_capacity=max(0, max_capacity - used),
        used=used,
        max_capacity=max_capacity,
        overlapping_booking_ids=[booking.id for booking in overlapping],
    )
