"""Audit trail - append-only BookingHistory rows"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models_booking import Booking, BookingHistory
from ...shared.enums import BookingStatus, HistoryAction


def record_history(
    db: Session,
    booking: Booking,
    action: HistoryAction,
    performed_by: Optional[int],
    old_status: Optional[BookingStatus] = None,
    new_status: Optional[BookingStatus] = None,
    old_start_time: Optional[datetime] = None,
    new_start_time: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> BookingHistory:
    """Add a history row to the open transaction; the caller commits"""
    entry = BookingHistory(
        booking_id=booking.id,
        action=action,
        performed_by=performed_by,
        old_status=old_status,
        new_status=new_status,
        old_start_time=old_start_time,
        new_start_time=new_start_time,
        reason=reason,
    )
    db.add(entry)
    return entry


def list_history(db: Session, booking_id: int) -> list[BookingHistory]:
    return (
        db.query(BookingHistory)
        .filter(BookingHistory.booking_id == booking_id)
        .order_by(BookingHistory.id)
        .all()
    )
