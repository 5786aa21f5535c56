"""
Effective Availability Service

Computes the working window of a schedule scope on a date and cuts it into
fixed-length slots, considering:
- WorkingHours (weekly template, one row per day)
- AvailabilityException (date override, blocks or replaces the window)

Windows are same-day clock ranges; spanning midnight is not supported.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from ...errors import ValidationError
from ...shared.refs import ProviderRef, ScheduleScope
from ...shared.validators import day_of_week
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


class Window(NamedTuple):
    start: time
    end: time


class Slot(NamedTuple):
    """Half-open interval [start, end)"""

    start: datetime
    end: datetime


def get_effective_window(working_hours, exception) -> Optional[Window]:
    """
    Combine the weekly row and the date exception into the window for one date.

    1. No weekly row, or is_working=False -> None
    2. Exception with is_available=False -> None, regardless of working hours
    3. Exception with is_available=True and its own start/end -> that window
    4. Otherwise the weekly window
    """
    if working_hours is None or not working_hours.is_working:
        return None
    if working_hours.start_time is None or working_hours.end_time is None:
        return None

    if exception is not None:
        if not exception.is_available:
            return None
        if exception.start_time is not None and exception.end_time is not None:
            return Window(exception.start_time, exception.end_time)

    return Window(working_hours.start_time, working_hours.end_time)


def generate_slots(
    on_date: date,
    window: Optional[Window],
    duration_minutes: int,
) -> list[Slot]:
    """
    Emit consecutive slots of duration_minutes from window.start.

    Slots are back to back. A trailing remainder shorter than the
    duration is discarded, so start == end or duration > window yields no slots.
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")
    if window is None:
        return []

    window_start = datetime.combine(on_date, window.start)
    window_end = datetime.combine(on_date, window.end)
    duration = timedelta(minutes=duration_minutes)

    slots = []
    current_start = window_start
    while current_start < window_end:
        current_end = current_start + duration
        if current_end > window_end:
            break
        slots.append(Slot(current_start, current_end))
        current_start = current_end

    return slots


def is_within_window(start: datetime, end: datetime, on_date: date, window: Optional[Window]) -> bool:
    """True when [start, end) lies fully inside the window on on_date"""
    if window is None:
        return False
    if start.date() != on_date or end.date() != on_date:
        return False
    return window.start <= start.time() and end.time() <= window.end and start < end


def validate_booking_window(appointment_type, start: datetime, now: datetime) -> None:
    """
    min_advance_booking_minutes <= (start - now) <= max_advance_booking_days * 1440

    A missing minimum still forbids starts in the past; a missing maximum is unbounded.
    """
    minutes_until = (start - now).total_seconds() / 60
    min_minutes = appointment_type.min_advance_booking_minutes or 0

    if minutes_until < min_minutes:
        if min_minutes:
            raise ValidationError(f"Bookings must be made at least {min_minutes} minutes in advance")
        raise ValidationError("Bookings cannot start in the past")

    max_days = appointment_type.max_advance_booking_days
    if max_days and minutes_until > max_days * 24 * 60:
        raise ValidationError(f"Bookings cannot be made more than {max_days} days in advance")


def is_in_booking_window(appointment_type, start: datetime, now: datetime) -> bool:
    try:
        validate_booking_window(appointment_type, start, now)
    except ValidationError:
        return False
    return True


def resolve_availability(
    db: Session,
    scope: ScheduleScope,
    on_date: date,
    duration_minutes: int,
) -> list[Slot]:
    """Candidate slots for a scope and date, ordered by start"""
    working_hours = ScheduleRepository.get_working_hours(db, scope, day_of_week(on_date))
    exception = ScheduleRepository.get_exception(db, scope, on_date)
    window = get_effective_window(working_hours, exception)
    return generate_slots(on_date, window, duration_minutes)


def select_booking_scope(db: Session, appointment_type_id: int, provider: ProviderRef) -> ScheduleScope:
    """A provider with its own weekly rows is canonical, else the appointment type"""
    provider_scope = provider.as_scope()
    if ScheduleRepository.has_working_hours(db, provider_scope):
        return provider_scope
    return ScheduleScope.appointment_type(appointment_type_id)


def resolve_booking_window(
    db: Session, appointment_type_id: int, provider: ProviderRef, on_date: date
) -> Optional[Window]:
    """
    Effective window used when booking a provider.

    A provider exception with is_available=False blocks the date even when the
    appointment type's weekly rows are the ones in use.
    """
    scope = select_booking_scope(db, appointment_type_id, provider)
    working_hours = ScheduleRepository.get_working_hours(db, scope, day_of_week(on_date))
    exception = ScheduleRepository.get_exception(db, scope, on_date)
    window = get_effective_window(working_hours, exception)

    if window is not None and not scope.is_provider:
        provider_exception = ScheduleRepository.get_exception(db, provider.as_scope(), on_date)
        if provider_exception is not None and not provider_exception.is_available:
            logger.info(f"🚫 {provider.kind.value} {provider.id} blocked on {on_date} by exception")
            return None

    return window
