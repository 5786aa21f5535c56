"""Schedule service - Business logic for working hours, exceptions and slot listing"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...errors import Forbidden, NotFound, ValidationError
from ...models_schedule import AvailabilityException, WorkingHours
from ...shared.refs import ProviderRef, ScheduleScope
from ...shared.validators import parse_time_of_day, utcnow, validate_day_of_week
from .availability import (
    generate_slots,
    is_in_booking_window,
    resolve_availability,
    resolve_booking_window,
)
from .overlap import check_capacity
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service layer for schedule management and display availability"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.repo = ScheduleRepository()
        self.clock = clock

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def _get_scope_owner_id(self, scope: ScheduleScope) -> int:
        if scope.is_provider:
            owner = self.repo.get_provider(self.db, scope.as_provider())
            label = scope.kind.value.title()
        else:
            owner = self.repo.get_appointment_type(self.db, scope.id)
            label = "Appointment type"
        if owner is None:
            raise NotFound(f"{label} not found")
        return owner.organizer_id

    def _assert_scope_owner(self, scope: ScheduleScope, requester_id: int) -> None:
        if self._get_scope_owner_id(scope) != requester_id:
            logger.warning(f"⚠️ User {requester_id} tried to edit schedule of {scope.kind.value} {scope.id}")
            raise Forbidden("You do not manage this schedule")

    # ------------------------------------------------------------------
    # Working hours
    # ------------------------------------------------------------------

    def _normalize_working_hours(self, rows: list[dict]) -> list[dict]:
        seen_days = set()
        normalized = []
        for row in rows:
            day = validate_day_of_week(row.get("day_of_week"))
            if day in seen_days:
                raise ValidationError(f"dayOfWeek {day} is listed more than once")
            seen_days.add(day)

            is_working = row.get("is_working", True)
            start = parse_time_of_day(row.get("start_time"))
            end = parse_time_of_day(row.get("end_time"))
            if is_working:
                if start is None or end is None:
                    raise ValidationError(f"startTime and endTime are required for working day {day}")
                if start >= end:
                    raise ValidationError(f"startTime must be before endTime for day {day}")

            normalized.append(
                {"day_of_week": day, "is_working": is_working, "start_time": start, "end_time": end}
            )
        return normalized

    def set_working_hours(self, scope: ScheduleScope, rows: list[dict], requester_id: int) -> list[WorkingHours]:
        """Replace every weekly row of the scope"""
        self._assert_scope_owner(scope, requester_id)
        normalized = self._normalize_working_hours(rows)

        try:
            created = self.repo.replace_working_hours(self.db, scope, normalized)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Working hours set for {scope.kind.value} {scope.id}: {len(created)} days")
        return self.repo.list_working_hours(self.db, scope)

    def get_working_hours(self, scope: ScheduleScope) -> list[WorkingHours]:
        return self.repo.list_working_hours(self.db, scope)

    # ------------------------------------------------------------------
    # Exceptions
    # ------------------------------------------------------------------

    def upsert_availability_exception(
        self,
        scope: ScheduleScope,
        on_date: date,
        requester_id: int,
        is_available: bool = False,
        start_time=None,
        end_time=None,
        reason: Optional[str] = None,
    ) -> tuple[AvailabilityException, int]:
        """
        Create or update the exception for (scope, date).

        Returns the exception and, for provider scopes, the number of
        PENDING/CONFIRMED bookings on that date that the organizer may need to move.
        """
        self._assert_scope_owner(scope, requester_id)

        start = parse_time_of_day(start_time)
        end = parse_time_of_day(end_time)
        if (start is None) != (end is None):
            raise ValidationError("startTime and endTime must be provided together")
        if start is not None and start >= end:
            raise ValidationError("startTime must be before endTime")
        if not is_available:
            start = end = None

        try:
            exception = self.repo.save_exception(
                self.db,
                scope,
                on_date,
                is_available=is_available,
                start_time=start,
                end_time=end,
                reason=reason,
            )
            self.db.commit()
            self.db.refresh(exception)
        except Exception:
            self.db.rollback()
            raise

        affected = 0
        if scope.is_provider:
            affected = self.repo.count_active_bookings_on(self.db, scope.as_provider(), on_date)

        state = "available" if is_available else "blocked"
        logger.info(f"📅 Exception for {scope.kind.value} {scope.id} on {on_date}: {state}, {affected} bookings affected")
        return exception, affected

    # ------------------------------------------------------------------
    # Display availability (non-locking)
    # ------------------------------------------------------------------

    def list_available_slots(
        self,
        appointment_type_id: int,
        on_date: date,
        provider: Optional[ProviderRef] = None,
    ) -> list[dict]:
        """
        Slots for an appointment type on a date with remaining capacity.

        With a provider, the booking-path window and the provider's bookings are
        used; without one, the appointment type's own schedule and bookings.
        Reads are not locked and may be stale by the time a booking commits.
        """
        appointment_type = self.repo.get_appointment_type(self.db, appointment_type_id)
        if appointment_type is None or not appointment_type.is_published:
            raise NotFound("Appointment type not found")

        if provider is not None:
            provider_row = self.repo.get_provider(self.db, provider)
            if provider_row is None or provider_row.organizer_id != appointment_type.organizer_id:
                raise NotFound(f"{provider.kind.value.title()} not found")
            if not provider_row.is_active:
                raise Forbidden(f"{provider.kind.value.title()} is not active")
            window = resolve_booking_window(self.db, appointment_type_id, provider, on_date)
            slots = generate_slots(on_date, window, appointment_type.duration_minutes)
        else:
            slots = resolve_availability(
                self.db,
                ScheduleScope.appointment_type(appointment_type_id),
                on_date,
                appointment_type.duration_minutes,
            )

        now = self.clock()
        result = []
        for slot in slots:
            capacity = check_capacity(
                self.db,
                slot.start,
                slot.end,
                appointment_type.max_bookings_per_slot,
                on_date=on_date,
                provider=provider,
                appointment_type_id=None if provider is not None else appointment_type_id,
            )
            result.append(
                {
                    "start": slot.start,
                    "end": slot.end,
                    "capacity_remaining": capacity.remaining_capacity,
                    "is_available": capacity.remaining_capacity > 0
                    and is_in_booking_window(appointment_type, slot.start, now),
                }
            )
        return result
