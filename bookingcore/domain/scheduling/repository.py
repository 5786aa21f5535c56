"""Schedule repository - Database operations for working hours, exceptions and catalog rows"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import PROVIDER_MODELS, AppointmentType
from ...models_booking import Booking
from ...models_schedule import AvailabilityException, WorkingHours
from ...shared.enums import BookingStatus
from ...shared.refs import ProviderRef, ScheduleScope


class ScheduleRepository:
    """Repository for schedule database operations"""

    @staticmethod
    def get_working_hours(db: Session, scope: ScheduleScope, day_of_week: int) -> Optional[WorkingHours]:
        return (
            db.query(WorkingHours)
            .filter(
                WorkingHours.scope_kind == scope.kind,
                WorkingHours.scope_id == scope.id,
                WorkingHours.day_of_week == day_of_week,
            )
            .first()
        )

    @staticmethod
    def list_working_hours(db: Session, scope: ScheduleScope) -> list[WorkingHours]:
        return (
            db.query(WorkingHours)
            .filter(WorkingHours.scope_kind == scope.kind, WorkingHours.scope_id == scope.id)
            .order_by(WorkingHours.day_of_week)
            .all()
        )

    @staticmethod
    def has_working_hours(db: Session, scope: ScheduleScope) -> bool:
        """True when the scope owns at least one weekly row"""
        return (
            db.query(WorkingHours.id)
            .filter(WorkingHours.scope_kind == scope.kind, WorkingHours.scope_id == scope.id)
            .first()
            is not None
        )

    @staticmethod
    def replace_working_hours(db: Session, scope: ScheduleScope, rows: list[dict]) -> list[WorkingHours]:
        """Delete every row of the scope and insert the given ones (flushes, caller commits)"""
        for existing in ScheduleRepository.list_working_hours(db, scope):
            db.delete(existing)
        # Deletes must reach the database before re-inserting the same (scope, day) keys
        db.flush()

        created = []
        for row in rows:
            working_hours = WorkingHours(scope_kind=scope.kind, scope_id=scope.id, **row)
            db.add(working_hours)
            created.append(working_hours)
        db.flush()
        return created

    @staticmethod
    def get_exception(db: Session, scope: ScheduleScope, on_date: date) -> Optional[AvailabilityException]:
        return (
            db.query(AvailabilityException)
            .filter(
                AvailabilityException.scope_kind == scope.kind,
                AvailabilityException.scope_id == scope.id,
                AvailabilityException.date == on_date,
            )
            .first()
        )

    @staticmethod
    def save_exception(db: Session, scope: ScheduleScope, on_date: date, **fields) -> AvailabilityException:
        """Create or update the single exception for (scope, date)"""
        exception = ScheduleRepository.get_exception(db, scope, on_date)
        if exception is None:
            exception = AvailabilityException(scope_kind=scope.kind, scope_id=scope.id, date=on_date)
            db.add(exception)
        for key, value in fields.items():
            setattr(exception, key, value)
        db.flush()
        return exception

    @staticmethod
    def count_active_bookings_on(db: Session, provider: ProviderRef, on_date: date) -> int:
        """PENDING/CONFIRMED bookings of a provider on a date"""
        return (
            db.query(Booking)
            .filter(
                Booking.provider_kind == provider.kind,
                Booking.provider_id == provider.id,
                Booking.date == on_date,
                Booking.status.in_([BookingStatus.PENDING, BookingStatus.CONFIRMED]),
            )
            .count()
        )

    # ------------------------------------------------------------------
    # Catalog lookups
    # ------------------------------------------------------------------

    @staticmethod
    def get_appointment_type(
        db: Session, appointment_type_id: int, for_update: bool = False
    ) -> Optional[AppointmentType]:
        query = db.query(AppointmentType).filter(AppointmentType.id == appointment_type_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()

    @staticmethod
    def get_provider(db: Session, provider: ProviderRef, for_update: bool = False):
        """StaffMember or Resource row for the reference, or None"""
        model = PROVIDER_MODELS[provider.kind]
        query = db.query(model).filter(model.id == provider.id)
        if for_update:
            query = query.populate_existing().with_for_update()
        return query.first()
