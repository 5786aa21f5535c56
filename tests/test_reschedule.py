"""Tests for in-place rescheduling."""

from datetime import date

import pytest
from conftest import BOOKING_DATE, at

from bookingcore.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from bookingcore.models_booking import Booking
from bookingcore.shared.enums import BookingStatus, HistoryAction
from bookingcore.shared.refs import ProviderRef

NEXT_DAY = date(2026, 3, 11)


class TestRescheduleBooking:
    """Moving a booking keeps its id and excludes its own row from capacity."""

    def test_moves_into_overlapping_own_slot(self, booking_service, book, customer):
        booking = book(10)

        moved = booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(10, 15))

        assert moved.id == booking.id
        assert moved.start_time == at(10, 15)
        assert moved.end_time == at(10, 45)
        assert moved.status == BookingStatus.CONFIRMED

    def test_moves_to_another_day(self, db_session, booking_service, book, customer, sender):
        booking = book(10)

        moved = booking_service.reschedule_booking(
            booking.id, customer.id, NEXT_DAY, at(14, on=NEXT_DAY), reason="Travel"
        )

        assert moved.date == NEXT_DAY
        assert moved.start_time == at(14, on=NEXT_DAY)
        assert db_session.query(Booking).count() == 1
        assert sender.types == ["booking_created", "booking_rescheduled"]
        assert sender.events[-1].extra["old_start_time"] == at(10).isoformat()

    def test_history_records_both_times(self, booking_service, book, customer):
        booking = book(10)

        booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(15), reason="Later please")

        entry = booking_service.get_history(booking.id, customer.id)[-1]
        assert entry.action == HistoryAction.RESCHEDULED
        assert entry.old_start_time == at(10)
        assert entry.new_start_time == at(15)
        assert entry.reason == "Later please"
        assert entry.performed_by == customer.id

    def test_conflict_with_other_booking(self, booking_service, book, customer, other_customer):
        booking = book(10)
        book(11, customer_id=other_customer.id)

        with pytest.raises(Conflict):
            booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(10, 45))

        assert booking_service.get_booking(booking.id, customer.id)[0].start_time == at(10)

    def test_manual_confirmation_returns_to_pending(self, db_session, appointment_type, booking_service, book, customer):
        booking = book(10)
        appointment_type.manual_confirmation = True
        db_session.commit()

        moved = booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(12))

        assert moved.status == BookingStatus.PENDING
        entry = booking_service.get_history(booking.id, customer.id)[-1]
        assert (entry.old_status, entry.new_status) == (BookingStatus.CONFIRMED, BookingStatus.PENDING)

    def test_terminal_booking_rejected(self, booking_service, book, customer):
        booking = book(10)
        booking_service.cancel_booking(booking.id, customer.id)

        with pytest.raises(InvalidState):
            booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(12))

    def test_outside_working_hours(self, booking_service, book, customer):
        booking = book(10)

        with pytest.raises(ValidationError):
            booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(8))

    def test_weekend_rejected(self, booking_service, book, customer):
        booking = book(10)
        saturday = date(2026, 3, 14)

        with pytest.raises(ValidationError):
            booking_service.reschedule_booking(booking.id, customer.id, saturday, at(10, on=saturday))

    def test_to_another_provider(self, booking_service, book, resource, customer):
        booking = book(10)
        room = ProviderRef.resource(resource.id)

        moved = booking_service.reschedule_booking(booking.id, customer.id, BOOKING_DATE, at(10), provider=room)

        assert moved.provider == room

    def test_organizer_may_reschedule(self, booking_service, book, organizer):
        booking = book(10)

        moved = booking_service.reschedule_booking(booking.id, organizer.id, BOOKING_DATE, at(13))

        assert moved.start_time == at(13)
        assert booking_service.get_history(booking.id, organizer.id)[-1].performed_by == organizer.id

    def test_stranger_forbidden(self, booking_service, book, other_customer):
        booking = book(10)

        with pytest.raises(Forbidden):
            booking_service.reschedule_booking(booking.id, other_customer.id, BOOKING_DATE, at(13))

    def test_unknown_booking(self, booking_service, customer):
        with pytest.raises(NotFound):
            booking_service.reschedule_booking(404, customer.id, BOOKING_DATE, at(13))
