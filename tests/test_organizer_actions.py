"""Tests for organizer confirm, reject and complete."""

from datetime import datetime
from decimal import Decimal

import pytest
from conftest import BOOKING_DATE, at

from bookingcore.errors import Forbidden, InvalidState, NotFound
from bookingcore.models_booking import Payment
from bookingcore.shared.enums import BookingStatus, HistoryAction, PaymentStatus


@pytest.fixture
def pending_booking(db_session, appointment_type, book):
    appointment_type.manual_confirmation = True
    db_session.commit()
    return book(10)


class TestConfirmBooking:
    def test_confirms_pending(self, booking_service, pending_booking, organizer, sender):
        confirmed = booking_service.confirm_booking(pending_booking.id, organizer.id, "Approved, bring ID")

        assert confirmed.status == BookingStatus.CONFIRMED
        assert confirmed.confirmation_message == "Approved, bring ID"
        assert sender.types[-1] == "booking_confirmed"

        entry = booking_service.get_history(pending_booking.id, organizer.id)[-1]
        assert entry.action == HistoryAction.CONFIRMED
        assert (entry.old_status, entry.new_status) == (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def test_keeps_message_when_none_given(self, booking_service, pending_booking, organizer):
        confirmed = booking_service.confirm_booking(pending_booking.id, organizer.id)

        assert confirmed.confirmation_message == "See you soon"

    def test_only_pending(self, booking_service, book, organizer):
        booking = book(10)

        with pytest.raises(InvalidState, match="Only pending"):
            booking_service.confirm_booking(booking.id, organizer.id)

    def test_customer_cannot_confirm(self, booking_service, pending_booking, customer):
        with pytest.raises(Forbidden):
            booking_service.confirm_booking(pending_booking.id, customer.id)

    def test_unknown_booking(self, booking_service, organizer):
        with pytest.raises(NotFound):
            booking_service.confirm_booking(999, organizer.id)


class TestRejectBooking:
    def test_rejects_pending(self, booking_service, pending_booking, organizer, sender):
        result = booking_service.reject_booking(pending_booking.id, organizer.id, "Fully booked that week")

        assert result.booking.status == BookingStatus.CANCELLED
        assert result.booking.cancellation_reason == "Fully booked that week"
        assert result.booking.cancelled_by == organizer.id
        assert result.refund_amount == Decimal("0.00")
        assert result.payment_refunded is False
        assert sender.types[-1] == "booking_rejected"

    def test_full_refund_of_paid_booking(
        self, db_session, booking_service, paid_appointment_type, staff_ref, customer, organizer
    ):
        paid_appointment_type.manual_confirmation = True
        db_session.commit()
        booking = booking_service.create_booking(
            appointment_type_id=paid_appointment_type.id,
            provider=staff_ref,
            on_date=BOOKING_DATE,
            start_time=at(10),
            customer_id=customer.id,
        )
        booking_service.confirm_payment(booking.id, "ch_manual", customer.id)

        result = booking_service.reject_booking(booking.id, organizer.id, "Not available")

        payment = db_session.query(Payment).filter_by(booking_id=booking.id).one()
        assert result.refund_amount == Decimal("100.00")
        assert result.refund_percentage == 100
        assert payment.status == PaymentStatus.REFUNDED

    def test_only_pending(self, booking_service, book, organizer):
        booking = book(10)

        with pytest.raises(InvalidState):
            booking_service.reject_booking(booking.id, organizer.id)

    def test_customer_cannot_reject(self, booking_service, pending_booking, customer):
        with pytest.raises(Forbidden):
            booking_service.reject_booking(pending_booking.id, customer.id)


class TestCompleteBooking:
    def test_completes_after_end(self, booking_service, book, organizer, clock, sender):
        booking = book(10)
        clock.set(datetime(2026, 3, 10, 10, 30))

        completed = booking_service.complete_booking(booking.id, organizer.id)

        assert completed.status == BookingStatus.COMPLETED
        assert sender.types[-1] == "booking_completed"
        assert booking_service.get_history(booking.id, organizer.id)[-1].action == HistoryAction.COMPLETED

    def test_not_before_end(self, booking_service, book, organizer, clock):
        booking = book(10)
        clock.set(datetime(2026, 3, 10, 10, 15))

        with pytest.raises(InvalidState, match="before it has ended"):
            booking_service.complete_booking(booking.id, organizer.id)

    def test_only_confirmed(self, booking_service, pending_booking, organizer, clock):
        clock.set(datetime(2026, 3, 11, 9, 0))

        with pytest.raises(InvalidState, match="Only confirmed"):
            booking_service.complete_booking(pending_booking.id, organizer.id)

    def test_completed_is_terminal(self, booking_service, book, organizer, customer, clock):
        booking = book(10)
        clock.set(datetime(2026, 3, 11, 9, 0))
        booking_service.complete_booking(booking.id, organizer.id)

        with pytest.raises(InvalidState):
            booking_service.cancel_booking(booking.id, organizer.id)
        with pytest.raises(InvalidState):
            booking_service.complete_booking(booking.id, organizer.id)

    def test_customer_cannot_complete(self, booking_service, book, customer, clock):
        booking = book(10)
        clock.set(datetime(2026, 3, 11, 9, 0))

        with pytest.raises(Forbidden):
            booking_service.complete_booking(booking.id, customer.id)
