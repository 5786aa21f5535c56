"""Booking service - Business logic for the booking lifecycle"""

import logging
import secrets
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY, PAYMENT_PROVIDER
from ...errors import (
    BookingError,
    Conflict,
    Forbidden,
    InvalidState,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from ...models import AppointmentType
from ...models_booking import Booking, BookingHistory
from ...services.notification_service import (
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    BOOKING_REJECTED,
    BOOKING_RESCHEDULED,
    PAYMENT_CONFIRMED,
    LoggingNotificationSender,
    NotificationSender,
    build_booking_event,
    dispatch_booking_event,
)
from ...shared.enums import BookingStatus, HistoryAction, PaymentStatus, UserRole
from ...shared.refs import ProviderRef
from ...shared.validators import to_naive_utc, utcnow, validate_required_answers
from ..scheduling.availability import (
    is_within_window,
    resolve_booking_window,
    validate_booking_window,
)
from ..scheduling.overlap import check_capacity
from ..scheduling.repository import ScheduleRepository
from .history import list_history, record_history
from .refunds import (
    FULL_REFUND_PERCENTAGE,
    CancellationResult,
    assert_cancellable,
    assert_customer_may_cancel,
    calculate_refund,
    cancellation_eligibility,
    policy_terms,
)
from .repository import BookingFilter, BookingRepository, OrganizerBookingFilter

logger = logging.getLogger(__name__)


def generate_payment_intent_id() -> str:
    return f"pi_{secrets.token_hex(12)}"


class BookingService:
    """
    Service layer for booking business logic.

    Every mutating method is one unit of work: all checks run before the first
    write, rows are locked FOR UPDATE before capacity is evaluated, and any
    failure rolls the session back. Notifications go out after commit.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationSender] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.schedule_repo = ScheduleRepository()
        self.notifier = notifier if notifier is not None else LoggingNotificationSender()
        self.clock = clock

    @contextmanager
    def _unit_of_work(self, operation: str):
        try:
            yield
            self.db.commit()
        except BookingError as e:
            self.db.rollback()
            logger.warning(f"⚠️ {operation} rejected ({e.kind}): {e.message}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ {operation} failed: {e}")
            raise

    def _notify(self, event_type: str, booking: Booking, **extra) -> None:
        dispatch_booking_event(self.notifier, build_booking_event(event_type, booking, **extra))

    # ------------------------------------------------------------------
    # Lookups and checks (no writes)
    # ------------------------------------------------------------------

    def _resolve_customer(self, customer_id: Optional[int]):
        if not customer_id:
            raise Unauthenticated("Authentication required. Please login or register to create a booking.")

        customer = self.repo.get_user(self.db, customer_id)
        if customer is None:
            raise NotFound("Customer not found")
        if not customer.is_active:
            raise Forbidden("Your account is inactive. Please contact support.")
        if customer.role != UserRole.CUSTOMER:
            raise Forbidden("Only customers can create bookings")
        return customer

    def _lock_appointment_type(self, appointment_type_id: int) -> AppointmentType:
        appointment_type = self.schedule_repo.get_appointment_type(
            self.db, appointment_type_id, for_update=True
        )
        if appointment_type is None or not appointment_type.is_published:
            raise NotFound("Appointment type not found")
        return appointment_type

    def _lock_provider(self, provider: ProviderRef, appointment_type: AppointmentType):
        label = provider.kind.value.title()
        provider_row = self.schedule_repo.get_provider(self.db, provider, for_update=True)
        if provider_row is None or provider_row.organizer_id != appointment_type.organizer_id:
            raise NotFound(f"{label} not found")
        if not provider_row.is_active:
            raise Forbidden(f"{label} is not active")
        return provider_row

    def _lock_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id, for_update=True)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    def _assert_organizer(self, booking: Booking, organizer_id: int) -> None:
        if booking.appointment_type.organizer_id != organizer_id:
            raise Forbidden("You are not authorized to manage this booking")

    def _validate_slot(
        self,
        appointment_type: AppointmentType,
        provider: ProviderRef,
        on_date: date,
        start: datetime,
        requested_capacity: int,
        exclude_booking_id: Optional[int] = None,
    ) -> datetime:
        """Window, working hours and capacity checks shared by create and reschedule; returns end"""
        if start.date() != on_date:
            raise ValidationError("startTime must fall on the booking date")

        validate_booking_window(appointment_type, start, self.clock())

        end = start + timedelta(minutes=appointment_type.duration_minutes)
        window = resolve_booking_window(self.db, appointment_type.id, provider, on_date)
        if not is_within_window(start, end, on_date, window):
            raise ValidationError("Provider is not available at the selected time")

        capacity = check_capacity(
            self.db,
            start,
            end,
            appointment_type.max_bookings_per_slot,
            requested_capacity=requested_capacity,
            on_date=on_date,
            provider=provider,
            exclude_booking_id=exclude_booking_id,
            lock=True,
        )
        if not capacity.available:
            raise Conflict("Selected slot is no longer available")
        return end

    def _refund_payment(
        self, booking: Booking, percentage: int, fee, reason: Optional[str]
    ) -> tuple[Decimal, int, bool]:
        """Refund bookkeeping for a SUCCESS payment; returns (amount, percentage_applied, payment_refunded)"""
        payment = self.repo.get_payment(self.db, booking.id, for_update=True)
        if payment is None or payment.status != PaymentStatus.SUCCESS:
            return Decimal("0.00"), 0, False

        refund_amount = calculate_refund(payment.amount, percentage, fee)
        if refund_amount > 0:
            payment.status = PaymentStatus.REFUNDED
            payment.refund_amount = refund_amount
            payment.refund_reason = reason
            payment.refunded_at = self.clock()
            return refund_amount, percentage, True
        return refund_amount, percentage, False

    def _mark_cancelled(self, booking: Booking, performed_by: int, reason: Optional[str]) -> BookingStatus:
        old_status = booking.status
        booking.status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason
        booking.cancelled_by = performed_by
        booking.cancelled_at = self.clock()
        record_history(
            self.db,
            booking,
            HistoryAction.CANCELLED,
            performed_by,
            old_status=old_status,
            new_status=BookingStatus.CANCELLED,
            reason=reason,
        )
        return old_status

    # ------------------------------------------------------------------
    # Create & pay
    # ------------------------------------------------------------------

    def create_booking(
        self,
        appointment_type_id: int,
        provider: ProviderRef,
        on_date: date,
        start_time: datetime,
        customer_id: Optional[int],
        capacity: int = 1,
        answers: Optional[list] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Validate and commit a booking in one transaction.

        Status is PENDING when payment or manual confirmation is required,
        CONFIRMED otherwise. A Payment(PENDING) row is added for paid types.

        Raises:
            Unauthenticated, NotFound, Forbidden, ValidationError, Conflict
        """
        start = to_naive_utc(start_time)
        logger.info(
            f"📥 Creating booking: type {appointment_type_id}, {provider.kind.value} {provider.id}, "
            f"start {start}, customer {customer_id}"
        )

        with self._unit_of_work("Create booking"):
            customer = self._resolve_customer(customer_id)
            if capacity is None or capacity < 1:
                raise ValidationError("capacity must be at least 1")

            appointment_type = self._lock_appointment_type(appointment_type_id)
            self._lock_provider(provider, appointment_type)
            validate_required_answers(appointment_type.questions, answers)
            end = self._validate_slot(appointment_type, provider, on_date, start, capacity)

            status = BookingStatus.CONFIRMED
            if appointment_type.requires_payment or appointment_type.manual_confirmation:
                status = BookingStatus.PENDING

            booking = self.repo.add_booking(
                self.db,
                appointment_type_id=appointment_type.id,
                customer_id=customer.id,
                provider_kind=provider.kind,
                provider_id=provider.id,
                date=on_date,
                start_time=start,
                end_time=end,
                status=status,
                capacity=capacity,
                answers=answers or [],
                notes=notes,
                confirmation_message=appointment_type.confirmation_message,
            )

            if appointment_type.requires_payment and (appointment_type.price or 0) > 0:
                self.repo.add_payment(
                    self.db,
                    booking_id=booking.id,
                    amount=appointment_type.price,
                    currency=appointment_type.currency or DEFAULT_CURRENCY,
                    provider=PAYMENT_PROVIDER,
                    status=PaymentStatus.PENDING,
                    external_transaction_id=generate_payment_intent_id(),
                )

            record_history(
                self.db, booking, HistoryAction.CREATED, customer.id, new_status=status
            )

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} created ({booking.status.value})")
        self._notify(BOOKING_CREATED, booking)
        return booking

    def confirm_payment(self, booking_id: int, transaction_id: str, requester_id: Optional[int]) -> Booking:
        """Record a successful gateway charge; confirms unless manual approval is still required"""
        with self._unit_of_work("Confirm payment"):
            if not requester_id:
                raise Unauthenticated("User must be logged in")

            booking = self._lock_booking(booking_id)
            if booking.customer_id != requester_id:
                raise Forbidden("You are not authorized to confirm payment for this booking")

            payment = self.repo.get_payment(self.db, booking.id, for_update=True)
            if payment is None:
                raise NotFound("No payment record found for this booking")
            if payment.status == PaymentStatus.SUCCESS:
                raise InvalidState("Payment has already been confirmed")
            if payment.status == PaymentStatus.REFUNDED:
                raise InvalidState("Payment has already been refunded")
            if booking.status.is_terminal:
                raise InvalidState(f"Cannot confirm payment for booking with status: {booking.status.value}")
            if not transaction_id or not transaction_id.strip():
                raise ValidationError("Transaction ID is required")

            payment.status = PaymentStatus.SUCCESS
            payment.external_transaction_id = transaction_id.strip()

            old_status = booking.status
            if not booking.appointment_type.manual_confirmation:
                booking.status = BookingStatus.CONFIRMED

            record_history(
                self.db,
                booking,
                HistoryAction.PAYMENT_RECEIVED,
                requester_id,
                old_status=old_status,
                new_status=booking.status,
            )

        self.db.refresh(booking)
        logger.info(f"💳 Payment confirmed for booking {booking.id} ({booking.status.value})")
        self._notify(PAYMENT_CONFIRMED, booking, transaction_id=transaction_id)
        return booking

    # ------------------------------------------------------------------
    # Cancel & reschedule
    # ------------------------------------------------------------------

    def cancel_booking(self, booking_id: int, requester_id: int, reason: Optional[str] = None) -> CancellationResult:
        """
        Cancel as the booking's customer or the appointment type's organizer.

        Customers are bound by the cancellation policy and its deadline; organizers
        cancel at any time and refund 100% of a successful payment.

        Raises:
            NotFound, Forbidden, InvalidState, PolicyViolation
        """
        with self._unit_of_work("Cancel booking"):
            booking = self._lock_booking(booking_id)
            appointment_type = booking.appointment_type
            is_customer = booking.customer_id == requester_id
            is_organizer = appointment_type.organizer_id == requester_id
            if not is_customer and not is_organizer:
                raise Forbidden("You are not authorized to cancel this booking")

            assert_cancellable(booking.status)

            if is_customer:
                terms = policy_terms(self.repo.get_cancellation_policy(self.db, appointment_type.id))
                assert_customer_may_cancel(booking.start_time, terms, self.clock())
                percentage, fee = terms.refund_percentage, terms.cancellation_fee
            else:
                percentage, fee = FULL_REFUND_PERCENTAGE, 0

            refund_amount, applied_percentage, payment_refunded = self._refund_payment(
                booking, percentage, fee, reason
            )
            self._mark_cancelled(booking, requester_id, reason)

        self.db.refresh(booking)
        by = "customer" if is_customer else "organizer"
        logger.info(f"🗑️ Booking {booking.id} cancelled by {by} {requester_id}, refund {refund_amount}")
        self._notify(BOOKING_CANCELLED, booking, reason=reason, refund_amount=str(refund_amount))
        return CancellationResult(
            booking=booking,
            refund_amount=refund_amount,
            refund_percentage=applied_percentage,
            payment_refunded=payment_refunded,
        )

    def reschedule_booking(
        self,
        booking_id: int,
        requester_id: int,
        new_date: date,
        new_start_time: datetime,
        provider: Optional[ProviderRef] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking to a new slot in place, keeping its id.

        The booking's own row is excluded from the capacity count. Manual
        confirmation types go back to PENDING for re-approval.
        """
        new_start = to_naive_utc(new_start_time)

        with self._unit_of_work("Reschedule booking"):
            booking = self.repo.get_booking(self.db, booking_id)
            if booking is None:
                raise NotFound("Booking not found")

            # Same lock order as create_booking: type, provider, then bookings
            appointment_type = self._lock_appointment_type(booking.appointment_type_id)
            target = provider or booking.provider
            self._lock_provider(target, appointment_type)
            booking = self._lock_booking(booking_id)

            is_customer = booking.customer_id == requester_id
            is_organizer = appointment_type.organizer_id == requester_id
            if not is_customer and not is_organizer:
                raise Forbidden("You are not authorized to reschedule this booking")
            if booking.status.is_terminal:
                raise InvalidState(f"Cannot reschedule booking with status: {booking.status.value}")
            new_end = self._validate_slot(
                appointment_type,
                target,
                new_date,
                new_start,
                booking.capacity,
                exclude_booking_id=booking.id,
            )

            old_status = booking.status
            old_start = booking.start_time
            new_status = BookingStatus.PENDING if appointment_type.manual_confirmation else old_status

            booking.date = new_date
            booking.start_time = new_start
            booking.end_time = new_end
            booking.provider = target
            booking.status = new_status

            record_history(
                self.db,
                booking,
                HistoryAction.RESCHEDULED,
                requester_id,
                old_status=old_status,
                new_status=new_status,
                old_start_time=old_start,
                new_start_time=new_start,
                reason=reason,
            )

        self.db.refresh(booking)
        logger.info(f"🔁 Booking {booking.id} rescheduled from {old_start} to {new_start} ({new_status.value})")
        self._notify(BOOKING_RESCHEDULED, booking, old_start_time=old_start.isoformat(), reason=reason)
        return booking

    # ------------------------------------------------------------------
    # Organizer actions
    # ------------------------------------------------------------------

    def confirm_booking(self, booking_id: int, organizer_id: int, message: Optional[str] = None) -> Booking:
        """Organizer approval: PENDING -> CONFIRMED"""
        with self._unit_of_work("Confirm booking"):
            booking = self._lock_booking(booking_id)
            self._assert_organizer(booking, organizer_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidState(f"Only pending bookings can be confirmed (current: {booking.status.value})")

            booking.status = BookingStatus.CONFIRMED
            if message:
                booking.confirmation_message = message
            record_history(
                self.db,
                booking,
                HistoryAction.CONFIRMED,
                organizer_id,
                old_status=BookingStatus.PENDING,
                new_status=BookingStatus.CONFIRMED,
            )

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} confirmed by organizer {organizer_id}")
        self._notify(BOOKING_CONFIRMED, booking, message=message)
        return booking

    def reject_booking(self, booking_id: int, organizer_id: int, reason: Optional[str] = None) -> CancellationResult:
        """Organizer rejection: PENDING -> CANCELLED with a full refund of any successful payment"""
        with self._unit_of_work("Reject booking"):
            booking = self._lock_booking(booking_id)
            self._assert_organizer(booking, organizer_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidState(f"Only pending bookings can be rejected (current: {booking.status.value})")

            refund_amount, applied_percentage, payment_refunded = self._refund_payment(
                booking, FULL_REFUND_PERCENTAGE, 0, reason
            )
            self._mark_cancelled(booking, organizer_id, reason)

        self.db.refresh(booking)
        logger.info(f"🚫 Booking {booking.id} rejected by organizer {organizer_id}")
        self._notify(BOOKING_REJECTED, booking, reason=reason, refund_amount=str(refund_amount))
        return CancellationResult(
            booking=booking,
            refund_amount=refund_amount,
            refund_percentage=applied_percentage,
            payment_refunded=payment_refunded,
        )

    def complete_booking(self, booking_id: int, organizer_id: int) -> Booking:
        """CONFIRMED -> COMPLETED, only once the appointment has ended"""
        with self._unit_of_work("Complete booking"):
            booking = self._lock_booking(booking_id)
            self._assert_organizer(booking, organizer_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise InvalidState(f"Only confirmed bookings can be completed (current: {booking.status.value})")
            if booking.end_time > self.clock():
                raise InvalidState("Cannot complete a booking before it has ended")

            booking.status = BookingStatus.COMPLETED
            record_history(
                self.db,
                booking,
                HistoryAction.COMPLETED,
                organizer_id,
                old_status=BookingStatus.CONFIRMED,
                new_status=BookingStatus.COMPLETED,
            )

        self.db.refresh(booking)
        logger.info(f"🏁 Booking {booking.id} completed")
        self._notify(BOOKING_COMPLETED, booking)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get_visible_booking(self, booking_id: int, requester_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if requester_id not in (booking.customer_id, booking.appointment_type.organizer_id):
            raise Forbidden("You are not authorized to view this booking")
        return booking

    def get_eligibility(self, booking: Booking) -> dict:
        terms = policy_terms(booking.appointment_type.cancellation_policy)
        return cancellation_eligibility(booking.status, booking.start_time, terms, self.clock())

    def get_booking(self, booking_id: int, requester_id: int) -> tuple[Booking, dict]:
        """Booking details with {can_cancel, cancellation_deadline}"""
        booking = self._get_visible_booking(booking_id, requester_id)
        return booking, self.get_eligibility(booking)

    def list_customer_bookings(self, customer_id: int, filters: Optional[BookingFilter] = None) -> dict:
        filters = filters or BookingFilter()
        rows, total = self.repo.list_customer_bookings(self.db, customer_id, filters, self.clock())
        return {
            "bookings": [(booking, self.get_eligibility(booking)) for booking in rows],
            "pagination": {
                "total": total,
                "page": filters.page,
                "limit": filters.limit,
                "total_pages": (total + filters.limit - 1) // filters.limit,
            },
        }

    def list_organizer_bookings(
        self, organizer_id: Optional[int], filters: Optional[OrganizerBookingFilter] = None
    ) -> dict:
        """
        Bookings across the organizer's appointment types.

        The summary counts every booking of the organizer by status and ignores
        the filters.
        """
        if not organizer_id:
            raise Unauthenticated("User must be logged in")
        organizer = self.repo.get_user(self.db, organizer_id)
        if organizer is None or organizer.role not in (UserRole.ORGANIZER, UserRole.ADMIN):
            raise Forbidden("Only organizers can list organizer bookings")

        filters = filters or OrganizerBookingFilter()
        rows, total = self.repo.list_organizer_bookings(self.db, organizer_id, filters)
        counts = self.repo.count_organizer_bookings_by_status(self.db, organizer_id)
        return {
            "bookings": rows,
            "pagination": {
                "total": total,
                "page": filters.page,
                "limit": filters.limit,
                "total_pages": (total + filters.limit - 1) // filters.limit,
            },
            "summary": {
                "pending": counts[BookingStatus.PENDING],
                "confirmed": counts[BookingStatus.CONFIRMED],
                "completed": counts[BookingStatus.COMPLETED],
                "cancelled": counts[BookingStatus.CANCELLED],
            },
        }

    def get_history(self, booking_id: int, requester_id: int) -> list[BookingHistory]:
        """Audit trail, oldest first"""
        booking = self._get_visible_booking(booking_id, requester_id)
        return list_history(self.db, booking.id)
