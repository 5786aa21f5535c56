"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from ...errors import ValidationError
from ...models_booking import Booking
from ...services.notification_service import (
    BackgroundNotificationSender,
    NotificationSender,
    get_notification_sender,
)
from ...shared.enums import BookingStatus, ProviderKind
from ...shared.refs import ProviderRef
from .refunds import CancellationResult
from .repository import BookingFilter, OrganizerBookingFilter
from .schemas import (
    BookingCreate,
    BookingHistoryResponse,
    BookingListResponse,
    BookingResponse,
    CancellationResponse,
    CancelRequest,
    ConfirmRequest,
    OrganizerBookingListResponse,
    OrganizerBookingResponse,
    OrganizerBookingSummary,
    Pagination,
    PaymentConfirm,
    PaymentResponse,
    RefundResponse,
    RescheduleRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
organizer_router = APIRouter(prefix="/organizer", tags=["Organizer"])


def get_booking_notifier(background_tasks: BackgroundTasks) -> NotificationSender:
    """Booking events are delivered after the response is sent"""
    return BackgroundNotificationSender(background_tasks, get_notification_sender())


def get_booking_service(
    db: Session = Depends(get_db),
    notifier: NotificationSender = Depends(get_booking_notifier),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, notifier=notifier)


def to_booking_response(booking: Booking, eligibility: Optional[dict] = None) -> BookingResponse:
    payment = booking.payment
    eligibility = eligibility or {}
    return BookingResponse(
        id=booking.id,
        public_id=booking.public_id,
        appointmentTypeId=booking.appointment_type_id,
        customerId=booking.customer_id,
        providerType=booking.provider_kind,
        providerId=booking.provider_id,
        date=booking.date,
        startTime=booking.start_time,
        endTime=booking.end_time,
        status=booking.status,
        capacity=booking.capacity,
        answers=booking.answers,
        notes=booking.notes,
        confirmationMessage=booking.confirmation_message,
        cancellationReason=booking.cancellation_reason,
        cancelledAt=booking.cancelled_at,
        canCancel=eligibility.get("can_cancel"),
        cancellationDeadline=eligibility.get("cancellation_deadline"),
        payment=(
            PaymentResponse(
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                paymentIntentId=payment.external_transaction_id,
                refundAmount=payment.refund_amount,
                refundedAt=payment.refunded_at,
            )
            if payment is not None
            else None
        ),
        created_at=booking.created_at,
    )


def to_cancellation_response(result: CancellationResult, message: str) -> CancellationResponse:
    return CancellationResponse(
        message=message,
        booking=to_booking_response(result.booking),
        refund=RefundResponse(
            amount=result.refund_amount,
            refundPercentage=result.refund_percentage,
            paymentRefunded=result.payment_refunded,
        ),
    )


# ============================================================================
# CUSTOMER OPERATIONS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Book a slot for the current customer"""
    booking = service.create_booking(
        appointment_type_id=data.appointmentTypeId,
        provider=ProviderRef(data.providerType, data.providerId),
        on_date=data.date,
        start_time=data.startTime,
        customer_id=current_user_id,
        capacity=data.capacity,
        answers=[answer.model_dump() for answer in data.answers],
        notes=data.notes,
    )
    return to_booking_response(booking, service.get_eligibility(booking))


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    upcoming: bool = Query(False),
    past: bool = Query(False),
    page: int = Query(1),
    limit: int = Query(10),
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """List the current customer's bookings, newest first"""
    filters = BookingFilter(status=status_filter, upcoming=upcoming, past=past, page=page, limit=limit)
    result = service.list_customer_bookings(current_user_id, filters)
    pagination = result["pagination"]
    return BookingListResponse(
        bookings=[to_booking_response(b, eligibility) for b, eligibility in result["bookings"]],
        pagination=Pagination(
            total=pagination["total"],
            page=pagination["page"],
            limit=pagination["limit"],
            totalPages=pagination["total_pages"],
        ),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Booking details with cancellation eligibility"""
    booking, eligibility = service.get_booking(booking_id, current_user_id)
    return to_booking_response(booking, eligibility)


@router.get("/{booking_id}/history", response_model=list[BookingHistoryResponse])
async def get_booking_history(
    booking_id: int,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Audit trail of a booking"""
    return [
        BookingHistoryResponse(
            id=entry.id,
            action=entry.action,
            performedBy=entry.performed_by,
            oldStatus=entry.old_status,
            newStatus=entry.new_status,
            oldStartTime=entry.old_start_time,
            newStartTime=entry.new_start_time,
            reason=entry.reason,
            created_at=entry.created_at,
        )
        for entry in service.get_history(booking_id, current_user_id)
    ]


@router.post("/{booking_id}/payment/confirm", response_model=BookingResponse)
async def confirm_payment(
    booking_id: int,
    data: PaymentConfirm,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Record the gateway transaction id after a successful charge"""
    booking = service.confirm_payment(booking_id, data.transactionId, current_user_id)
    return to_booking_response(booking)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: int,
    data: CancelRequest,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel as customer (policy applies) or organizer (full refund)"""
    result = service.cancel_booking(booking_id, current_user_id, data.reason)
    return to_cancellation_response(result, "Booking cancelled successfully")


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: int,
    data: RescheduleRequest,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Move a booking to a new slot, optionally with another provider"""
    if (data.providerType is None) != (data.providerId is None):
        raise ValidationError("providerType and providerId must be provided together")
    provider = ProviderRef(data.providerType, data.providerId) if data.providerType else None

    booking = service.reschedule_booking(
        booking_id,
        current_user_id,
        new_date=data.newDate,
        new_start_time=data.newStartTime,
        provider=provider,
        reason=data.reason,
    )
    return to_booking_response(booking)


# ============================================================================
# ORGANIZER OPERATIONS
# ============================================================================


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    data: ConfirmRequest,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Approve a pending booking"""
    booking = service.confirm_booking(booking_id, current_user_id, data.message)
    return to_booking_response(booking)


@router.post("/{booking_id}/reject", response_model=CancellationResponse)
async def reject_booking(
    booking_id: int,
    data: CancelRequest,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Reject a pending booking with a full refund"""
    result = service.reject_booking(booking_id, current_user_id, data.reason)
    return to_cancellation_response(result, "Booking rejected")


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: int,
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Mark a past confirmed booking as completed"""
    booking = service.complete_booking(booking_id, current_user_id)
    return to_booking_response(booking)


@organizer_router.get("/bookings", response_model=OrganizerBookingListResponse)
async def list_organizer_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    appointment_type_id: Optional[int] = Query(None, alias="appointmentTypeId"),
    provider_type: Optional[ProviderKind] = Query(None, alias="providerType"),
    provider_id: Optional[int] = Query(None, alias="providerId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    current_user_id: int = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings across the current organizer's appointment types, with status totals"""
    if (provider_type is None) != (provider_id is None):
        raise ValidationError("providerType and providerId must be provided together")

    filters = OrganizerBookingFilter(
        status=status_filter,
        appointment_type_id=appointment_type_id,
        provider=ProviderRef(provider_type, provider_id) if provider_type else None,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    result = service.list_organizer_bookings(current_user_id, filters)
    pagination = result["pagination"]
    summary = result["summary"]
    return OrganizerBookingListResponse(
        bookings=[
            OrganizerBookingResponse(
                **to_booking_response(booking).model_dump(),
                customerName=booking.customer.full_name,
                customerEmail=booking.customer.email,
            )
            for booking in result["bookings"]
        ],
        pagination=Pagination(
            total=pagination["total"],
            page=pagination["page"],
            limit=pagination["limit"],
            totalPages=pagination["total_pages"],
        ),
        summary=OrganizerBookingSummary(
            pendingConfirmation=summary["pending"],
            confirmed=summary["confirmed"],
            completed=summary["completed"],
            cancelled=summary["cancelled"],
        ),
    )
