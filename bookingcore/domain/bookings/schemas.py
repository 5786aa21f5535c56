"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from ...shared.enums import BookingStatus, HistoryAction, PaymentStatus, ProviderKind


class BookingAnswer(BaseModel):
    questionId: int
    answer: Any = None


class BookingCreate(BaseModel):
    """Schema for creating a booking"""

    appointmentTypeId: int
    providerType: ProviderKind
    providerId: int
    date: date
    startTime: datetime
    capacity: int = Field(1, ge=1)
    answers: list[BookingAnswer] = []
    notes: Optional[str] = None


class PaymentConfirm(BaseModel):
    transactionId: str


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    newDate: date
    newStartTime: datetime
    providerType: Optional[ProviderKind] = None
    providerId: Optional[int] = None
    reason: Optional[str] = None


class ConfirmRequest(BaseModel):
    message: Optional[str] = None


class PaymentResponse(BaseModel):
    amount: Decimal
    currency: Optional[str] = None
    status: PaymentStatus
    paymentIntentId: Optional[str] = None
    refundAmount: Optional[Decimal] = None
    refundedAt: Optional[datetime] = None


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    public_id: str
    appointmentTypeId: int
    customerId: int
    providerType: ProviderKind
    providerId: int
    date: date
    startTime: datetime
    endTime: datetime
    status: BookingStatus
    capacity: int
    answers: Optional[list] = None
    notes: Optional[str] = None
    confirmationMessage: Optional[str] = None
    cancellationReason: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    canCancel: Optional[bool] = None
    cancellationDeadline: Optional[datetime] = None
    payment: Optional[PaymentResponse] = None
    created_at: Optional[datetime] = None


class RefundResponse(BaseModel):
    amount: Decimal
    refundPercentage: int
    paymentRefunded: bool


class CancellationResponse(BaseModel):
    message: str
    booking: BookingResponse
    refund: RefundResponse


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: Pagination


class OrganizerBookingResponse(BookingResponse):
    customerName: Optional[str] = None
    customerEmail: Optional[str] = None


class OrganizerBookingSummary(BaseModel):
    """Status totals across all of the organizer's bookings"""

    pendingConfirmation: int
    confirmed: int
    completed: int
    cancelled: int


class OrganizerBookingListResponse(BaseModel):
    bookings: list[OrganizerBookingResponse]
    pagination: Pagination
    summary: OrganizerBookingSummary


class BookingHistoryResponse(BaseModel):
    id: int
    action: HistoryAction
    performedBy: Optional[int] = None
    oldStatus: Optional[BookingStatus] = None
    newStatus: Optional[BookingStatus] = None
    oldStartTime: Optional[datetime] = None
    newStartTime: Optional[datetime] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
