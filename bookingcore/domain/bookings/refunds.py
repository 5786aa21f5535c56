"""
Cancellation & Refund Calculator

Policy-driven eligibility and refund arithmetic. Pure functions: callers load
the policy and payment rows, pass "now", and persist the outcome.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ...config import (
    DEFAULT_CANCELLATION_DEADLINE_HOURS,
    DEFAULT_REFUND_PERCENTAGE,
    REFUND_FLOOR_AT_ZERO,
)
from ...errors import InvalidState, PolicyViolation
from ...shared.enums import BookingStatus

CENTS = Decimal("0.01")
FULL_REFUND_PERCENTAGE = 100


@dataclass(frozen=True)
class PolicyTerms:
    allow_cancellation: bool
    cancellation_deadline_hours: int
    refund_percentage: int
    cancellation_fee: Decimal


@dataclass
class CancellationResult:
    booking: object
    refund_amount: Decimal
    refund_percentage: int
    payment_refunded: bool = False


def policy_terms(policy) -> PolicyTerms:
    """Terms of a CancellationPolicy row, or the configured defaults when the type has none"""
    if policy is None:
        return PolicyTerms(
            allow_cancellation=True,
            cancellation_deadline_hours=DEFAULT_CANCELLATION_DEADLINE_HOURS,
            refund_percentage=DEFAULT_REFUND_PERCENTAGE,
            cancellation_fee=Decimal("0"),
        )
    return PolicyTerms(
        allow_cancellation=bool(policy.allow_cancellation),
        cancellation_deadline_hours=policy.cancellation_deadline_hours,
        refund_percentage=policy.refund_percentage,
        cancellation_fee=Decimal(str(policy.cancellation_fee or 0)),
    )


def hours_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 3600


def cancellation_eligibility(status: BookingStatus, start: datetime, terms: PolicyTerms, now: datetime) -> dict:
    """
    Customer view of the policy for one booking.

    Returns:
        {"can_cancel": bool, "cancellation_deadline": datetime | None}
    """
    can_cancel = False
    deadline = None

    if terms.allow_cancellation and status in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
        deadline = start - timedelta(hours=terms.cancellation_deadline_hours)
        can_cancel = hours_until(start, now) > terms.cancellation_deadline_hours

    return {"can_cancel": can_cancel, "cancellation_deadline": deadline}


def assert_cancellable(status: BookingStatus) -> None:
    if status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
        raise InvalidState(f"Cannot cancel booking with status: {status.value}")


def assert_customer_may_cancel(start: datetime, terms: PolicyTerms, now: datetime) -> None:
    """Deadline is strict: cancelling exactly cancellation_deadline_hours before start is rejected"""
    if not terms.allow_cancellation:
        raise PolicyViolation("This booking cannot be cancelled according to the cancellation policy")

    if hours_until(start, now) <= terms.cancellation_deadline_hours:
        raise PolicyViolation(
            f"Cancellation deadline has passed. Bookings must be cancelled at least "
            f"{terms.cancellation_deadline_hours} hours in advance."
        )


def calculate_refund(
    amount,
    refund_percentage: int,
    cancellation_fee=0,
    floor_at_zero: Optional[bool] = None,
) -> Decimal:
    """
    amount * refund_percentage / 100 - cancellation_fee, rounded to cents.

    The fee can exceed the refundable portion; the result is then negative
    unless floor_at_zero (REFUND_FLOOR_AT_ZERO by default) clamps it.
    """
    if floor_at_zero is None:
        floor_at_zero = REFUND_FLOOR_AT_ZERO

    refund = Decimal(str(amount)) * Decimal(refund_percentage) / Decimal(100) - Decimal(str(cancellation_fee or 0))
    refund = refund.quantize(CENTS, rounding=ROUND_HALF_UP)

    if floor_at_zero and refund < 0:
        return Decimal("0.00")
    return refund
