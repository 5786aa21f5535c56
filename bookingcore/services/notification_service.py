"""
Booking Notification Service
Delivers booking lifecycle events to the notification collaborator (email, SMS, webhooks)
Events are dispatched strictly after commit; a failed delivery never touches the booking
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional, Protocol

import httpx
from fastapi import BackgroundTasks

from ..config import NOTIFICATION_WEBHOOK_TIMEOUT, NOTIFICATION_WEBHOOK_URL

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
PAYMENT_CONFIRMED = "payment_confirmed"
BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_REJECTED = "booking_rejected"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_RESCHEDULED = "booking_rescheduled"
BOOKING_COMPLETED = "booking_completed"

EVENT_TYPES = (
    BOOKING_CREATED,
    PAYMENT_CONFIRMED,
    BOOKING_CONFIRMED,
    BOOKING_REJECTED,
    BOOKING_CANCELLED,
    BOOKING_RESCHEDULED,
    BOOKING_COMPLETED,
)


@dataclass(frozen=True)
class BookingEvent:
    type: str
    booking_id: int
    customer_id: int
    status: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    extra: dict = field(default_factory=dict)


class NotificationSender(Protocol):
    def send(self, event: BookingEvent) -> None: ...


class LoggingNotificationSender:
    """Default sender: records the event in the application log"""

    def send(self, event: BookingEvent) -> None:
        logger.info(
            f"📧 [{event.type}] booking {event.booking_id} for customer {event.customer_id} "
            f"({event.status}, starts {event.start_time})"
        )


class WebhookNotificationSender:
    """POST each event as JSON to the notification service webhook"""

    def __init__(self, url: str, timeout: float = NOTIFICATION_WEBHOOK_TIMEOUT, transport=None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def send(self, event: BookingEvent) -> None:
        payload = asdict(event)
        for key in ("start_time", "end_time"):
            if payload[key] is not None:
                payload[key] = payload[key].isoformat()

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.url, json=payload)
            logger.info(f"📡 Webhook response status for {event.type}: {response.status_code}")
            response.raise_for_status()


class BackgroundNotificationSender:
    """
    Queue delivery on the request's BackgroundTasks.

    The wrapped sender runs after the response is sent; Starlette runs sync
    callables in its threadpool, so a slow webhook never blocks the event loop.
    """

    def __init__(self, background_tasks: BackgroundTasks, sender: NotificationSender):
        self.background_tasks = background_tasks
        self.sender = sender

    def send(self, event: BookingEvent) -> None:
        self.background_tasks.add_task(dispatch_booking_event, self.sender, event)


def get_notification_sender() -> NotificationSender:
    """Webhook sender when NOTIFICATION_WEBHOOK_URL is set, log-only otherwise"""
    if NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationSender(NOTIFICATION_WEBHOOK_URL)
    return LoggingNotificationSender()


def build_booking_event(event_type: str, booking, **extra) -> BookingEvent:
    """Snapshot the booking fields a sender needs; safe to use after the session closes"""
    status = booking.status.value if hasattr(booking.status, "value") else booking.status
    return BookingEvent(
        type=event_type,
        booking_id=booking.id,
        customer_id=booking.customer_id,
        status=status,
        start_time=booking.start_time,
        end_time=booking.end_time,
        extra=extra,
    )


def dispatch_booking_event(sender: Optional[NotificationSender], event: BookingEvent) -> bool:
    """
    Fire-and-forget delivery.

    Returns:
        True when the sender accepted the event, False when it raised or is missing
    """
    if sender is None:
        logger.debug(f"⚠️ No notification sender configured, dropping {event.type}")
        return False

    try:
        sender.send(event)
        logger.info(f"✅ {event.type} notification sent for booking {event.booking_id}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to send {event.type} notification for booking {event.booking_id}: {e}")
        return False
