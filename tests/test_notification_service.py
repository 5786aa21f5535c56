"""Tests for booking event delivery."""

import json
from datetime import datetime
from types import SimpleNamespace

import httpx
from conftest import FailingSender, RecordingSender

from bookingcore.services import notification_service
from bookingcore.services.notification_service import (
    BOOKING_CANCELLED,
    EVENT_TYPES,
    LoggingNotificationSender,
    WebhookNotificationSender,
    build_booking_event,
    dispatch_booking_event,
    get_notification_sender,
)
from bookingcore.shared.enums import BookingStatus


def make_booking():
    return SimpleNamespace(
        id=7,
        customer_id=3,
        status=BookingStatus.CANCELLED,
        start_time=datetime(2026, 3, 10, 10, 0),
        end_time=datetime(2026, 3, 10, 10, 30),
    )


class TestBuildBookingEvent:
    def test_snapshot(self):
        event = build_booking_event(BOOKING_CANCELLED, make_booking(), reason="Sick")

        assert event.type == "booking_cancelled"
        assert event.booking_id == 7
        assert event.customer_id == 3
        assert event.status == "CANCELLED"
        assert event.extra == {"reason": "Sick"}

    def test_event_types_are_unique(self):
        assert len(set(EVENT_TYPES)) == len(EVENT_TYPES)


class TestDispatch:
    def test_delivered(self):
        sender = RecordingSender()

        assert dispatch_booking_event(sender, build_booking_event(BOOKING_CANCELLED, make_booking())) is True
        assert sender.types == ["booking_cancelled"]

    def test_failure_is_contained(self, caplog):
        sender = FailingSender()

        delivered = dispatch_booking_event(sender, build_booking_event(BOOKING_CANCELLED, make_booking()))

        assert delivered is False
        assert sender.calls == 1
        assert "smtp unavailable" in caplog.text

    def test_no_sender(self):
        assert dispatch_booking_event(None, build_booking_event(BOOKING_CANCELLED, make_booking())) is False

    def test_logging_sender(self, caplog):
        caplog.set_level("INFO")

        LoggingNotificationSender().send(build_booking_event(BOOKING_CANCELLED, make_booking()))

        assert "booking 7" in caplog.text


class TestWebhookSender:
    def test_posts_event_as_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        sender = WebhookNotificationSender("https://hooks.example.com/bookings", transport=httpx.MockTransport(handler))

        assert dispatch_booking_event(sender, build_booking_event(BOOKING_CANCELLED, make_booking(), reason="Sick"))
        assert received == [
            {
                "type": "booking_cancelled",
                "booking_id": 7,
                "customer_id": 3,
                "status": "CANCELLED",
                "start_time": "2026-03-10T10:00:00",
                "end_time": "2026-03-10T10:30:00",
                "extra": {"reason": "Sick"},
            }
        ]

    def test_server_error_is_not_delivered(self):
        sender = WebhookNotificationSender(
            "https://hooks.example.com/bookings", transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )

        assert dispatch_booking_event(sender, build_booking_event(BOOKING_CANCELLED, make_booking())) is False

    def test_factory_defaults_to_logging(self, monkeypatch):
        monkeypatch.setattr(notification_service, "NOTIFICATION_WEBHOOK_URL", "")
        assert isinstance(get_notification_sender(), LoggingNotificationSender)

        monkeypatch.setattr(notification_service, "NOTIFICATION_WEBHOOK_URL", "https://hooks.example.com/x")
        assert isinstance(get_notification_sender(), WebhookNotificationSender)
