from datetime import date, time
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from flightbook.models.models import Booking, Flight
from flightbook.notifications import dispatch, tasks
from flightbook.notifications.tasks import send_notification_task
from flightbook.services.notification_providers import LogProvider, NotificationProvider, get_provider
from flightbook.services.notification_service import NotificationService
from flightbook.services.reservation import Reservation


def _reservation(with_flight: bool = True) -> Reservation:
    flight = Flight(
        id=1,
        flight_number="FB100",
        departure="Lagos",
        destination="Accra",
        date=date(2026, 12, 1),
        time=time(9, 30),
        max_tickets=10,
        available_tickets=8,
        price=Decimal("100.00"),
        seat_selection=True,
    )
    booking = Booking(
        id=5,
        flight_id=1,
        user_id=2,
        seats=2,
        seat_numbers=["A1", "A2"],
        unit_price=Decimal("100.00"),
        total_price=Decimal("200.00"),
        booking_date=date(2026, 11, 1),
    )
    return Reservation(booking=booking, flight=flight if with_flight else None)


class FailingProvider(NotificationProvider):
    name = "failing"

    async def send_email(self, to, subject, body, meta=None):
        raise RuntimeError("smtp down")


def _sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestBookingContext:
    def test_flight_fields_are_filled(self):
        ctx = dispatch.booking_context("reserved", _reservation(), "alice")
        assert ctx["subject"] == "Your booking is confirmed"
        assert ctx["flight_number"] == "FB100"
        assert ctx["flight_time"] == "09:30"
        assert ctx["seat_numbers"] == "A1, A2"
        assert ctx["total_price"] == "200.00"

    def test_missing_flight_falls_back_to_unknown(self):
        ctx = dispatch.booking_context("released", _reservation(with_flight=False), "alice")
        assert ctx["flight_number"] == "Unknown"
        assert ctx["flight_date"] == "Unknown"


class TestRender:
    def test_confirmation_template(self):
        ctx = dispatch.booking_context("reserved", _reservation(), "alice")
        body = NotificationService().render("booking_confirmed.txt", context=ctx)
        assert "Hello alice" in body
        assert "flight FB100 is confirmed" in body
        assert "(A1, A2)" in body

    def test_unknown_locale_falls_back_to_english(self):
        ctx = dispatch.booking_context("released", _reservation(), "alice")
        body = NotificationService().render("booking_cancelled.txt", locale="sw", context=ctx)
        assert "was cancelled" in body

    def test_missing_template(self):
        with pytest.raises(LookupError):
            NotificationService().render("nope.txt")


def test_unknown_provider_is_rejected():
    assert isinstance(get_provider("log"), LogProvider)
    with pytest.raises(ValueError):
        get_provider("carrier-pigeon")


class TestSendNotificationTask:
    def test_delivers_through_log_provider(self):
        before = _sample("flightbook_notifications_sent_total", {"channel": "email", "provider": "log"})
        ctx = dispatch.booking_context("reserved", _reservation(), "alice")

        result = send_notification_task.apply(args=("email", "alice@example.com", "booking_confirmed.txt", ctx))

        assert result.get() == {"status": "sent", "provider": "log"}
        after = _sample("flightbook_notifications_sent_total", {"channel": "email", "provider": "log"})
        assert after == before + 1

    def test_exhausted_retries_land_in_dead_letter_queue(self, monkeypatch):
        parked = []
        monkeypatch.setattr(tasks, "get_provider", lambda name: FailingProvider())
        monkeypatch.setattr(tasks, "push_to_dlq", parked.append)
        ctx = dispatch.booking_context("amended", _reservation(), "alice")

        result = send_notification_task.apply(
            args=("email", "alice@example.com", "booking_amended.txt", ctx),
            kwargs={"provider_name": "failing"},
        )

        assert result.failed()
        assert len(parked) == 1
        assert parked[0]["to"] == "alice@example.com"
        assert parked[0]["template"] == "booking_amended.txt"


class TestQueueBookingNotification:
    def test_skipped_when_disabled(self, monkeypatch):
        queued = []
        monkeypatch.setattr(dispatch.settings, "NOTIFICATIONS_ENABLED", False)
        monkeypatch.setattr(send_notification_task, "delay", lambda *args: queued.append(args))
        dispatch.queue_booking_notification("reserved", "alice@example.com", {"booking_id": 1})
        assert queued == []

    def test_skipped_without_email(self, monkeypatch):
        queued = []
        monkeypatch.setattr(dispatch.settings, "NOTIFICATIONS_ENABLED", True)
        monkeypatch.setattr(send_notification_task, "delay", lambda *args: queued.append(args))
        dispatch.queue_booking_notification("reserved", None, {"booking_id": 1})
        assert queued == []

    def test_queues_the_event_template(self, monkeypatch):
        queued = []
        monkeypatch.setattr(dispatch.settings, "NOTIFICATIONS_ENABLED", True)
        monkeypatch.setattr(send_notification_task, "delay", lambda *args: queued.append(args))
        dispatch.queue_booking_notification("released", "alice@example.com", {"booking_id": 1})
        assert queued == [("email", "alice@example.com", "booking_cancelled.txt", {"booking_id": 1})]
