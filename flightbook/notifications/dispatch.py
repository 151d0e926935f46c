import logging
from typing import Optional

from flightbook.config import settings
from flightbook.services.reservation import Reservation

logger = logging.getLogger(__name__)

TEMPLATES = {
    "reserved": ("Your booking is confirmed", "booking_confirmed.txt"),
    "amended": ("Your booking was updated", "booking_amended.txt"),
    "released": ("Your booking was cancelled", "booking_cancelled.txt"),
}


def booking_context(event: str, reservation: Reservation, username: str) -> dict:
    booking, flight = reservation.booking, reservation.flight
    subject, _ = TEMPLATES[event]
    return {
        "subject": subject,
        "username": username,
        "booking_id": booking.id,
        "seats": booking.seats,
        "seat_numbers": ", ".join(booking.seat_numbers or []),
        "total_price": f"{booking.total_price:.2f}",
        "flight_number": flight.flight_number if flight else "Unknown",
        "departure": flight.departure if flight else "Unknown",
        "destination": flight.destination if flight else "Unknown",
        "flight_date": flight.date.isoformat() if flight else "Unknown",
        "flight_time": flight.time.strftime("%H:%M") if flight else "Unknown",
    }


def queue_booking_notification(event: str, email: Optional[str], context: dict):
    """Hand a booking email to the worker queue; meant to run as a background task."""
    if not settings.NOTIFICATIONS_ENABLED or not email:
        return
    from flightbook.notifications.tasks import send_notification_task

    _, template = TEMPLATES[event]
    try:
        send_notification_task.delay("email", email, template, context)
    except Exception:
        # the booking is already committed at this point
        logger.exception("Could not queue %s notification for booking %s", event, context.get("booking_id"))
