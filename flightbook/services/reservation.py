"""Seat inventory reservation engine.

Every operation runs as one database transaction in a session of its own.
Writes that depend on what was read are conditional (the availability
counter is only moved by ``FlightStore.adjust_availability`` and seat labels
are claimed through a unique index), so a concurrent writer makes the write
fail instead of overselling. A failed conditional write raises
``ConcurrentUpdateError``; the whole attempt is then re-run against fresh
reads, and the error surfaces as ``CapacityConflict`` once attempts run out.
"""
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flightbook.config import settings
from flightbook.exceptions import (
    AuthorizationError,
    CapacityConflict,
    ConcurrentUpdateError,
    DomainError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from flightbook.metrics import RESERVATION_ATTEMPTS, RESERVATION_LATENCY, RESERVATION_RETRIES
from flightbook.models.models import ROLE_ADMIN, Booking, Flight, User
from flightbook.services.booking_ledger import BookingLedger
from flightbook.services.flight_store import FlightStore
from flightbook.services.seatmap import labels_outside_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated principal on whose behalf an operation runs."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class Reservation:
    booking: Booking
    # None when the booking outlived its flight
    flight: Optional[Flight]


def _check_quantity(quantity: int):
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValidationError("Seats must be a positive integer")


def _normalize_labels(labels: Optional[Sequence[str]]) -> List[str]:
    return [label.strip().upper() for label in labels or []]


def _seat_map_size(flight: Flight) -> Optional[int]:
    """Capacity the seat labels were checked against; None when booking by quantity."""
    return flight.max_tickets if flight.seat_selection else None


def _authorize(actor: Actor, booking: Booking):
    if not actor.is_admin and booking.user_id != actor.user_id:
        raise AuthorizationError("Not allowed to modify another user's booking")


class ReservationEngine:
    def __init__(self, session_factory: async_sessionmaker, max_attempts: Optional[int] = None):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.RESERVATION_MAX_ATTEMPTS

    async def reserve(
        self,
        actor: Actor,
        flight_id: int,
        quantity: int,
        seat_labels: Optional[Sequence[str]] = None,
        user_id: Optional[int] = None,
        booking_date: Optional[date] = None,
    ) -> Reservation:
        user_id = actor.user_id if user_id is None else user_id
        if user_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("Users may only book for themselves")
        _check_quantity(quantity)
        labels = _normalize_labels(seat_labels)
        booking_date = booking_date or date.today()

        async def attempt(session: AsyncSession) -> Reservation:
            return await self._reserve_once(session, flight_id, user_id, quantity, labels, booking_date)

        return await self._run("reserve", attempt)

    async def amend(
        self,
        actor: Actor,
        booking_id: int,
        quantity: int,
        seat_labels: Optional[Sequence[str]] = None,
    ) -> Reservation:
        _check_quantity(quantity)
        labels = _normalize_labels(seat_labels)

        async def attempt(session: AsyncSession) -> Reservation:
            return await self._amend_once(session, actor, booking_id, quantity, labels)

        return await self._run("amend", attempt)

    async def release(self, actor: Actor, booking_id: int) -> Reservation:
        async def attempt(session: AsyncSession) -> Reservation:
            return await self._release_once(session, actor, booking_id)

        return await self._run("release", attempt)

    async def _run(self, operation: str, attempt: Callable[[AsyncSession], Awaitable[Reservation]]) -> Reservation:
        start = time.perf_counter()
        try:
            for attempt_no in range(1, self.max_attempts + 1):
                try:
                    async with self.session_factory() as session:
                        async with session.begin():
                            result = await attempt(session)
                    RESERVATION_ATTEMPTS.labels(operation=operation, result="success").inc()
                    return result
                except ConcurrentUpdateError as exc:
                    if attempt_no >= self.max_attempts:
                        raise CapacityConflict(exc.message) from exc
                    RESERVATION_RETRIES.labels(operation=operation).inc()
                    logger.info("Lost a race on %s, retrying", operation, extra={"attempt": attempt_no})
        except DomainError as exc:
            RESERVATION_ATTEMPTS.labels(operation=operation, result=type(exc).__name__).inc()
            raise
        except SQLAlchemyError as exc:
            RESERVATION_ATTEMPTS.labels(operation=operation, result="StorageFailure").inc()
            raise StorageFailure(f"Could not {operation} booking: storage error") from exc
        finally:
            RESERVATION_LATENCY.labels(operation=operation).observe(time.perf_counter() - start)

    async def _check_claim(
        self,
        flights: FlightStore,
        flight: Flight,
        quantity: int,
        labels: List[str],
        available: int,
        exclude_booking_id: Optional[int] = None,
    ):
        if flight.seat_selection:
            if len(labels) != quantity:
                raise ValidationError(f"Please provide exactly {quantity} seat numbers")
            if len(set(labels)) != len(labels):
                raise ValidationError("Seat numbers must not repeat within a booking")
            unknown = labels_outside_map(labels, flight.max_tickets)
            if unknown:
                raise CapacityConflict(
                    f"Seat numbers {', '.join(unknown)} do not exist on flight {flight.flight_number}"
                )
            booked = await flights.booked_seats(flight.id, exclude_booking_id=exclude_booking_id)
            taken = [label for label in labels if label in booked]
            if taken:
                raise CapacityConflict(f"Seat numbers {', '.join(taken)} are already booked")
        elif labels:
            raise ValidationError(f"Flight {flight.flight_number} is booked by quantity, not by seat number")
        if quantity > available:
            raise CapacityConflict(f"Only {available} tickets available")

    async def _reserve_once(self, session, flight_id, user_id, quantity, labels, booking_date) -> Reservation:
        flights = FlightStore(session)
        ledger = BookingLedger(session)

        if await session.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        flight = await flights.get(flight_id)
        await self._check_claim(flights, flight, quantity, labels, flight.available_tickets)

        flight = await flights.adjust_availability(flight.id, -quantity, expected_max=_seat_map_size(flight))
        booking = await ledger.create(
            Booking(
                flight_id=flight.id,
                user_id=user_id,
                seats=quantity,
                seat_numbers=labels,
                unit_price=flight.price,
                total_price=flight.price * quantity,
                booking_date=booking_date,
            )
        )
        await flights.claim_seats(flight.id, booking.id, labels)
        logger.info(
            "Booking reserved",
            extra={"booking_id": booking.id, "flight_id": flight.id, "seats": quantity, "available": flight.available_tickets},
        )
        return Reservation(booking=booking, flight=flight)

    async def _amend_once(self, session, actor, booking_id, quantity, labels) -> Reservation:
        flights = FlightStore(session)
        ledger = BookingLedger(session)

        booking = await ledger.get(booking_id)
        _authorize(actor, booking)
        if booking.flight_id is None:
            raise NotFoundError(f"Flight for booking {booking_id} not found")
        flight = await flights.get(booking.flight_id)

        old_quantity = booking.seats
        # the booking's own claim is given back before the new one is checked
        restored = flight.available_tickets + old_quantity
        await self._check_claim(flights, flight, quantity, labels, restored, exclude_booking_id=booking.id)

        delta = old_quantity - quantity
        # seat-selection amends always take the conditional write, even at zero delta
        if delta or flight.seat_selection:
            flight = await flights.adjust_availability(flight.id, delta, expected_max=_seat_map_size(flight))
        if flight.seat_selection:
            await flights.release_seats(booking.id)
            await flights.claim_seats(flight.id, booking.id, labels)
        booking = await ledger.update(
            booking.id,
            seats=quantity,
            seat_numbers=labels,
            total_price=booking.unit_price * quantity,
        )
        logger.info(
            "Booking amended",
            extra={"booking_id": booking.id, "flight_id": flight.id, "old_seats": old_quantity, "seats": quantity},
        )
        return Reservation(booking=booking, flight=flight)

    async def _release_once(self, session, actor, booking_id) -> Reservation:
        flights = FlightStore(session)
        ledger = BookingLedger(session)

        booking = await ledger.get(booking_id)
        _authorize(actor, booking)
        await flights.release_seats(booking.id)
        if not await ledger.delete(booking.id):
            raise NotFoundError(f"Booking {booking_id} not found")

        flight = None
        if booking.flight_id is not None:
            try:
                flight = await flights.adjust_availability(booking.flight_id, booking.seats)
            except NotFoundError:
                logger.warning("Released booking %s of a deleted flight", booking_id)
        logger.info("Booking released", extra={"booking_id": booking_id, "seats": booking.seats})
        return Reservation(booking=booking, flight=flight)
