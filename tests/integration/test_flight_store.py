from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import update as sa_update

from flightbook.exceptions import (
    CapacityConflict,
    ConcurrentUpdateError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from flightbook.models.models import Booking, Flight
from flightbook.services.booking_ledger import BookingLedger
from flightbook.services.flight_store import FlightStore


@pytest.fixture
def in_store(session_factory):
    """Run ``fn(store)`` inside one committed transaction."""

    async def _run(fn):
        async with session_factory() as db:
            async with db.begin():
                return await fn(FlightStore(db))

    return _run


class TestCreate:
    async def test_starts_fully_available(self, flight):
        assert flight.available_tickets == flight.max_tickets == 2
        assert flight.version == 1

    async def test_duplicate_flight_number(self, make_flight, flight):
        with pytest.raises(ConflictError):
            await make_flight(flight_number=flight.flight_number)

    async def test_seat_map_limit(self, make_flight):
        with pytest.raises(ValidationError):
            await make_flight(flight_number="BIG1", max_tickets=261, seat_selection=True)

    async def test_quantity_flights_are_not_limited_by_the_seat_map(self, make_flight):
        flight = await make_flight(flight_number="BIG2", max_tickets=400)
        assert flight.available_tickets == 400


class TestAdjustAvailability:
    async def test_moves_the_counter_and_version(self, in_store, flight):
        updated = await in_store(lambda store: store.adjust_availability(flight.id, -2))
        assert updated.available_tickets == 0
        assert updated.version == 2

    @pytest.mark.parametrize("delta", [-3, 1])
    async def test_out_of_bounds_is_a_concurrent_update(self, in_store, fetch_flight, flight, delta):
        with pytest.raises(ConcurrentUpdateError) as excinfo:
            await in_store(lambda store: store.adjust_availability(flight.id, delta))
        assert isinstance(excinfo.value, CapacityConflict)
        assert (await fetch_flight(flight.id)).available_tickets == 2

    async def test_unknown_flight(self, in_store):
        with pytest.raises(NotFoundError):
            await in_store(lambda store: store.adjust_availability(999, -1))


class TestUpdate:
    async def test_plain_fields(self, in_store, flight):
        updated = await in_store(
            lambda store: store.update(flight.id, destination="Nairobi", price=Decimal("80.00"), date=date(2027, 1, 5))
        )
        assert updated.destination == "Nairobi"
        assert updated.price == Decimal("80.00")
        assert updated.available_tickets == 2

    async def test_raise_capacity_adds_availability(self, in_store, reservation_engine, flight, alice, actor_for):
        await reservation_engine.reserve(actor_for(alice), flight.id, 1)
        updated = await in_store(lambda store: store.update(flight.id, max_tickets=5))
        assert (updated.max_tickets, updated.available_tickets) == (5, 4)

    async def test_lower_capacity_down_to_booked_count(self, in_store, reservation_engine, make_flight, alice, actor_for):
        flight = await make_flight(flight_number="FB300", max_tickets=5)
        await reservation_engine.reserve(actor_for(alice), flight.id, 3)

        with pytest.raises(ValidationError):
            await in_store(lambda store: store.update(flight.id, max_tickets=2))

        updated = await in_store(lambda store: store.update(flight.id, max_tickets=3))
        assert (updated.max_tickets, updated.available_tickets) == (3, 0)

    async def test_lower_capacity_must_keep_booked_labels(self, in_store, reservation_engine, seat_flight, alice, actor_for):
        await reservation_engine.reserve(actor_for(alice), seat_flight.id, 1, seat_labels=["B2"])

        with pytest.raises(ValidationError):
            await in_store(lambda store: store.update(seat_flight.id, max_tickets=11))

        updated = await in_store(lambda store: store.update(seat_flight.id, max_tickets=12))
        assert updated.available_tickets == 11

    async def test_unknown_flight(self, in_store):
        with pytest.raises(NotFoundError):
            await in_store(lambda store: store.update(999, departure="Abuja"))


class TestDelete:
    async def test_refused_while_booked(self, in_store, reservation_engine, flight, alice, actor_for, fetch_flight):
        booking = (await reservation_engine.reserve(actor_for(alice), flight.id, 1)).booking

        with pytest.raises(ConflictError):
            await in_store(lambda store: store.delete(flight.id))

        await reservation_engine.release(actor_for(alice), booking.id)
        await in_store(lambda store: store.delete(flight.id))
        with pytest.raises(NotFoundError):
            await fetch_flight(flight.id)

    async def test_unknown_flight(self, in_store):
        with pytest.raises(NotFoundError):
            await in_store(lambda store: store.delete(999))


class TestSeatClaims:
    async def test_seat_map_only_for_seat_flights(self, flight, seat_flight):
        store = FlightStore(None)
        assert store.seat_map(flight) == []
        assert store.seat_map(seat_flight)[-2:] == ["B1", "B2"]

    async def test_double_claim_is_a_concurrent_update(self, in_store, reservation_engine, seat_flight, alice, actor_for):
        booking = (await reservation_engine.reserve(actor_for(alice), seat_flight.id, 1, seat_labels=["A5"])).booking
        with pytest.raises(ConcurrentUpdateError):
            await in_store(lambda store: store.claim_seats(seat_flight.id, booking.id, ["A5"]))

    async def test_booked_seats_can_exclude_a_booking(self, in_store, reservation_engine, seat_flight, alice, bob, actor_for):
        mine = (await reservation_engine.reserve(actor_for(alice), seat_flight.id, 1, seat_labels=["A1"])).booking
        await reservation_engine.reserve(actor_for(bob), seat_flight.id, 1, seat_labels=["A2"])

        assert await in_store(lambda store: store.booked_seats(seat_flight.id)) == {"A1", "A2"}
        assert await in_store(lambda store: store.booked_seats(seat_flight.id, exclude_booking_id=mine.id)) == {"A2"}


class TestReconcile:
    async def test_repairs_a_drifted_counter(self, session_factory, in_store, reservation_engine, flight, alice, actor_for):
        await reservation_engine.reserve(actor_for(alice), flight.id, 1)
        async with session_factory() as db:
            async with db.begin():
                await db.execute(sa_update(Flight).where(Flight.id == flight.id).values(available_tickets=2))

        repaired = await in_store(lambda store: store.reconcile(flight.id))

        assert repaired.available_tickets == 1

    async def test_overbooked_flight_cannot_be_reconciled(self, session_factory, in_store, flight, alice):
        async with session_factory() as db:
            async with db.begin():
                await BookingLedger(db).create(
                    Booking(
                        flight_id=flight.id,
                        user_id=alice.id,
                        seats=3,
                        seat_numbers=[],
                        unit_price=Decimal("100.00"),
                        total_price=Decimal("300.00"),
                        booking_date=date(2026, 11, 1),
                    )
                )
        with pytest.raises(ValidationError):
            await in_store(lambda store: store.reconcile(flight.id))
