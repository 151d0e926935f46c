import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import delete as sa_delete
from sqlalchemy import exists
from sqlalchemy import insert as sa_insert
from sqlalchemy import select as sa_select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.exceptions import ConcurrentUpdateError, ConflictError, NotFoundError, ValidationError
from flightbook.models.models import BookedSeat, Booking, Flight
from flightbook.services.booking_ledger import BookingLedger
from flightbook.services.seatmap import MAX_SEAT_MAP_SIZE, generate_seat_labels, labels_outside_map

logger = logging.getLogger(__name__)

# fields an update may overwrite directly; max_tickets goes through the capacity check
MUTABLE_FIELDS = ("flight_number", "departure", "destination", "date", "time", "price")

# statements below re-read rows explicitly instead of syncing the identity map
_NO_SYNC = {"synchronize_session": False}


class FlightStore:
    """Flight records plus the seat claims hanging off them.

    Works inside the caller's session and transaction; nothing here commits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, flight_id: int) -> Flight:
        stmt = sa_select(Flight).where(Flight.id == flight_id).execution_options(populate_existing=True)
        res = await self.session.execute(stmt)
        flight = res.scalars().first()
        if flight is None:
            raise NotFoundError(f"Flight {flight_id} not found")
        return flight

    async def list(self) -> List[Flight]:
        res = await self.session.execute(sa_select(Flight).order_by(Flight.date, Flight.time, Flight.id))
        return list(res.scalars().all())

    async def create(self, **fields) -> Flight:
        max_tickets = fields["max_tickets"]
        if max_tickets < 1:
            raise ValidationError("maxTickets must be at least 1")
        if fields.get("seat_selection") and max_tickets > MAX_SEAT_MAP_SIZE:
            raise ValidationError(f"Seat-selection flights hold at most {MAX_SEAT_MAP_SIZE} seats")
        flight = Flight(available_tickets=max_tickets, version=1, **fields)
        self.session.add(flight)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Flight number {fields.get('flight_number')} already exists") from exc
        await self.session.refresh(flight)
        logger.info("Flight created", extra={"flight_id": flight.id, "max_tickets": max_tickets})
        return flight

    async def update(self, flight_id: int, **fields) -> Flight:
        flight = await self.get(flight_id)
        new_max = fields.pop("max_tickets", None)
        if new_max is not None and new_max != flight.max_tickets:
            await self._change_capacity(flight, new_max)
        values = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS}
        if values:
            stmt = sa_update(Flight).where(Flight.id == flight_id).values(**values)
            try:
                await self.session.execute(stmt, execution_options=_NO_SYNC)
            except IntegrityError as exc:
                raise ConflictError(f"Flight number {values.get('flight_number')} already exists") from exc
        return await self.get(flight_id)

    async def _change_capacity(self, flight: Flight, new_max: int):
        if new_max < 1:
            raise ValidationError("maxTickets must be at least 1")
        if flight.seat_selection and new_max > MAX_SEAT_MAP_SIZE:
            raise ValidationError(f"Seat-selection flights hold at most {MAX_SEAT_MAP_SIZE} seats")
        # the row lock holds off seat claims while the booked labels are checked;
        # the version guard below covers backends that ignore FOR UPDATE
        locked = await self.session.execute(
            sa_select(Flight.version).where(Flight.id == flight.id).with_for_update()
        )
        read_version = locked.scalar_one()
        if flight.seat_selection:
            stranded = labels_outside_map(await self.booked_seats(flight.id), new_max)
            if stranded:
                raise ValidationError(f"Booked seats {', '.join(sorted(stranded))} fall outside the new seat map")
        # capacity may only shrink down to what is already sold; checked against the live row
        stmt = (
            sa_update(Flight)
            .where(Flight.id == flight.id)
            .where(Flight.version == read_version)
            .where(Flight.max_tickets - Flight.available_tickets <= new_max)
            .values(
                max_tickets=new_max,
                available_tickets=Flight.available_tickets + (new_max - Flight.max_tickets),
                version=Flight.version + 1,
            )
        )
        res = await self.session.execute(stmt, execution_options=_NO_SYNC)
        if res.rowcount == 0:
            current = await self.get(flight.id)
            if current.booked_count > new_max:
                raise ValidationError(
                    f"maxTickets cannot drop below the {current.booked_count} tickets already booked"
                )
            raise ConcurrentUpdateError(f"Flight {current.flight_number} changed while its capacity was updated")

    async def delete(self, flight_id: int) -> None:
        has_bookings = exists().where(Booking.flight_id == flight_id)
        stmt = (
            sa_delete(Flight)
            .where(Flight.id == flight_id)
            .where(Flight.available_tickets == Flight.max_tickets)
            .where(~has_bookings)
        )
        res = await self.session.execute(stmt, execution_options=_NO_SYNC)
        if res.rowcount == 0:
            await self.get(flight_id)
            raise ConflictError(f"Flight {flight_id} still has active bookings")
        logger.info("Flight deleted", extra={"flight_id": flight_id})

    async def adjust_availability(self, flight_id: int, delta: int, expected_max: Optional[int] = None) -> Flight:
        """Apply ``delta`` to the availability counter if it stays within ``[0, max_tickets]``.

        The bounds are part of the UPDATE's WHERE clause, so the check and the
        write are one statement and a concurrent writer cannot slip in between.
        Passing ``expected_max`` also requires capacity to be unchanged since it
        was read, which keeps seat labels checked against that seat map valid.
        """
        stmt = (
            sa_update(Flight)
            .where(Flight.id == flight_id)
            .where(Flight.available_tickets + delta >= 0)
            .where(Flight.available_tickets + delta <= Flight.max_tickets)
            .values(available_tickets=Flight.available_tickets + delta, version=Flight.version + 1)
        )
        if expected_max is not None:
            stmt = stmt.where(Flight.max_tickets == expected_max)
        res = await self.session.execute(stmt, execution_options=_NO_SYNC)
        if res.rowcount == 0:
            flight = await self.get(flight_id)
            if expected_max is not None and flight.max_tickets != expected_max:
                raise ConcurrentUpdateError(f"Seat map of flight {flight.flight_number} changed")
            raise ConcurrentUpdateError(
                f"Only {flight.available_tickets} tickets available on flight {flight.flight_number}"
            )
        return await self.get(flight_id)

    def seat_map(self, flight: Flight) -> List[str]:
        if not flight.seat_selection:
            return []
        return generate_seat_labels(flight.max_tickets)

    async def booked_seats(self, flight_id: int, exclude_booking_id: Optional[int] = None) -> Set[str]:
        stmt = sa_select(BookedSeat.seat_label).where(BookedSeat.flight_id == flight_id)
        if exclude_booking_id is not None:
            stmt = stmt.where(BookedSeat.booking_id != exclude_booking_id)
        res = await self.session.execute(stmt)
        return set(res.scalars().all())

    async def claim_seats(self, flight_id: int, booking_id: int, labels: Iterable[str]) -> None:
        rows = [{"flight_id": flight_id, "booking_id": booking_id, "seat_label": label} for label in labels]
        if not rows:
            return
        try:
            await self.session.execute(sa_insert(BookedSeat), rows)
        except IntegrityError as exc:
            raise ConcurrentUpdateError("One or more seat numbers are already booked") from exc

    async def release_seats(self, booking_id: int) -> None:
        await self.session.execute(
            sa_delete(BookedSeat).where(BookedSeat.booking_id == booking_id), execution_options=_NO_SYNC
        )

    async def reconcile(self, flight_id: int) -> Flight:
        """Recompute availability from the ledger, for repairing drifted counters."""
        flight = await self.get(flight_id)
        booked = await BookingLedger(self.session).booked_quantity(flight_id)
        if booked > flight.max_tickets:
            raise ValidationError(
                f"Flight {flight.flight_number} has {booked} tickets booked against {flight.max_tickets} seats"
            )
        available = flight.max_tickets - booked
        if available != flight.available_tickets:
            logger.warning(
                "Availability drift corrected",
                extra={"flight_id": flight_id, "stored": flight.available_tickets, "computed": available},
            )
            stmt = (
                sa_update(Flight)
                .where(Flight.id == flight_id)
                .values(available_tickets=available, version=Flight.version + 1)
            )
            await self.session.execute(stmt, execution_options=_NO_SYNC)
        return await self.get(flight_id)
