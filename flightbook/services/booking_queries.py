from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy import select as sa_select
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.models.models import Booking, Flight, User

# stands in for joined fields whose flight or user no longer exists
UNKNOWN = "Unknown"


@dataclass
class BookingDetails:
    id: int
    flight_id: Optional[int]
    user_id: Optional[int]
    seats: int
    seat_numbers: List[str]
    total_price: Decimal
    booking_date: date
    created_at: datetime
    flight_number: str
    departure: str
    destination: str
    flight_date: str
    flight_time: str
    username: str


@dataclass
class FlightOccupancy:
    flight_id: int
    flight_number: str
    max_tickets: int
    available_tickets: int
    booked_tickets: int
    bookings: int
    revenue: Decimal


def _details(booking: Booking, flight: Optional[Flight], user: Optional[User]) -> BookingDetails:
    return BookingDetails(
        id=booking.id,
        flight_id=booking.flight_id,
        user_id=booking.user_id,
        seats=booking.seats,
        seat_numbers=list(booking.seat_numbers or []),
        total_price=booking.total_price,
        booking_date=booking.booking_date,
        created_at=booking.created_at,
        flight_number=flight.flight_number if flight else UNKNOWN,
        departure=flight.departure if flight else UNKNOWN,
        destination=flight.destination if flight else UNKNOWN,
        flight_date=flight.date.isoformat() if flight else UNKNOWN,
        flight_time=flight.time.strftime("%H:%M") if flight else UNKNOWN,
        username=user.username if user else UNKNOWN,
    )


class BookingQueries:
    """Read-side views joining bookings with their flight and user.

    Joins are outer joins: a booking whose flight or user is gone is still
    listed, with ``UNKNOWN`` in the joined columns.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _joined(self):
        return (
            sa_select(Booking, Flight, User)
            .outerjoin(Flight, Flight.id == Booking.flight_id)
            .outerjoin(User, User.id == Booking.user_id)
            .order_by(Booking.id)
        )

    async def list_all_with_flight_details(self, flight_id: Optional[int] = None) -> List[BookingDetails]:
        stmt = self._joined()
        if flight_id is not None:
            stmt = stmt.where(Booking.flight_id == flight_id)
        res = await self.session.execute(stmt)
        return [_details(b, f, u) for b, f, u in res.all()]

    async def list_for_user(self, user_id: int) -> List[BookingDetails]:
        res = await self.session.execute(self._joined().where(Booking.user_id == user_id))
        return [_details(b, f, u) for b, f, u in res.all()]

    async def get_with_flight_details(self, booking_id: int) -> Optional[BookingDetails]:
        res = await self.session.execute(self._joined().where(Booking.id == booking_id))
        row = res.first()
        return _details(*row) if row else None

    async def flight_occupancy(self) -> List[FlightOccupancy]:
        stmt = (
            sa_select(
                Flight,
                func.count(Booking.id),
                func.coalesce(func.sum(Booking.seats), 0),
                func.coalesce(func.sum(Booking.total_price), 0),
            )
            .outerjoin(Booking, Booking.flight_id == Flight.id)
            .group_by(Flight.id)
            .order_by(Flight.id)
        )
        res = await self.session.execute(stmt)
        return [
            FlightOccupancy(
                flight_id=flight.id,
                flight_number=flight.flight_number,
                max_tickets=flight.max_tickets,
                available_tickets=flight.available_tickets,
                booked_tickets=int(booked),
                bookings=int(count),
                revenue=Decimal(str(revenue)),
            )
            for flight, count, booked, revenue in res.all()
        ]
