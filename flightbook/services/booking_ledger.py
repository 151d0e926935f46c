from typing import List

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy import select as sa_select
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.exceptions import NotFoundError
from flightbook.models.models import Booking

UPDATABLE_FIELDS = ("seats", "seat_numbers", "unit_price", "total_price", "booking_date")


class BookingLedger:
    """Storage for booking records. Capacity is the reservation engine's concern, not this one's."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def get(self, booking_id: int) -> Booking:
        stmt = sa_select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        res = await self.session.execute(stmt)
        booking = res.scalars().first()
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    async def update(self, booking_id: int, **fields) -> Booking:
        booking = await self.get(booking_id)
        for key, value in fields.items():
            if key not in UPDATABLE_FIELDS:
                raise KeyError(key)
            setattr(booking, key, value)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    async def delete(self, booking_id: int) -> bool:
        res = await self.session.execute(
            sa_delete(Booking).where(Booking.id == booking_id),
            execution_options={"synchronize_session": False},
        )
        return res.rowcount == 1

    async def list_by_flight(self, flight_id: int) -> List[Booking]:
        res = await self.session.execute(
            sa_select(Booking).where(Booking.flight_id == flight_id).order_by(Booking.id)
        )
        return list(res.scalars().all())

    async def list_by_user(self, user_id: int) -> List[Booking]:
        res = await self.session.execute(sa_select(Booking).where(Booking.user_id == user_id).order_by(Booking.id))
        return list(res.scalars().all())

    async def booked_quantity(self, flight_id: int) -> int:
        res = await self.session.execute(
            sa_select(func.coalesce(func.sum(Booking.seats), 0)).where(Booking.flight_id == flight_id)
        )
        return int(res.scalar_one())
