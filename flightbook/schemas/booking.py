from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from flightbook.schemas.base import CamelModel


class BookingCreate(CamelModel):
    flight_id: int
    seats: int = Field(..., ge=1)
    seat_number: List[str] = Field(default_factory=list, description="Seat labels, seat-selection flights only")
    # admins may book on behalf of another user
    user_id: Optional[int] = None
    booking_date: Optional[date] = None


class BookingUpdate(CamelModel):
    seats: int = Field(..., ge=1)
    seat_number: List[str] = Field(default_factory=list)


class BookingOut(CamelModel):
    id: int
    flight_id: Optional[int]
    user_id: Optional[int]
    seats: int
    seat_number: List[str] = Field(
        validation_alias=AliasChoices("seat_numbers", "seatNumber", "seat_number"),
        serialization_alias="seatNumber",
    )
    total_price: float
    booking_date: date
    created_at: datetime
    available_tickets: Optional[int] = Field(None, description="Flight availability after the operation")


class BookingDetailOut(CamelModel):
    id: int
    flight_id: Optional[int]
    user_id: Optional[int]
    seats: int
    seat_number: List[str] = Field(
        validation_alias=AliasChoices("seat_numbers", "seatNumber", "seat_number"),
        serialization_alias="seatNumber",
    )
    total_price: float
    booking_date: date
    created_at: datetime
    flight_number: str
    departure: str
    destination: str
    flight_date: str
    flight_time: str
    username: str


class OccupancyOut(CamelModel):
    flight_id: int
    flight_number: str
    max_tickets: int
    available_tickets: int
    booked_tickets: int
    bookings: int
    revenue: float
