from datetime import date as date_type
from datetime import time as time_type
from typing import List, Optional

from pydantic import Field, field_serializer

from flightbook.schemas.base import CamelModel

FLIGHT_NUMBER_PATTERN = r"^[A-Za-z0-9]{2,6}$"


class FlightCreate(CamelModel):
    flight_number: str = Field(..., pattern=FLIGHT_NUMBER_PATTERN)
    departure: str = Field(..., min_length=1, max_length=128)
    destination: str = Field(..., min_length=1, max_length=128)
    date: date_type
    time: time_type
    max_tickets: int = Field(100, ge=1)
    price: float = Field(..., ge=0)
    seat_selection: bool = False


class FlightUpdate(CamelModel):
    flight_number: Optional[str] = Field(None, pattern=FLIGHT_NUMBER_PATTERN)
    departure: Optional[str] = Field(None, min_length=1, max_length=128)
    destination: Optional[str] = Field(None, min_length=1, max_length=128)
    date: Optional[date_type] = None
    time: Optional[time_type] = None
    max_tickets: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)


class FlightOut(CamelModel):
    id: int
    flight_number: str
    departure: str
    destination: str
    date: date_type
    time: time_type
    max_tickets: int
    available_tickets: int
    price: float
    seat_selection: bool

    @field_serializer("time")
    def _hhmm(self, value: time_type) -> str:
        return value.strftime("%H:%M")


class FlightDetailOut(FlightOut):
    seats: List[str] = []
    booked_seats: List[str] = []
