from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.auth.deps import role_required
from flightbook.db.session import get_session
from flightbook.models.models import ROLE_ADMIN, Flight, User
from flightbook.schemas.flight import FlightCreate, FlightDetailOut, FlightOut, FlightUpdate
from flightbook.services.audit import log_audit
from flightbook.services.flight_store import FlightStore

router = APIRouter(tags=["flights"])


async def _detail(store: FlightStore, flight: Flight) -> FlightDetailOut:
    out = FlightDetailOut.model_validate(flight)
    if flight.seat_selection:
        out.seats = store.seat_map(flight)
        booked = await store.booked_seats(flight.id)
        out.booked_seats = [label for label in out.seats if label in booked]
    return out


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.get("", response_model=List[FlightOut])
async def list_flights(db: AsyncSession = Depends(get_session)):
    return await FlightStore(db).list()


@router.get("/{flight_id}", response_model=FlightDetailOut)
async def get_flight(flight_id: int, db: AsyncSession = Depends(get_session)):
    store = FlightStore(db)
    return await _detail(store, await store.get(flight_id))


@router.post("", response_model=FlightDetailOut, status_code=status.HTTP_201_CREATED)
async def create_flight(
    payload: FlightCreate,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(role_required([ROLE_ADMIN])),
):
    store = FlightStore(db)
    fields = payload.model_dump()
    fields["flight_number"] = fields["flight_number"].upper()
    fields["price"] = Decimal(str(fields["price"]))
    flight = await store.create(**fields)
    await log_audit(
        db,
        actor_id=current_user.id,
        action="create_flight",
        object_type="flight",
        object_id=str(flight.id),
        detail={"flight_number": flight.flight_number, "max_tickets": flight.max_tickets},
        ip_address=_client_ip(request),
    )
    out = await _detail(store, flight)
    await db.commit()
    return out


@router.put("/{flight_id}", response_model=FlightDetailOut)
async def update_flight(
    flight_id: int,
    payload: FlightUpdate,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(role_required([ROLE_ADMIN])),
):
    store = FlightStore(db)
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "flight_number" in fields:
        fields["flight_number"] = fields["flight_number"].upper()
    if "price" in fields:
        fields["price"] = Decimal(str(fields["price"]))
    flight = await store.update(flight_id, **fields)
    await log_audit(
        db,
        actor_id=current_user.id,
        action="update_flight",
        object_type="flight",
        object_id=str(flight_id),
        detail={k: str(v) for k, v in fields.items()},
        ip_address=_client_ip(request),
    )
    out = await _detail(store, flight)
    await db.commit()
    return out


@router.delete("/{flight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flight(
    flight_id: int,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(role_required([ROLE_ADMIN])),
):
    await FlightStore(db).delete(flight_id)
    await log_audit(
        db,
        actor_id=current_user.id,
        action="delete_flight",
        object_type="flight",
        object_id=str(flight_id),
        ip_address=_client_ip(request),
    )
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
