from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flightbook.auth.deps import get_actor, get_current_user, role_required
from flightbook.db.session import get_session, get_session_factory
from flightbook.exceptions import AuthorizationError, NotFoundError
from flightbook.models.models import ROLE_ADMIN, User
from flightbook.notifications.dispatch import booking_context, queue_booking_notification
from flightbook.schemas.booking import BookingCreate, BookingDetailOut, BookingOut, BookingUpdate
from flightbook.services.booking_queries import BookingQueries
from flightbook.services.reservation import Actor, Reservation, ReservationEngine

router = APIRouter(tags=["bookings"])


def get_reservation_engine(factory: async_sessionmaker = Depends(get_session_factory)) -> ReservationEngine:
    return ReservationEngine(factory)


def _booking_out(reservation: Reservation) -> BookingOut:
    out = BookingOut.model_validate(reservation.booking)
    out.available_tickets = reservation.flight.available_tickets if reservation.flight else None
    return out


async def _notify(
    background_tasks: BackgroundTasks,
    db: AsyncSession,
    current_user: User,
    event: str,
    reservation: Reservation,
):
    owner_id = reservation.booking.user_id
    owner = current_user if owner_id == current_user.id else (await db.get(User, owner_id) if owner_id else None)
    if owner is None:
        return
    context = booking_context(event, reservation, owner.username)
    background_tasks.add_task(queue_booking_notification, event, owner.email, context)


@router.get("", response_model=List[BookingDetailOut], dependencies=[Depends(role_required([ROLE_ADMIN]))])
async def list_bookings(flight_id: Optional[int] = None, db: AsyncSession = Depends(get_session)):
    return await BookingQueries(db).list_all_with_flight_details(flight_id=flight_id)


@router.get("/user/{user_id}", response_model=List[BookingDetailOut])
async def list_user_bookings(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    if not actor.is_admin and actor.user_id != user_id:
        raise AuthorizationError("Not allowed to view another user's bookings")
    return await BookingQueries(db).list_for_user(user_id)


@router.get("/{booking_id}", response_model=BookingDetailOut)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    details = await BookingQueries(db).get_with_flight_details(booking_id)
    if details is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    if not actor.is_admin and details.user_id != actor.user_id:
        raise AuthorizationError("Not allowed to view another user's booking")
    return details


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    engine: ReservationEngine = Depends(get_reservation_engine),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    actor = Actor(user_id=current_user.id, role=current_user.role)
    reservation = await engine.reserve(
        actor,
        flight_id=payload.flight_id,
        quantity=payload.seats,
        seat_labels=payload.seat_number,
        user_id=payload.user_id,
        booking_date=payload.booking_date,
    )
    await _notify(background_tasks, db, current_user, "reserved", reservation)
    return _booking_out(reservation)


@router.put("/{booking_id}", response_model=BookingOut)
async def update_booking(
    booking_id: int,
    payload: BookingUpdate,
    background_tasks: BackgroundTasks,
    engine: ReservationEngine = Depends(get_reservation_engine),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    actor = Actor(user_id=current_user.id, role=current_user.role)
    reservation = await engine.amend(actor, booking_id, quantity=payload.seats, seat_labels=payload.seat_number)
    await _notify(background_tasks, db, current_user, "amended", reservation)
    return _booking_out(reservation)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    engine: ReservationEngine = Depends(get_reservation_engine),
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    actor = Actor(user_id=current_user.id, role=current_user.role)
    reservation = await engine.release(actor, booking_id)
    await _notify(background_tasks, db, current_user, "released", reservation)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
