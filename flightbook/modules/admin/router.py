from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import select as sa_select
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.auth.deps import role_required
from flightbook.db.session import get_session
from flightbook.models.models import ROLE_ADMIN, AuditLog, User
from flightbook.schemas.booking import OccupancyOut
from flightbook.schemas.flight import FlightOut
from flightbook.services.audit import log_audit
from flightbook.services.booking_queries import BookingQueries
from flightbook.services.flight_store import FlightStore

router = APIRouter(tags=["admin"], dependencies=[Depends(role_required([ROLE_ADMIN]))])


class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    action: str
    object_type: Optional[str] = None
    object_id: Optional[str] = None
    detail: Optional[dict] = None
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


@router.get("/audit-logs", response_model=List[AuditLogOut])
async def list_audit_logs(
    action: Optional[str] = None,
    object_type: Optional[str] = None,
    object_id: Optional[str] = None,
    limit: int = 100,
    db: AsyncSession = Depends(get_session),
):
    stmt = sa_select(AuditLog)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if object_type:
        stmt = stmt.where(AuditLog.object_type == object_type)
    if object_id:
        stmt = stmt.where(AuditLog.object_id == object_id)
    res = await db.execute(stmt.order_by(AuditLog.id.desc()).limit(limit))
    return res.scalars().all()


# Reports: per-flight occupancy and revenue
@router.get("/reports/occupancy", response_model=List[OccupancyOut])
async def occupancy_report(db: AsyncSession = Depends(get_session)):
    return await BookingQueries(db).flight_occupancy()


@router.post("/flights/{flight_id}/reconcile", response_model=FlightOut)
async def reconcile_flight(
    flight_id: int,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(role_required([ROLE_ADMIN])),
):
    store = FlightStore(db)
    before = (await store.get(flight_id)).available_tickets
    flight = await store.reconcile(flight_id)
    await log_audit(
        db,
        actor_id=current_user.id,
        action="reconcile_flight",
        object_type="flight",
        object_id=str(flight_id),
        detail={"before": before, "after": flight.available_tickets},
        ip_address=request.client.host if request.client else None,
    )
    await db.commit()
    return flight
