from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select as sa_select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.auth.deps import get_current_user, role_required
from flightbook.db.session import get_session
from flightbook.models.models import ROLE_ADMIN, ROLE_USER, User
from flightbook.services import auth as auth_service
from flightbook.services.audit import log_audit

router = APIRouter(tags=["users"])


class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    role: str
    is_active: bool

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    role: Literal["user", "admin"] = ROLE_USER


@router.get("", response_model=List[UserOut], dependencies=[Depends(role_required([ROLE_ADMIN]))])
async def list_users(db: AsyncSession = Depends(get_session)):
    res = await db.execute(sa_select(User).order_by(User.id))
    return res.scalars().all()


@router.get("/me", response_model=UserOut)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("", response_model=UserOut, status_code=201)
async def create_user(
    payload: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(role_required([ROLE_ADMIN])),
):
    user = User(
        username=payload.username,
        email=payload.email,
        phone=payload.phone,
        gender=payload.gender,
        role=payload.role,
        hashed_password=auth_service.hash_password(payload.password),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username or email already registered") from exc
    await log_audit(
        db,
        actor_id=current_user.id,
        action="create_user",
        object_type="user",
        object_id=str(user.id),
        detail={"username": user.username, "role": user.role},
        ip_address=request.client.host if request.client else None,
    )
    await db.commit()
    await db.refresh(user)
    return user
