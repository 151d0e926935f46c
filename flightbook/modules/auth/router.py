import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from pydantic import BaseModel, EmailStr, Field
from redis.asyncio import Redis
from sqlalchemy import select as sa_select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flightbook.config import settings
from flightbook.db.session import get_session
from flightbook.models.models import ROLE_USER, User
from flightbook.redis_client import get_redis
from flightbook.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[str] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: str
    user_id: int
    role: str


@router.post("/register", status_code=201)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_session)):
    user = User(
        username=payload.username,
        email=payload.email,
        phone=payload.phone,
        gender=payload.gender,
        hashed_password=auth_service.hash_password(payload.password),
        role=ROLE_USER,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username or email already registered") from exc
    await db.refresh(user)
    logger.info("User registered", extra={"new_user_id": user.id})
    return {"id": user.id, "username": user.username, "email": user.email, "role": user.role}


@router.post("/login", response_model=TokenOut)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),
):
    identifier = form_data.username
    rl_key = f"rl:login:{identifier.lower()}"
    attempts = await redis.get(rl_key)
    if attempts and int(attempts) >= settings.LOGIN_RATE_LIMIT_ATTEMPTS:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many login attempts, try later")

    res = await db.execute(sa_select(User).where(User.username == identifier))
    user = res.scalars().first()
    if not user or not user.is_active or not auth_service.verify_password(form_data.password, user.hashed_password):
        await redis.incr(rl_key)
        await redis.expire(rl_key, settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    await redis.delete(rl_key)
    access = auth_service.create_access_token(user.id, user.role)
    refresh_token, _ = await auth_service.create_refresh_token(redis, user.id)
    logger.info("User logged in", extra={"login_user_id": user.id, "role": user.role})
    return {"access_token": access, "refresh_token": refresh_token, "user_id": user.id, "role": user.role}


class RefreshIn(BaseModel):
    refresh_token: str


@router.post("/refresh", response_model=TokenOut)
async def refresh(payload: RefreshIn, db: AsyncSession = Depends(get_session), redis: Redis = Depends(get_redis)):
    try:
        user_id, old_jti = await auth_service.verify_refresh_token(redis, payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    new_refresh, _ = await auth_service.rotate_refresh_token(redis, old_jti, user_id)
    access = auth_service.create_access_token(user.id, user.role)
    return {"access_token": access, "refresh_token": new_refresh, "user_id": user.id, "role": user.role}


class LogoutIn(BaseModel):
    refresh_token: str


@router.post("/logout", status_code=204)
async def logout(payload: LogoutIn, redis: Redis = Depends(get_redis)):
    try:
        _, jti = await auth_service.verify_refresh_token(redis, payload.refresh_token)
    except JWTError:
        # already invalid / revoked
        return None
    await auth_service.revoke_refresh_token(redis, jti)
    return None
