import uuid
from datetime import datetime, timedelta, timezone
from typing import Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from redis.asyncio import Redis

from flightbook.config import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: int, role: str) -> str:
    expire = _now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user_id), "role": role, "type": "access", "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


async def create_refresh_token(redis: Redis, user_id: int) -> Tuple[str, str]:
    # jti used for rotation and revocation
    jti = uuid.uuid4().hex
    expire = _now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {"sub": str(user_id), "type": "refresh", "jti": jti, "exp": int(expire.timestamp())}
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    await redis.set(f"refresh:{jti}", str(user_id), ex=int((expire - _now()).total_seconds()))
    return token, jti


def _decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> Tuple[int, str]:
    """Return ``(user_id, role)`` from a valid access token."""
    payload = _decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return int(payload.get("sub")), payload.get("role")


async def verify_refresh_token(redis: Redis, token: str) -> Tuple[int, str]:
    payload = _decode_token(token)
    if payload.get("type") != "refresh":
        raise JWTError("Invalid token type")
    user_id = int(payload.get("sub"))
    jti = payload.get("jti")
    val = await redis.get(f"refresh:{jti}")
    if not val or int(val) != user_id:
        raise JWTError("Refresh token revoked or not found")
    return user_id, jti


async def rotate_refresh_token(redis: Redis, old_jti: str, user_id: int) -> Tuple[str, str]:
    await redis.delete(f"refresh:{old_jti}")
    return await create_refresh_token(redis, user_id)


async def revoke_refresh_token(redis: Redis, jti: str):
    await redis.delete(f"refresh:{jti}")
