import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date, time
from decimal import Decimal

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flightbook.db.base import Base
from flightbook.db.session import get_session_factory
from flightbook.main import app
from flightbook.models.models import ROLE_ADMIN, ROLE_USER, Flight, User
from flightbook.redis_client import get_redis
from flightbook.services.auth import create_access_token, hash_password
from flightbook.services.flight_store import FlightStore
from flightbook.services.reservation import Actor, ReservationEngine

PASSWORD = "secret123"


@pytest.fixture
async def engine(tmp_path):
    # a file database so that concurrent sessions see each other's commits
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'flightbook.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
async def client(session_factory, redis):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def reservation_engine(session_factory):
    return ReservationEngine(session_factory)


@pytest.fixture
def make_user(session_factory):
    async def _make(username: str, role: str = ROLE_USER, email: str = None) -> User:
        async with session_factory() as db:
            async with db.begin():
                user = User(username=username, email=email, role=role, hashed_password=hash_password(PASSWORD))
                db.add(user)
        return user

    return _make


@pytest.fixture
def make_flight(session_factory):
    async def _make(**overrides) -> Flight:
        fields = dict(
            flight_number="FB100",
            departure="Lagos",
            destination="Accra",
            date=date(2026, 12, 1),
            time=time(9, 30),
            max_tickets=2,
            price=Decimal("100.00"),
            seat_selection=False,
        )
        fields.update(overrides)
        async with session_factory() as db:
            async with db.begin():
                flight = await FlightStore(db).create(**fields)
        return flight

    return _make


@pytest.fixture
def fetch_flight(session_factory):
    async def _fetch(flight_id: int) -> Flight:
        async with session_factory() as db:
            return await FlightStore(db).get(flight_id)

    return _fetch


@pytest.fixture
def headers_for():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


@pytest.fixture
def actor_for():
    def _actor(user: User) -> Actor:
        return Actor(user_id=user.id, role=user.role)

    return _actor


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("alice", email="alice@example.com")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("bob", email="bob@example.com")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user("admin", role=ROLE_ADMIN)


@pytest.fixture
async def flight(make_flight) -> Flight:
    return await make_flight()


@pytest.fixture
async def seat_flight(make_flight) -> Flight:
    return await make_flight(flight_number="FB200", max_tickets=12, seat_selection=True)
