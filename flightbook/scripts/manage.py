"""
Maintenance commands for a flightbook deployment.

Usage:
    flightbook-admin init-db
    flightbook-admin create-user alice --password s3cret --role admin
    flightbook-admin reconcile

Environment variables (see flightbook.config):
- DATABASE_URL
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Tuple

from sqlalchemy import select as sa_select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from flightbook.config import settings
from flightbook.db.base import Base
from flightbook.db.session import async_session, engine
from flightbook.exceptions import ConflictError, DomainError
from flightbook.logging_setup import setup_logging
from flightbook.models.models import ROLE_ADMIN, ROLE_USER, Flight, User
from flightbook.services import auth as auth_service
from flightbook.services.flight_store import FlightStore

logger = logging.getLogger(__name__)


async def init_db(db_engine: AsyncEngine = engine):
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def create_user(
    factory: async_sessionmaker,
    username: str,
    password: str,
    role: str = ROLE_USER,
    email: Optional[str] = None,
) -> int:
    async with factory() as db:
        async with db.begin():
            user = User(
                username=username,
                email=email,
                role=role,
                hashed_password=auth_service.hash_password(password),
            )
            db.add(user)
            try:
                await db.flush()
            except IntegrityError as exc:
                raise ConflictError(f"User {username} already exists") from exc
            return user.id


async def reconcile_all(factory: async_sessionmaker) -> List[Tuple[str, int, int]]:
    """Recompute every flight's availability from its bookings.

    Returns (flight_number, stored, recomputed) for each flight.
    """
    async with factory() as db:
        res = await db.execute(sa_select(Flight.id).order_by(Flight.id))
        flight_ids = list(res.scalars().all())

    report = []
    for flight_id in flight_ids:
        # one transaction per flight
        async with factory() as db:
            async with db.begin():
                store = FlightStore(db)
                before = (await store.get(flight_id)).available_tickets
                flight = await store.reconcile(flight_id)
                report.append((flight.flight_number, before, flight.available_tickets))
    logger.info("Reconciled %d flights", len(report))
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flightbook-admin", description="flightbook maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables (use alembic for managed deployments)")

    cu = sub.add_parser("create-user", help="Create a user with a hashed password")
    cu.add_argument("username")
    cu.add_argument("--password", required=True)
    cu.add_argument("--email", default=None)
    cu.add_argument("--role", choices=[ROLE_USER, ROLE_ADMIN], default=ROLE_USER)

    sub.add_parser("reconcile", help="Recompute flight availability from bookings")
    return parser


async def run(args: argparse.Namespace, factory: async_sessionmaker = async_session) -> int:
    try:
        if args.command == "init-db":
            await init_db()
            print("Tables created")
        elif args.command == "create-user":
            user_id = await create_user(factory, args.username, args.password, role=args.role, email=args.email)
            print(f"Created {args.role} {args.username} (id={user_id})")
        elif args.command == "reconcile":
            for flight_number, before, after in await reconcile_all(factory):
                marker = "fixed" if before != after else "ok"
                print(f"{flight_number}: {before} -> {after} [{marker}]")
    except DomainError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.LOG_LEVEL, debug=settings.DEBUG)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
