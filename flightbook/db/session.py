from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flightbook.config import settings


DATABASE_URL = str(settings.DATABASE_URL)

# create async engine
engine = create_async_engine(DATABASE_URL, echo=settings.DEBUG, future=True)

# session factory
async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker:
    """Factory handed to components that open their own units of work."""
    return async_session


async def get_session(factory: async_sessionmaker = Depends(get_session_factory)) -> AsyncIterator[AsyncSession]:
    async with factory() as session:
        yield session
