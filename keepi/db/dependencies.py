"""Database dependencies for FastAPI endpoints."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from keepi.db.session import get_session_factory


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives the request session, such as streamed exports."""

    return get_session_factory()


async def get_db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async SQLAlchemy session; uncommitted work is discarded on close."""

    session = session_factory()
    try:
        yield session
    finally:
        await session.close()
