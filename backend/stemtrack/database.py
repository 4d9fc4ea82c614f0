"""Database engine, session factory, and declarative base.

One session per request:
  - get_db()  → commits when the request handler returns, rolls back on
                any exception, then publishes the change events queued
                during the transaction (see stemtrack.realtime.changes).

Events are only published after a successful commit, so subscribers
never see a change the store did not keep.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from stemtrack.config import settings
from stemtrack.realtime.changes import discard_pending, publish_changes, take_pending

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=20,
    max_overflow=10,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a session; commit, then fan out the queued change events."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_pending(session)
            raise
        await publish_changes(take_pending(session))
