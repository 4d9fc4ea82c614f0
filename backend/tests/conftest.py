"""Pytest configuration and fixtures for StemTrack tests.

The app runs against an in-memory SQLite database (aiosqlite) and
fakeredis, so no PostgreSQL or Redis server is needed.
"""

import os

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SMTP_HOST", "")

from typing import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stemtrack import database, models  # noqa: F401  (registers every table on Base)
from stemtrack.auth.jwt import create_access_token
from stemtrack.auth.password import hash_password
from stemtrack.database import Base
from stemtrack.main import app
from stemtrack.models.user import User
from stemtrack.realtime import broker
from stemtrack.services.provisioning import provision_lines

TEST_PASSWORD = "flowers123"


def pytest_configure(config):
    for marker in ("transitions", "auth", "api", "realtime", "client", "scanner", "e2e"):
        config.addinivalue_line("markers", f"{marker}: {marker} tests")


# ── Database & Redis ─────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine, monkeypatch):
    """Session factory bound to the test engine, also used by get_db()."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session", factory)
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def fake_redis(monkeypatch):
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    monkeypatch.setattr(broker, "_redis_client", client)
    yield client
    await client.aclose()


@pytest.fixture
def published(monkeypatch) -> list:
    """Collect change events instead of sending them to Redis."""
    events = []

    async def capture(batch):
        batch = list(batch)
        events.extend(batch)
        return len(batch)

    monkeypatch.setattr(database, "publish_changes", capture)
    return events


# ── Floor ────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def lines(session_factory) -> int:
    """Ten idle production lines."""
    async with session_factory() as session:
        await session.run_sync(provision_lines, 10)
        await session.commit()
    return 10


# ── HTTP ─────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def test_user(session_factory) -> User:
    """A verified, active user."""
    async with session_factory() as session:
        user = User(
            email="floor@example.com",
            hashed_password=hash_password(TEST_PASSWORD),
            is_active=True,
            email_verified=True,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


@pytest.fixture
def auth_token(test_user: User) -> str:
    return create_access_token(user_id=test_user.id, email=test_user.email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    return {"Authorization": f"Bearer {auth_token}"}
