"""
SealNote Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite driver) with
       the schema created from Base.metadata, so data-access tests run the
       real SQL instead of mocks.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:        Async engine on a per-test SQLite file
    ├── session_factory:  Session factory bound to db_engine
    ├── db_session:       One session for the test body
    ├── test_client:      HTTPX AsyncClient with get_db_session overridden
    ├── mock_db_session:  AsyncMock session for tests that script failures
    ├── sample_note:      NoteCreate expiring in one hour
    └── sample_embeds:    Two EmbedCreate values
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# Must happen before any app import: app.config reads the environment once
# In-memory: the app engine only ever runs the health check's SELECT 1
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PUBLIC_BASE_URL"] = "https://notes.example.test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import Base, get_db_session
import app.models  # noqa: F401  (registers tables on Base.metadata)
from app.schemas.note import EmbedCreate, NoteCreate


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database with the full schema, dropped after the test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Same session settings as app.database.async_session_factory."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    Route handlers get sessions from the per-test database instead of the
    configured DATABASE_URL.
    """
    from app.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Sample Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_note():
    return NoteCreate(
        ciphertext="U2FsdGVkX1+5kq3bZ0p4Qm1vY2tjaXBoZXJ0ZXh0",
        hmac="9f2c1e7a5b3d",
        crypto_version="v1",
        expire_time=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def sample_embeds():
    return [
        EmbedCreate(embed_id="image-1", ciphertext="ZW1iZWQtb25l", hmac="aa11"),
        EmbedCreate(embed_id="image-2", ciphertext="ZW1iZWQtdHdv", hmac="bb22"),
    ]
