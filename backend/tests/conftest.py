"""
SubTrack Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before anything from `subtrack` is
       imported, so the settings singleton and the engine point at a
       throwaway SQLite file and a test JWT secret.

Fixture Hierarchy:
    Unit tests (no database):
    └── mock_db_session: AsyncMock standing in for AsyncSession

    API contract tests (real schema on SQLite via aiosqlite):
    ├── database:      create_all before the test, drop_all + dispose after
    ├── db_session:    session for seeding rows and checking results
    ├── foreign_keys:  SQLite enforces FK constraints like PostgreSQL
    ├── user_headers:  Bearer token of a regular user (no profile row)
    ├── admin_headers: Bearer token of a user whose profile role is admin
    └── test_client:   HTTPX AsyncClient over ASGITransport
"""

import os
import tempfile
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any subtrack import (settings are read at import time)
_db_dir = tempfile.mkdtemp(prefix="subtrack_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256"
os.environ["AUTH_ENABLED"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("POSTGRES_URL", None)

from subtrack.auth import create_access_token  # noqa: E402
from subtrack.database import Base, async_session_factory, engine  # noqa: E402
from subtrack.models import Profile  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Unit Test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        async def test_get(mock_db_session):
            mock_db_session.get.return_value = None
            with pytest.raises(NotFoundError):
                await service.delete_device(mock_db_session, uuid4())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    """Fresh schema per test. Pooled connections are disposed so the next
    test's event loop never sees a connection from this one."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def foreign_keys(database):
    """
    Enforce foreign keys on every SQLite connection, as PostgreSQL does.

    The pool is emptied on both sides so only connections opened inside the
    test carry the pragma.
    """
    def _enable(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await engine.dispose()
    event.listen(engine.sync_engine, "connect", _enable)
    yield
    event.remove(engine.sync_engine, "connect", _enable)
    await engine.dispose()


# ══════════════════════════════════════════════════════════════════════════
# Authentication Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def user_headers():
    token = create_access_token(uuid.uuid4(), email="member@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def admin_headers(db_session):
    admin_id = uuid.uuid4()
    db_session.add(Profile(id=admin_id, email="admin@example.com", role="admin"))
    await db_session.commit()
    token = create_access_token(admin_id, email="admin@example.com")
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from subtrack.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
