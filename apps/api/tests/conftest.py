"""Pytest configuration and shared fixtures.

Tests run against a throwaway SQLite file (aiosqlite) whose schema is
rebuilt from the ORM metadata before every test. Environment overrides
must be in place before the application modules are imported.
"""

import os
import tempfile
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

_DB_DIR = tempfile.mkdtemp(prefix="swahiba-tests-")

# Set testing mode BEFORE importing app to use NullPool and disable rate limits
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["OTP_DEV_ECHO"] = "false"
os.environ["SMS_GATEWAY_URL"] = ""
os.environ["LOG_FORMAT"] = "text"

from swahiba_api.config import settings  # noqa: E402

settings.testing = True

from swahiba_api.database import get_engine, get_session_maker, reset_database  # noqa: E402
from swahiba_api.main import app  # noqa: E402
from swahiba_api.models import Base  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema for every test, engine bound to the test's event loop."""
    await reset_database()
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await reset_database()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting rows directly."""
    async with get_session_maker()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

