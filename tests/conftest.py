"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from crossbow.events import create_event_engine, init_event_storage
from tests.helpers import sqlite_url

if typ.TYPE_CHECKING:
    from pathlib import Path

WEBHOOK_SECRET = "test-webhook-secret"


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise every table."""
    engine = create_event_engine(sqlite_url(tmp_path))
    try:
        await init_event_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def webhook_secret() -> str:
    """Return the shared secret configured for GitHub signatures."""
    return WEBHOOK_SECRET
