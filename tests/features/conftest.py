"""Shared fixtures for BDD feature tests.

Scenario steps drive their own event loop through ``asyncio.run``, so each
step opens and disposes an engine against a per-test SQLite file instead of
sharing the async ``session_factory`` fixture.
"""

from __future__ import annotations

import typing as typ

import pytest

from tests.helpers import sqlite_url

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Return an aiosqlite URL unique to the test."""
    return sqlite_url(tmp_path)
