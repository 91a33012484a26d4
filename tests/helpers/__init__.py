"""Shared test utilities."""

from __future__ import annotations

import asyncio
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


T = typ.TypeVar("T")


def run_async(coro_func: typ.Callable[[], typ.Coroutine[typ.Any, typ.Any, T]]) -> T:
    """Execute an async callable within the test context."""
    return asyncio.run(coro_func())


async def wait_until(
    predicate: typ.Callable[[], typ.Awaitable[bool]],
    *,
    attempts: int = 100,
    interval: float = 0.01,
) -> bool:
    """Poll ``predicate`` until it holds or ``attempts`` run out."""
    for _ in range(attempts):
        if await predicate():
            return True
        await asyncio.sleep(interval)
    return False


def sqlite_url(directory: Path) -> str:
    """Return an aiosqlite URL for a database file under ``directory``."""
    return f"sqlite+aiosqlite:///{directory / 'crossbow_test.db'}"
