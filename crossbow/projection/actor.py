"""Operator-triggered replay of unprocessed events.

Ingestion never retries a failed projection. This actor lets an operator
re-run projection for events left unprocessed by a failure or a shutdown:

>>> replay_unprocessed_events_job.send(
...     database_url="postgresql+asyncpg://...",
...     limit=500,
... )

"""

from __future__ import annotations

import asyncio

import dramatiq
from sqlalchemy.ext.asyncio import async_sessionmaker

from crossbow.events import create_event_engine
from crossbow.logging import get_logger, log_info
from crossbow.projection._broker import ensure_broker_configured
from crossbow.projection.projector import EventProjector

logger = get_logger(__name__)

# Declaring an actor binds it to the global broker, so one must exist first.
ensure_broker_configured()


async def _replay_async(database_url: str, limit: int | None) -> list[int]:
    """Project pending events with a short-lived engine.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL of the event database.
    limit
        Maximum number of pending events to attempt; ``None`` means all.

    Returns
    -------
    list[int]
        Ids of the events projected successfully.

    """
    engine = create_event_engine(database_url)
    try:
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        return await EventProjector(session_factory).project_pending(limit)
    finally:
        await engine.dispose()


@dramatiq.actor(queue_name="projection")
def replay_unprocessed_events_job(
    database_url: str, *, limit: int | None = None
) -> list[int]:
    """Replay projection for unprocessed events in id order."""
    ensure_broker_configured()
    processed = asyncio.run(_replay_async(database_url, limit))
    log_info(logger, "Replayed projection for %d event(s)", len(processed))
    return processed
