"""Unit-test fixtures for the event store and projection layers."""

from __future__ import annotations

import typing as typ
import uuid

import pytest

from crossbow.events import EventEnvelope, EventStore
from crossbow.projection import EventProjector

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class StoreEvent(typ.Protocol):
    """Callable storing a GitHub-style event and returning its id."""

    async def __call__(
        self,
        event_type: str,
        payload: object,
        *,
        source: str = "github",
        action: str | None = None,
        actor_name: str | None = None,
    ) -> int: ...


@pytest.fixture
def event_store(session_factory: async_sessionmaker[AsyncSession]) -> EventStore:
    """Return an event store over the test database."""
    return EventStore(session_factory)


@pytest.fixture
def projector(session_factory: async_sessionmaker[AsyncSession]) -> EventProjector:
    """Return a projector over the test database."""
    return EventProjector(session_factory)


@pytest.fixture
def store_event(event_store: EventStore) -> StoreEvent:
    """Return a helper persisting events with sensible defaults."""

    async def _store(
        event_type: str,
        payload: object,
        *,
        source: str = "github",
        action: str | None = None,
        actor_name: str | None = None,
    ) -> int:
        event = await event_store.create(
            EventEnvelope(
                source=source,
                event_type=event_type,
                raw_event=payload,
                delivery_id=uuid.uuid4(),
                action=action,
                actor_name=actor_name,
            )
        )
        return event.id

    return _store
