"""Event store: persistence, projection state and filtered search.

The store exposes two layers. Module-level query functions take an open
``AsyncSession`` so request handlers can reuse their request-scoped session;
:class:`EventStore` wraps them with its own short-lived sessions for the
ingestion path and background projection.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ
import uuid

from sqlalchemy import func, select, update

from crossbow.common.time import utcnow
from crossbow.events.errors import UnsupportedPayloadTypeError
from crossbow.events.filters import EventFilter, apply_event_filter
from crossbow.events.storage import Event

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.orm import InstrumentedAttribute

JSONValue: typ.TypeAlias = (
    dict[str, typ.Any] | list[typ.Any] | str | int | float | bool | None
)

__all__ = [
    "EventEnvelope",
    "EventStore",
    "count_events",
    "distinct_actions",
    "distinct_actor_names",
    "distinct_event_types",
    "distinct_sources",
    "mark_event_processed",
    "search_events",
]


@dc.dataclass(frozen=True, slots=True)
class EventEnvelope:
    """Normalised, source-agnostic description of one webhook delivery."""

    source: str
    event_type: str
    raw_event: JSONValue
    delivery_id: uuid.UUID
    action: str | None = None
    actor_name: str | None = None
    actor_email: str | None = None
    actor_id: str | None = None
    signature: str | None = None
    repository_id: int | None = None


def _copy_payload(payload: object) -> JSONValue:
    """Deep-copy ``payload`` so later caller mutation cannot leak into the row."""
    match payload:
        case dict():
            return {str(key): _copy_payload(value) for key, value in payload.items()}
        case list() | tuple():
            return [_copy_payload(item) for item in payload]
        case None | bool() | int() | float() | str():
            return payload
        case _:
            raise UnsupportedPayloadTypeError(type(payload).__name__)


async def mark_event_processed(
    session: AsyncSession,
    event_id: int,
    *,
    repository_id: int | None = None,
    processed_at: dt.datetime | None = None,
) -> None:
    """Flag an event as projected inside the caller's transaction.

    The update is unconditional and therefore idempotent. ``repository_id``
    is only written when the projector resolved one.
    """
    values: dict[str, typ.Any] = {
        "processed": True,
        "processed_at": processed_at or utcnow(),
    }
    if repository_id is not None:
        values["repository_id"] = repository_id
    await session.execute(update(Event).where(Event.id == event_id).values(**values))


async def search_events(
    session: AsyncSession,
    event_filter: EventFilter,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[Event]:
    """Return events matching ``event_filter``, newest first.

    ``limit=None`` returns every match.
    """
    stmt = apply_event_filter(select(Event), event_filter).order_by(
        Event.received_at.desc(), Event.id.desc()
    )
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list((await session.scalars(stmt)).all())


async def count_events(session: AsyncSession, event_filter: EventFilter) -> int:
    """Count events matching ``event_filter``."""
    stmt = apply_event_filter(
        select(func.count()).select_from(Event), event_filter
    )
    return int(await session.scalar(stmt) or 0)


async def _distinct(
    session: AsyncSession, column: InstrumentedAttribute[typ.Any]
) -> list[str]:
    stmt = select(column).where(column.is_not(None)).distinct().order_by(column)
    return list((await session.scalars(stmt)).all())


async def distinct_event_types(session: AsyncSession) -> list[str]:
    """Return every observed event type in ascending order."""
    return await _distinct(session, Event.event_type)


async def distinct_sources(session: AsyncSession) -> list[str]:
    """Return every observed source in ascending order."""
    return await _distinct(session, Event.source)


async def distinct_actions(session: AsyncSession) -> list[str]:
    """Return every observed non-null action in ascending order."""
    return await _distinct(session, Event.action)


async def distinct_actor_names(session: AsyncSession) -> list[str]:
    """Return every observed non-null actor name in ascending order."""
    return await _distinct(session, Event.actor_name)


class EventStore:
    """Session-owning facade over the event table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for each operation."""
        self._session_factory = session_factory

    async def create(self, envelope: EventEnvelope) -> Event:
        """Insert ``envelope`` as a new event and return the persisted row.

        Storage errors propagate unchanged; the caller decides whether the
        delivery is reported as failed.
        """
        payload = _copy_payload(envelope.raw_event)
        async with self._session_factory() as session:
            event = Event(
                source=envelope.source,
                event_type=envelope.event_type,
                action=envelope.action,
                actor_name=envelope.actor_name,
                actor_email=envelope.actor_email,
                actor_id=envelope.actor_id,
                raw_event=payload,
                delivery_id=envelope.delivery_id,
                signature=envelope.signature,
                repository_id=envelope.repository_id,
            )
            session.add(event)
            await session.commit()
            await session.refresh(event)
            return event

    async def get(self, event_id: int) -> Event | None:
        """Return the event with ``event_id`` if it exists."""
        async with self._session_factory() as session:
            return await session.get(Event, event_id)

    async def mark_processed(
        self, event_id: int, *, repository_id: int | None = None
    ) -> None:
        """Flag ``event_id`` as processed in its own transaction."""
        async with self._session_factory() as session, session.begin():
            await mark_event_processed(session, event_id, repository_id=repository_id)

    async def search_and_filter(
        self,
        event_filter: EventFilter | None = None,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Event]:
        """Return events matching ``event_filter``, newest first."""
        async with self._session_factory() as session:
            return await search_events(
                session, event_filter or EventFilter(), limit=limit, offset=offset
            )

    async def count_filtered(self, event_filter: EventFilter | None = None) -> int:
        """Count events matching ``event_filter``."""
        async with self._session_factory() as session:
            return await count_events(session, event_filter or EventFilter())

    async def count(self) -> int:
        """Count every stored event."""
        return await self.count_filtered()

    async def list_by_repository(
        self, repository_id: int, *, limit: int | None = None, offset: int = 0
    ) -> list[Event]:
        """Return events linked to ``repository_id``, newest first."""
        return await self.search_and_filter(
            EventFilter(repository_id=repository_id), limit=limit, offset=offset
        )

    async def get_event_types(self) -> list[str]:
        """Return distinct event types."""
        async with self._session_factory() as session:
            return await distinct_event_types(session)

    async def get_sources(self) -> list[str]:
        """Return distinct sources."""
        async with self._session_factory() as session:
            return await distinct_sources(session)

    async def get_actions(self) -> list[str]:
        """Return distinct non-null actions."""
        async with self._session_factory() as session:
            return await distinct_actions(session)

    async def get_actor_names(self) -> list[str]:
        """Return distinct non-null actor names."""
        async with self._session_factory() as session:
            return await distinct_actor_names(session)
