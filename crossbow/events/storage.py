"""Persistence model for ingested webhook events."""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

import msgspec
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from crossbow.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine

# BIGSERIAL on PostgreSQL; SQLite only auto-increments INTEGER PRIMARY KEY.
Identity = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Declarative base shared by the event and domain tables."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Store aware datetimes as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "datetime values must be timezone aware"
            raise ValueError(msg)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Return aware UTC datetimes regardless of backend."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class Event(Base):
    """Normalised record of a single webhook delivery.

    Rows are written once by ingestion. Afterwards only ``processed``,
    ``processed_at`` and ``repository_id`` change, and only through the
    projector.
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_source", "source"),
        Index("ix_events_event_type", "event_type"),
        Index("ix_events_received_at", "received_at"),
        Index("ix_events_delivery_id", "delivery_id"),
        Index("ix_events_actor_id", "actor_id"),
        Index("ix_events_repository_id", "repository_id"),
    )

    id: Mapped[int] = mapped_column(Identity, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(50))
    event_type: Mapped[str] = mapped_column(String(100))
    action: Mapped[str | None] = mapped_column(String(100), default=None)
    actor_name: Mapped[str | None] = mapped_column(String(255), default=None)
    actor_email: Mapped[str | None] = mapped_column(String(255), default=None)
    actor_id: Mapped[str | None] = mapped_column(String(255), default=None)
    raw_event: Mapped[typ.Any] = mapped_column(JSON)
    # Not unique: redeliveries reuse the provider's id.
    delivery_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    signature: Mapped[str | None] = mapped_column(String(255), default=None)
    received_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    processed_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    repository_id: Mapped[int | None] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), default=None
    )


async def init_event_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    # Register the domain tables referenced by foreign keys.
    import crossbow.domain.storage  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _encode_json(value: object) -> str:
    return msgspec.json.encode(value).decode()


def create_event_engine(database_url: str, **options: typ.Any) -> AsyncEngine:  # noqa: ANN401
    """Create an async engine for the event and domain tables.

    JSON columns are written with msgspec, which keeps non-ASCII characters
    unescaped. Free-text search matches against that stored text.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL.
    **options
        Extra keyword arguments for :func:`create_async_engine`, such as
        ``pool_size``.

    """
    return create_async_engine(
        database_url,
        json_serializer=_encode_json,
        json_deserializer=msgspec.json.decode,
        **options,
    )
