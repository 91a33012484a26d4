"""Domain entities projected from GitHub webhook events."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crossbow.common.time import utcnow
from crossbow.events.storage import Base, Identity, UTCDateTime

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class Repository(Base):
    """Repository mirrored from the source platform, keyed by ``github_id``."""

    __tablename__ = "repositories"
    __table_args__ = (Index("ix_repositories_full_name", "full_name"),)

    id: Mapped[int] = mapped_column(Identity, primary_key=True, autoincrement=True)
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    name: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(512))
    owner: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    url: Mapped[str] = mapped_column(String(1024))
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    commits: Mapped[list[Commit]] = relationship(back_populates="repository")
    pull_requests: Mapped[list[PullRequest]] = relationship(back_populates="repository")
    issues: Mapped[list[Issue]] = relationship(back_populates="repository")


class Commit(Base):
    """Commit seen in a push, unique per repository."""

    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("sha", "repository_id", name="uq_commits_sha_repository"),
        Index("ix_commits_repository_time", "repository_id", "committed_at"),
        Index("ix_commits_author_email", "author_email"),
    )

    id: Mapped[int] = mapped_column(Identity, primary_key=True, autoincrement=True)
    sha: Mapped[str] = mapped_column(String(64))
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    # Provenance only; several commits share one push event.
    webhook_event_id: Mapped[int | None] = mapped_column(
        ForeignKey("events.id", ondelete="SET NULL"), default=None
    )
    message: Mapped[str] = mapped_column(Text)
    author_name: Mapped[str] = mapped_column(String(255))
    author_email: Mapped[str] = mapped_column(String(320))
    committer_name: Mapped[str] = mapped_column(String(255))
    committer_email: Mapped[str] = mapped_column(String(320))
    committed_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    url: Mapped[str] = mapped_column(String(1024))
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    repository: Mapped[Repository] = relationship(back_populates="commits")


class PullRequest(Base):
    """Pull request state, refreshed on every sighting."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        Index("ix_pull_requests_repository_state", "repository_id", "state"),
        Index("ix_pull_requests_opened_at", "opened_at"),
    )

    id: Mapped[int] = mapped_column(Identity, primary_key=True, autoincrement=True)
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    webhook_event_id: Mapped[int | None] = mapped_column(
        ForeignKey("events.id", ondelete="SET NULL"), default=None
    )
    number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(Text)
    state: Mapped[str] = mapped_column(String(32))
    author: Mapped[str] = mapped_column(String(255))
    base_branch: Mapped[str] = mapped_column(String(255))
    head_branch: Mapped[str] = mapped_column(String(255))
    url: Mapped[str] = mapped_column(String(1024))
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_draft: Mapped[bool] = mapped_column(Boolean, default=False)
    opened_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    closed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    merged_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    repository: Mapped[Repository] = relationship(back_populates="pull_requests")


class Issue(Base):
    """Issue state, refreshed on every sighting."""

    __tablename__ = "issues"
    __table_args__ = (
        Index("ix_issues_repository_state", "repository_id", "state"),
        Index("ix_issues_opened_at", "opened_at"),
    )

    id: Mapped[int] = mapped_column(Identity, primary_key=True, autoincrement=True)
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    webhook_event_id: Mapped[int | None] = mapped_column(
        ForeignKey("events.id", ondelete="SET NULL"), default=None
    )
    number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(Text)
    state: Mapped[str] = mapped_column(String(32))
    author: Mapped[str] = mapped_column(String(255))
    url: Mapped[str] = mapped_column(String(1024))
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)
    opened_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    closed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    repository: Mapped[Repository] = relationship(back_populates="issues")


async def init_domain_storage(engine: AsyncEngine) -> None:
    """Create domain and event tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
