"""Insert-or-update helpers keyed on the domain natural keys.

Each helper issues one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING id``
so that concurrent projections of the same entity converge through the
database's conflict resolution rather than application locking.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy.dialects import postgresql, sqlite

from crossbow.common.time import utcnow
from crossbow.domain.storage import Commit, Issue, PullRequest, Repository

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = [
    "CommitRecord",
    "IssueRecord",
    "PullRequestRecord",
    "RepositoryRecord",
    "UnsupportedDialectError",
    "upsert_commit",
    "upsert_issue",
    "upsert_pull_request",
    "upsert_repository",
]

_INSERTS: dict[str, typ.Callable[..., typ.Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UnsupportedDialectError(RuntimeError):
    """Raised when the bound database offers no ``ON CONFLICT`` upsert."""

    def __init__(self, dialect: str) -> None:
        """Name the dialect that cannot perform upserts."""
        super().__init__(f"upserts are not supported on the {dialect} dialect")


@dc.dataclass(frozen=True, slots=True)
class RepositoryRecord:
    """Repository columns derived from a payload."""

    github_id: int
    name: str
    full_name: str
    owner: str
    url: str
    description: str | None = None
    is_private: bool = False


@dc.dataclass(frozen=True, slots=True)
class CommitRecord:
    """Commit columns derived from one push entry."""

    sha: str
    message: str
    author_name: str
    author_email: str
    committer_name: str
    committer_email: str
    committed_at: dt.datetime
    url: str


@dc.dataclass(frozen=True, slots=True)
class PullRequestRecord:
    """Pull request columns derived from a payload."""

    github_id: int
    number: int
    title: str
    state: str
    author: str
    base_branch: str
    head_branch: str
    url: str
    opened_at: dt.datetime
    closed_at: dt.datetime | None = None
    merged_at: dt.datetime | None = None
    labels: list[str] = dc.field(default_factory=list)
    is_draft: bool = False


@dc.dataclass(frozen=True, slots=True)
class IssueRecord:
    """Issue columns derived from a payload."""

    github_id: int
    number: int
    title: str
    state: str
    author: str
    url: str
    opened_at: dt.datetime
    closed_at: dt.datetime | None = None
    labels: list[str] = dc.field(default_factory=list)


def _insert_for(session: AsyncSession) -> typ.Callable[..., typ.Any]:
    dialect = session.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError as exc:
        raise UnsupportedDialectError(dialect) from exc


async def _upsert(
    session: AsyncSession,
    model: type[typ.Any],
    values: dict[str, typ.Any],
    *,
    conflict: list[str],
    refresh: list[str],
    touch: bool,
) -> int:
    insert = _insert_for(session)
    stmt = insert(model).values(**values)
    set_: dict[str, typ.Any] = {name: stmt.excluded[name] for name in refresh}
    # ON CONFLICT DO UPDATE bypasses Column.onupdate.
    if touch:
        set_["updated_at"] = utcnow()
    stmt = stmt.on_conflict_do_update(index_elements=conflict, set_=set_).returning(
        model.id
    )
    return int((await session.execute(stmt)).scalar_one())


async def upsert_repository(session: AsyncSession, record: RepositoryRecord) -> int:
    """Insert or refresh a repository keyed by ``github_id``; return its id."""
    return await _upsert(
        session,
        Repository,
        dc.asdict(record),
        conflict=["github_id"],
        refresh=["name", "full_name", "owner", "description", "url", "is_private"],
        touch=True,
    )


async def upsert_commit(
    session: AsyncSession,
    record: CommitRecord,
    *,
    repository_id: int,
    webhook_event_id: int,
) -> int:
    """Insert or refresh a commit keyed by ``(sha, repository_id)``."""
    values = dc.asdict(record) | {
        "repository_id": repository_id,
        "webhook_event_id": webhook_event_id,
    }
    return await _upsert(
        session,
        Commit,
        values,
        conflict=["sha", "repository_id"],
        refresh=[
            "message",
            "author_name",
            "author_email",
            "committer_name",
            "committer_email",
            "committed_at",
            "url",
        ],
        touch=False,
    )


async def upsert_pull_request(
    session: AsyncSession,
    record: PullRequestRecord,
    *,
    repository_id: int,
    webhook_event_id: int,
) -> int:
    """Insert or refresh a pull request keyed by ``github_id``."""
    values = dc.asdict(record) | {
        "repository_id": repository_id,
        "webhook_event_id": webhook_event_id,
    }
    return await _upsert(
        session,
        PullRequest,
        values,
        conflict=["github_id"],
        refresh=[
            "title",
            "state",
            "author",
            "base_branch",
            "head_branch",
            "url",
            "labels",
            "is_draft",
            "closed_at",
            "merged_at",
        ],
        touch=True,
    )


async def upsert_issue(
    session: AsyncSession,
    record: IssueRecord,
    *,
    repository_id: int,
    webhook_event_id: int,
) -> int:
    """Insert or refresh an issue keyed by ``github_id``."""
    values = dc.asdict(record) | {
        "repository_id": repository_id,
        "webhook_event_id": webhook_event_id,
    }
    return await _upsert(
        session,
        Issue,
        values,
        conflict=["github_id"],
        refresh=["title", "state", "author", "labels", "url", "closed_at"],
        touch=True,
    )
