"""Read-only queries over projected domain entities.

Every helper takes an open ``AsyncSession`` so request handlers can share the
request-scoped session managed by the API middleware.

Example:
-------
List the open pull requests of one repository::

    options = WorkItemListOptions(repository_id=7, state="open", limit=20)
    prs = await list_pull_requests(session, options)

"""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import func, select

from crossbow.domain.storage import Commit, Issue, PullRequest, Repository
from crossbow.events.storage import Event

if typ.TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = [
    "CommitListOptions",
    "DashboardSummary",
    "NegativePaginationError",
    "WorkItemListOptions",
    "count_commits",
    "count_issues",
    "count_pull_requests",
    "count_repositories",
    "dashboard_summary",
    "find_repository_by_github_id",
    "get_repository",
    "list_commits",
    "list_issues",
    "list_pull_requests",
    "list_repositories",
]


class NegativePaginationError(ValueError):
    """Raised when pagination parameters are negative."""

    def __init__(self, name: str) -> None:
        """Build a consistent error message for the invalid parameter."""
        msg = f"{name} must be non-negative"
        super().__init__(msg)


@dataclasses.dataclass(frozen=True, slots=True)
class CommitListOptions:
    """Commit listing options.

    Attributes
    ----------
    repository_id
        Restrict to commits of one repository.
    author_email
        Restrict to commits authored by this address.
    limit
        Optional maximum number of rows to return.
    offset
        Optional number of ordered rows to skip.

    """

    repository_id: int | None = None
    author_email: str | None = None
    limit: int | None = None
    offset: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class WorkItemListOptions:
    """Pull request and issue listing options.

    Attributes
    ----------
    repository_id
        Restrict to one repository.
    state
        Exact match on the source state, for example ``open`` or ``closed``.
    author
        Exact match on the author login.
    limit
        Optional maximum number of rows to return.
    offset
        Optional number of ordered rows to skip.

    """

    repository_id: int | None = None
    state: str | None = None
    author: str | None = None
    limit: int | None = None
    offset: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class DashboardSummary:
    """Aggregate counts shown on the overview page."""

    repositories: int
    events: int
    unprocessed_events: int
    commits: int
    pull_requests: int
    open_pull_requests: int
    issues: int
    open_issues: int

    def as_dict(self) -> dict[str, int]:
        """Return the summary as a JSON-ready mapping."""
        return dataclasses.asdict(self)


def _validate_pagination(limit: int | None, offset: int | None) -> None:
    if limit is not None and limit < 0:
        raise NegativePaginationError("limit")
    if offset is not None and offset < 0:
        raise NegativePaginationError("offset")


SelectT = typ.TypeVar("SelectT")


def _paginate(stmt: SelectT, limit: int | None, offset: int | None) -> SelectT:
    _validate_pagination(limit, offset)
    if offset:
        stmt = stmt.offset(offset)  # type: ignore[attr-defined]
    if limit is not None:
        stmt = stmt.limit(limit)  # type: ignore[attr-defined]
    return stmt


async def _count(
    session: AsyncSession,
    model: type[typ.Any],
    clauses: list[ColumnElement[bool]],
) -> int:
    stmt = select(func.count()).select_from(model)
    if clauses:
        stmt = stmt.where(*clauses)
    return int(await session.scalar(stmt) or 0)


async def list_repositories(
    session: AsyncSession, *, limit: int | None = None, offset: int | None = None
) -> list[Repository]:
    """Return repositories, most recently refreshed first."""
    stmt = select(Repository).order_by(
        Repository.updated_at.desc(), Repository.id.desc()
    )
    return list((await session.scalars(_paginate(stmt, limit, offset))).all())


async def count_repositories(session: AsyncSession) -> int:
    """Count projected repositories."""
    return await _count(session, Repository, [])


async def get_repository(session: AsyncSession, repository_id: int) -> Repository | None:
    """Return one repository by surrogate id."""
    return await session.get(Repository, repository_id)


async def find_repository_by_github_id(
    session: AsyncSession, github_id: int
) -> Repository | None:
    """Return the repository mirrored from ``github_id`` if it was projected."""
    stmt = select(Repository).where(Repository.github_id == github_id)
    return await session.scalar(stmt)


def _commit_clauses(options: CommitListOptions) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if options.repository_id is not None:
        clauses.append(Commit.repository_id == options.repository_id)
    if options.author_email is not None:
        clauses.append(Commit.author_email == options.author_email)
    return clauses


async def list_commits(
    session: AsyncSession, options: CommitListOptions
) -> list[Commit]:
    """List commits, newest commit time first.

    Parameters
    ----------
    session
        Open database session.
    options
        Filtering and pagination options.

    Returns
    -------
    list[Commit]
        Commits matching the filters.

    Raises
    ------
    NegativePaginationError
        If limit or offset is negative.

    """
    stmt = (
        select(Commit)
        .where(*_commit_clauses(options))
        .order_by(Commit.committed_at.desc(), Commit.id.desc())
    )
    stmt = _paginate(stmt, options.limit, options.offset)
    return list((await session.scalars(stmt)).all())


async def count_commits(session: AsyncSession, options: CommitListOptions) -> int:
    """Count commits matching ``options``; pagination fields are ignored."""
    return await _count(session, Commit, _commit_clauses(options))


def _work_item_clauses(
    model: type[PullRequest] | type[Issue], options: WorkItemListOptions
) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if options.repository_id is not None:
        clauses.append(model.repository_id == options.repository_id)
    if options.state is not None:
        clauses.append(model.state == options.state)
    if options.author is not None:
        clauses.append(model.author == options.author)
    return clauses


async def list_pull_requests(
    session: AsyncSession, options: WorkItemListOptions
) -> list[PullRequest]:
    """List pull requests, most recently opened first."""
    stmt = (
        select(PullRequest)
        .where(*_work_item_clauses(PullRequest, options))
        .order_by(PullRequest.opened_at.desc(), PullRequest.id.desc())
    )
    stmt = _paginate(stmt, options.limit, options.offset)
    return list((await session.scalars(stmt)).all())


async def count_pull_requests(
    session: AsyncSession, options: WorkItemListOptions
) -> int:
    """Count pull requests matching ``options``."""
    return await _count(session, PullRequest, _work_item_clauses(PullRequest, options))


async def list_issues(
    session: AsyncSession, options: WorkItemListOptions
) -> list[Issue]:
    """List issues, most recently opened first."""
    stmt = (
        select(Issue)
        .where(*_work_item_clauses(Issue, options))
        .order_by(Issue.opened_at.desc(), Issue.id.desc())
    )
    stmt = _paginate(stmt, options.limit, options.offset)
    return list((await session.scalars(stmt)).all())


async def count_issues(session: AsyncSession, options: WorkItemListOptions) -> int:
    """Count issues matching ``options``."""
    return await _count(session, Issue, _work_item_clauses(Issue, options))


async def dashboard_summary(session: AsyncSession) -> DashboardSummary:
    """Collect the aggregate counts for the overview page."""
    open_items = WorkItemListOptions(state="open")
    return DashboardSummary(
        repositories=await count_repositories(session),
        events=await _count(session, Event, []),
        unprocessed_events=await _count(session, Event, [Event.processed.is_(False)]),
        commits=await _count(session, Commit, []),
        pull_requests=await _count(session, PullRequest, []),
        open_pull_requests=await count_pull_requests(session, open_items),
        issues=await _count(session, Issue, []),
        open_issues=await count_issues(session, open_items),
    )
