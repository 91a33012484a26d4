"""Project stored webhook events into the domain model.

Projections are registered per ``(source, event_type)``. Projecting an event
runs every upsert plus the processed-flag update in one transaction: either
the event is marked processed with all of its entities, or nothing is
written and the event stays unprocessed.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crossbow.common.time import parse_iso_datetime
from crossbow.events.storage import Event
from crossbow.events.store import mark_event_processed
from crossbow.projection.errors import ProjectionError
from crossbow.projection.observability import ProjectionEventLogger
from crossbow.projection.payloads import (
    GithubIssuePayload,
    GithubPullRequestPayload,
    GithubPushPayload,
    GithubRepositoryPayload,
    decode_payload,
)
from crossbow.projection.upserts import (
    CommitRecord,
    IssueRecord,
    PullRequestRecord,
    RepositoryRecord,
    upsert_commit,
    upsert_issue,
    upsert_pull_request,
    upsert_repository,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import async_sessionmaker


@dc.dataclass(frozen=True, slots=True)
class ProjectedEntities:
    """What a single projection wrote."""

    repository_id: int | None
    entities: int


@dc.dataclass(frozen=True, slots=True)
class ProjectionResult:
    """Outcome of projecting one event."""

    event_id: int
    source: str
    event_type: str
    projected: bool
    repository_id: int | None = None
    entities: int = 0


Projection = typ.Callable[[AsyncSession, Event], typ.Awaitable[ProjectedEntities]]
_registry: dict[tuple[str, str], Projection] = {}


def register(
    source: str, event_type: str
) -> typ.Callable[[Projection], Projection]:
    """Register a projection for ``(source, event_type)``."""

    def _inner(func: Projection) -> Projection:
        _registry[(source, event_type)] = func
        return func

    return _inner


def get_projection(source: str, event_type: str) -> Projection | None:
    """Return the projection registered for the pair, if any."""
    return _registry.get((source, event_type))


def _required_timestamp(value: str, field_name: str) -> dt.datetime:
    try:
        return parse_iso_datetime(value)
    except ValueError as exc:
        raise ProjectionError.invalid_timestamp(field_name) from exc


def _optional_text(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _optional_timestamp(value: object) -> dt.datetime | None:
    """Parse ``value``; non-strings and unparseable input are absent."""
    if not isinstance(value, str):
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        return None


def _label_names(labels: object) -> list[str]:
    if not isinstance(labels, list):
        return []
    return [
        label["name"]
        for label in labels
        if isinstance(label, dict) and isinstance(label.get("name"), str)
    ]


def _repository_record(payload: GithubRepositoryPayload) -> RepositoryRecord:
    return RepositoryRecord(
        github_id=payload.id,
        name=payload.name,
        full_name=payload.full_name,
        owner=payload.owner.login,
        url=payload.html_url,
        description=_optional_text(payload.description),
        is_private=payload.private is True,
    )


@register("github", "push")
async def project_github_push(session: AsyncSession, event: Event) -> ProjectedEntities:
    """Upsert the pushed repository and every commit in the push."""
    payload = decode_payload(event.raw_event, GithubPushPayload)
    commits = [
        CommitRecord(
            sha=entry.id,
            message=entry.message,
            author_name=entry.author.name,
            author_email=entry.author.email,
            committer_name=entry.committer.name,
            committer_email=entry.committer.email,
            committed_at=_required_timestamp(entry.timestamp, "commits[].timestamp"),
            url=entry.url,
        )
        for entry in payload.commits
    ]
    repository_id = await upsert_repository(
        session, _repository_record(payload.repository)
    )
    for record in commits:
        await upsert_commit(
            session, record, repository_id=repository_id, webhook_event_id=event.id
        )
    return ProjectedEntities(repository_id=repository_id, entities=1 + len(commits))


@register("github", "pull_request")
async def project_github_pull_request(
    session: AsyncSession, event: Event
) -> ProjectedEntities:
    """Upsert the repository and the pull request it carries."""
    payload = decode_payload(event.raw_event, GithubPullRequestPayload)
    pr = payload.pull_request
    record = PullRequestRecord(
        github_id=pr.id,
        number=pr.number,
        title=pr.title,
        state=pr.state,
        author=pr.user.login,
        base_branch=pr.base.ref,
        head_branch=pr.head.ref,
        url=pr.html_url,
        opened_at=_required_timestamp(pr.created_at, "pull_request.created_at"),
        closed_at=_optional_timestamp(pr.closed_at),
        merged_at=_optional_timestamp(pr.merged_at),
        labels=_label_names(pr.labels),
        is_draft=pr.draft is True,
    )
    repository_id = await upsert_repository(
        session, _repository_record(payload.repository)
    )
    await upsert_pull_request(
        session, record, repository_id=repository_id, webhook_event_id=event.id
    )
    return ProjectedEntities(repository_id=repository_id, entities=2)


@register("github", "issues")
async def project_github_issue(
    session: AsyncSession, event: Event
) -> ProjectedEntities:
    """Upsert the repository and the issue it carries."""
    payload = decode_payload(event.raw_event, GithubIssuePayload)
    issue = payload.issue
    record = IssueRecord(
        github_id=issue.id,
        number=issue.number,
        title=issue.title,
        state=issue.state,
        author=issue.user.login,
        url=issue.html_url,
        opened_at=_required_timestamp(issue.created_at, "issue.created_at"),
        closed_at=_optional_timestamp(issue.closed_at),
        labels=_label_names(issue.labels),
    )
    repository_id = await upsert_repository(
        session, _repository_record(payload.repository)
    )
    await upsert_issue(
        session, record, repository_id=repository_id, webhook_event_id=event.id
    )
    return ProjectedEntities(repository_id=repository_id, entities=2)


class EventProjector:
    """Apply registered projections to stored events."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        event_logger: ProjectionEventLogger | None = None,
    ) -> None:
        """Store the session factory and the structured event logger."""
        self._session_factory = session_factory
        self._events = event_logger or ProjectionEventLogger()

    async def project(self, event_id: int) -> ProjectionResult:
        """Project one event and mark it processed, atomically.

        Parameters
        ----------
        event_id
            Identifier of a stored event.

        Returns
        -------
        ProjectionResult
            What was written. ``projected`` is false when no projection is
            registered for the event; the event is still marked processed.

        Raises
        ------
        ProjectionError
            When the event is missing, its payload lacks a required field, a
            required timestamp cannot be parsed, or an entity write fails.
            Nothing is committed in that case.

        """
        async with self._session_factory() as session, session.begin():
            event = await session.get(Event, event_id)
            if event is None:
                raise ProjectionError.event_not_found(event_id)

            projection = get_projection(event.source, event.event_type)
            if projection is None:
                await mark_event_processed(session, event_id)
                return ProjectionResult(
                    event_id=event_id,
                    source=event.source,
                    event_type=event.event_type,
                    projected=False,
                )

            try:
                written = await projection(session, event)
            except ProjectionError:
                raise
            except Exception as exc:
                raise ProjectionError.entity_projection_failed(exc) from exc

            await mark_event_processed(
                session, event_id, repository_id=written.repository_id
            )
            return ProjectionResult(
                event_id=event_id,
                source=event.source,
                event_type=event.event_type,
                projected=True,
                repository_id=written.repository_id,
                entities=written.entities,
            )

    async def run(self, event_id: int) -> ProjectionResult | None:
        """Project ``event_id`` and log the outcome instead of raising.

        Returns ``None`` when projection failed; the event stays unprocessed.
        """
        try:
            result = await self.project(event_id)
        except Exception as exc:  # noqa: BLE001
            self._events.log_failed(event_id=event_id, error=exc)
            return None

        if result.projected:
            self._events.log_completed(
                event_id=event_id,
                event_type=result.event_type,
                repository_id=result.repository_id,
                entities=result.entities,
            )
        else:
            self._events.log_skipped(
                event_id=event_id, source=result.source, event_type=result.event_type
            )
        return result

    async def project_pending(self, limit: int | None = None) -> list[int]:
        """Project unprocessed events in id order, one transaction each.

        Returns the ids that were projected; failures are logged and skipped.
        """
        stmt = select(Event.id).where(Event.processed.is_(False)).order_by(Event.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            pending = list((await session.scalars(stmt)).all())

        processed: list[int] = []
        for event_id in pending:
            if await self.run(event_id) is not None:
                processed.append(event_id)
        return processed
