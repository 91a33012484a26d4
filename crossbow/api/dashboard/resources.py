"""Read-only JSON views over events and the projected domain model.

These resources back the dashboard. They only read, and they share the
request-scoped session provided by
:class:`~crossbow.api.middleware.SQLAlchemySessionManager`.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from crossbow.api.errors import RepositoryNotFoundError
from crossbow.api.params import event_filter, optional_str, page_params
from crossbow.api.serializers import (
    serialize_commit,
    serialize_event,
    serialize_issue,
    serialize_pull_request,
    serialize_repository,
)
from crossbow.common.pagination import PageParams, Pagination
from crossbow.domain.queries import (
    CommitListOptions,
    WorkItemListOptions,
    count_commits,
    count_issues,
    count_pull_requests,
    count_repositories,
    dashboard_summary,
    get_repository,
    list_commits,
    list_issues,
    list_pull_requests,
    list_repositories,
)
from crossbow.events.errors import EventNotFoundError
from crossbow.events.filters import EventFilter
from crossbow.events.storage import Event
from crossbow.events.store import (
    count_events,
    distinct_actions,
    distinct_actor_names,
    distinct_event_types,
    distinct_sources,
    search_events,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = [
    "EventCollectionResource",
    "EventItemResource",
    "RepositoryCollectionResource",
    "RepositoryItemResource",
    "StatsResource",
]


def _session(req: Request) -> AsyncSession:
    return req.context.session


class _DashboardResource:
    """Base for resources reading through the request-scoped session."""

    uses_session: typ.ClassVar[bool] = True


async def _paged_events(
    session: AsyncSession, filters: EventFilter, params: PageParams
) -> dict[str, typ.Any]:
    events = await search_events(
        session, filters, limit=params.limit, offset=params.offset
    )
    total = await count_events(session, filters)
    return {
        "events": [serialize_event(event) for event in events],
        "pagination": Pagination.build(params, total).as_dict(),
    }


class EventCollectionResource(_DashboardResource):
    """``GET /events``: filtered, paginated event listing with filter options."""

    async def on_get(self, req: Request, resp: Response) -> None:
        """Handle GET /events.

        Parameters
        ----------
        req
            Falcon request; ``page``, ``per_page`` and the event filter
            fields are read from the query string.
        resp
            Falcon response receiving ``events``, ``pagination`` and
            ``filters``.

        """
        session = _session(req)
        filters = event_filter(req)
        body = await _paged_events(session, filters, page_params(req))
        body["filters"] = {
            "sources": await distinct_sources(session),
            "event_types": await distinct_event_types(session),
            "actions": await distinct_actions(session),
            "actor_names": await distinct_actor_names(session),
        }
        resp.media = body
        resp.status = HTTPStatus.OK


class EventItemResource(_DashboardResource):
    """``GET /events/{event_id}``: one event including its raw payload."""

    async def on_get(self, req: Request, resp: Response, *, event_id: int) -> None:
        """Handle GET /events/{event_id}."""
        event = await _session(req).get(Event, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        resp.media = serialize_event(event, include_raw=True)
        resp.status = HTTPStatus.OK


class RepositoryCollectionResource(_DashboardResource):
    """``GET /repositories``: repositories, most recently refreshed first."""

    async def on_get(self, req: Request, resp: Response) -> None:
        """Handle GET /repositories."""
        session = _session(req)
        params = page_params(req)
        repositories = await list_repositories(
            session, limit=params.limit, offset=params.offset
        )
        total = await count_repositories(session)
        resp.media = {
            "repositories": [serialize_repository(repo) for repo in repositories],
            "pagination": Pagination.build(params, total).as_dict(),
        }
        resp.status = HTTPStatus.OK


class RepositoryItemResource(_DashboardResource):
    """``GET /repositories/{repository_id}``: repository with recent activity.

    The first page of commits, pull requests, issues and events is embedded;
    ``state`` and ``author`` narrow the pull request and issue lists and
    ``author_email`` narrows the commits.
    """

    async def on_get(
        self, req: Request, resp: Response, *, repository_id: int
    ) -> None:
        """Handle GET /repositories/{repository_id}."""
        session = _session(req)
        repository = await get_repository(session, repository_id)
        if repository is None:
            raise RepositoryNotFoundError(repository_id)

        first_page = PageParams(per_page=page_params(req).per_page)
        commit_options = CommitListOptions(
            repository_id=repository_id,
            author_email=optional_str(req, "author_email"),
            limit=first_page.limit,
        )
        work_items = WorkItemListOptions(
            repository_id=repository_id,
            state=optional_str(req, "state"),
            author=optional_str(req, "author"),
            limit=first_page.limit,
        )

        commits = await list_commits(session, commit_options)
        pull_requests = await list_pull_requests(session, work_items)
        issues = await list_issues(session, work_items)
        resp.media = {
            "repository": serialize_repository(repository),
            "commits": {
                "items": [serialize_commit(commit) for commit in commits],
                "total": await count_commits(session, commit_options),
            },
            "pull_requests": {
                "items": [serialize_pull_request(pr) for pr in pull_requests],
                "total": await count_pull_requests(session, work_items),
            },
            "issues": {
                "items": [serialize_issue(issue) for issue in issues],
                "total": await count_issues(session, work_items),
            },
            "events": await _paged_events(
                session, EventFilter(repository_id=repository_id), first_page
            ),
        }
        resp.status = HTTPStatus.OK


class StatsResource(_DashboardResource):
    """``GET /stats``: aggregate counts for the overview page."""

    async def on_get(self, req: Request, resp: Response) -> None:
        """Handle GET /stats."""
        summary = await dashboard_summary(_session(req))
        resp.media = summary.as_dict()
        resp.status = HTTPStatus.OK
