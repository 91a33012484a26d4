"""JSON serialisation of events and domain entities for the read API."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from crossbow.domain.storage import Commit, Issue, PullRequest, Repository
    from crossbow.events.storage import Event


def _iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_event(event: Event, *, include_raw: bool = False) -> dict[str, typ.Any]:
    """Serialize an event; the raw payload is only included on request.

    Parameters
    ----------
    event
        Stored event row.
    include_raw
        Include ``raw_event``. Listings omit it to keep pages small.

    Returns
    -------
    dict[str, Any]
        JSON-serializable event fields.

    """
    data: dict[str, typ.Any] = {
        "id": event.id,
        "source": event.source,
        "event_type": event.event_type,
        "action": event.action,
        "actor_name": event.actor_name,
        "actor_email": event.actor_email,
        "actor_id": event.actor_id,
        "delivery_id": str(event.delivery_id),
        "signature": event.signature,
        "received_at": _iso(event.received_at),
        "processed": event.processed,
        "processed_at": _iso(event.processed_at),
        "repository_id": event.repository_id,
    }
    if include_raw:
        data["raw_event"] = event.raw_event
    return data


def serialize_repository(repository: Repository) -> dict[str, typ.Any]:
    """Serialize a repository row."""
    return {
        "id": repository.id,
        "github_id": repository.github_id,
        "name": repository.name,
        "full_name": repository.full_name,
        "owner": repository.owner,
        "description": repository.description,
        "url": repository.url,
        "is_private": repository.is_private,
        "created_at": _iso(repository.created_at),
        "updated_at": _iso(repository.updated_at),
    }


def serialize_commit(commit: Commit) -> dict[str, typ.Any]:
    """Serialize a commit row."""
    return {
        "id": commit.id,
        "sha": commit.sha,
        "repository_id": commit.repository_id,
        "webhook_event_id": commit.webhook_event_id,
        "message": commit.message,
        "author_name": commit.author_name,
        "author_email": commit.author_email,
        "committer_name": commit.committer_name,
        "committer_email": commit.committer_email,
        "committed_at": _iso(commit.committed_at),
        "url": commit.url,
    }


def serialize_pull_request(pr: PullRequest) -> dict[str, typ.Any]:
    """Serialize a pull request row."""
    return {
        "id": pr.id,
        "github_id": pr.github_id,
        "repository_id": pr.repository_id,
        "number": pr.number,
        "title": pr.title,
        "state": pr.state,
        "author": pr.author,
        "base_branch": pr.base_branch,
        "head_branch": pr.head_branch,
        "url": pr.url,
        "labels": list(pr.labels),
        "is_draft": pr.is_draft,
        "opened_at": _iso(pr.opened_at),
        "closed_at": _iso(pr.closed_at),
        "merged_at": _iso(pr.merged_at),
    }


def serialize_issue(issue: Issue) -> dict[str, typ.Any]:
    """Serialize an issue row."""
    return {
        "id": issue.id,
        "github_id": issue.github_id,
        "repository_id": issue.repository_id,
        "number": issue.number,
        "title": issue.title,
        "state": issue.state,
        "author": issue.author,
        "url": issue.url,
        "labels": list(issue.labels),
        "opened_at": _iso(issue.opened_at),
        "closed_at": _iso(issue.closed_at),
    }
