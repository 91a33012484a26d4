"""Typed views over the GitHub webhook payloads that drive projection.

Only the fields the projector reads are declared; msgspec ignores the rest.
Required fields are typed strictly. Optional fields accept any JSON value;
the projector keeps them only when they have the expected type, so a
malformed optional value degrades to absent rather than rejecting the event.
"""

from __future__ import annotations

import typing as typ

import msgspec

from crossbow.projection.errors import ProjectionError


class GithubAccount(msgspec.Struct, frozen=True):
    """Account reference carrying a login."""

    login: str


class GithubRepositoryPayload(msgspec.Struct, frozen=True):
    """Repository block shared by push, pull request and issue events."""

    id: int
    name: str
    full_name: str
    owner: GithubAccount
    html_url: str
    description: typ.Any = None
    private: typ.Any = None


class GithubCommitIdentity(msgspec.Struct, frozen=True):
    """Author or committer identity attached to a pushed commit."""

    name: str
    email: str


class GithubPushCommit(msgspec.Struct, frozen=True):
    """One entry of a push event's ``commits`` array."""

    id: str
    message: str
    author: GithubCommitIdentity
    committer: GithubCommitIdentity
    timestamp: str
    url: str


class GithubPushPayload(msgspec.Struct, frozen=True):
    """Push event body."""

    repository: GithubRepositoryPayload
    commits: list[GithubPushCommit]


class GithubBranchRef(msgspec.Struct, frozen=True):
    """Pull request ``base`` or ``head`` reference."""

    ref: str


class GithubPullRequest(msgspec.Struct, frozen=True):
    """The ``pull_request`` object of a pull request event."""

    id: int
    number: int
    title: str
    state: str
    user: GithubAccount
    base: GithubBranchRef
    head: GithubBranchRef
    html_url: str
    created_at: str
    closed_at: typ.Any = None
    merged_at: typ.Any = None
    labels: typ.Any = None
    draft: typ.Any = None


class GithubPullRequestPayload(msgspec.Struct, frozen=True):
    """Pull request event body."""

    repository: GithubRepositoryPayload
    pull_request: GithubPullRequest


class GithubIssue(msgspec.Struct, frozen=True):
    """The ``issue`` object of an issues event."""

    id: int
    number: int
    title: str
    state: str
    user: GithubAccount
    html_url: str
    created_at: str
    closed_at: typ.Any = None
    labels: typ.Any = None


class GithubIssuePayload(msgspec.Struct, frozen=True):
    """Issues event body."""

    repository: GithubRepositoryPayload
    issue: GithubIssue


PayloadT = typ.TypeVar("PayloadT", bound=msgspec.Struct)


def decode_payload(
    payload: typ.Any, model: type[PayloadT]  # noqa: ANN401
) -> PayloadT:
    """Convert a stored raw payload into ``model``.

    Raises
    ------
    ProjectionError
        With reason ``missing_field`` when a required field is absent or has
        the wrong JSON type.

    """
    try:
        return msgspec.convert(payload, type=model)
    except msgspec.ValidationError as exc:
        raise ProjectionError.missing_field(str(exc)) from exc
