"""Domain exceptions and Falcon error handlers for the API layer.

Every handler answers with a ``{"title", "description"}`` JSON body.

Usage
-----
Register all handlers on the Falcon app::

    from crossbow.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from crossbow.events.errors import EventNotFoundError
from crossbow.webhooks.errors import (
    EventPersistError,
    InvalidPayloadError,
    MissingHeaderError,
    SignatureVerificationError,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from falcon.asgi import Request, Response

__all__ = [
    "InvalidInputError",
    "RepositoryNotFoundError",
    "register_error_handlers",
]


class RepositoryNotFoundError(Exception):
    """Raised when a repository id does not match a projected row.

    Attributes
    ----------
    repository_id
        The requested surrogate id.

    """

    def __init__(self, repository_id: int) -> None:
        """Initialize with the missing repository id."""
        self.repository_id = repository_id
        super().__init__(f"No repository with id {repository_id} exists.")


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Use this instead of ``ValueError`` so that only *intentional*
    validation failures are surfaced to the caller, while genuine
    programmer mistakes still propagate as unhandled 500s.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def _error_body(title: str, description: str) -> dict[str, str]:
    return {"title": title, "description": description}


async def handle_repository_not_found(
    _req: Request,
    resp: Response,
    ex: RepositoryNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RepositoryNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = _error_body("Repository not found", str(ex))


async def handle_event_not_found(
    _req: Request,
    resp: Response,
    ex: EventNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``EventNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = _error_body("Event not found", str(ex))


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The validation exception containing reason and optional field.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_400
    media: dict[str, str] = _error_body("Invalid input", ex.reason)
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_missing_header(
    _req: Request,
    resp: Response,
    ex: MissingHeaderError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``MissingHeaderError`` to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = _error_body("Bad request", str(ex))


async def handle_invalid_payload(
    _req: Request,
    resp: Response,
    ex: InvalidPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidPayloadError`` to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = _error_body("Bad request", str(ex))


async def handle_signature_verification(
    _req: Request,
    resp: Response,
    ex: SignatureVerificationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SignatureVerificationError`` to HTTP 401.

    The body carries ``reason`` (``missing`` or ``invalid``) for senders
    debugging their webhook configuration.
    """
    resp.status = falcon.HTTP_401
    resp.media = _error_body("Unauthorized", str(ex)) | {"reason": str(ex.reason)}


async def handle_event_persist(
    _req: Request,
    resp: Response,
    ex: EventPersistError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``EventPersistError`` to HTTP 500 so the sender redelivers."""
    resp.status = falcon.HTTP_500
    resp.media = _error_body("Internal server error", str(ex))


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Attach every domain error handler to ``app``."""
    app.add_error_handler(RepositoryNotFoundError, handle_repository_not_found)
    app.add_error_handler(EventNotFoundError, handle_event_not_found)
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(MissingHeaderError, handle_missing_header)
    app.add_error_handler(InvalidPayloadError, handle_invalid_payload)
    app.add_error_handler(SignatureVerificationError, handle_signature_verification)
    app.add_error_handler(EventPersistError, handle_event_persist)
