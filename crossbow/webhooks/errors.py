"""Errors raised while accepting a webhook delivery.

Each error maps to one HTTP status in :mod:`crossbow.api.errors`. None of
them leaves an event behind: they are all raised before or instead of the
single event insert.
"""

from __future__ import annotations

import enum


class MissingHeaderError(Exception):
    """A mandatory header is absent or malformed (HTTP 400)."""

    def __init__(self, header: str, *, malformed: bool = False) -> None:
        """Record which header failed."""
        self.header = header
        self.malformed = malformed
        problem = "Invalid" if malformed else "Missing"
        super().__init__(f"{problem} {header} header")


class InvalidPayloadError(Exception):
    """The request body is not valid JSON (HTTP 400)."""

    def __init__(self, detail: str) -> None:
        """Keep the decoder message for logs."""
        self.detail = detail
        super().__init__("Invalid JSON payload")


class SignatureFailure(enum.StrEnum):
    """Why signature verification rejected a delivery."""

    MISSING = "missing"
    INVALID = "invalid"


class SignatureVerificationError(Exception):
    """A signed source failed authentication (HTTP 401)."""

    def __init__(self, reason: SignatureFailure) -> None:
        """Record whether the signature was absent or wrong."""
        self.reason = reason
        super().__init__(f"{reason.value.capitalize()} signature")

    @classmethod
    def missing(cls) -> SignatureVerificationError:
        """Create an error for a delivery without a signature header."""
        return cls(SignatureFailure.MISSING)

    @classmethod
    def invalid(cls) -> SignatureVerificationError:
        """Create an error for a signature that does not match the body."""
        return cls(SignatureFailure.INVALID)


class EventPersistError(Exception):
    """The event could not be stored (HTTP 500); the sender should redeliver."""

    def __init__(self, source: str) -> None:
        """Record the source whose event was lost."""
        self.source = source
        super().__init__("Failed to store event")
