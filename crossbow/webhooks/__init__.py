"""Webhook authentication, source adapters and ingestion."""

from __future__ import annotations

from .errors import (
    EventPersistError,
    InvalidPayloadError,
    MissingHeaderError,
    SignatureVerificationError,
)
from .ingestion import IngestedEvent, WebhookIngestionService
from .signature import compute_signature, verify_signature

__all__ = [
    "EventPersistError",
    "IngestedEvent",
    "InvalidPayloadError",
    "MissingHeaderError",
    "SignatureVerificationError",
    "WebhookIngestionService",
    "compute_signature",
    "verify_signature",
]
