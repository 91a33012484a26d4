"""HMAC-SHA256 webhook signature verification."""

from __future__ import annotations

import binascii
import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``sha256=<hex>`` signature GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    """Check ``signature`` against the HMAC-SHA256 of the raw request body.

    Parameters
    ----------
    secret
        Shared webhook secret.
    body
        Exact request body bytes, before any JSON parsing.
    signature
        Header value of the form ``sha256=<hex>``.

    Returns
    -------
    bool
        ``False`` for a missing prefix, malformed hex or a digest mismatch.
        The comparison is constant-time.

    """
    if not signature.startswith(SIGNATURE_PREFIX):
        return False
    try:
        provided = binascii.unhexlify(signature.removeprefix(SIGNATURE_PREFIX))
    except (binascii.Error, ValueError):
        return False

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return hmac.compare_digest(expected, provided)
