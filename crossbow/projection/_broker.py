"""Dramatiq broker selection for projection jobs.

Tests and local runs use an in-memory ``StubBroker``; other processes use
whatever broker Dramatiq resolves by default.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_broker_configured = False


def _is_running_tests() -> bool:
    """Return True when the process runs under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    """Return True when ``CROSSBOW_ALLOW_STUB_BROKER`` is truthy or under tests."""
    allow_stub = os.environ.get("CROSSBOW_ALLOW_STUB_BROKER", "")
    return allow_stub.lower() in {"1", "true", "yes"} or _is_running_tests()


def ensure_broker_configured() -> dramatiq.Broker:
    """Install a broker once and return the global broker.

    Thread-safe and idempotent. Test and local runs get an in-memory
    ``StubBroker``; otherwise Dramatiq's default broker is used.

    Raises
    ------
    RuntimeError
        If no broker can be created outside a test or stub-allowed context.

    """
    global _broker_configured

    if _broker_configured:
        return dramatiq.get_broker()

    with _BROKER_LOCK:
        if not _broker_configured:
            if _should_use_stub_broker():
                dramatiq.set_broker(StubBroker())
            else:
                try:
                    dramatiq.get_broker()
                except ImportError as exc:  # pragma: no cover - prod misconfiguration
                    message = (
                        "No Dramatiq broker available. "
                        "Set CROSSBOW_ALLOW_STUB_BROKER=1 for local runs "
                        "or install a broker backend."
                    )
                    raise RuntimeError(message) from exc
            _broker_configured = True

    return dramatiq.get_broker()
