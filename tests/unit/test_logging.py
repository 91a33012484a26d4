"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from crossbow import logging as crossbow_logging
from crossbow.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)
from tests.helpers.logs import LoggedCall, RecordingLogger


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("warning", ("WARNING", False)),
        (" debug ", ("DEBUG", False)),
        ("TRACE", ("TRACE", False)),
        (None, ("INFO", True)),
        ("", ("INFO", True)),
        ("verbose", ("INFO", True)),
    ],
)
def test_normalize_log_level(raw: str | None, expected: tuple[str, bool]) -> None:
    """Known levels are upper-cased; anything else falls back to INFO."""
    assert normalize_log_level(raw) == expected, f"unexpected result for {raw!r}"


def test_format_log_message_without_args_keeps_percent_signs() -> None:
    """Templates without arguments are returned verbatim."""
    assert format_log_message("100% done") == "100% done"


def test_format_log_message_interpolates() -> None:
    """Arguments are interpolated percent-style."""
    assert format_log_message("event #%d from %s", 7, "github") == (
        "event #7 from github"
    )


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_emit_formatted_messages(
    helper: object, level: str
) -> None:
    """Each helper formats the template and tags the level."""
    logger = RecordingLogger()
    helper(logger, "stored %s", "event")  # type: ignore[operator]
    assert logger.records == [LoggedCall(level, "stored event")]


def test_exc_info_is_forwarded() -> None:
    """exc_info reaches the logger unchanged."""
    logger = RecordingLogger()
    exc = ValueError("boom")
    log_warning(logger, "lookup failed: %s", exc, exc_info=exc)
    assert logger.records == [LoggedCall("WARNING", "lookup failed: boom", exc)]


def test_log_exception_logs_at_error() -> None:
    """log_exception attaches the exception without formatting."""
    logger = RecordingLogger()
    exc = RuntimeError("boom")
    log_exception(logger, "failed 100%", exc)
    assert logger.records == [LoggedCall("ERROR", "failed 100%", exc)]


def test_configure_logging_applies_normalised_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """configure_logging passes the normalised level to basicConfig."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(crossbow_logging, "basicConfig", fake_basic_config)

    assert configure_logging("nope") == ("INFO", True)
    assert captured == {"level": "INFO", "force": False}

    assert configure_logging("error", force=True) == ("ERROR", False)
    assert captured == {"level": "ERROR", "force": True}
