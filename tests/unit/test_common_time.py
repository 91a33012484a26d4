"""Unit tests for timestamp helpers."""

from __future__ import annotations

import datetime as dt

import pytest

from crossbow.common.time import parse_iso_datetime, utcnow


def test_utcnow_is_aware() -> None:
    """utcnow carries UTC tzinfo."""
    assert utcnow().tzinfo is dt.UTC


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-07-06T11:25:00Z", dt.datetime(2024, 7, 6, 11, 25, tzinfo=dt.UTC)),
        (
            "2024-07-06T13:25:00+02:00",
            dt.datetime(2024, 7, 6, 11, 25, tzinfo=dt.UTC),
        ),
    ],
)
def test_parse_normalises_to_utc(raw: str, expected: dt.datetime) -> None:
    """Offsets are converted to UTC."""
    parsed = parse_iso_datetime(raw)
    assert parsed == expected
    assert parsed.tzinfo is dt.UTC


@pytest.mark.parametrize("raw", ["2024-07-06T11:25:00", "yesterday", ""])
def test_parse_rejects_naive_or_garbage(raw: str) -> None:
    """Naive and unparseable timestamps raise ValueError."""
    with pytest.raises(ValueError, match=r".+"):
        parse_iso_datetime(raw)
