"""Unit tests for page/per-page pagination."""

from __future__ import annotations

import pytest

from crossbow.common.pagination import MAX_PER_PAGE, PageParams, Pagination


@pytest.mark.parametrize(
    ("params", "limit", "offset"),
    [
        (PageParams(), 20, 0),
        (PageParams(page=3, per_page=10), 10, 20),
        (PageParams(page=0, per_page=10), 10, 0),
        (PageParams(page=-4, per_page=0), 1, 0),
        (PageParams(page=2, per_page=5000), MAX_PER_PAGE, MAX_PER_PAGE),
    ],
)
def test_page_window(params: PageParams, limit: int, offset: int) -> None:
    """Pages are one-based and sizes are clamped."""
    assert (params.limit, params.offset) == (limit, offset), f"bad window for {params}"


def test_metadata_for_middle_page() -> None:
    """A middle page links both ways."""
    meta = Pagination.build(PageParams(page=2, per_page=10), total_items=25)
    assert meta.as_dict() == {
        "page": 2,
        "per_page": 10,
        "total_items": 25,
        "total_pages": 3,
        "has_next": True,
        "has_prev": True,
        "next_page": 3,
        "prev_page": 1,
    }


def test_metadata_for_empty_listing() -> None:
    """No rows means no pages and no links."""
    meta = Pagination.build(PageParams(), total_items=0)
    assert meta.total_pages == 0
    assert meta.next_page is None
    assert meta.prev_page is None


def test_last_page_has_no_next() -> None:
    """The final page does not link forward."""
    meta = Pagination.build(PageParams(page=3, per_page=10), total_items=30)
    assert meta.has_next is False
    assert meta.prev_page == 2
