"""Page/per-page pagination shared by the read-only listing endpoints.

Example:
-------
Translate query parameters into a bounded SQL window::

    params = PageParams(page=3, per_page=50)
    rows = await list_repositories(session, limit=params.limit, offset=params.offset)
    meta = Pagination.build(params, total_items=await count_repositories(session))

"""

from __future__ import annotations

import dataclasses
import math

__all__ = [
    "DEFAULT_PAGE",
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "PageParams",
    "Pagination",
]

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclasses.dataclass(frozen=True, slots=True)
class PageParams:
    """Requested page window.

    Attributes
    ----------
    page
        One-based page number. Values below one are treated as the first page.
    per_page
        Requested page size, clamped to ``1..MAX_PER_PAGE`` by :attr:`limit`.

    """

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    @property
    def current_page(self) -> int:
        """Return the effective one-based page number."""
        return max(self.page, 1)

    @property
    def limit(self) -> int:
        """Return the bounded page size."""
        return min(max(self.per_page, 1), MAX_PER_PAGE)

    @property
    def offset(self) -> int:
        """Return the number of rows to skip."""
        return (self.current_page - 1) * self.limit


@dataclasses.dataclass(frozen=True, slots=True)
class Pagination:
    """Pagination metadata returned alongside a listing."""

    page: int
    per_page: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, params: PageParams, total_items: int) -> Pagination:
        """Compute metadata for ``params`` given the filtered row count."""
        page = params.current_page
        per_page = params.limit
        total_pages = math.ceil(total_items / per_page) if total_items else 0
        return cls(
            page=page,
            per_page=per_page,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    @property
    def next_page(self) -> int | None:
        """Return the following page number, if any."""
        return self.page + 1 if self.has_next else None

    @property
    def prev_page(self) -> int | None:
        """Return the preceding page number, if any."""
        return self.page - 1 if self.has_prev else None

    def as_dict(self) -> dict[str, int | bool | None]:
        """Return a JSON-compatible mapping."""
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
            "next_page": self.next_page,
            "prev_page": self.prev_page,
        }
