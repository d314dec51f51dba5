"""
Paginated query results.

``GenericRepository.paginate`` treats the page number it receives as a
row offset and clamps it with :func:`clamp_offset`:

    offset = min(page_number, (total_count // page_size) * page_size)

The ceiling is the start of the last *full* page, not of the last page.
With 25 rows and a page size of 10, any page number above 20 reads rows
20..24, and a request for offset 24 also starts at 20; the trailing
partial page is only reachable from an offset inside it.  When
``total_count`` is an exact multiple of ``page_size`` the ceiling points
one page past the data and the read returns no rows.  This is kept as-is
on purpose; see DESIGN.md, "Pagination clamp".

Examples:
    >>> clamp_offset(24, 10, 25)
    20
    >>> page = PaginatedResult.from_sequence(list(range(25)), 3, 10)
    >>> list(page), page.total_pages
    ([20, 21, 22, 23, 24], 3)
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from bulkspine.core.errors import ValidationError

T = TypeVar("T")


def _check_page_size(page_size: int) -> None:
    if page_size <= 0:
        raise ValidationError(
            f"page_size must be > 0, got {page_size}", field="page_size", value=page_size
        )


def total_pages(total_count: int, page_size: int) -> int:
    """``ceil(total_count / page_size)``."""
    _check_page_size(page_size)
    return math.ceil(total_count / page_size)


def clamp_offset(page_number: int, page_size: int, total_count: int) -> int:
    """Row offset for *page_number*, capped at the start of the last full page.

    Negative page numbers are treated as 0.
    """
    _check_page_size(page_size)
    return min(max(page_number, 0), (total_count // page_size) * page_size)


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    """One page of results plus the numbers needed to navigate."""

    items: tuple[T, ...]
    page_number: int
    page_size: int
    total_pages: int
    total_count: int

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]

    @property
    def previous_page(self) -> int:
        return max(self.page_number - 1, 1)

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @property
    def next_page(self) -> int:
        return min(self.page_number + 1, self.total_pages)

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @classmethod
    def empty(cls, page_size: int) -> PaginatedResult[T]:
        """Result for a query that matched nothing."""
        _check_page_size(page_size)
        return cls(items=(), page_number=0, page_size=page_size, total_pages=0, total_count=0)

    @classmethod
    def from_query(
        cls, items: Sequence[T], offset: int, page_size: int, count: int
    ) -> PaginatedResult[T]:
        """Wrap rows already fetched from the store.

        ``page_number`` is derived from *offset* the way the repository has
        always reported it: ``min(total_pages, max(offset, 1))``.
        """
        pages = total_pages(count, page_size)
        return cls(
            items=tuple(items),
            page_number=min(pages, max(offset, 1)),
            page_size=page_size,
            total_pages=pages,
            total_count=count,
        )

    @classmethod
    def from_sequence(
        cls, source: Sequence[T], page_number: int, page_size: int
    ) -> PaginatedResult[T]:
        """Paginate an in-memory sequence with a 1-based page number."""
        count = len(source)
        pages = total_pages(count, page_size)
        if pages == 0:
            return cls.empty(page_size)
        page = min(pages, max(page_number, 1))
        start = (page - 1) * page_size
        return cls(
            items=tuple(source[start : start + page_size]),
            page_number=page,
            page_size=page_size,
            total_pages=pages,
            total_count=count,
        )


__all__ = [
    "PaginatedResult",
    "clamp_offset",
    "total_pages",
]
