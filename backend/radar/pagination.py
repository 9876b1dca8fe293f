"""
Pagination over any ordered list.

Page numbers are 1-based and clamped into range, so a stale page number
never produces an error or an out-of-bounds slice.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Sequence, Tuple, TypeVar

from .filters import HistoryQuery, apply_query

T = TypeVar('T')


def total_pages(total_items: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(total_items / page_size)


@dataclass(frozen=True)
class PageWindow(Generic[T]):
    """One page of results plus the range shown to the user."""
    items: Tuple[T, ...]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    start_index: int    # 1-based, as displayed
    end_index: int      # inclusive, as displayed

    @property
    def show_controls(self) -> bool:
        """Controls are only rendered when there is more than one page."""
        return self.total_pages > 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def clamp_page(page_number: int, pages: int) -> int:
    return min(max(page_number, 1), max(pages, 1))


def paginate(items: Sequence[T], page_size: int, page_number: int) -> PageWindow[T]:
    """
    Slice `items` into the window for `page_number`.

    Example: 45 items, page_size=10, page 5 shows 41..45.
    """
    total = len(items)
    pages = total_pages(total, page_size)
    page = clamp_page(page_number, pages)

    offset = (page - 1) * page_size
    return PageWindow(
        items=tuple(items[offset:offset + page_size]),
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=pages,
        start_index=min(offset + 1, total),
        end_index=min(page * page_size, total),
    )


@dataclass
class BrowseState:
    """
    Filter + page cursor for a list view.

    Any filter change sends the cursor back to page 1.
    """
    query: HistoryQuery = field(default_factory=HistoryQuery)
    page: int = 1
    page_size: int = 10

    def update_query(self, query: HistoryQuery) -> None:
        if query != self.query:
            self.query = query
            self.page = 1

    def window(self, records: Sequence[Any]) -> PageWindow:
        result = paginate(apply_query(records, self.query), self.page_size, self.page)
        self.page = result.page
        return result
