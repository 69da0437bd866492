"""
Page window arithmetic for the gallery grid.

Maps (current page, page size, item count) to the slice of items shown and
the navigation flags for the pagination controls.

Policy: out-of-range page requests are clamped silently, never raised.
Pages are 1-indexed. An empty gallery has 0 pages but still sits on page 1.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from core.observable import Observable


@dataclass(frozen=True)
class PageBounds:
    start_index: int
    end_index: int
    total_pages: int
    can_go_previous: bool
    can_go_next: bool


def compute_total_pages(total_items: int, items_per_page: int) -> int:
    """ceil(total_items / items_per_page); 0 for an empty gallery."""
    if total_items <= 0:
        return 0
    return math.ceil(total_items / items_per_page)


def compute_page_bounds(current_page: int, items_per_page: int, total_items: int) -> PageBounds:
    """
    Compute the slice bounds and navigation flags for a page.

    end_index is exclusive and is NOT clamped to total_items; callers slice
    with it, which clamps naturally.
    """
    total_pages = compute_total_pages(total_items, items_per_page)
    start_index = (current_page - 1) * items_per_page
    return PageBounds(
        start_index=start_index,
        end_index=start_index + items_per_page,
        total_pages=total_pages,
        can_go_previous=current_page > 1,
        can_go_next=current_page < total_pages,
    )


class PageWindow(Observable):
    """
    Current-page state over a gallery of ``total_items`` items.

    Invariant: 1 <= current_page <= max(total_pages, 1).
    """

    def __init__(self, items_per_page: int = 20, total_items: int = 0):
        super().__init__()
        if items_per_page < 1:
            raise ValueError(f"items_per_page must be >= 1, got {items_per_page}")
        self.items_per_page = items_per_page
        self._total_items = max(0, total_items)
        self._current_page = 1

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_items(self) -> int:
        return self._total_items

    @total_items.setter
    def total_items(self, value: int) -> None:
        value = max(0, value)
        if value == self._total_items:
            return
        self._total_items = value
        # Shrinking the gallery may strand us past the last page
        self._current_page = self._clamp(self._current_page)
        self._notify()

    @property
    def total_pages(self) -> int:
        return compute_total_pages(self._total_items, self.items_per_page)

    def bounds(self) -> PageBounds:
        return compute_page_bounds(self._current_page, self.items_per_page, self._total_items)

    @property
    def start_index(self) -> int:
        return self.bounds().start_index

    @property
    def end_index(self) -> int:
        return self.bounds().end_index

    @property
    def can_go_previous(self) -> bool:
        return self._current_page > 1

    @property
    def can_go_next(self) -> bool:
        return self._current_page < self.total_pages

    def _clamp(self, page: int) -> int:
        return max(1, min(page, max(self.total_pages, 1)))

    def _set_page(self, page: int) -> None:
        page = self._clamp(page)
        if page != self._current_page:
            self._current_page = page
            self._notify()

    def go_to_page(self, page: int) -> None:
        self._set_page(page)

    def next_page(self) -> None:
        self._set_page(self._current_page + 1)

    def previous_page(self) -> None:
        self._set_page(self._current_page - 1)

    def reset(self) -> None:
        self._set_page(1)

    def slice(self, items: Sequence) -> list:
        """The visible slice of ``items`` for the current page."""
        bounds = self.bounds()
        return list(items[bounds.start_index:bounds.end_index])
