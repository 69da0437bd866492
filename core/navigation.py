"""
Lightbox cursor: which item of the visible slice is being viewed.

The cursor is bound to an ordered sequence (the current page's slice). Range
checking on open() is the caller's responsibility; GalleryView guards it.
"""

from typing import Any, Sequence

from core.observable import Observable


class NavigationCursor(Observable):
    def __init__(self, items: Sequence = ()):
        super().__init__()
        self._items: Sequence = tuple(items)
        self.is_active = False
        # Only meaningful while active; left as-is after close()
        self.current_index = 0

    def bind(self, items: Sequence) -> None:
        """Point the cursor at a new sequence. Does not change is_active."""
        self._items = tuple(items)

    @property
    def length(self) -> int:
        return len(self._items)

    @property
    def can_go_next(self) -> bool:
        return self.current_index < self.length - 1

    @property
    def can_go_previous(self) -> bool:
        return self.current_index > 0

    @property
    def current_item(self) -> Any:
        if not self.is_active:
            return None
        return self._items[self.current_index]

    def open(self, index: int) -> None:
        self.current_index = index
        self.is_active = True
        self._notify()

    def close(self) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self._notify()

    def next(self) -> None:
        if self.can_go_next:
            self.current_index += 1
            self._notify()

    def previous(self) -> None:
        if self.can_go_previous:
            self.current_index -= 1
            self._notify()
