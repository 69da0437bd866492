"""
GalleryView: the composition root for one viewer's gallery state.

Data flows one way:
    item source -> items -> PageWindow slice -> NavigationCursor
    KeyInputRouter / SwipeGestureDetector -> cursor transitions

Decisions:
- Whenever the visible items change (page change or refreshed item list,
  compared by id), an open lightbox is closed. The cursor never points into a
  stale slice.
- Any exception from the item source ends the fetch in FAILED. The view is
  never left in LOADING.
- Fetches are fenced by a sequence number. A response arriving after a newer
  fetch has started is discarded instead of overwriting newer data.
- A successful fetch always restarts pagination at page 1.
"""

import logging
from collections import OrderedDict
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from core.config import ITEMS_PER_PAGE, MAX_GALLERY_VIEWS, SWIPE_THRESHOLD_PX
from core.keyboard import KeyEvent, KeyEventSource, KeyInputRouter
from core.models import ImageItem
from core.navigation import NavigationCursor
from core.observable import Observable
from core.pagination import PageWindow
from core.swipe import SwipeDirection, SwipeGestureDetector

logger = logging.getLogger(__name__)

ItemSource = Callable[[], Awaitable[Sequence[ImageItem]]]


class ItemSourceError(Exception):
    """The external item fetch failed. Surfaced as the FAILED state."""


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class GalleryView(Observable):
    def __init__(
        self,
        source: ItemSource,
        items_per_page: int = ITEMS_PER_PAGE,
        swipe_threshold: float = SWIPE_THRESHOLD_PX,
    ):
        super().__init__()
        self.source = source
        self.state = LoadState.IDLE
        self.error: Optional[str] = None
        self._items: tuple[ImageItem, ...] = ()
        self._visible: list[ImageItem] = []
        self._fetch_seq = 0

        self.pagination = PageWindow(items_per_page=items_per_page)
        self.cursor = NavigationCursor()
        self.keys = KeyEventSource()
        self.key_router = KeyInputRouter(self.cursor, self.keys)
        self.swipe_detector = SwipeGestureDetector(self.cursor, threshold=swipe_threshold)

        self._stop_pagination = self.pagination.subscribe(self._on_page_changed)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    @property
    def items(self) -> tuple[ImageItem, ...]:
        return self._items

    @property
    def visible_items(self) -> list[ImageItem]:
        return self._visible

    @property
    def current_item(self) -> Optional[ImageItem]:
        return self.cursor.current_item

    def replace_items(self, items: Sequence[ImageItem]) -> None:
        """Swap in a new item list and restart at page 1."""
        self._items = tuple(items)
        self.pagination.total_items = len(self._items)
        self.pagination.reset()
        self._rebuild_slice()

    async def refresh(self) -> bool:
        """
        Fetch the item list from the source.

        Returns:
            True if this fetch's result was applied; False if it failed or
            was superseded by a newer fetch.
        """
        self._fetch_seq += 1
        seq = self._fetch_seq
        self.state = LoadState.LOADING
        self.error = None
        self._notify()

        try:
            items = await self.source()
        except ItemSourceError as e:
            logger.warning(f"Gallery fetch #{seq} failed: {e}")
            return self._fail(seq, str(e))
        except Exception:
            # A broken source must still land in FAILED, or the view never refetches
            logger.exception(f"Gallery fetch #{seq} raised unexpectedly")
            return self._fail(seq, "")

        if seq != self._fetch_seq:
            logger.info(f"Discarding stale fetch #{seq}; fetch #{self._fetch_seq} is newer")
            return False

        self.replace_items(items)
        self.state = LoadState.READY
        logger.info(f"Gallery loaded {len(self._items)} images")
        self._notify()
        return True

    def _fail(self, seq: int, message: str) -> bool:
        if seq != self._fetch_seq:
            logger.info(f"Discarding failed fetch #{seq}; fetch #{self._fetch_seq} is newer")
            return False
        self.state = LoadState.FAILED
        self.error = message or "Failed to load images"
        self._notify()
        return False

    def _on_page_changed(self, _pagination: PageWindow) -> None:
        self._rebuild_slice()

    def _rebuild_slice(self) -> None:
        visible = self.pagination.slice(self._items)
        # Same ids in the same order: the cursor still points at the right image
        if [item.id for item in visible] != [item.id for item in self._visible]:
            self.cursor.close()
        self._visible = visible
        self.cursor.bind(visible)
        self._notify()

    # -------------------------------------------------------------------------
    # Lightbox
    # -------------------------------------------------------------------------

    def open(self, index: int) -> bool:
        """Open the lightbox on the visible slice. Out-of-range is ignored."""
        if not 0 <= index < len(self._visible):
            return False
        self.cursor.open(index)
        return True

    def select(self, item_id: str) -> bool:
        """Open the lightbox on the visible item with this id, if any."""
        for index, item in enumerate(self._visible):
            if item.id == item_id:
                return self.open(index)
        return False

    def close(self) -> None:
        self.cursor.close()

    def press_key(self, key: str) -> KeyEvent:
        """Deliver a key press. Only reaches the router while the lightbox is open."""
        return self.keys.dispatch(key)

    def swipe(self, start_x: Optional[float], end_x: Optional[float]) -> Optional[SwipeDirection]:
        """Replay one touch gesture. A missing start or end makes it a no-op."""
        if not self.cursor.is_active:
            return None
        if start_x is not None:
            self.swipe_detector.start(start_x)
        if end_x is not None:
            self.swipe_detector.move(end_x)
        return self.swipe_detector.end()

    def dispose(self) -> None:
        self.key_router.close()
        self._stop_pagination()


class GalleryViewRegistry:
    """
    Per-session GalleryViews, keyed by an opaque view id stored in the session.

    Least-recently-used views are evicted (and disposed) past ``max_views``.
    """

    def __init__(self, max_views: int = MAX_GALLERY_VIEWS):
        self.max_views = max_views
        self._views: OrderedDict[str, GalleryView] = OrderedDict()

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, view_id: str) -> bool:
        return view_id in self._views

    def get(self, view_id: str) -> Optional[GalleryView]:
        view = self._views.get(view_id)
        if view is not None:
            self._views.move_to_end(view_id)
        return view

    def get_or_create(self, view_id: str, source: ItemSource) -> GalleryView:
        """Return the session's view, pointing it at ``source`` for future fetches."""
        view = self.get(view_id)
        if view is None:
            view = GalleryView(source)
            self._views[view_id] = view
            while len(self._views) > self.max_views:
                _, evicted = self._views.popitem(last=False)
                evicted.dispose()
        else:
            view.source = source
        return view

    def discard(self, view_id: str) -> None:
        view = self._views.pop(view_id, None)
        if view is not None:
            view.dispose()
