"""
Keyboard routing for the lightbox.

Two states:
- IDLE: cursor inactive, no subscription on the key source
- LISTENING: cursor active, one subscription on the key source

The subscription is acquired when the cursor opens and released when it
closes or when the router itself is closed, on every exit path. While IDLE
the router holds nothing, so key presses cannot reach it at all.

Bindings (exact, case-sensitive):
- Escape     -> close()
- ArrowRight -> next()      only if can_go_next
- ArrowLeft  -> previous()  only if can_go_previous

Handled keys always suppress the default action, even when the precondition
fails. Any other key is left alone.
"""

import logging
from enum import Enum
from typing import Callable

from core.navigation import NavigationCursor

logger = logging.getLogger(__name__)

HANDLED_KEYS = ("Escape", "ArrowLeft", "ArrowRight")


class KeyEvent:
    def __init__(self, key: str):
        self.key = key
        self.default_prevented = False

    def prevent_default(self) -> None:
        self.default_prevented = True


class KeyEventSource:
    """Stream of key presses; handlers are only reachable while subscribed."""

    def __init__(self):
        self._handlers: list[Callable[[KeyEvent], None]] = []

    @property
    def listener_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: Callable[[KeyEvent], None]) -> Callable[[], None]:
        self._handlers.append(handler)

        def release():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return release

    def dispatch(self, key: str) -> KeyEvent:
        event = KeyEvent(key)
        for handler in list(self._handlers):
            handler(event)
        return event


class RouterState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class KeyInputRouter:
    def __init__(self, cursor: NavigationCursor, source: KeyEventSource):
        self._cursor = cursor
        self._source = source
        self._release = None
        self._stop_observing = cursor.subscribe(self._on_cursor_change)
        self._on_cursor_change(cursor)

    @property
    def state(self) -> RouterState:
        return RouterState.LISTENING if self._release is not None else RouterState.IDLE

    def _on_cursor_change(self, cursor: NavigationCursor) -> None:
        if cursor.is_active and self._release is None:
            self._release = self._source.subscribe(self._handle_key)
            logger.debug("Lightbox key listener acquired")
        elif not cursor.is_active:
            self._release_listener()

    def _release_listener(self) -> None:
        if self._release is not None:
            self._release()
            self._release = None
            logger.debug("Lightbox key listener released")

    def _handle_key(self, event: KeyEvent) -> None:
        cursor = self._cursor
        if event.key == "Escape":
            event.prevent_default()
            cursor.close()
        elif event.key == "ArrowRight":
            event.prevent_default()
            if cursor.can_go_next:
                cursor.next()
        elif event.key == "ArrowLeft":
            event.prevent_default()
            if cursor.can_go_previous:
                cursor.previous()

    def close(self) -> None:
        """Tear down: release the key subscription and stop observing the cursor."""
        self._release_listener()
        if self._stop_observing is not None:
            self._stop_observing()
            self._stop_observing = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
