"""Change notification shared by the gallery state components."""

from typing import Callable


class Observable:
    """Minimal observer list.

    Subclasses call ``_notify()`` after a state change. Callbacks receive the
    component that changed.
    """

    def __init__(self):
        self._observers: list[Callable] = []

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Register a callback and return a function that removes it."""
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        # Copy: callbacks may unsubscribe while we iterate
        for callback in list(self._observers):
            callback(self)
