"""
Horizontal swipe detection for touch navigation in the lightbox.

A gesture is a (start_x, end_x) pair in pointer coordinates (pixels). Only
one gesture is tracked at a time; samples are cleared when it ends.

Swiping right (positive delta) goes to the previous image, swiping left goes
to the next one, matching how photo viewers behave on phones.
"""

from enum import Enum
from typing import Optional

from core.config import SWIPE_THRESHOLD_PX


class SwipeDirection(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"


class SwipeGestureDetector:
    def __init__(self, target, threshold: float = SWIPE_THRESHOLD_PX):
        """
        Args:
            target: Object with next(), previous(), can_go_next and
                can_go_previous (normally a NavigationCursor)
            threshold: Minimum |delta| in pixels, exclusive
        """
        self.target = target
        self.threshold = threshold
        self.start_x: Optional[float] = None
        self.end_x: Optional[float] = None

    def start(self, x: float) -> None:
        self.start_x = x
        self.end_x = None

    def move(self, x: float) -> None:
        self.end_x = x

    def end(self) -> Optional[SwipeDirection]:
        """Finish the gesture and emit at most one navigation call."""
        start_x, end_x = self.start_x, self.end_x
        self.start_x = None
        self.end_x = None

        if start_x is None or end_x is None:
            return None

        delta = end_x - start_x
        if abs(delta) <= self.threshold:
            return None

        if delta > 0 and self.target.can_go_previous:
            self.target.previous()
            return SwipeDirection.PREVIOUS
        if delta < 0 and self.target.can_go_next:
            self.target.next()
            return SwipeDirection.NEXT
        return None
