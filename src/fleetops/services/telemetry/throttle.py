"""Leading-edge throttle for position callbacks."""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class LeadingEdgeThrottle(Generic[T]):
    """Forward the first event of each window and drop the rest.

    Not a debounce: the first call after an idle period always fires
    immediately, and calls inside the window are discarded rather than
    deferred.
    """

    def __init__(
        self,
        interval_seconds: float,
        handler: Callable[[T], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Throttle interval must be positive.")
        self.interval_seconds = interval_seconds
        self.handler = handler
        self._clock = clock
        self._lock = threading.Lock()
        self._window_started: Optional[float] = None
        self.dropped = 0

    def __call__(self, event: T) -> bool:
        """Return True when the event was forwarded to the handler."""
        with self._lock:
            now = self._clock()
            if self._window_started is not None and now - self._window_started < self.interval_seconds:
                self.dropped += 1
                return False
            self._window_started = now
        self.handler(event)
        return True

    def reset(self) -> None:
        with self._lock:
            self._window_started = None
