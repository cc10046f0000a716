"""Process-wide pacing for outbound OSRM requests."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .errors import CancellationToken, RoutingCancelled

logger = logging.getLogger(__name__)


class RateLimiter:
    """Keeps successive grants at least ``min_interval_seconds`` apart.

    Each ``acquire`` reserves the next free slot under a lock, so callers are
    granted in the order they reached the limiter. The wait itself happens
    outside the lock. A cancelled wait gives up its slot without shifting the
    slots already handed to later callers.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be non-negative.")
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_granted: float | None = None

    @property
    def last_granted(self) -> float | None:
        return self._last_granted

    def _reserve(self) -> tuple[float, float | None]:
        with self._lock:
            previous = self._last_granted
            now = self._clock()
            if previous is None:
                slot = now
            else:
                slot = max(now, previous + self.min_interval_seconds)
            self._last_granted = slot
            return slot, previous

    def _release(self, slot: float, previous: float | None) -> None:
        # Only the newest reservation can be handed back; later slots stay put
        with self._lock:
            if self._last_granted == slot:
                self._last_granted = previous

    def acquire(self, cancel: CancellationToken | None = None) -> float:
        """Block until the caller may issue a request; return the granted timestamp."""
        if cancel is not None:
            cancel.raise_if_cancelled()

        slot, previous = self._reserve()
        remaining = slot - self._clock()
        if remaining <= 0:
            return slot

        logger.debug(f"Rate limiter waiting {remaining:.3f}s before next OSRM request")
        try:
            if self._sleep is None and cancel is not None:
                if cancel.wait(remaining):
                    raise RoutingCancelled("Cancelled while waiting for the OSRM rate limiter.")
            else:
                (self._sleep or time.sleep)(remaining)
                if cancel is not None:
                    cancel.raise_if_cancelled()
        except RoutingCancelled:
            self._release(slot, previous)
            raise
        return slot
