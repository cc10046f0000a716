"""Bounded in-memory cache of OSRM route results."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Sequence

from ...models.domain import Coordinate, RoutingResult

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_PRECISION = 5


class RouteCache:
    """Insertion-ordered store keyed by the rounded coordinate sequence.

    Once ``capacity`` entries are held, inserting a new key evicts the entry
    that was inserted first. Overwriting an existing key keeps its position.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, precision: int = DEFAULT_PRECISION) -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1.")
        self.capacity = capacity
        self.precision = precision
        self._entries: OrderedDict[str, RoutingResult] = OrderedDict()
        self._lock = threading.Lock()

    def key(self, coordinates: Sequence[Coordinate]) -> str:
        """Build a stable key; jitter below ``precision`` decimals maps to the same key."""
        # + 0.0 folds -0.0 into 0.0 so both sides of zero format identically
        return ";".join(
            f"{round(lat, self.precision) + 0.0:.{self.precision}f},"
            f"{round(lon, self.precision) + 0.0:.{self.precision}f}"
            for lat, lon in coordinates
        )

    def get(self, key: str) -> RoutingResult | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, result: RoutingResult) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Route cache full ({self.capacity}); evicted {evicted}")
            self._entries[key] = result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
