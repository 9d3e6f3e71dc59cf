from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .distance import as_latlon
from .models import RouteSegment

LatLon = Tuple[float, float]
CacheKey = Tuple[str, str]


@dataclass(frozen=True)
class RouteCacheEntry:
    key: CacheKey
    segment: RouteSegment
    inserted_at: float


def cache_key(start, end, precision: int = 5) -> CacheKey:
    """
    Round both ends so GPS jitter below ~1 m maps to the same entry.
    Formatted strings keep the key stable across float representations.
    """
    start_lat, start_lon = as_latlon(start)
    end_lat, end_lon = as_latlon(end)
    return (
        f"{start_lat:.{precision}f},{start_lon:.{precision}f}",
        f"{end_lat:.{precision}f},{end_lon:.{precision}f}",
    )


class RouteCache:
    """
    Bounded, time-windowed memo of resolved segments.

    - capacity: on overflow the oldest inserted entry is evicted
    - ttl_s: entries older than this are treated as missing; checked lazily
      in get(), there is no background sweep
    - clock: injectable so tests can age entries deterministically

    Safe to share between threads. Two concurrent misses for the same key
    may both compute; the later put simply replaces the earlier one.
    """

    def __init__(self,
                 capacity: int = 100,
                 ttl_s: float = 30 * 60,
                 precision: int = 5,
                 clock: Callable[[], float] = time.monotonic):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.capacity = capacity
        self.ttl_s = ttl_s
        self.precision = precision
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, RouteCacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def key_for(self, start, end) -> CacheKey:
        return cache_key(start, end, self.precision)

    def get(self, start, end) -> Optional[RouteSegment]:
        key = self.key_for(start, end)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at >= self.ttl_s:
                # stale: drop it so the caller recomputes
                del self._entries[key]
                return None
            return entry.segment

    def put(self, start, end, segment: RouteSegment) -> None:
        key = self.key_for(start, end)
        with self._lock:
            # re-insert counts as a fresh insertion (moves to the young end)
            self._entries.pop(key, None)
            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
            self._entries[key] = RouteCacheEntry(key=key, segment=segment, inserted_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries
