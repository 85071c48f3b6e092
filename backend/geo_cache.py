"""
GeoCache - Thread-safe TTL cache keyed by grid-quantized coordinates

Entries are checked for freshness when read. There is no background sweep:
a stale entry is simply treated as absent until a new value replaces it.

Key helpers:
- grid_key: coordinate snapped to a grid (raw API responses)
- point_hour_key: grid coordinate plus date and hour (processed samples)
- bbox_key: bounding box snapped outward to a grid (region queries)
"""

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar

from models import Coordinates

T = TypeVar('T')


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the time it was produced (seconds since epoch)"""
    value: T
    produced_at: float

    def is_fresh(self, now: float, ttl_s: float) -> bool:
        return now - self.produced_at < ttl_s


class GeoCache(Generic[T]):
    """
    Key -> value cache with a time-to-live.

    Args:
        ttl_s: Seconds an entry stays fresh
        clock: Returns the current time in seconds (time.time by default)
        max_entries: Optional size cap; least recently used entries go first
    """

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.time,
                 max_entries: Optional[int] = None):
        self.ttl_s = ttl_s
        self._clock = clock
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        """Return the value for key if present and still fresh, else None"""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(now, self.ttl_s):
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: str, value: T) -> None:
        """Store value under key, replacing whatever was there"""
        entry = CacheEntry(value=value, produced_at=self._clock())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def _grid_decimals(grid_deg: float) -> int:
    return max(0, math.ceil(-math.log10(grid_deg) - 1e-9))


def snap(value: float, grid_deg: float) -> float:
    """Round value to the nearest multiple of grid_deg"""
    return round(round(value / grid_deg) * grid_deg, _grid_decimals(grid_deg) + 2)


def grid_key(coordinate: Coordinates, grid_deg: float, *extra: Any) -> str:
    """Cache key for a coordinate snapped to grid_deg, with optional extra parts"""
    decimals = _grid_decimals(grid_deg)
    parts = [
        f"{snap(coordinate.lat, grid_deg):.{decimals}f}",
        f"{snap(coordinate.lng, grid_deg):.{decimals}f}",
    ]
    parts.extend(str(part) for part in extra)
    return ",".join(parts)


def hour_key(when: datetime) -> str:
    """Date and hour of a timestamp, e.g. 2024-06-01T14"""
    return when.strftime("%Y-%m-%dT%H")


def point_hour_key(coordinate: Coordinates, when: datetime, grid_deg: float) -> str:
    return grid_key(coordinate, grid_deg, hour_key(when))


def aligned_bbox(south: float, west: float, north: float, east: float,
                 grid_deg: float) -> Tuple[float, float, float, float]:
    """Expand a bounding box outward so every edge sits on the grid"""
    decimals = _grid_decimals(grid_deg) + 2
    return (
        round(math.floor(south / grid_deg + 1e-9) * grid_deg, decimals),
        round(math.floor(west / grid_deg + 1e-9) * grid_deg, decimals),
        round(math.ceil(north / grid_deg - 1e-9) * grid_deg, decimals),
        round(math.ceil(east / grid_deg - 1e-9) * grid_deg, decimals),
    )


def bbox_key(south: float, west: float, north: float, east: float, grid_deg: float) -> str:
    decimals = _grid_decimals(grid_deg)
    return ",".join(f"{edge:.{decimals}f}" for edge in aligned_bbox(south, west, north, east, grid_deg))
