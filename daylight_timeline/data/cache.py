"""Time-bounded caches for computed series and resolved timezones."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from .series import YearSeries, coordinate_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and when it was computed."""

    value: T
    computed_at: float


class TTLCache(Generic[T]):
    """
    Insertion-ordered cache with a time-to-live and a size bound.

    Entries older than the TTL are treated as misses. When the cache grows
    past capacity the oldest inserted entry is evicted; lookups do not
    refresh an entry's position.
    """

    def __init__(
        self,
        ttl_seconds: float,
        capacity: int,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Maximum entry age in seconds
            capacity: Maximum number of entries
            clock: Source of the current time in seconds
        """
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()

    def _is_valid(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.computed_at < self.ttl_seconds

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_valid(entry):
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry.value

    def put(self, key: str, value: T) -> None:
        """Store a value, replacing any existing entry for the key."""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(value=value, computed_at=self._clock())

        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {evicted}")

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class SeriesCache:
    """Year series cache keyed by rounded coordinates."""

    def __init__(
        self,
        ttl_seconds: float = 3600,
        capacity: int = 20,
        clock: Callable[[], float] = time.time,
    ):
        self._cache: TTLCache[YearSeries] = TTLCache(ttl_seconds, capacity, clock)

    def get(self, latitude: float, longitude: float) -> Optional[YearSeries]:
        return self._cache.get(coordinate_key(latitude, longitude))

    def put(self, latitude: float, longitude: float, series: YearSeries) -> None:
        self._cache.put(coordinate_key(latitude, longitude), series)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
