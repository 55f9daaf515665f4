"""In-memory TTL cache with stale reads.

Entries are never evicted: an expired entry stops being served by
``read_fresh`` but stays available through ``read_stale`` so callers can fall
back to the last known good payload while the upstream is failing.

Note: the cache is per process. Every method runs without awaiting, so on the
event loop no two operations interleave.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class CacheEntry:
    """Last successfully fetched payload for a key and when it was fetched."""

    data: Any
    timestamp: float

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_fresh(self, ttl: float, now: float) -> bool:
        """An entry is fresh while its age is strictly below the TTL."""
        return self.age(now) < ttl


class TtlCache:
    """Key/value store of upstream payloads with fresh and stale reads.

    Example:
        >>> cache = TtlCache()
        >>> cache.write("stats:poe1", {"result": []})
        >>> cache.read_fresh("stats:poe1", ttl=86400).data
        {'result': []}
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, CacheEntry] = {}

    def read_fresh(self, key: str, ttl: float) -> CacheEntry | None:
        """Return the entry for ``key`` only if it is younger than ``ttl``.

        A stale entry is reported as a miss; use ``read_stale`` to get it.
        """
        entry = self._data.get(key)
        if entry is None or not entry.is_fresh(ttl, self._clock()):
            return None
        return entry

    def read_stale(self, key: str) -> CacheEntry | None:
        """Return whatever entry exists for ``key``, regardless of age."""
        return self._data.get(key)

    def write(self, key: str, data: Any) -> CacheEntry:
        """Replace the entry for ``key`` with ``data`` stamped now."""
        entry = CacheEntry(data=data, timestamp=self._clock())
        self._data[key] = entry
        return entry

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
