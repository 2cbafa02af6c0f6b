"""In-memory query cache keyed by ``(endpoint, *params)`` tuples.

An entry is *fresh* for ``stale_time`` seconds after it was stored and is
evicted by ``gc()`` once it has gone unused for its ``gc_time``.
"""

import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

QueryKey = tuple[Hashable, ...]

# Default time-to-evict in seconds for unused entries
DEFAULT_GC_TIME = 5 * 60


@dataclass(slots=True)
class CacheEntry:
    data: Any
    stored_at: float
    last_used_at: float
    gc_time: float


class QueryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def get(self, key: QueryKey, default: Any = None) -> Any:
        """Return cached data regardless of staleness, else ``default``."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        entry.last_used_at = self._clock()
        return entry.data

    def get_fresh(self, key: QueryKey, stale_time: float, default: Any = None) -> Any:
        """Return cached data only while it is younger than ``stale_time``.

        Pass a sentinel ``default`` to tell a miss apart from cached ``None``.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        now = self._clock()
        if now - entry.stored_at >= stale_time:
            return default
        entry.last_used_at = now
        return entry.data

    def put(self, key: QueryKey, data: Any, gc_time: float = DEFAULT_GC_TIME) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(data=data, stored_at=now, last_used_at=now, gc_time=gc_time)

    def invalidate(self, prefix: QueryKey) -> int:
        """Drop every entry whose key starts with ``prefix``. Returns the count."""
        doomed = [k for k in self._entries if k[: len(prefix)] == prefix]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def gc(self) -> int:
        """Evict entries unused for longer than their ``gc_time``."""
        now = self._clock()
        doomed = [k for k, e in self._entries.items() if now - e.last_used_at > e.gc_time]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
