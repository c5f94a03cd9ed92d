"""
data_engine/cache.py
─────────────────────
In-memory TTL cache for upstream market payloads.

Entries are never dropped because they went stale: an expired payload is
still the best answer when CoinGecko is down, so freshness is checked by
the caller (:meth:`TTLCache.is_fresh`) rather than enforced on ``get``.
The only eviction is the optional LRU capacity bound, which keeps the
one-key-per-watchlist-composition key space from growing without limit.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """An immutable cached payload and the clock reading it was stored at."""

    payload: Any
    cached_at: float


class TTLCache:
    """
    Key → :class:`CacheEntry` map with a fixed freshness window.

    Args:
        ttl:         Freshness window in seconds.
        max_entries: Evict the least recently used key beyond this many
                     entries.  ``None`` or ``0`` disables the bound.
        clock:       Monotonic time source; injectable for tests.

    Example:
        >>> cache = TTLCache(ttl=30)
        >>> cache.put("top", [{"id": "bitcoin"}])
        >>> entry = cache.get("top")
        >>> cache.is_fresh(entry)
        True
    """

    def __init__(
        self,
        ttl: float = 30.0,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries or None
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    # ── public API ────────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` (fresh or stale), or ``None``."""
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: str, payload: Any) -> CacheEntry:
        """
        Store ``payload`` under ``key``, replacing any previous entry.

        Returns:
            The new entry, stamped with the current clock reading.
        """
        entry = CacheEntry(payload=payload, cached_at=self._clock())
        self._entries[key] = entry
        self._entries.move_to_end(key)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache key %s (capacity %d)", evicted, self.max_entries)
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: Optional[float] = None) -> bool:
        """True while ``entry`` is younger than ``ttl`` (defaults to the cache TTL)."""
        window = self.ttl if ttl is None else ttl
        return self._clock() - entry.cached_at < window

    def clear(self) -> None:
        self._entries.clear()
