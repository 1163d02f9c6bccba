"""In-process TTL cache with stale fallback.

Uses cachetools.TTLCache for zero-infrastructure caching. When the database
is unavailable, read paths can fall back to stale (TTL-expired) values so the
dashboard keeps rendering.
"""

from collections import OrderedDict
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]

# Sentinel object to distinguish "not in cache" from cached None values
_MISSING = object()


class AsyncTTLCache:
    """TTL cache with a stale fallback store.

    Two tiers:
      1. ``_cache`` (TTLCache): fresh data, governed by *ttl*.
      2. ``_stale`` (OrderedDict, LRU, bounded by *maxsize*): last-known-good
         values that survive TTL expiry. Used **only** when the database is
         unreachable.
    """

    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._maxsize = maxsize
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()

    def get(self, key: str) -> Any:
        """Return fresh value or ``_MISSING``."""
        return self._cache.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        """Write to both fresh cache and stale store."""
        self._cache[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def clear(self) -> None:
        """Clear fresh cache; stale store is preserved."""
        self._cache.clear()

    def get_stale(self, key: str) -> Any:
        """Return last-known-good value or ``_MISSING``."""
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value
