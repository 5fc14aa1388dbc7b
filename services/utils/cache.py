import asyncio
import time
from typing import Any, Optional


class TTLCache:
    """
    Time-to-live cache for API responses, safe to share between tasks.
    Used so the reconcile and ingest stages of one run share a single
    war log fetch per clan.
    """

    def __init__(self, default_ttl: int = 300, max_size: int = 500):
        self._cache = {}  # key -> (value, expiration_time)
        self._lock = asyncio.Lock()
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value, or None if the key is missing or expired.
        """
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            value, expiration = entry
            if time.monotonic() > expiration:
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        Store a value with a time-to-live in seconds (default_ttl if omitted).
        A ttl of 0 or less disables caching for the call.
        """
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        async with self._lock:
            if len(self._cache) >= self._max_size:
                self._cleanup()
            self._cache[key] = (value, time.monotonic() + ttl)

    async def invalidate(self, key: str):
        async with self._lock:
            self._cache.pop(key, None)

    async def clear(self):
        """Clear all cached entries."""
        async with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def _cleanup(self):
        """Remove expired entries. Caller holds the lock."""
        now = time.monotonic()
        expired_keys = [k for k, (_, exp) in self._cache.items() if now > exp]
        for k in expired_keys:
            del self._cache[k]

        # If still too large after cleanup, drop the oldest 20%
        if len(self._cache) >= self._max_size:
            sorted_items = sorted(self._cache.items(), key=lambda x: x[1][1])
            remove_count = max(1, self._max_size // 5)
            for k, _ in sorted_items[:remove_count]:
                del self._cache[k]

    def get_stats(self) -> dict:
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "size": len(self._cache)
        }
