from __future__ import annotations

import os
import threading
from typing import Any

from cachetools import TTLCache


class _CounterCache:
    """Process-local TTL store for rate-limit counters. Never holds repository data."""

    def __init__(self):
        ttl = int(os.getenv("CACHE_TTL_SECONDS", "120") or "120")
        max_items = int(os.getenv("CACHE_MAX_ITEMS", "50000") or "50000")
        self._ttl = max(60, min(3600, ttl))
        self._cache = TTLCache(maxsize=max(100, min(500_000, max_items)), ttl=self._ttl)
        self._lock = threading.RLock()
        self._increments = 0

    def incr(self, key: str, amount: int = 1) -> int:
        with self._lock:
            value = int(self._cache.get(key) or 0) + int(amount)
            self._cache[key] = value
            self._increments += 1
            return value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._increments = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "keys": len(self._cache),
                "maxsize": self._cache.maxsize,
                "ttlSeconds": self._ttl,
                "increments": self._increments,
            }


_counters = _CounterCache()


def cache_incr(key: str, amount: int = 1) -> int:
    return _counters.incr(key, amount)


def cache_clear() -> None:
    _counters.clear()


def cache_stats() -> dict[str, Any]:
    return _counters.stats()
