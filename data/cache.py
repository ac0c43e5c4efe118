"""
Simple in-memory TTL cache.
Keeps the aggregator from hitting the proxy routes for data it fetched moments ago.
Each entry remembers when it was written and how long it stays visible.
"""
import time
from typing import Any, Callable

DEFAULT_TTL = 60

STOCK_LIST_TTL = 60
METALS_TTL = 30
CRYPTO_TTL = 60
QUOTE_TTL = 60
BATCH_TTL = 60
NEWS_TTL = 300


class TTLCache:
    def __init__(self, default_ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: dict[str, tuple[Any, float, float]] = {}

    def get(self, key: str) -> Any | None:
        """Get a value if it exists and hasn't expired."""
        if key in self._store:
            value, written_at, ttl = self._store[key]
            if self._clock() - written_at < ttl:
                return value
            else:
                del self._store[key]
        return None

    def set(self, key: str, value: Any, ttl: float | None = None):
        """Store a value, resetting its clock. Falls back to the default TTL."""
        self._store[key] = (value, self._clock(), self.default_ttl if ttl is None else ttl)

    def clear(self):
        """Clear all cached values."""
        self._store.clear()

    def cleanup(self):
        """Remove expired entries."""
        now = self._clock()
        expired = [k for k, (_, written_at, ttl) in self._store.items() if now - written_at >= ttl]
        for k in expired:
            del self._store[k]

    @property
    def size(self):
        return len(self._store)
