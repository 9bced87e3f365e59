"""Caching service."""
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar
import hashlib
import json
import logging
import time

from lending_history.config import settings

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """One cached value and the moment it was written."""
    key: str
    value: V
    written_at: float


class CacheService(Generic[V]):
    """In-memory TTL cache with lazy expiry and stale reads.

    Entries are never evicted on read. A stale entry is a miss for ``get``
    but stays available through ``get_stale`` until ``sweep`` removes it.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.enabled = settings.enable_cache if enabled is None else enabled
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cache: dict[str, CacheEntry[V]] = {}

    def __len__(self) -> int:
        return len(self._cache)

    @staticmethod
    def make_key(prefix: str, *args: Any) -> str:
        """Generate cache key from prefix and arguments."""
        key_data = json.dumps(args, sort_keys=True, default=str)
        key_hash = hashlib.md5(key_data.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    def _is_fresh(self, entry: CacheEntry[V]) -> bool:
        return self._clock() - entry.written_at < self.ttl_seconds

    def get(self, key: str) -> Optional[V]:
        """Get a fresh value from cache."""
        if not self.enabled:
            return None

        entry = self._cache.get(key)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry.value

    def get_stale(self, key: str) -> Optional[V]:
        """Get the last written value regardless of age."""
        entry = self._cache.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: V) -> None:
        """Set value in cache, replacing any previous entry."""
        if not self.enabled:
            return
        self._cache[key] = CacheEntry(key=key, value=value, written_at=self._clock())

    def delete(self, key: str) -> None:
        """Delete value from cache."""
        self._cache.pop(key, None)

    def sweep(self) -> int:
        """Remove expired entries and return how many were dropped."""
        expired = [key for key, entry in self._cache.items() if not self._is_fresh(entry)]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.debug("[CACHE] Swept %d expired entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        """Clear all cache."""
        self._cache.clear()
