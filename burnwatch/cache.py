import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass

from .config import settings


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Process-wide in-memory TTL cache.

    Mirrors the subset of Redis semantics the service needs: string keys with
    expiry, set-if-absent, and score-ordered sets whose key carries its own TTL.
    Created once at process start.
    """

    def __init__(
        self,
        default_ttl: int = 300,
        max_size: int = 10000,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._access_order: list = []
        self._lock = asyncio.Lock()

    def _expired(self, key: str, now: float) -> bool:
        entry = self._cache.get(key)
        if entry is None:
            return True
        if now > entry.expires_at:
            self._drop(key)
            return True
        return False

    def _drop(self, key: str) -> None:
        self._cache.pop(key, None)
        if key in self._access_order:
            self._access_order.remove(key)

    def _touch(self, key: str) -> None:
        # Update access order for LRU
        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

    def _store(self, key: str, value: Any, ttl: Optional[int]) -> None:
        ttl = ttl or self.default_ttl
        self._cache[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        self._touch(key)

        # Evict oldest if over max size
        while len(self._cache) > self.max_size:
            oldest_key = self._access_order.pop(0)
            self._cache.pop(oldest_key, None)

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            if self._expired(key, self._clock()):
                return None
            self._touch(key)
            return self._cache[key].value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            self._store(key, value, ttl)

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Atomic check-and-set; ``True`` when the key was written."""
        async with self._lock:
            if not self._expired(key, self._clock()):
                return False
            self._store(key, value, ttl)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            existed = not self._expired(key, self._clock())
            self._drop(key)
            return existed

    async def delete_if_equals(self, key: str, value: Any) -> bool:
        """Delete ``key`` only while it still holds ``value``."""
        async with self._lock:
            if self._expired(key, self._clock()) or self._cache[key].value != value:
                return False
            self._drop(key)
            return True

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return not self._expired(key, self._clock())

    async def zadd(self, key: str, member: str, score: float) -> None:
        async with self._lock:
            now = self._clock()
            if self._expired(key, now):
                self._store(key, {}, None)
            self._cache[key].value[member] = score
            self._touch(key)

    async def zrange_with_scores(self, key: str) -> List[Tuple[str, float]]:
        async with self._lock:
            if self._expired(key, self._clock()):
                return []
            members: Dict[str, float] = self._cache[key].value
            return sorted(members.items(), key=lambda item: item[1])

    async def expire(self, key: str, ttl: int) -> bool:
        async with self._lock:
            if self._expired(key, self._clock()):
                return False
            self._cache[key].expires_at = self._clock() + ttl
            return True

    def size(self) -> int:
        return len(self._cache)


# Global cache instance
cache = TTLCache(default_ttl=settings.cache_ttl_seconds, max_size=settings.max_cache_size)
