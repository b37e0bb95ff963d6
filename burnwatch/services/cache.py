"""Shared cache store backed by Redis, or the in-process cache when Redis is not configured."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..cache import TTLCache, cache as local_cache
from ..config import settings
from ..core.recovery.errors import CacheUnavailableError

logger = logging.getLogger(__name__)

# Delete KEYS[1] only while it still holds ARGV[1]
_COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def _default_serializer(value: Any) -> str:
    def _encode(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        return obj

    return json.dumps(value, default=_encode)


def _default_deserializer(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable cache payload")
        return None


class CacheStore:
    """
    Key-value store with TTL, set-if-absent and score-ordered sets.

    Values are JSON-encoded in both backends so cached payloads behave the
    same whichever one is active. Redis failures surface as
    ``CacheUnavailableError``.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        local: Optional[TTLCache] = None,
        default_ttl: Optional[int] = None,
    ) -> None:
        self._ttl = default_ttl or settings.cache_ttl_seconds
        self._client = client
        self._local = local if local is not None else local_cache

    @classmethod
    def from_settings(cls) -> "CacheStore":
        client = None
        if settings.redis_url:
            client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        return cls(client=client)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def backend(self) -> str:
        return "redis" if self._client is not None else "memory"

    async def _redis(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return await getattr(self._client, operation)(*args, **kwargs)
        except RedisError as exc:
            logger.warning("Redis %s failed: %s", operation, exc)
            raise CacheUnavailableError(f"Redis {operation} failed: {exc}") from exc

    async def get(self, key: str) -> Any:
        if self._client is not None:
            return _default_deserializer(await self._redis("get", key))
        return _default_deserializer(await self._local.get(key))

    async def set(self, key: str, value: Any, *, ttl: Optional[int] = None) -> None:
        ttl = ttl or self._ttl
        payload = _default_serializer(value)
        if self._client is not None:
            await self._redis("set", key, payload, ex=ttl)
            return
        await self._local.set(key, payload, ttl=ttl)

    async def set_if_absent(self, key: str, value: Any, *, ttl: Optional[int] = None) -> bool:
        ttl = ttl or self._ttl
        payload = _default_serializer(value)
        if self._client is not None:
            return bool(await self._redis("set", key, payload, ex=ttl, nx=True))
        return await self._local.set_if_absent(key, payload, ttl=ttl)

    async def delete(self, key: str) -> bool:
        if self._client is not None:
            return bool(await self._redis("delete", key))
        return await self._local.delete(key)

    async def delete_if_equals(self, key: str, value: Any) -> bool:
        """Delete ``key`` only while it still holds ``value``; used to release owned locks."""
        payload = _default_serializer(value)
        if self._client is not None:
            return bool(await self._redis("eval", _COMPARE_AND_DELETE, 1, key, payload))
        return await self._local.delete_if_equals(key, payload)

    async def exists(self, key: str) -> bool:
        if self._client is not None:
            return bool(await self._redis("exists", key))
        return await self._local.exists(key)

    async def zadd(self, key: str, member: str, score: float) -> None:
        if self._client is not None:
            await self._redis("zadd", key, {member: score})
            return
        await self._local.zadd(key, member, score)

    async def zrange_with_scores(self, key: str) -> List[Tuple[str, float]]:
        if self._client is not None:
            rows = await self._redis("zrange", key, 0, -1, withscores=True)
            return [(str(member), float(score)) for member, score in rows]
        return await self._local.zrange_with_scores(key)

    async def expire(self, key: str, ttl: int) -> bool:
        if self._client is not None:
            return bool(await self._redis("expire", key, ttl))
        return await self._local.expire(key, ttl)

    async def ping(self) -> bool:
        if self._client is not None:
            return bool(await self._redis("ping"))
        return True

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


_store: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get the process-wide CacheStore."""
    global _store
    if _store is None:
        _store = CacheStore.from_settings()
    return _store


def burn_cache_key(address: str) -> str:
    return f"burns:{address.lower()}"


def burn_lock_key(address: str) -> str:
    return f"lock:burns:{address.lower()}"


def market_cache_key(source: str, address: str) -> str:
    return f"{source}:{address.lower()}"


def metrics_cache_key(address: str) -> str:
    return f"token:{address.lower()}"


def job_cache_key(job_id: str) -> str:
    return f"job:{job_id}"


ACTIVE_TOKENS_KEY = "active-tokens"

# Key families the cache admin endpoint inspects per token
TOKEN_KEY_SOURCES = ("dexscreener", "assetchain", "token", "burns")


async def token_cache_info(store: CacheStore, address: str) -> dict:
    """Which cached payloads exist for a token, per key family."""
    return {source: await store.exists(f"{source}:{address.lower()}") for source in TOKEN_KEY_SOURCES}


async def clear_token_cache(store: CacheStore, address: str) -> int:
    """Delete every cached payload for a token; returns how many keys existed."""
    deleted = 0
    for source in TOKEN_KEY_SOURCES:
        if await store.delete(f"{source}:{address.lower()}"):
            deleted += 1
    return deleted


__all__ = [
    "CacheStore",
    "token_cache_info",
    "clear_token_cache",
    "get_cache_store",
    "burn_cache_key",
    "burn_lock_key",
    "market_cache_key",
    "metrics_cache_key",
    "job_cache_key",
    "ACTIVE_TOKENS_KEY",
    "TOKEN_KEY_SOURCES",
]
