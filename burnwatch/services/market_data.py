"""Cache-aside market snapshots from DexScreener (bsc, sol) and AssetChain (rwa)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..config import settings
from ..core.recovery.errors import CacheUnavailableError
from ..providers.assetchain import AssetChainProvider
from ..providers.base import MarketDataProvider
from ..providers.dexscreener import DexScreenerProvider
from ..providers.token_list import TokenMetadata
from .cache import CacheStore, get_cache_store, market_cache_key

logger = logging.getLogger(__name__)


class MarketDataService:
    def __init__(
        self,
        store: Optional[CacheStore] = None,
        dexscreener: Optional[MarketDataProvider] = None,
        assetchain: Optional[MarketDataProvider] = None,
    ):
        self._store = store or get_cache_store()
        self._dexscreener = dexscreener or DexScreenerProvider()
        self._assetchain = assetchain or AssetChainProvider()

    def provider_for(self, token: TokenMetadata) -> MarketDataProvider:
        return self._assetchain if token.chain == "rwa" else self._dexscreener

    def cache_key(self, token: TokenMetadata) -> str:
        return market_cache_key(self.provider_for(token).name, token.address)

    async def get_snapshot(self, token: TokenMetadata) -> Dict[str, Any]:
        """
        Serve the cached snapshot, fetching and caching it on a miss.

        An unavailable cache degrades to a live fetch instead of failing.
        """
        key = self.cache_key(token)
        try:
            cached = await self._store.get(key)
        except CacheUnavailableError as exc:
            logger.warning("Fetching %s snapshot live, cache unavailable: %s", token.symbol, exc)
            cached = None
        if cached is not None:
            return {**cached, "fromCache": True}

        snapshot = await self.provider_for(token).get_snapshot(token.address)
        try:
            await self._store.set(key, snapshot, ttl=settings.market_cache_ttl_seconds)
        except CacheUnavailableError as exc:
            logger.warning("Could not cache %s snapshot: %s", token.symbol, exc)
        return {**snapshot, "fromCache": False}

    async def refresh(self, token: TokenMetadata, ttl: Optional[int] = None) -> Dict[str, Any]:
        """Fetch a fresh snapshot and overwrite the cache entry."""
        provider = self.provider_for(token)
        snapshot = await provider.get_snapshot(token.address)
        await self._store.set(
            self.cache_key(token),
            snapshot,
            ttl=ttl or settings.market_sweep_cache_ttl_seconds,
        )
        logger.debug("Refreshed %s snapshot for %s", provider.name, token.symbol)
        return snapshot


_service: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    global _service
    if _service is None:
        _service = MarketDataService()
    return _service
