"""Supply metrics: total, burnt, locked and circulating supply for EVM tokens."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import settings
from ..core.recovery.errors import CacheUnavailableError
from ..providers.rpc import DEAD_ADDRESS, JsonRpcProvider, get_rpc_provider
from ..providers.token_list import TokenMetadata
from .burns.models import to_display_amount
from .cache import CacheStore, get_cache_store, metrics_cache_key

logger = logging.getLogger(__name__)

_EVM_CHAINS = ("bsc", "rwa")


class UnsupportedChainError(ValueError):
    """Supply metrics need ERC-20 reads, which only EVM chains offer."""


class SupplyService:
    def __init__(
        self,
        store: Optional[CacheStore] = None,
        provider_for_chain: Callable[[str], JsonRpcProvider] = get_rpc_provider,
        locked_addresses: Optional[List[str]] = None,
    ):
        self._store = store or get_cache_store()
        self._provider_for_chain = provider_for_chain
        self._locked = locked_addresses if locked_addresses is not None else settings.locked_address_list

    async def get_metrics(self, token: TokenMetadata) -> Dict[str, Any]:
        """
        Return supply metrics, cached for ``metrics_cache_ttl_seconds``.
        Reads fall through to the chain when the cache is unavailable.

        circulating = total - burnt (dead address balance) - locked
        """
        if token.chain not in _EVM_CHAINS:
            raise UnsupportedChainError(f"Supply metrics are not available on {token.chain}")

        key = metrics_cache_key(token.address)
        try:
            cached = await self._store.get(key)
        except CacheUnavailableError as exc:
            logger.warning("Computing %s supply live, cache unavailable: %s", token.symbol, exc)
            cached = None
        if cached is not None:
            return {**cached, "fromCache": True}

        provider = self._provider_for_chain(token.chain)
        decimals = token.decimals
        if decimals is None:
            decimals = await provider.token_decimals(token.address)

        total, burnt, *locked = await asyncio.gather(
            provider.total_supply(token.address),
            provider.balance_of(token.address, DEAD_ADDRESS),
            *(provider.balance_of(token.address, holder) for holder in self._locked),
        )
        locked_total = sum(locked)
        circulating = max(total - burnt - locked_total, 0)

        metrics = {
            "token": token.address,
            "symbol": token.symbol,
            "chain": token.chain,
            "decimals": decimals,
            "totalSupply": str(to_display_amount(total, decimals)),
            "burntSupply": str(to_display_amount(burnt, decimals)),
            "lockedSupply": str(to_display_amount(locked_total, decimals)),
            "circulatingSupply": str(to_display_amount(circulating, decimals)),
        }
        try:
            await self._store.set(key, metrics, ttl=settings.metrics_cache_ttl_seconds)
        except CacheUnavailableError as exc:
            logger.warning("Could not cache supply metrics for %s: %s", token.symbol, exc)
        logger.debug("Computed supply metrics for %s", token.symbol)
        return {**metrics, "fromCache": False}


_service: Optional[SupplyService] = None


def get_supply_service() -> SupplyService:
    global _service
    if _service is None:
        _service = SupplyService()
    return _service
