import httpx
from typing import Any, Dict, Optional
from ..config import settings
from ..core.recovery.errors import RateLimitError, RpcError
from .base import MarketDataProvider


class AssetChainProvider(MarketDataProvider):
    """AssetChain liquidity pool API for RWA tokens"""
    
    name = "assetchain"
    
    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.assetchain_base_url.rstrip("/")
        self.timeout_s = settings.request_timeout_seconds
        self._client = client
        
    async def ready(self) -> bool:
        return bool(self.base_url)
    
    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Base URL not configured"}
        return {"status": "healthy"}
    
    async def _get(self, params: Dict[str, str]) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.get(self.base_url, params=params, timeout=self.timeout_s)
            async with httpx.AsyncClient() as client:
                return await client.get(self.base_url, params=params, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise RpcError(f"{self.name} request failed: {e}", provider=self.name) from e
    
    async def get_snapshot(self, token_address: str) -> Dict[str, Any]:
        response = await self._get({"address": token_address})
        if response.status_code == 429:
            raise RateLimitError("AssetChain rate limited", provider=self.name)
        if response.status_code >= 400:
            raise RpcError(f"AssetChain API error: HTTP {response.status_code}", provider=self.name)
        
        items = response.json().get("items") or []
        if not items:
            raise RpcError(f"No items found for {token_address}", provider=self.name)
        
        item = items[0]
        return {
            "token": item.get("address", token_address),
            "price": item.get("usdPrice") or "N/A",
            "marketCap": item.get("marketCap") or "N/A",
            "volume": item.get("pastDayVolume") or "N/A",
            "liquidity": item.get("currentTvl") or "N/A",
            "decimals": item.get("decimals"),
            "name": item.get("name"),
            "isVerified": item.get("isVerified"),
            "iconUrl": item.get("iconUrl"),
            "_source": {"name": "assetchain", "url": "https://assetchain.org"},
        }
