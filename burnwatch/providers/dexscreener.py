import httpx
from typing import Any, Dict, Optional
from ..config import settings
from ..core.recovery.errors import RateLimitError, RpcError
from .base import MarketDataProvider


class DexScreenerProvider(MarketDataProvider):
    """DexScreener pair data for BSC and Solana tokens"""
    
    name = "dexscreener"
    
    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.dexscreener_base_url.rstrip("/")
        self.timeout_s = settings.request_timeout_seconds
        self._client = client
        
    async def ready(self) -> bool:
        return bool(self.base_url)
    
    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Base URL not configured"}
        return {"status": "healthy"}
    
    async def _get(self, url: str) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.get(url, timeout=self.timeout_s)
            async with httpx.AsyncClient() as client:
                return await client.get(url, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise RpcError(f"{self.name} request failed: {e}", provider=self.name) from e
    
    async def get_snapshot(self, token_address: str) -> Dict[str, Any]:
        """Return the first pair for the token, normalized"""
        response = await self._get(f"{self.base_url}/{token_address}")
        if response.status_code == 429:
            raise RateLimitError("DexScreener rate limited", provider=self.name)
        if response.status_code >= 400:
            raise RpcError(f"DexScreener API error: HTTP {response.status_code}", provider=self.name)
        
        data = response.json()
        pairs = data.get("pairs") or []
        if not pairs:
            raise RpcError(f"No pairs found for {token_address}", provider=self.name)
        
        pair = pairs[0]
        return {
            "token": token_address,
            "price": pair.get("priceUsd") or "N/A",
            "marketCap": str(pair["marketCap"]) if pair.get("marketCap") is not None else "N/A",
            "volume": (pair.get("volume") or {}).get("h24", "N/A"),
            "change24h": (pair.get("priceChange") or {}).get("h24", "N/A"),
            "liquidity": (pair.get("liquidity") or {}).get("usd", "N/A"),
            "_source": {"name": "dexscreener", "url": "https://dexscreener.com"},
        }
