import httpx
import pytest

from burnwatch.core.recovery.errors import RateLimitError, RpcError
from burnwatch.providers.assetchain import AssetChainProvider
from burnwatch.providers.dexscreener import DexScreenerProvider

TOKEN = "0x885c99a787BE6b41cbf964174C771A9f7ec48e04"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# =============================================================================
# DexScreener
# =============================================================================

class TestDexScreenerProvider:

    @pytest.mark.asyncio
    async def test_snapshot_uses_first_pair(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={
                "pairs": [
                    {
                        "priceUsd": "0.0123",
                        "marketCap": 1500000,
                        "volume": {"h24": 42000.5},
                        "priceChange": {"h24": -3.2},
                        "liquidity": {"usd": 99000},
                    },
                    {"priceUsd": "9.99"},
                ]
            })

        provider = DexScreenerProvider(client=_client(handler))

        snapshot = await provider.get_snapshot(TOKEN)

        assert seen[0].endswith(f"/{TOKEN}")
        assert snapshot["price"] == "0.0123"
        assert snapshot["marketCap"] == "1500000"
        assert snapshot["volume"] == 42000.5
        assert snapshot["change24h"] == -3.2
        assert snapshot["liquidity"] == 99000
        assert snapshot["_source"]["name"] == "dexscreener"

    @pytest.mark.asyncio
    async def test_missing_fields_become_na(self):
        provider = DexScreenerProvider(client=_client(lambda r: httpx.Response(200, json={"pairs": [{}]})))

        snapshot = await provider.get_snapshot(TOKEN)

        assert snapshot["price"] == "N/A"
        assert snapshot["marketCap"] == "N/A"
        assert snapshot["volume"] == "N/A"

    @pytest.mark.asyncio
    async def test_no_pairs_raises(self):
        provider = DexScreenerProvider(client=_client(lambda r: httpx.Response(200, json={"pairs": None})))

        with pytest.raises(RpcError):
            await provider.get_snapshot(TOKEN)

    @pytest.mark.asyncio
    async def test_throttled(self):
        provider = DexScreenerProvider(client=_client(lambda r: httpx.Response(429)))

        with pytest.raises(RateLimitError):
            await provider.get_snapshot(TOKEN)

    @pytest.mark.asyncio
    async def test_transport_failure_is_rpc_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        provider = DexScreenerProvider(client=_client(handler))

        with pytest.raises(RpcError):
            await provider.get_snapshot(TOKEN)


# =============================================================================
# AssetChain
# =============================================================================

class TestAssetChainProvider:

    @pytest.mark.asyncio
    async def test_snapshot_maps_item_fields(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params.get("address"))
            return httpx.Response(200, json={
                "items": [{
                    "address": TOKEN.lower(),
                    "usdPrice": "1.01",
                    "marketCap": "5000",
                    "pastDayVolume": "120",
                    "currentTvl": "800",
                    "decimals": 18,
                    "name": "Real Asset",
                    "isVerified": True,
                    "iconUrl": "https://icons.test/rwa.png",
                }]
            })

        provider = AssetChainProvider(client=_client(handler))

        snapshot = await provider.get_snapshot(TOKEN)

        assert seen == [TOKEN]
        assert snapshot["token"] == TOKEN.lower()
        assert snapshot["price"] == "1.01"
        assert snapshot["liquidity"] == "800"
        assert snapshot["decimals"] == 18
        assert snapshot["isVerified"] is True
        assert snapshot["_source"]["name"] == "assetchain"

    @pytest.mark.asyncio
    async def test_empty_items_raises(self):
        provider = AssetChainProvider(client=_client(lambda r: httpx.Response(200, json={"items": []})))

        with pytest.raises(RpcError):
            await provider.get_snapshot(TOKEN)

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        provider = AssetChainProvider(client=_client(lambda r: httpx.Response(500)))

        with pytest.raises(RpcError) as exc:
            await provider.get_snapshot(TOKEN)

        assert not isinstance(exc.value, RateLimitError)
