"""EVM JSON-RPC provider used for burn log scans and ERC-20 reads."""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import settings
from ..core.recovery.errors import RateLimitError, RpcError, is_rate_limit_message
from .base import LogSourceProvider


# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BURN_ADDRESSES = (DEAD_ADDRESS, ZERO_ADDRESS)

_DECIMALS_SELECTOR = "0x313ce567"
_TOTAL_SUPPLY_SELECTOR = "0x18160ddd"
_BALANCE_OF_SELECTOR = "0x70a08231"


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte log topic."""
    return "0x" + address.lower().replace("0x", "").rjust(64, "0")


def topic_address(topic: str) -> str:
    return "0x" + topic[-40:].lower()


def hex_to_int(value: Optional[str]) -> int:
    if value in (None, "", "0x"):
        return 0
    return int(value, 16)


BURN_TOPICS = [address_topic(addr) for addr in BURN_ADDRESSES]


class JsonRpcProvider(LogSourceProvider):
    """Minimal async JSON-RPC client over httpx"""

    def __init__(
        self,
        rpc_url: str,
        *,
        name: str = "rpc",
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.name = name
        self.rpc_url = rpc_url
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=self.timeout_s)
        self._ids = itertools.count(1)

    @classmethod
    def for_chain(cls, chain: str, client: Optional[httpx.AsyncClient] = None) -> "JsonRpcProvider":
        return cls(settings.rpc_url_for_chain(chain), name=f"{chain}-rpc", client=client)

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "RPC URL not configured"}

        try:
            head = await self.block_number()
            return {"status": "healthy", "block_number": head}
        except Exception as e:  # noqa: BLE001
            return {"status": "error", "reason": str(e)}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: List[Any]) -> Any:
        """Make one JSON-RPC call, translating throttling into RateLimitError."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        try:
            response = await self._client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except httpx.TimeoutException as e:
            raise RpcError(f"{method} timed out after {self.timeout_s}s", provider=self.name) from e
        except httpx.HTTPError as e:
            raise RpcError(f"{method} transport error: {e}", provider=self.name) from e

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                f"{self.name} rate limited {method}",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                provider=self.name,
            )
        if response.status_code >= 400:
            raise RpcError(f"{method} failed with HTTP {response.status_code}", provider=self.name)

        data = response.json()
        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if is_rate_limit_message(message, code):
                raise RateLimitError(f"{self.name}: {message}", provider=self.name)
            raise RpcError(f"RPC error: {message}", provider=self.name, code=code)

        return data.get("result")

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber", []))

    async def get_block_timestamp(self, block_number: int) -> int:
        block = await self.call("eth_getBlockByNumber", [hex(block_number), False])
        if not block:
            raise RpcError(f"Block {block_number} not found", provider=self.name)
        return hex_to_int(block.get("timestamp"))

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: Sequence[Optional[Any]],
    ) -> List[Dict[str, Any]]:
        result = await self.call(
            "eth_getLogs",
            [{
                "address": address,
                "fromBlock": hex(from_block),
                "toBlock": hex(to_block),
                "topics": list(topics),
            }],
        )
        return result or []

    async def eth_call(self, to: str, data: str) -> str:
        return await self.call("eth_call", [{"to": to, "data": data}, "latest"])

    async def token_decimals(self, token_address: str) -> int:
        return hex_to_int(await self.eth_call(token_address, _DECIMALS_SELECTOR))

    async def total_supply(self, token_address: str) -> int:
        return hex_to_int(await self.eth_call(token_address, _TOTAL_SUPPLY_SELECTOR))

    async def balance_of(self, token_address: str, holder: str) -> int:
        data = _BALANCE_OF_SELECTOR + address_topic(holder)[2:]
        return hex_to_int(await self.eth_call(token_address, data))


_providers: Dict[str, JsonRpcProvider] = {}


def get_rpc_provider(chain: str) -> JsonRpcProvider:
    """Process-wide provider per chain."""
    chain = chain.lower()
    if chain not in _providers:
        _providers[chain] = JsonRpcProvider.for_chain(chain)
    return _providers[chain]


async def close_rpc_providers() -> None:
    for provider in list(_providers.values()):
        await provider.aclose()
    _providers.clear()
