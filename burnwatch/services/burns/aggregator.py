"""
Burn Aggregator

Scans Transfer logs into the burn addresses and sums them over the trailing
windows. Pure with respect to the cache: callers persist the result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...config import settings
from ...core.recovery import (
    AggregationFailedError,
    ExponentialBackoffStrategy,
    RetryStrategy,
)
from ...providers.base import LogSourceProvider
from ...providers.rpc import BURN_ADDRESSES, BURN_TOPICS, TRANSFER_TOPIC, get_rpc_provider, hex_to_int, topic_address
from ...providers.token_list import TokenMetadata, resolve_token
from .models import (
    BURN_WINDOWS,
    WIDEST_WINDOW_SECONDS,
    BurnEvent,
    BurnLedger,
    BurnSummary,
    to_display_amount,
    utc_from_timestamp,
)

logger = logging.getLogger(__name__)

_BURN_SINKS = {address.lower() for address in BURN_ADDRESSES}

# Transfer(from=any, to=one of the burn addresses)
BURN_LOG_TOPICS: List[Any] = [TRANSFER_TOPIC, None, BURN_TOPICS]


@dataclass
class AggregatorConfig:
    lookback_blocks: int
    batch_blocks: int = 5000
    start_block: int = 0

    @classmethod
    def from_settings(cls) -> "AggregatorConfig":
        return cls(
            lookback_blocks=settings.lookback_blocks,
            batch_blocks=settings.burn_log_batch_blocks,
            start_block=settings.burn_start_block,
        )


class BurnAggregator:
    """
    Compute a BurnSummary for one token.

    The block range starts after the ledger's last processed block (or the
    lookback covering the widest window on a first run) and ends at the chain
    head. Every rate-limited RPC call is retried with exponential backoff; any
    failure that survives the retries aborts the run as
    ``AggregationFailedError``.
    """

    def __init__(
        self,
        provider_for_chain: Callable[[str], LogSourceProvider] = get_rpc_provider,
        config: Optional[AggregatorConfig] = None,
        retry: Optional[RetryStrategy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._provider_for_chain = provider_for_chain
        self.config = config or AggregatorConfig.from_settings()
        self._retry = retry or ExponentialBackoffStrategy(
            max_attempts=settings.rpc_max_attempts,
            initial_delay=settings.rpc_backoff_seconds,
            logger=logger,
        )
        self._clock = clock

    def scan_range(self, head: int, ledger: Optional[BurnLedger]) -> Tuple[int, int]:
        """Inclusive block range to scan; empty when ``start > head``."""
        start = max(head - self.config.lookback_blocks, self.config.start_block, 0)
        if ledger is not None and ledger.last_processed_block:
            start = max(start, ledger.last_processed_block + 1)
        return start, head

    async def aggregate(
        self,
        identifier: str,
        *,
        chain: Optional[str] = None,
        ledger: Optional[BurnLedger] = None,
        now: Optional[float] = None,
    ) -> Tuple[BurnSummary, BurnLedger]:
        token = resolve_token(identifier, chain)
        now = self._clock() if now is None else now
        started = time.perf_counter()

        if ledger is not None and ledger.token_address.lower() != token.address_lower:
            ledger = None

        try:
            provider = self._provider_for_chain(token.chain)
            summary, new_ledger = await self._aggregate(provider, token, ledger, now)
        except Exception as e:
            logger.error("Burn aggregation failed for %s: %s", token.symbol, e)
            raise AggregationFailedError(token.symbol, e) from e

        summary.computation_time_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Aggregated burns for %s: %d events, last block %d, %dms",
            token.symbol,
            len(new_ledger.events),
            new_ledger.last_processed_block,
            summary.computation_time_ms,
        )
        return summary, new_ledger

    async def _aggregate(
        self,
        provider: LogSourceProvider,
        token: TokenMetadata,
        ledger: Optional[BurnLedger],
        now: float,
    ) -> Tuple[BurnSummary, BurnLedger]:
        head = await self._retry.execute(provider.block_number)
        if token.decimals is not None:
            decimals = token.decimals
        else:
            decimals = await self._retry.execute(partial(provider.token_decimals, token.address))

        start, end = self.scan_range(head, ledger)
        events = await self._scan(provider, token, start, end)

        base = ledger or BurnLedger(token_address=token.address)
        new_ledger = base.merged(events, max(end, base.last_processed_block), cutoff=now - WIDEST_WINDOW_SECONDS)
        return self.summarize(token, new_ledger, decimals, now), new_ledger

    async def _scan(
        self,
        provider: LogSourceProvider,
        token: TokenMetadata,
        start: int,
        end: int,
    ) -> List[BurnEvent]:
        events: List[BurnEvent] = []
        block_times: Dict[int, int] = {}
        batch = self.config.batch_blocks

        for batch_start in range(start, end + 1, batch):
            batch_end = min(batch_start + batch - 1, end)
            logs = await self._retry.execute(
                partial(provider.get_logs, token.address, batch_start, batch_end, BURN_LOG_TOPICS)
            )
            for log in logs:
                event = await self._to_event(provider, token, log, block_times)
                if event is not None:
                    events.append(event)

        return events

    async def _to_event(
        self,
        provider: LogSourceProvider,
        token: TokenMetadata,
        log: Dict[str, Any],
        block_times: Dict[int, int],
    ) -> Optional[BurnEvent]:
        if log.get("removed"):
            return None
        topics = log.get("topics") or []
        if len(topics) < 3 or topic_address(topics[2]) not in _BURN_SINKS:
            return None

        block_number = hex_to_int(log.get("blockNumber"))
        if log.get("blockTimestamp"):
            block_times.setdefault(block_number, hex_to_int(log["blockTimestamp"]))
        if block_number not in block_times:
            block_times[block_number] = await self._retry.execute(
                partial(provider.get_block_timestamp, block_number)
            )

        return BurnEvent(
            token_address=token.address,
            block_number=block_number,
            timestamp=block_times[block_number],
            amount=hex_to_int(log.get("data")),
            tx_hash=log.get("transactionHash", ""),
            log_index=hex_to_int(log.get("logIndex")),
            from_address=topic_address(topics[1]),
            to_address=topic_address(topics[2]),
        )

    @staticmethod
    def summarize(
        token: TokenMetadata,
        ledger: BurnLedger,
        decimals: int,
        now: float,
    ) -> BurnSummary:
        """Sum raw amounts per window, converting to display units once per window."""
        totals: Dict[str, Any] = {}
        for window in BURN_WINDOWS:
            cutoff = now - window.seconds
            raw = sum(event.amount for event in ledger.events if event.timestamp >= cutoff)
            totals[window.field_name] = to_display_amount(raw, decimals)

        return BurnSummary(
            token_name=token.symbol,
            token_address=token.address,
            chain=token.chain,
            decimals=decimals,
            last_updated=utc_from_timestamp(now),
            last_processed_block=ledger.last_processed_block,
            **totals,
        )
