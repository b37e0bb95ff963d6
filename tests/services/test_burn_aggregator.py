"""
Tests for the Burn Aggregator

Runs the aggregator against an in-memory log source.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from burnwatch.core.recovery import (
    AggregationFailedError,
    ExponentialBackoffStrategy,
    RateLimitError,
    RpcError,
    UnknownTokenError,
)
from burnwatch.providers.base import LogSourceProvider
from burnwatch.providers.rpc import DEAD_ADDRESS, TRANSFER_TOPIC, ZERO_ADDRESS, address_topic
from burnwatch.services.burns import (
    BURN_WINDOWS,
    AggregatorConfig,
    BurnAggregator,
    BurnLedger,
    to_display_amount,
)

PHT = "0x885c99a787BE6b41cbf964174C771A9f7ec48e04"
SENDER = "0x1111111111111111111111111111111111111111"
NOW = 1_700_000_000
HEAD = 1_000
UNIT = 10 ** 18


def burn_log(block, amount, timestamp=None, *, sink=DEAD_ADDRESS, tx="0xaa", index=0, removed=False):
    log = {
        "topics": [TRANSFER_TOPIC, address_topic(SENDER), address_topic(sink)],
        "data": hex(amount),
        "blockNumber": hex(block),
        "transactionHash": tx,
        "logIndex": hex(index),
        "removed": removed,
    }
    if timestamp is not None:
        log["blockTimestamp"] = hex(timestamp)
    return log


class FakeLogSource(LogSourceProvider):
    name = "fake-rpc"

    def __init__(self, logs=None, head=HEAD, decimals=18, block_times=None):
        self.logs = list(logs or [])
        self.head = head
        self.decimals = decimals
        self.block_times = block_times or {}
        self.log_calls = []
        self.timestamp_calls = []

    async def ready(self):
        return True

    async def health_check(self):
        return {"status": "healthy"}

    async def block_number(self):
        return self.head

    async def get_block_timestamp(self, block_number):
        self.timestamp_calls.append(block_number)
        return self.block_times[block_number]

    async def get_logs(self, address, from_block, to_block, topics):
        self.log_calls.append((from_block, to_block))
        return [log for log in self.logs if from_block <= int(log["blockNumber"], 16) <= to_block]

    async def token_decimals(self, token_address):
        return self.decimals


def make_aggregator(provider, sleep=None):
    return BurnAggregator(
        provider_for_chain=lambda chain: provider,
        config=AggregatorConfig(lookback_blocks=HEAD, batch_blocks=500),
        retry=ExponentialBackoffStrategy(max_attempts=3, sleep=sleep or AsyncMock()),
        clock=lambda: NOW,
    )


def pht_logs():
    return [
        burn_log(990, 100 * UNIT, NOW - 120, tx="0x01"),
        burn_log(600, 50 * UNIT, NOW - 1200, tx="0x02", sink=ZERO_ADDRESS),
        burn_log(100, 25 * UNIT, NOW - 7200, tx="0x03"),
    ]


# =============================================================================
# Window Totals
# =============================================================================

class TestWindowTotals:

    @pytest.mark.asyncio
    async def test_pht_windows(self):
        provider = FakeLogSource(pht_logs())

        summary, ledger = await make_aggregator(provider).aggregate("pht")

        assert summary.window_values() == [Decimal(v) for v in (100, 100, 150, 150, 175, 175, 175, 175)]
        assert summary.token_name == "pht"
        assert summary.token_address == PHT
        assert summary.chain == "bsc"
        assert summary.last_processed_block == HEAD
        assert len(ledger.events) == 3
        assert provider.log_calls == [(0, 499), (500, 999), (1000, 1000)]

    @pytest.mark.asyncio
    async def test_no_burns_gives_zeros(self):
        summary, ledger = await make_aggregator(FakeLogSource()).aggregate("pht")

        assert summary.window_values() == [Decimal(0)] * len(BURN_WINDOWS)
        assert ledger.events == []

    @pytest.mark.asyncio
    async def test_windows_never_decrease(self):
        summary, _ = await make_aggregator(FakeLogSource(pht_logs())).aggregate("pht")
        values = summary.window_values()

        assert all(a <= b for a, b in zip(values, values[1:]))

    @pytest.mark.asyncio
    async def test_event_older_than_widest_window_is_excluded(self):
        logs = pht_logs() + [burn_log(50, 999 * UNIT, NOW - 90_000, tx="0x04")]

        summary, ledger = await make_aggregator(FakeLogSource(logs)).aggregate("pht")

        assert summary.burn_24h == Decimal(175)
        assert len(ledger.events) == 3

    @pytest.mark.asyncio
    async def test_removed_and_non_burn_logs_are_ignored(self):
        logs = [
            burn_log(10, 7 * UNIT, NOW - 60, tx="0x05", removed=True),
            burn_log(11, 9 * UNIT, NOW - 60, tx="0x06", sink=SENDER),
            burn_log(12, 3 * UNIT, NOW - 60, tx="0x07"),
        ]

        summary, _ = await make_aggregator(FakeLogSource(logs)).aggregate("pht")

        assert summary.burn_5min == Decimal(3)

    @pytest.mark.asyncio
    async def test_events_keep_sender_and_burn_address(self):
        logs = [burn_log(12, 3 * UNIT, NOW - 60, tx="0x07", sink=ZERO_ADDRESS)]

        _, ledger = await make_aggregator(FakeLogSource(logs)).aggregate("pht")

        [event] = ledger.events
        assert event.from_address == SENDER
        assert event.to_address == ZERO_ADDRESS

    @pytest.mark.asyncio
    async def test_missing_block_timestamp_is_fetched_once_per_block(self):
        logs = [
            burn_log(500, 1 * UNIT, tx="0x08", index=0),
            burn_log(500, 2 * UNIT, tx="0x08", index=1),
        ]
        provider = FakeLogSource(logs, block_times={500: NOW - 10})

        summary, _ = await make_aggregator(provider).aggregate("pht")

        assert summary.burn_5min == Decimal(3)
        assert provider.timestamp_calls == [500]

    @pytest.mark.asyncio
    async def test_display_sum_matches_sum_of_displays(self):
        amounts = [123456789012345678901, 1, 10 ** 17 + 3]
        logs = [burn_log(900 + i, amount, NOW - 30, tx=f"0x1{i}") for i, amount in enumerate(amounts)]

        summary, _ = await make_aggregator(FakeLogSource(logs)).aggregate("pht")

        assert summary.burn_5min == sum(to_display_amount(a, 18) for a in amounts)


# =============================================================================
# Incremental Scans
# =============================================================================

class TestIncrementalScan:

    def test_scan_range_starts_after_cursor(self):
        aggregator = make_aggregator(FakeLogSource())
        ledger = BurnLedger(token_address=PHT, last_processed_block=900)

        assert aggregator.scan_range(HEAD, None) == (0, HEAD)
        assert aggregator.scan_range(HEAD, ledger) == (901, HEAD)

    @pytest.mark.asyncio
    async def test_resume_from_ledger_only_scans_new_blocks(self):
        provider = FakeLogSource(pht_logs())
        aggregator = make_aggregator(provider)
        _, ledger = await aggregator.aggregate("pht")

        provider.log_calls.clear()
        provider.head = HEAD + 10
        provider.logs.append(burn_log(HEAD + 5, 5 * UNIT, NOW - 10, tx="0x09"))

        summary, new_ledger = await aggregator.aggregate("pht", ledger=ledger)

        assert provider.log_calls == [(HEAD + 1, HEAD + 10)]
        assert summary.burn_5min == Decimal(105)
        assert new_ledger.last_processed_block == HEAD + 10

    @pytest.mark.asyncio
    async def test_rerun_with_same_head_is_idempotent(self):
        provider = FakeLogSource(pht_logs())
        aggregator = make_aggregator(provider)

        first, ledger = await aggregator.aggregate("pht")
        second, _ = await aggregator.aggregate("pht", ledger=ledger)

        assert first.window_values() == second.window_values()

    @pytest.mark.asyncio
    async def test_ledger_for_another_token_is_ignored(self):
        provider = FakeLogSource(pht_logs())
        foreign = BurnLedger(token_address=SENDER, last_processed_block=HEAD)

        summary, _ = await make_aggregator(provider).aggregate("pht", ledger=foreign)

        assert summary.burn_24h == Decimal(175)


# =============================================================================
# Failures
# =============================================================================

class TestAggregationFailures:

    @pytest.mark.asyncio
    async def test_unknown_token_makes_no_provider_call(self):
        provider_for_chain = MagicMock()
        aggregator = BurnAggregator(
            provider_for_chain=provider_for_chain,
            config=AggregatorConfig(lookback_blocks=HEAD),
        )

        with pytest.raises(UnknownTokenError):
            await aggregator.aggregate("doesnotexist")

        provider_for_chain.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limited_batch_is_retried(self):
        provider = FakeLogSource()
        provider.get_logs = AsyncMock(side_effect=[RateLimitError("429"), [], [], []])
        sleep = AsyncMock()

        summary, _ = await make_aggregator(provider, sleep=sleep).aggregate("pht")

        assert provider.get_logs.await_count == 4
        assert sleep.await_count == 1
        assert summary.burn_24h == Decimal(0)

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion_fails_the_run(self):
        provider = FakeLogSource()
        provider.get_logs = AsyncMock(side_effect=RateLimitError("429"))

        with pytest.raises(AggregationFailedError) as exc:
            await make_aggregator(provider).aggregate("pht")

        assert isinstance(exc.value.cause, RateLimitError)
        assert provider.get_logs.await_count == 3

    @pytest.mark.asyncio
    async def test_rpc_error_fails_without_retry(self):
        provider = FakeLogSource()
        provider.get_logs = AsyncMock(side_effect=RpcError("execution reverted", code=-32000))

        with pytest.raises(AggregationFailedError) as exc:
            await make_aggregator(provider).aggregate("pht")

        assert isinstance(exc.value.cause, RpcError)
        assert provider.get_logs.await_count == 1
