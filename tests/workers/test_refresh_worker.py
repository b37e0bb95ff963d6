"""
Tests for Refresh Worker

Tests full and active-only sweeps over mocked burn and market services.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from burnwatch.core.recovery.errors import AggregationFailedError, RefreshInProgressError, RpcError
from burnwatch.providers.token_list import get_burn_tracked_tokens, resolve_token
from burnwatch.services.burns.models import JobType, RefreshTier
from burnwatch.workers.refresh_worker import (
    RefreshWorker,
    SweepConfig,
    TokenRefreshResult,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def burn_service():
    """Burn service whose recompute always succeeds."""
    service = MagicMock()
    service.recompute = AsyncMock(return_value=None)
    return service


@pytest.fixture
def tracker():
    tracker = MagicMock()
    tracker.list_active = AsyncMock(return_value=[])
    return tracker


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def tracked_tokens():
    return get_burn_tracked_tokens()[:5]


def make_worker(burn_service, tracker, sleep, market=None, **config):
    return RefreshWorker(
        burn_service=burn_service,
        tracker=tracker,
        market_service=market,
        config=SweepConfig(**{"batch_size": 2, "batch_delay_seconds": 0.5, **config}),
        sleep=sleep,
    )


# =============================================================================
# Full Sweep Tests
# =============================================================================


class TestFullSweep:
    """Tests for registry-wide sweeps."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_sweep(self, burn_service, tracker, sleep, tracked_tokens):
        failing = tracked_tokens[2]

        async def recompute(token, tier, job_type):
            if token is failing:
                raise AggregationFailedError(token.symbol, RpcError("boom"))

        burn_service.recompute.side_effect = recompute
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_full_sweep(tokens=tracked_tokens)

        assert report.kind == "full"
        assert report.total == 5
        assert report.successful == 4
        assert report.failed == 1
        assert report.processed == 5
        assert len(report.errors) == 1
        assert report.errors[0].startswith(f"{failing.symbol}: burns:")
        assert burn_service.recompute.await_count == 5

    @pytest.mark.asyncio
    async def test_batches_pause_between_but_not_after(self, burn_service, tracker, sleep, tracked_tokens):
        worker = make_worker(burn_service, tracker, sleep)

        await worker.run_full_sweep(tokens=tracked_tokens)

        # 5 tokens in batches of 2 -> 3 batches, 2 pauses
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_recompute_uses_sweep_job_type_and_tier(self, burn_service, tracker, sleep, tracked_tokens):
        worker = make_worker(burn_service, tracker, sleep)

        await worker.run_full_sweep(RefreshTier.LONG, tokens=tracked_tokens[:1])

        burn_service.recompute.assert_awaited_once_with(tracked_tokens[0], RefreshTier.LONG, JobType.SWEEP)

    @pytest.mark.asyncio
    async def test_duplicate_tokens_refreshed_once(self, burn_service, tracker, sleep, tracked_tokens):
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_full_sweep(tokens=[tracked_tokens[0], tracked_tokens[0]])

        assert report.total == 1

    @pytest.mark.asyncio
    async def test_held_guard_counts_as_skipped(self, burn_service, tracker, sleep, tracked_tokens):
        burn_service.recompute.side_effect = RefreshInProgressError("pht")
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_full_sweep(tokens=tracked_tokens[:2])

        assert report.skipped == 2
        assert report.failed == 0
        assert report.processed == 0

    @pytest.mark.asyncio
    async def test_untracked_token_only_refreshes_market(self, burn_service, tracker, sleep):
        market = MagicMock()
        market.refresh = AsyncMock(return_value={"price": "1"})
        bob = resolve_token("bob")
        worker = make_worker(burn_service, tracker, sleep, market=market)

        report = await worker.run_full_sweep(tokens=[bob])

        result = report.results[0]
        assert result.status == "success"
        assert result.burns_refreshed is False
        assert result.market_refreshed is True
        burn_service.recompute.assert_not_awaited()
        market.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_untracked_token_without_market_is_skipped(self, burn_service, tracker, sleep):
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_full_sweep(tokens=[resolve_token("bob")])

        assert report.results[0].status == "skipped"

    @pytest.mark.asyncio
    async def test_market_failure_marks_token_failed(self, burn_service, tracker, sleep):
        market = MagicMock()
        market.refresh = AsyncMock(side_effect=RpcError("No pairs found"))
        worker = make_worker(burn_service, tracker, sleep, market=market)

        report = await worker.run_full_sweep(tokens=[resolve_token("pht")])

        result = report.results[0]
        assert result.status == "failed"
        assert result.burns_refreshed is True
        assert "market: No pairs found" in result.error

    @pytest.mark.asyncio
    async def test_market_refresh_can_be_disabled(self, burn_service, tracker, sleep):
        market = MagicMock()
        market.refresh = AsyncMock()
        worker = make_worker(burn_service, tracker, sleep, market=market, refresh_market=False)

        await worker.run_full_sweep(tokens=[resolve_token("pht")])

        market.refresh.assert_not_awaited()


# =============================================================================
# Active Sweep Tests
# =============================================================================


class TestActiveSweep:
    """Tests for the active-only sweep."""

    @pytest.mark.asyncio
    async def test_refreshes_active_members_and_reports_unknown(self, burn_service, tracker, sleep):
        pht = resolve_token("pht")
        tracker.list_active.return_value = [("bsc", pht.address_lower), ("bsc", "not-an-address")]
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_active_sweep(now=1_700_000_000)

        tracker.list_active.assert_awaited_once_with(1_700_000_000)
        assert report.kind == "active"
        assert report.successful == 1
        assert report.failed == 1
        assert report.errors == ["not-an-address: Unknown token bsc:not-an-address"]
        burn_service.recompute.assert_awaited_once_with(pht, RefreshTier.SHORT, JobType.SWEEP)

    @pytest.mark.asyncio
    async def test_no_active_tokens(self, burn_service, tracker, sleep):
        worker = make_worker(burn_service, tracker, sleep)

        report = await worker.run_active_sweep()

        assert report.total == 0
        assert report.processed == 0
        sleep.assert_not_awaited()


# =============================================================================
# Report Tests
# =============================================================================


class TestSweepReport:

    @pytest.mark.asyncio
    async def test_report_dict_is_camel_cased(self, burn_service, tracker, sleep, tracked_tokens):
        worker = make_worker(burn_service, tracker, sleep)

        data = (await worker.run_full_sweep(tokens=tracked_tokens[:1])).to_dict()

        assert set(data) == {
            "kind",
            "startedAt",
            "endedAt",
            "durationSeconds",
            "total",
            "processed",
            "successful",
            "failed",
            "skipped",
            "errors",
            "results",
        }
        assert data["results"][0]["burnsRefreshed"] is True
        assert data["durationSeconds"] >= 0

    def test_result_dict(self):
        result = TokenRefreshResult(token="pht", chain="bsc", address="0xabc", status="failed", error="x")

        assert result.to_dict() == {
            "token": "pht",
            "chain": "bsc",
            "address": "0xabc",
            "status": "failed",
            "burnsRefreshed": False,
            "marketRefreshed": False,
            "error": "x",
        }
