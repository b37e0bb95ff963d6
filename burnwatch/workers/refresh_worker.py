"""
Refresh Worker

Full and active-only refresh sweeps. Tokens are processed in fixed-size
batches that run in parallel, with a short pause between batches to stay
under upstream rate limits. A failing token is recorded in the report and
never aborts the sweep.

Designed to be run from a cron-triggered endpoint or the in-process
scheduler.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ..config import settings
from ..core.recovery.errors import RefreshInProgressError
from ..providers.token_list import TOKEN_REGISTRY, TokenMetadata, resolve_member
from ..services.active_tokens import ActiveTokenTracker, get_active_token_tracker
from ..services.burns.models import JobType, RefreshTier
from ..services.burns.service import BurnService, get_burn_service
from ..services.market_data import MarketDataService, get_market_data_service

logger = logging.getLogger(__name__)


@dataclass
class SweepConfig:
    """Configuration for refresh sweeps."""
    batch_size: int = 10  # Tokens refreshed in parallel
    batch_delay_seconds: float = 1.0  # Pause between batches
    refresh_market: bool = True  # Also refresh market snapshots

    @classmethod
    def from_settings(cls) -> "SweepConfig":
        return cls(
            batch_size=settings.sweep_batch_size,
            batch_delay_seconds=settings.sweep_batch_delay_seconds,
            refresh_market=settings.enable_market_refresh,
        )


@dataclass
class TokenRefreshResult:
    token: str
    chain: str
    address: str
    status: str  # success | failed | skipped
    burns_refreshed: bool = False
    market_refreshed: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "chain": self.chain,
            "address": self.address,
            "status": self.status,
            "burnsRefreshed": self.burns_refreshed,
            "marketRefreshed": self.market_refreshed,
            "error": self.error,
        }


@dataclass
class SweepReport:
    """Result from one sweep."""
    kind: str
    started_at: datetime
    ended_at: datetime
    results: List[TokenRefreshResult] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def total(self) -> int:
        return len(self.results)

    def _count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def successful(self) -> int:
        return self._count("success")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def processed(self) -> int:
        return self.successful + self.failed

    @property
    def errors(self) -> List[str]:
        return [f"{r.token}: {r.error}" for r in self.results if r.status == "failed"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "startedAt": self.started_at.isoformat(),
            "endedAt": self.ended_at.isoformat(),
            "durationSeconds": self.duration_seconds,
            "total": self.total,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": self.errors,
            "results": [result.to_dict() for result in self.results],
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshWorker:
    """
    Sweep tokens and refresh their cached burn and market data.

    Burn-tracked tokens are recomputed through ``BurnService.recompute``;
    a token whose recomputation guard is already held is reported as
    skipped. Market snapshots are refreshed when a market service is set.
    """

    def __init__(
        self,
        burn_service: Optional[BurnService] = None,
        tracker: Optional[ActiveTokenTracker] = None,
        market_service: Optional[MarketDataService] = None,
        config: Optional[SweepConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._burns = burn_service or get_burn_service()
        self._tracker = tracker or get_active_token_tracker()
        self._market = market_service
        self._config = config or SweepConfig.from_settings()
        self._sleep = sleep

    async def run_full_sweep(
        self,
        tier: RefreshTier = RefreshTier.SHORT,
        tokens: Optional[Iterable[TokenMetadata]] = None,
    ) -> SweepReport:
        """Refresh every registry token (or ``tokens``)."""
        targets = _unique(tokens if tokens is not None else TOKEN_REGISTRY)
        logger.info("Starting full sweep over %d tokens (tier=%s)", len(targets), tier.value)
        return await self._sweep("full", targets, tier)

    async def run_active_sweep(self, now: Optional[float] = None) -> SweepReport:
        """Refresh only tokens viewed within the active window."""
        started_at = _utcnow()
        members = await self._tracker.list_active(now)

        targets: List[TokenMetadata] = []
        unresolved: List[TokenRefreshResult] = []
        for chain, address in members:
            token = resolve_member(chain, address)
            if token is None:
                unresolved.append(TokenRefreshResult(
                    token=address,
                    chain=chain,
                    address=address,
                    status="failed",
                    error=f"Unknown token {chain}:{address}",
                ))
            else:
                targets.append(token)

        logger.info("Starting active sweep over %d tokens", len(targets))
        return await self._sweep("active", _unique(targets), RefreshTier.SHORT, started_at, unresolved)

    async def _sweep(
        self,
        kind: str,
        tokens: List[TokenMetadata],
        tier: RefreshTier,
        started_at: Optional[datetime] = None,
        results: Optional[List[TokenRefreshResult]] = None,
    ) -> SweepReport:
        started_at = started_at or _utcnow()
        results = list(results or [])
        batch_size = max(1, self._config.batch_size)

        for index in range(0, len(tokens), batch_size):
            batch = tokens[index:index + batch_size]
            results.extend(await asyncio.gather(*(self._refresh_safely(t, tier) for t in batch)))
            if index + batch_size < len(tokens) and self._config.batch_delay_seconds > 0:
                await self._sleep(self._config.batch_delay_seconds)

        report = SweepReport(kind=kind, started_at=started_at, ended_at=_utcnow(), results=results)
        logger.info(
            "%s sweep finished: %d processed, %d ok, %d failed, %d skipped in %.2fs",
            kind.capitalize(),
            report.processed,
            report.successful,
            report.failed,
            report.skipped,
            report.duration_seconds,
        )
        for message in report.errors:
            logger.warning("Sweep error: %s", message)
        return report

    async def _refresh_safely(self, token: TokenMetadata, tier: RefreshTier) -> TokenRefreshResult:
        try:
            return await self.refresh_token(token, tier)
        except Exception as e:  # noqa: BLE001
            logger.error("Refresh failed for %s: %s", token.symbol, e)
            return TokenRefreshResult(
                token=token.symbol,
                chain=token.chain,
                address=token.address,
                status="failed",
                error=str(e),
            )

    async def refresh_token(self, token: TokenMetadata, tier: RefreshTier = RefreshTier.SHORT) -> TokenRefreshResult:
        result = TokenRefreshResult(
            token=token.symbol,
            chain=token.chain,
            address=token.address,
            status="skipped",
        )
        errors: List[str] = []

        if token.burn_tracked:
            try:
                await self._burns.recompute(token, tier, JobType.SWEEP)
                result.burns_refreshed = True
            except RefreshInProgressError:
                logger.debug("Burn refresh for %s already running", token.symbol)
            except Exception as e:  # noqa: BLE001
                errors.append(f"burns: {e}")

        if self._market is not None and self._config.refresh_market:
            try:
                await self._market.refresh(token, ttl=settings.market_sweep_cache_ttl_seconds)
                result.market_refreshed = True
            except Exception as e:  # noqa: BLE001
                errors.append(f"market: {e}")

        if errors:
            result.status = "failed"
            result.error = "; ".join(errors)
        elif result.burns_refreshed or result.market_refreshed:
            result.status = "success"
        return result


def _unique(tokens: Iterable[TokenMetadata]) -> List[TokenMetadata]:
    seen = set()
    unique: List[TokenMetadata] = []
    for token in tokens:
        if token.member_key in seen:
            continue
        seen.add(token.member_key)
        unique.append(token)
    return unique


_worker: Optional[RefreshWorker] = None


def get_refresh_worker() -> RefreshWorker:
    global _worker
    if _worker is None:
        market = get_market_data_service() if settings.enable_market_refresh else None
        _worker = RefreshWorker(market_service=market)
    return _worker


async def run_refresh_sweep(active_only: bool = False, tier: RefreshTier = RefreshTier.SHORT) -> SweepReport:
    """Convenience function to run one sweep with the process-wide worker."""
    worker = get_refresh_worker()
    if active_only:
        return await worker.run_active_sweep()
    return await worker.run_full_sweep(tier)
