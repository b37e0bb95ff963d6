"""
Burn Service

Cache/staleness contract for burn summaries. Reads never wait on a
recomputation: stale or missing entries are served immediately and one
background recomputation is scheduled per token.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Optional, Tuple

from pydantic import ValidationError

from ...config import settings
from ...core.recovery.errors import (
    CacheUnavailableError,
    RefreshInProgressError,
    UnknownTokenError,
)
from ...providers.token_list import TokenMetadata, resolve_token
from ..cache import CacheStore, burn_cache_key, burn_lock_key, get_cache_store
from ..jobs import JobTracker
from .aggregator import BurnAggregator
from .models import (
    BurnDataResponse,
    BurnHistoryResponse,
    BurnLedger,
    BurnSummary,
    BurnTransaction,
    CacheEntry,
    JobState,
    JobType,
    RefreshTier,
    is_stale,
    utc_from_timestamp,
)
from .refresher import BackgroundRefresher

logger = logging.getLogger(__name__)


class BurnService:
    def __init__(
        self,
        store: Optional[CacheStore] = None,
        aggregator: Optional[BurnAggregator] = None,
        refresher: Optional[BackgroundRefresher] = None,
        jobs: Optional[JobTracker] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store or get_cache_store()
        self._aggregator = aggregator or BurnAggregator()
        self.refresher = refresher or BackgroundRefresher()
        self._jobs = jobs or JobTracker(self._store)
        self._clock = clock

    @staticmethod
    def resolve(identifier: str, chain: Optional[str] = None) -> TokenMetadata:
        """Resolve a burn-tracked token; anything else is unknown to this service."""
        token = resolve_token(identifier, chain)
        if not token.burn_tracked:
            raise UnknownTokenError(identifier)
        return token

    def now(self) -> float:
        return self._clock()

    def next_update_for(self, tier: RefreshTier, now: Optional[float] = None) -> float:
        now = self._clock() if now is None else now
        return now + tier.interval_seconds

    async def get_cached(self, token: TokenMetadata) -> Optional[CacheEntry]:
        raw = await self._store.get(burn_cache_key(token.address))
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding malformed burn cache entry for %s", token.symbol)
            return None

    async def put(
        self,
        token: TokenMetadata,
        summary: BurnSummary,
        ledger: BurnLedger,
        tier: RefreshTier = RefreshTier.SHORT,
        now: Optional[float] = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            summary=summary,
            ledger=ledger,
            next_update=self.next_update_for(tier, now),
            tier=tier,
        )
        await self._store.set(
            burn_cache_key(token.address),
            entry.model_dump(mode="json", by_alias=True),
            ttl=settings.burn_cache_ttl_seconds,
        )
        return entry

    async def get_burn_data(
        self,
        identifier: str,
        chain: Optional[str] = None,
        now: Optional[float] = None,
    ) -> BurnDataResponse:
        """
        Serve the best available summary for a token.

        Returns the cached summary when present, otherwise a zeroed
        placeholder with ``fromCache=false``. When the entry is stale or
        absent exactly one background recomputation is scheduled.

        Raises:
            UnknownTokenError: identifier is not a burn-tracked token
            ChainMismatchError: token lives on another chain
        """
        token = self.resolve(identifier, chain)
        entry, stale, scheduled = await self._read(token, now)

        if entry is None:
            summary = BurnSummary.placeholder(token.symbol, token.address, token.chain)
            next_update = None
        else:
            summary = entry.summary
            next_update = utc_from_timestamp(entry.next_update)

        return BurnDataResponse(
            **summary.model_dump(),
            from_cache=entry is not None,
            stale=stale,
            next_update=next_update,
            refresh_scheduled=scheduled,
        )

    async def get_burn_history(
        self,
        identifier: str,
        chain: Optional[str] = None,
        limit: int = 50,
        now: Optional[float] = None,
    ) -> BurnHistoryResponse:
        """Newest burn transfers from the cached ledger; empty when nothing is cached yet."""
        token = self.resolve(identifier, chain)
        entry, _, scheduled = await self._read(token, now)
        if entry is None:
            return BurnHistoryResponse(
                token_name=token.symbol,
                token_address=token.address,
                chain=token.chain,
                refresh_scheduled=scheduled,
            )

        decimals = entry.summary.decimals
        return BurnHistoryResponse(
            token_name=token.symbol,
            token_address=token.address,
            chain=token.chain,
            latest_burn_transactions=[
                BurnTransaction.from_event(event, decimals) for event in entry.ledger.latest(limit)
            ],
            last_updated=entry.summary.last_updated,
            from_cache=True,
            refresh_scheduled=scheduled,
        )

    async def _read(
        self, token: TokenMetadata, now: Optional[float]
    ) -> Tuple[Optional[CacheEntry], bool, bool]:
        """Cached entry (None when missing or unreadable), its staleness, and whether a refresh was queued."""
        now = self._clock() if now is None else now
        try:
            entry = await self.get_cached(token)
        except CacheUnavailableError as exc:
            logger.warning("Serving placeholder for %s, cache unavailable: %s", token.symbol, exc)
            entry = None

        stale = is_stale(entry, now)
        scheduled = False
        if stale:
            tier = entry.tier if entry is not None else RefreshTier.SHORT
            scheduled = self.schedule_refresh(token, tier)
        return entry, stale, scheduled

    def schedule_refresh(self, token: TokenMetadata, tier: RefreshTier = RefreshTier.SHORT) -> bool:
        """Submit a background recomputation unless one is already in flight."""
        return self.refresher.submit(
            token.address_lower,
            lambda: self._background_recompute(token, tier),
        )

    async def _background_recompute(self, token: TokenMetadata, tier: RefreshTier) -> None:
        try:
            await self.recompute(token, tier, JobType.BACKGROUND)
        except RefreshInProgressError:
            logger.debug("Skipped background refresh for %s, already running", token.symbol)

    async def recompute(
        self,
        token: TokenMetadata,
        tier: RefreshTier = RefreshTier.SHORT,
        job_type: JobType = JobType.ONDEMAND,
    ) -> CacheEntry:
        """
        Recompute and persist one token's summary.

        Holds ``lock:burns:{address}`` for the duration. When the lock is
        already held, raises ``RefreshInProgressError`` without doing any work.
        The lock is released only while this run still owns it.
        A failed aggregation leaves the cached entry untouched.
        """
        lock_key = burn_lock_key(token.address)
        lock_value = {"token": token.symbol, "jobType": job_type.value, "owner": uuid.uuid4().hex}
        acquired = await self._store.set_if_absent(
            lock_key,
            lock_value,
            ttl=settings.refresh_lock_ttl_seconds,
        )
        if not acquired:
            raise RefreshInProgressError(token.symbol)

        job = await self._jobs.create(token.symbol, job_type)
        job = await self._jobs.update(job, JobState.RUNNING)
        try:
            previous = await self.get_cached(token)
            ledger = previous.ledger if previous is not None else None
            start_block = ledger.last_processed_block if ledger is not None else None

            summary, new_ledger = await self._aggregator.aggregate(
                token.address, chain=token.chain, ledger=ledger
            )
            entry = await self.put(token, summary, new_ledger, tier)

            scanned = new_ledger.last_processed_block - start_block if start_block else None
            await self._jobs.update(job, JobState.COMPLETED, blocks_processed=scanned)
            logger.info(
                "Cached burns for %s (tier=%s, job=%s)", token.symbol, tier.value, job.id
            )
            return entry
        except Exception as exc:
            await self._jobs.update(job, JobState.FAILED, error=str(exc))
            raise
        finally:
            try:
                released = await self._store.delete_if_equals(lock_key, lock_value)
                if not released:
                    logger.warning("Refresh lock for %s expired before the run finished", token.symbol)
            except CacheUnavailableError as exc:
                logger.warning("Could not release refresh lock for %s: %s", token.symbol, exc)


_service: Optional[BurnService] = None


def get_burn_service() -> BurnService:
    """Get the process-wide BurnService."""
    global _service
    if _service is None:
        _service = BurnService()
    return _service
