"""Burn pipeline data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, localcontext
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ...config import settings


class RefreshTier(str, Enum):
    """Refresh cadence class; decides the next scheduled recomputation."""

    SHORT = "short"     # 5/15 minute windows
    MEDIUM = "medium"   # 30 minute / 1 hour windows
    LONG = "long"       # 3 hours and wider

    @property
    def interval_seconds(self) -> int:
        return {
            RefreshTier.SHORT: settings.refresh_short_seconds,
            RefreshTier.MEDIUM: settings.refresh_medium_seconds,
            RefreshTier.LONG: settings.refresh_long_seconds,
        }[self]


@dataclass(frozen=True)
class BurnWindow:
    label: str
    seconds: int
    tier: RefreshTier

    @property
    def field_name(self) -> str:
        return f"burn_{self.label}"

    @property
    def alias(self) -> str:
        return f"burn{self.label}"


BURN_WINDOWS: Tuple[BurnWindow, ...] = (
    BurnWindow("5min", 5 * 60, RefreshTier.SHORT),
    BurnWindow("15min", 15 * 60, RefreshTier.SHORT),
    BurnWindow("30min", 30 * 60, RefreshTier.MEDIUM),
    BurnWindow("1h", 60 * 60, RefreshTier.MEDIUM),
    BurnWindow("3h", 3 * 60 * 60, RefreshTier.LONG),
    BurnWindow("6h", 6 * 60 * 60, RefreshTier.LONG),
    BurnWindow("12h", 12 * 60 * 60, RefreshTier.LONG),
    BurnWindow("24h", 24 * 60 * 60, RefreshTier.LONG),
)

WIDEST_WINDOW_SECONDS = BURN_WINDOWS[-1].seconds


def to_display_amount(raw: int, decimals: int) -> Decimal:
    """Convert raw base units to display units without losing precision."""
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(raw) / (Decimal(10) ** decimals)


def utc_from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class BurnEvent(BaseModel):
    """One transfer into a burn address."""

    model_config = ConfigDict(populate_by_name=True)

    token_address: str = Field(..., alias="tokenAddress")
    block_number: int = Field(..., alias="blockNumber")
    timestamp: int = Field(..., description="Unix seconds of the containing block")
    amount: int = Field(..., ge=0, description="Raw base-unit amount")
    tx_hash: str = Field(..., alias="txHash")
    log_index: int = Field(..., alias="logIndex")
    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to", description="Burn address that received the transfer")

    @property
    def event_id(self) -> Tuple[str, int]:
        return (self.tx_hash.lower(), self.log_index)


class BurnLedger(BaseModel):
    """Burn events still inside the widest window, plus the scan cursor."""

    model_config = ConfigDict(populate_by_name=True)

    token_address: str = Field(..., alias="tokenAddress")
    last_processed_block: int = Field(0, alias="lastProcessedBlock")
    events: List[BurnEvent] = Field(default_factory=list)

    def merged(
        self,
        new_events: Iterable[BurnEvent],
        last_processed_block: int,
        cutoff: float,
    ) -> "BurnLedger":
        """Return a ledger with ``new_events`` added and events older than ``cutoff`` dropped."""
        by_id: Dict[Tuple[str, int], BurnEvent] = {event.event_id: event for event in self.events}
        for event in new_events:
            by_id[event.event_id] = event

        kept = sorted(
            (event for event in by_id.values() if event.timestamp >= cutoff),
            key=lambda e: (e.block_number, e.log_index),
        )
        return BurnLedger(
            token_address=self.token_address,
            last_processed_block=max(self.last_processed_block, last_processed_block),
            events=kept,
        )

    def latest(self, limit: int) -> List[BurnEvent]:
        """Newest events first."""
        ordered = sorted(self.events, key=lambda e: (e.block_number, e.log_index), reverse=True)
        return ordered[:limit]


class BurnSummary(BaseModel):
    """Burn totals for the eight trailing windows of one token."""

    model_config = ConfigDict(populate_by_name=True)

    token_name: str = Field(..., alias="tokenName")
    token_address: str = Field(..., alias="tokenAddress")
    chain: str = Field(..., description="Chain the token lives on")
    decimals: int = Field(18, ge=0)

    burn_5min: Decimal = Field(Decimal(0), alias="burn5min")
    burn_15min: Decimal = Field(Decimal(0), alias="burn15min")
    burn_30min: Decimal = Field(Decimal(0), alias="burn30min")
    burn_1h: Decimal = Field(Decimal(0), alias="burn1h")
    burn_3h: Decimal = Field(Decimal(0), alias="burn3h")
    burn_6h: Decimal = Field(Decimal(0), alias="burn6h")
    burn_12h: Decimal = Field(Decimal(0), alias="burn12h")
    burn_24h: Decimal = Field(Decimal(0), alias="burn24h")

    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")
    last_processed_block: int = Field(0, alias="lastProcessedBlock")
    computation_time_ms: int = Field(0, alias="computationTime")

    def window_values(self) -> List[Decimal]:
        return [getattr(self, window.field_name) for window in BURN_WINDOWS]

    @classmethod
    def placeholder(cls, token_name: str, token_address: str, chain: str) -> "BurnSummary":
        return cls(token_name=token_name, token_address=token_address, chain=chain)


class CacheEntry(BaseModel):
    """Persisted burn summary with its soft refresh deadline."""

    model_config = ConfigDict(populate_by_name=True)

    summary: BurnSummary
    ledger: BurnLedger
    next_update: float = Field(..., alias="nextUpdate", description="Unix seconds after which the entry is stale")
    tier: RefreshTier = RefreshTier.SHORT


def is_stale(entry: Optional[CacheEntry], now: float) -> bool:
    return entry is None or now >= entry.next_update


class JobType(str, Enum):
    BACKGROUND = "background"
    ONDEMAND = "ondemand"
    SWEEP = "sweep"


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    token_name: str = Field(..., alias="tokenName")
    job_type: JobType = Field(..., alias="jobType")
    status: JobState = JobState.PENDING
    started_at: datetime = Field(..., alias="startedAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")
    error: Optional[str] = None
    blocks_processed: Optional[int] = Field(None, alias="blocksProcessed")


class BurnDataResponse(BurnSummary):
    """Summary as served to clients, with cache metadata."""

    from_cache: bool = Field(False, alias="fromCache")
    stale: bool = False
    next_update: Optional[datetime] = Field(None, alias="nextUpdate")
    refresh_scheduled: bool = Field(False, alias="refreshScheduled")


class BurnTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_address: Optional[str] = Field(None, alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    amount: Decimal = Field(..., description="Display units")
    timestamp: datetime
    block_number: int = Field(..., alias="blockNumber")
    tx_hash: str = Field(..., alias="txHash")

    @classmethod
    def from_event(cls, event: BurnEvent, decimals: int) -> "BurnTransaction":
        return cls(
            from_address=event.from_address,
            to_address=event.to_address,
            amount=to_display_amount(event.amount, decimals),
            timestamp=utc_from_timestamp(event.timestamp),
            block_number=event.block_number,
            tx_hash=event.tx_hash,
        )


class BurnHistoryResponse(BaseModel):
    """Latest burns still held in the cached ledger (at most the last 24h)."""

    model_config = ConfigDict(populate_by_name=True)

    token_name: str = Field(..., alias="tokenName")
    token_address: str = Field(..., alias="token")
    chain: str
    latest_burn_transactions: List[BurnTransaction] = Field(default_factory=list, alias="latestBurnTransactions")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")
    from_cache: bool = Field(False, alias="fromCache")
    refresh_scheduled: bool = Field(False, alias="refreshScheduled")


def tier_for_interval(interval: Optional[str]) -> RefreshTier:
    """Map a window label (``5min`` ... ``24h``) or tier name to its refresh tier."""
    if not interval:
        return RefreshTier.SHORT
    value = interval.strip().lower()
    for tier in RefreshTier:
        if tier.value == value:
            return tier
    for window in BURN_WINDOWS:
        if window.label == value:
            return window.tier
    raise ValueError(f"Unknown interval '{interval}'")
