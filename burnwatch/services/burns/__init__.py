"""
Burn tracking

Aggregates burn-address transfers into trailing windows and keeps the
results cached with a staleness-driven refresh.
"""

from .aggregator import AggregatorConfig, BurnAggregator
from .models import (
    BURN_WINDOWS,
    BurnDataResponse,
    BurnEvent,
    BurnHistoryResponse,
    BurnLedger,
    BurnSummary,
    BurnTransaction,
    BurnWindow,
    CacheEntry,
    JobState,
    JobStatus,
    JobType,
    RefreshTier,
    is_stale,
    tier_for_interval,
    to_display_amount,
)
from .refresher import BackgroundRefresher

__all__ = [
    "AggregatorConfig",
    "BurnAggregator",
    "BURN_WINDOWS",
    "BurnDataResponse",
    "BurnEvent",
    "BurnHistoryResponse",
    "BurnLedger",
    "BurnSummary",
    "BurnTransaction",
    "BurnWindow",
    "CacheEntry",
    "JobState",
    "JobStatus",
    "JobType",
    "RefreshTier",
    "is_stale",
    "tier_for_interval",
    "to_display_amount",
    "BackgroundRefresher",
]
