"""
Background Workers

Refresh sweeps for cached burn and market data.
"""

from .refresh_worker import (
    RefreshWorker,
    SweepConfig,
    SweepReport,
    TokenRefreshResult,
    get_refresh_worker,
    run_refresh_sweep,
)
from .scheduler import SweepScheduler, get_sweep_scheduler

__all__ = [
    "RefreshWorker",
    "SweepConfig",
    "SweepReport",
    "TokenRefreshResult",
    "get_refresh_worker",
    "run_refresh_sweep",
    "SweepScheduler",
    "get_sweep_scheduler",
]
