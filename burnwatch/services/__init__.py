"""Service layer helpers"""

from .active_tokens import ActiveTokenTracker, get_active_token_tracker
from .burns.service import BurnService, get_burn_service
from .cache import CacheStore, get_cache_store
from .jobs import JobTracker, get_job_tracker
from .market_data import MarketDataService, get_market_data_service
from .supply import SupplyService, UnsupportedChainError, get_supply_service

__all__ = [
    "ActiveTokenTracker",
    "get_active_token_tracker",
    "BurnService",
    "get_burn_service",
    "CacheStore",
    "get_cache_store",
    "JobTracker",
    "get_job_tracker",
    "MarketDataService",
    "get_market_data_service",
    "SupplyService",
    "UnsupportedChainError",
    "get_supply_service",
]
