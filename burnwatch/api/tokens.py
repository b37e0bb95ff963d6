import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..core.recovery.errors import (
    ChainMismatchError,
    RateLimitError,
    RpcError,
    UnknownTokenError,
)
from ..providers.token_list import SUPPORTED_CHAINS, TokenMetadata, resolve_member, resolve_token
from ..services.active_tokens import ActiveTokenTracker, get_active_token_tracker
from ..services.market_data import MarketDataService, get_market_data_service
from ..services.supply import SupplyService, UnsupportedChainError, get_supply_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tokens"])


def _resolve(chain: str, identifier: str) -> TokenMetadata:
    chain = chain.lower()
    if chain not in SUPPORTED_CHAINS:
        raise HTTPException(status_code=400, detail=f"Unsupported chain: {chain}")
    try:
        return resolve_token(identifier, chain)
    except UnknownTokenError as e:
        # Unregistered contracts are still served market data
        token = resolve_member(chain, identifier)
        if token is None:
            raise HTTPException(status_code=400, detail=e.message)
        return token
    except ChainMismatchError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.get("/api/{chain}/token-metrics/{identifier}")
async def token_metrics(
    chain: str,
    identifier: str,
    supply: SupplyService = Depends(get_supply_service),
) -> Dict[str, Any]:
    """Total, burnt, locked and circulating supply."""
    token = _resolve(chain, identifier)
    try:
        return await supply.get_metrics(token)
    except UnsupportedChainError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (RpcError, RateLimitError) as e:
        logger.warning("Supply metrics failed for %s: %s", token.symbol, e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch token metrics: {e.message}")


@router.get("/api/{chain}/token-data/{identifier}")
async def token_data(
    chain: str,
    identifier: str,
    background_tasks: BackgroundTasks,
    market: MarketDataService = Depends(get_market_data_service),
    tracker: ActiveTokenTracker = Depends(get_active_token_tracker),
) -> Dict[str, Any]:
    """Market snapshot, served from cache when available."""
    token = _resolve(chain, identifier)
    try:
        snapshot = await market.get_snapshot(token)
    except (RpcError, RateLimitError) as e:
        logger.warning("Market data failed for %s: %s", token.symbol, e)
        raise HTTPException(status_code=502, detail=f"Failed to fetch token data: {e.message}")

    background_tasks.add_task(tracker.record_view, token.chain, token.address)
    return snapshot
