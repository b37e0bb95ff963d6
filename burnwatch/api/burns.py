from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from ..core.recovery.errors import ChainMismatchError, UnknownTokenError
from ..providers.token_list import SUPPORTED_CHAINS
from ..services.active_tokens import ActiveTokenTracker, get_active_token_tracker
from ..services.burns.models import BurnDataResponse, BurnHistoryResponse
from ..services.burns.service import BurnService, get_burn_service

router = APIRouter()


@router.get("/api/{chain}/total-burnt/{token_name}", response_model=BurnDataResponse)
async def total_burnt(
    chain: str,
    token_name: str,
    background_tasks: BackgroundTasks,
    service: BurnService = Depends(get_burn_service),
    tracker: ActiveTokenTracker = Depends(get_active_token_tracker),
) -> BurnDataResponse:
    """Cached burn totals; a stale or missing entry schedules a background refresh."""
    chain = chain.lower()
    if chain not in SUPPORTED_CHAINS:
        raise HTTPException(status_code=400, detail=f"Unsupported chain: {chain}")

    try:
        data = await service.get_burn_data(token_name, chain)
    except (UnknownTokenError, ChainMismatchError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    background_tasks.add_task(tracker.record_view, data.chain, data.token_address)
    return data


@router.get("/api/{chain}/burn-history/{token_name}", response_model=BurnHistoryResponse)
async def burn_history(
    chain: str,
    token_name: str,
    background_tasks: BackgroundTasks,
    limit: int = Query(50, ge=1, le=500),
    service: BurnService = Depends(get_burn_service),
    tracker: ActiveTokenTracker = Depends(get_active_token_tracker),
) -> BurnHistoryResponse:
    """Latest burn transfers from the cached ledger, newest first."""
    chain = chain.lower()
    if chain not in SUPPORTED_CHAINS:
        raise HTTPException(status_code=400, detail=f"Unsupported chain: {chain}")

    try:
        history = await service.get_burn_history(token_name, chain, limit=limit)
    except (UnknownTokenError, ChainMismatchError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    background_tasks.add_task(tracker.record_view, history.chain, history.token_address)
    return history
