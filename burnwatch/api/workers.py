from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..providers.token_list import SUPPORTED_CHAINS
from ..services.active_tokens import ActiveTokenTracker, get_active_token_tracker
from ..types.responses import ActiveTokensResponse, TrackActiveRequest, TrackActiveResponse
from ..workers.refresh_worker import RefreshWorker, get_refresh_worker
from .auth import require_cron_secret

router = APIRouter(prefix="/api/workers", tags=["workers"])


@router.get("/refresh-active", dependencies=[Depends(require_cron_secret)])
async def refresh_active(worker: RefreshWorker = Depends(get_refresh_worker)) -> Dict[str, Any]:
    """Refresh tokens viewed within the active window."""
    report = await worker.run_active_sweep()
    return report.to_dict()


@router.get("/refresh-cache", dependencies=[Depends(require_cron_secret)])
async def refresh_cache(worker: RefreshWorker = Depends(get_refresh_worker)) -> Dict[str, Any]:
    """Refresh every registry token."""
    report = await worker.run_full_sweep()
    return report.to_dict()


@router.post("/track-active", response_model=TrackActiveResponse)
async def track_active(
    request: TrackActiveRequest,
    tracker: ActiveTokenTracker = Depends(get_active_token_tracker),
) -> TrackActiveResponse:
    if not request.token_address or not request.chain:
        raise HTTPException(status_code=400, detail="tokenAddress and chain are required")
    if request.chain.lower() not in SUPPORTED_CHAINS:
        raise HTTPException(status_code=400, detail=f"Unsupported chain: {request.chain}")

    recorded = await tracker.record_view(request.chain, request.token_address)
    return TrackActiveResponse(
        success=recorded,
        message="Token tracked" if recorded else "Token view not recorded",
    )


@router.get("/track-active", response_model=ActiveTokensResponse)
async def list_active(tracker: ActiveTokenTracker = Depends(get_active_token_tracker)) -> ActiveTokensResponse:
    active = await tracker.list_active()
    members = [f"{chain}:{address}" for chain, address in active]
    return ActiveTokensResponse(
        active_tokens=members,
        count=len(members),
        window_seconds=tracker.window_seconds,
    )
