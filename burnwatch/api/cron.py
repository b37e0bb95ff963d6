"""
Cron endpoints: forced recomputation, scheduled burn updates and job lookup.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.recovery.errors import (
    CacheUnavailableError,
    ChainMismatchError,
    RefreshInProgressError,
    UnknownTokenError,
)
from ..services.burns.models import (
    JobStatus,
    JobType,
    is_stale,
    tier_for_interval,
    utc_from_timestamp,
)
from ..services.burns.service import BurnService, get_burn_service
from ..services.jobs import JobTracker, get_job_tracker
from ..types.responses import CalculateBurnsResponse, SingleTokenUpdateResponse
from ..workers.refresh_worker import RefreshWorker, get_refresh_worker
from .auth import require_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.api_route(
    "/calculate-burns/{token_name}",
    methods=["GET", "POST"],
    response_model=CalculateBurnsResponse,
)
async def calculate_burns(
    token_name: str,
    service: BurnService = Depends(get_burn_service),
) -> CalculateBurnsResponse:
    """Recompute one token synchronously and write it to the cache."""
    if not token_name.strip():
        raise HTTPException(status_code=400, detail="Missing tokenName")

    try:
        token = service.resolve(token_name.lower())
    except (UnknownTokenError, ChainMismatchError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        entry = await service.recompute(token, job_type=JobType.ONDEMAND)
    except RefreshInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:  # noqa: BLE001
        logger.error("Failed to calculate burn data for %s: %s", token.symbol, e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to calculate burn data: {e}")

    return CalculateBurnsResponse(
        message="Burn data calculated and cached",
        data=entry.summary.model_dump(mode="json", by_alias=True),
        next_update=utc_from_timestamp(entry.next_update),
        tier=entry.tier.value,
    )


@router.api_route(
    "/update-burn-data",
    methods=["GET", "POST"],
    dependencies=[Depends(require_cron_secret)],
)
async def update_burn_data(
    token: Optional[str] = None,
    force: bool = False,
    interval: Optional[str] = None,
    service: BurnService = Depends(get_burn_service),
    worker: RefreshWorker = Depends(get_refresh_worker),
) -> Dict[str, Any]:
    """Full sweep, or a single token when ``?token=`` is given (skipped while fresh unless ``force``)."""
    try:
        tier = tier_for_interval(interval)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not token:
        report = await worker.run_full_sweep(tier)
        return report.to_dict()

    try:
        target = service.resolve(token.lower())
    except (UnknownTokenError, ChainMismatchError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    if not force:
        try:
            cached = await service.get_cached(target)
        except CacheUnavailableError:
            cached = None
        if not is_stale(cached, service.now()):
            return SingleTokenUpdateResponse(
                token=target.symbol,
                status="fresh",
                next_update=utc_from_timestamp(cached.next_update),
                data=cached.summary.model_dump(mode="json", by_alias=True),
            ).model_dump(mode="json", by_alias=True)

    try:
        entry = await service.recompute(target, tier, JobType.BACKGROUND)
    except RefreshInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:  # noqa: BLE001
        logger.error("Failed to update burn data for %s: %s", target.symbol, e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update burn data: {e}")

    return SingleTokenUpdateResponse(
        token=target.symbol,
        status="updated",
        next_update=utc_from_timestamp(entry.next_update),
        data=entry.summary.model_dump(mode="json", by_alias=True),
    ).model_dump(mode="json", by_alias=True)


@router.get("/jobs/{job_id}", response_model=JobStatus)
async def get_job(job_id: str, jobs: JobTracker = Depends(get_job_tracker)) -> JobStatus:
    job = await jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job
