from fastapi import APIRouter, Depends
from typing import Dict, Any
from ..core.recovery.errors import CacheUnavailableError
from ..providers.rpc import get_rpc_provider
from ..services.cache import CacheStore, get_cache_store

router = APIRouter()


@router.get("/healthz")
async def health_check(store: CacheStore = Depends(get_cache_store)) -> Dict[str, Any]:
    """Health check endpoint that verifies the cache store and chain RPC status"""

    # Check cache store
    try:
        await store.ping()
        store_status = {"status": "healthy", "backend": store.backend}
    except CacheUnavailableError as e:
        store_status = {"status": "error", "backend": store.backend, "reason": e.message}

    # Check each chain RPC
    provider_status = {}
    for chain in ("bsc", "rwa"):
        provider_status[chain] = await get_rpc_provider(chain).health_check()

    # Determine overall health
    all_healthy = store_status["status"] == "healthy" and all(
        status["status"] in ["healthy", "unavailable"]
        for status in provider_status.values()
    )

    # Count available providers
    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    return {
        "status": "healthy" if all_healthy and available_providers > 0 else "degraded",
        "store": store_status,
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status)
    }
