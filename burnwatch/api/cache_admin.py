"""
Operator cache inspection and invalidation.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.recovery.errors import CacheUnavailableError
from ..providers.token_list import TOKEN_REGISTRY, get_tokens_by_chain
from ..services.cache import CacheStore, clear_token_cache, get_cache_store, token_cache_info
from ..types.responses import CacheHealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["cache"])

AVAILABLE_ACTIONS = {
    "health": "GET /api/cache/api?action=health",
    "info": "GET /api/cache/api?action=info&address=0x...",
    "clear": "GET /api/cache/api?action=clear (all) or ?action=clear&address=0x... (specific)",
    "clearChain": "GET /api/cache/api?action=clear-chain&chain=bsc",
}


@router.get("/api")
async def manage_cache(
    action: Optional[str] = None,
    address: Optional[str] = None,
    chain: Optional[str] = None,
    store: CacheStore = Depends(get_cache_store),
) -> Dict[str, Any]:
    try:
        if action == "health":
            return await _health(store)

        if action == "info":
            if not address:
                raise HTTPException(
                    status_code=400,
                    detail="Address parameter required. Use ?action=info&address=0x...",
                )
            return {"address": address, "cached": await token_cache_info(store, address)}

        if action == "clear":
            if address:
                deleted = await clear_token_cache(store, address)
                return {"message": f"Cache cleared for {address}", "deleted": deleted}
            cleared = 0
            for token in TOKEN_REGISTRY:
                await clear_token_cache(store, token.address)
                cleared += 1
            return {"message": "Cache cleared for all tokens", "cleared": cleared}

        if action == "clear-chain":
            if not chain:
                raise HTTPException(
                    status_code=400,
                    detail="Chain parameter required. Use ?action=clear-chain&chain=bsc",
                )
            tokens = get_tokens_by_chain(chain)
            for token in tokens:
                await clear_token_cache(store, token.address)
            return {
                "message": f"Cache cleared for {chain.upper()} tokens",
                "cleared": len(tokens),
                "total": len(tokens),
            }
    except CacheUnavailableError as e:
        logger.error("Cache management failed: %s", e)
        raise HTTPException(status_code=503, detail="Cache store unavailable")

    raise HTTPException(
        status_code=400,
        detail={"error": "Invalid action", "availableActions": AVAILABLE_ACTIONS},
    )


async def _health(store: CacheStore) -> Dict[str, Any]:
    try:
        await store.ping()
    except CacheUnavailableError as e:
        return CacheHealthResponse(status="unavailable", backend=store.backend, message=str(e)).model_dump()
    return CacheHealthResponse(
        status="operational",
        backend=store.backend,
        message="Cache is operational",
    ).model_dump()
