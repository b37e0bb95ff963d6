from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import burns, cache_admin, cron, health, tokens, workers
from .config import settings
from .logging_config import get_logger, setup_logging
from .middleware import RequestLoggingMiddleware
from .providers.rpc import close_rpc_providers
from .services.burns.service import get_burn_service
from .services.cache import get_cache_store
from .workers.scheduler import get_sweep_scheduler

log = get_logger("burnwatch")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    log.info("application_starting", cache_backend=get_cache_store().backend)

    if settings.scheduler_enabled:
        await get_sweep_scheduler().start()

    yield

    log.info("application_stopping")
    if settings.scheduler_enabled:
        await get_sweep_scheduler().stop()
    await get_burn_service().refresher.shutdown()
    await close_rpc_providers()
    await get_cache_store().aclose()
    log.info("application_stopped")


# Create FastAPI app
app = FastAPI(
    title="Burnwatch API",
    description="Token burn tracking with cached, background-refreshed aggregates",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(burns.router, tags=["Burns"])
app.include_router(cron.router)
app.include_router(workers.router)
app.include_router(cache_admin.router)
app.include_router(tokens.router)


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Burnwatch API",
        "version": "0.1.0",
        "description": "Token burn tracking with cached, background-refreshed aggregates",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "burnwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
