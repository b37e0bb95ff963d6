import math
import os

from pathlib import Path
from typing import Any, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Ensure we pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.cron_secret:
            fallback = os.getenv("CRON_SECRET_TOKEN")
            if fallback:
                object.__setattr__(self, "cron_secret", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="auto",
        description="Log renderer: json, console, or auto (console at DEBUG, json otherwise)",
    )

    # Worker authorization
    cron_secret: str = Field(
        default="",
        description="Shared bearer secret required by cron and worker endpoints",
        validation_alias=AliasChoices("cron_secret", "CRON_SECRET"),
    )

    # Chain RPC
    bsc_rpc_url: str = Field(
        default="https://bsc-dataseed.binance.org/",
        description="JSON-RPC endpoint for BNB Smart Chain",
    )
    rwa_rpc_url: str = Field(
        default="https://mainnet-rpc.assetchain.org",
        description="JSON-RPC endpoint for AssetChain (RWA tokens)",
    )
    block_time_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Approximate block interval used to size the burn scan lookback",
    )
    burn_start_block: int = Field(
        default=0,
        ge=0,
        description="Lowest block the burn scanner will ever read (deployment block)",
    )
    burn_log_batch_blocks: int = Field(
        default=5000,
        ge=1,
        description="Maximum block span per eth_getLogs request",
    )
    locked_addresses: str = Field(
        default="",
        description="Comma-separated addresses excluded from circulating supply",
    )

    # Cache Settings
    redis_url: str = Field(
        default="",
        description="Redis connection string; the in-process cache is used when empty",
    )
    cache_ttl_seconds: int = Field(default=300, description="Default cache TTL in seconds")
    max_cache_size: int = Field(default=10000, description="Maximum in-process cache size")
    burn_cache_ttl_seconds: int = Field(
        default=86400,
        description="Hard store expiry for burn cache entries",
    )
    market_cache_ttl_seconds: int = Field(default=60, description="TTL for market data snapshots")
    market_sweep_cache_ttl_seconds: int = Field(default=120, description="TTL for market snapshots written by sweeps")
    metrics_cache_ttl_seconds: int = Field(default=60, description="TTL for supply metrics")
    job_status_ttl_seconds: int = Field(default=86400, description="Retention for job status records")
    refresh_lock_ttl_seconds: int = Field(
        default=600,
        ge=1,
        description="Expiry of the per-token recomputation lock; must exceed the slowest full scan",
    )

    # Refresh cadence (nextUpdate tiers)
    refresh_short_seconds: int = Field(default=300, description="nextUpdate offset for 5/15 minute windows")
    refresh_medium_seconds: int = Field(default=1800, description="nextUpdate offset for 30 minute/1 hour windows")
    refresh_long_seconds: int = Field(default=3600, description="nextUpdate offset for 3 hour and wider windows")

    # Active token tracking
    active_window_seconds: int = Field(default=300, description="How long a viewed token stays active")

    # Sweeps
    sweep_batch_size: int = Field(default=10, ge=1, description="Tokens refreshed in parallel per batch")
    sweep_batch_delay_seconds: float = Field(default=1.0, ge=0, description="Pause between sweep batches")
    scheduler_enabled: bool = Field(
        default=False,
        description="Run sweeps inside the process instead of relying on an external cron",
    )
    full_sweep_interval_seconds: int = Field(default=300, ge=1, description="In-process full sweep cadence")
    active_sweep_interval_seconds: int = Field(default=30, ge=1, description="In-process active sweep cadence")
    sweep_timeout_seconds: int = Field(default=600, ge=1, description="Max seconds an in-process sweep may run")

    # Rate Limiting
    request_timeout_seconds: float = Field(default=15.0, description="Timeout for each outbound request")
    rpc_max_attempts: int = Field(default=3, ge=1, description="Attempts per rate-limited RPC batch")
    rpc_backoff_seconds: float = Field(default=1.0, ge=0, description="Initial backoff for rate-limited RPC batches")

    # Market data
    dexscreener_base_url: str = Field(
        default="https://api.dexscreener.com/latest/dex/tokens",
        description="DexScreener token pairs endpoint",
    )
    assetchain_base_url: str = Field(
        default="https://liquidity-pool-api.assetchain.org/tokens",
        description="AssetChain liquidity pool tokens endpoint",
    )
    enable_market_refresh: bool = Field(default=True, description="Refresh market snapshots during sweeps")

    @property
    def has_cron_secret(self) -> bool:
        return bool(self.cron_secret)

    @property
    def locked_address_list(self) -> List[str]:
        return [addr.strip() for addr in self.locked_addresses.split(",") if addr.strip()]

    @property
    def lookback_blocks(self) -> int:
        """Blocks needed to cover the widest burn window, with 10% headroom."""
        return math.ceil(86400 / self.block_time_seconds * 1.1)

    def rpc_url_for_chain(self, chain: str) -> str:
        urls = {"bsc": self.bsc_rpc_url, "rwa": self.rwa_rpc_url}
        url = urls.get(chain.lower(), "")
        if not url:
            raise ValueError(f"No RPC URL configured for chain {chain}")
        return url


# Global settings instance
settings = Settings()
