from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CalculateBurnsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(description="Outcome message")
    data: Dict[str, Any] = Field(description="Freshly computed burn summary")
    next_update: datetime = Field(alias="nextUpdate", description="When the cached entry turns stale")
    tier: str = Field(description="Refresh tier used to schedule the next update")


class SingleTokenUpdateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(description="Token symbol")
    status: str = Field(description="updated or fresh")
    next_update: Optional[datetime] = Field(default=None, alias="nextUpdate", description="Next scheduled refresh")
    data: Dict[str, Any] = Field(default_factory=dict, description="Burn summary served or computed")


class TrackActiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_address: Optional[str] = Field(default=None, alias="tokenAddress", description="Viewed token contract")
    chain: Optional[str] = Field(default=None, description="Chain of the viewed token")


class TrackActiveResponse(BaseModel):
    success: bool = Field(description="Whether the view was recorded")
    message: str = Field(description="Status message")


class ActiveTokensResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active_tokens: List[str] = Field(default_factory=list, alias="activeTokens", description="chain:address members")
    count: int = Field(description="Number of active tokens")
    window_seconds: int = Field(alias="windowSeconds", description="Activity window")


class CacheHealthResponse(BaseModel):
    status: str = Field(description="operational or unavailable")
    backend: str = Field(description="redis or memory")
    message: str = Field(description="Details")
