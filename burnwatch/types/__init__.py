from .responses import (
    ActiveTokensResponse,
    CacheHealthResponse,
    CalculateBurnsResponse,
    SingleTokenUpdateResponse,
    TrackActiveRequest,
    TrackActiveResponse,
)

__all__ = [
    "ActiveTokensResponse",
    "CacheHealthResponse",
    "CalculateBurnsResponse",
    "SingleTokenUpdateResponse",
    "TrackActiveRequest",
    "TrackActiveResponse",
]
