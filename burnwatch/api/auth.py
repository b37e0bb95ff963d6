"""
Shared-secret authorization for cron and worker endpoints.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings


# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """
    Require ``Authorization: Bearer <CRON_SECRET>``.

    Raises HTTPException 401 when the header is missing or wrong, and for
    every call when no secret is configured.
    """
    expected = settings.cron_secret
    if not expected or credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
