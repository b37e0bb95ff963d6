"""Active-token tracker: which tokens clients are viewing right now."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Tuple

from ..config import settings
from .cache import ACTIVE_TOKENS_KEY, CacheStore, get_cache_store

logger = logging.getLogger(__name__)


class ActiveTokenTracker:
    """
    Time-ordered set of ``{chain}:{address}`` members scored by last view (ms).

    Members older than the window are filtered at read time and never
    deleted individually; the set key's own expiry is refreshed on every
    write so the whole set lapses once views stop.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store or get_cache_store()
        self.window_seconds = window_seconds or settings.active_window_seconds
        self._clock = clock

    @staticmethod
    def member_key(chain: str, address: str) -> str:
        return f"{chain.lower()}:{address.lower()}"

    async def record_view(self, chain: str, address: str) -> bool:
        """Best effort; returns ``False`` instead of raising when the store fails."""
        member = self.member_key(chain, address)
        try:
            await self._store.zadd(ACTIVE_TOKENS_KEY, member, self._clock() * 1000)
            await self._store.expire(ACTIVE_TOKENS_KEY, self.window_seconds)
            return True
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to record view for %s: %s", member, exc)
            return False

    async def list_active(self, now: Optional[float] = None) -> List[Tuple[str, str]]:
        """Return ``(chain, address)`` pairs seen within the window, most recent first."""
        now_ms = (self._clock() if now is None else now) * 1000
        cutoff = now_ms - self.window_seconds * 1000

        rows = await self._store.zrange_with_scores(ACTIVE_TOKENS_KEY)
        active: List[Tuple[str, str]] = []
        for member, score in sorted(rows, key=lambda row: row[1], reverse=True):
            if score <= cutoff:
                continue
            chain, sep, address = member.partition(":")
            if not sep or not address:
                logger.debug("Ignoring malformed active member %s", member)
                continue
            active.append((chain, address))
        return active


_tracker: Optional[ActiveTokenTracker] = None


def get_active_token_tracker() -> ActiveTokenTracker:
    global _tracker
    if _tracker is None:
        _tracker = ActiveTokenTracker()
    return _tracker
