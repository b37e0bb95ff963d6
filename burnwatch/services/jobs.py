"""Job status bookkeeping for burn recomputations (observability only)."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from ..config import settings
from ..core.recovery.errors import CacheUnavailableError
from .burns.models import JobState, JobStatus, JobType
from .cache import CacheStore, get_cache_store, job_cache_key

logger = logging.getLogger(__name__)


class JobTracker:
    """Persist JobStatus records under ``job:{id}``; store failures are logged, never raised."""

    def __init__(self, store: Optional[CacheStore] = None, ttl_seconds: Optional[int] = None):
        self._store = store or get_cache_store()
        self._ttl = ttl_seconds or settings.job_status_ttl_seconds

    async def _save(self, job: JobStatus) -> None:
        try:
            await self._store.set(
                job_cache_key(job.id),
                job.model_dump(mode="json", by_alias=True),
                ttl=self._ttl,
            )
        except CacheUnavailableError as exc:
            logger.warning("Could not persist job %s: %s", job.id, exc)

    async def create(self, token_name: str, job_type: JobType) -> JobStatus:
        job = JobStatus(
            id=uuid.uuid4().hex,
            token_name=token_name,
            job_type=job_type,
            status=JobState.PENDING,
            started_at=datetime.now(timezone.utc),
        )
        await self._save(job)
        return job

    async def update(self, job: JobStatus, status: JobState, **changes: Any) -> JobStatus:
        data = {**job.model_dump(), **changes, "status": status}
        if status in (JobState.COMPLETED, JobState.FAILED) and not data.get("completed_at"):
            data["completed_at"] = datetime.now(timezone.utc)
        updated = JobStatus(**data)
        await self._save(updated)
        return updated

    async def get(self, job_id: str) -> Optional[JobStatus]:
        try:
            raw = await self._store.get(job_cache_key(job_id))
        except CacheUnavailableError as exc:
            logger.warning("Could not read job %s: %s", job_id, exc)
            return None
        if raw is None:
            return None
        try:
            return JobStatus.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding malformed job record %s", job_id)
            return None


_tracker: Optional[JobTracker] = None


def get_job_tracker() -> JobTracker:
    global _tracker
    if _tracker is None:
        _tracker = JobTracker()
    return _tracker
