from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import settings
from .refresh_worker import RefreshWorker, get_refresh_worker


@dataclass(slots=True)
class SweepJobState:
    interval_seconds: int
    status: str = "idle"
    run_count: int = 0
    consecutive_errors: int = 0
    last_started: Optional[datetime] = None
    last_completed: Optional[datetime] = None
    last_error: Optional[str] = None
    last_report: Optional[Dict[str, Any]] = None
    next_run: Optional[datetime] = None


class SweepScheduler:
    """In-process replacement for the external cron: full and active sweeps on fixed cadences."""

    def __init__(
        self,
        worker: Optional[RefreshWorker] = None,
        *,
        logger: Optional[logging.Logger] = None,
        full_interval_seconds: Optional[int] = None,
        active_interval_seconds: Optional[int] = None,
        timeout_seconds: Optional[int] = None,
        poll_seconds: float = 1.0,
    ) -> None:
        self.logger = logger or logging.getLogger("sweep_scheduler")
        self._worker = worker
        self._timeout = timeout_seconds or settings.sweep_timeout_seconds
        self._poll_seconds = poll_seconds
        self._state: Dict[str, SweepJobState] = {
            "full": SweepJobState(full_interval_seconds or settings.full_sweep_interval_seconds),
            "active": SweepJobState(active_interval_seconds or settings.active_sweep_interval_seconds),
        }
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self._running = False

    @property
    def worker(self) -> RefreshWorker:
        if self._worker is None:
            self._worker = get_refresh_worker()
        return self._worker

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        async with self._lock:
            if self._running:
                return
            self._running = True
            now = datetime.now(timezone.utc)
            for state in self._state.values():
                state.next_run = now
            self.logger.info(
                "Sweep scheduler starting (full every %ss, active every %ss)",
                self._state["full"].interval_seconds,
                self._state["active"].interval_seconds,
            )
            self._loop_task = asyncio.create_task(self._run_loop(), name="sweep-scheduler-loop")

    async def stop(self) -> None:
        async with self._lock:
            if not self._running:
                return
            self._running = False
            self.logger.info("Sweep scheduler stopping")

            if self._loop_task:
                self._loop_task.cancel()
                try:
                    await self._loop_task
                except asyncio.CancelledError:
                    pass
                self._loop_task = None

            for task in list(self._inflight):
                task.cancel()
            if self._inflight:
                await asyncio.gather(*self._inflight, return_exceptions=True)
            self._inflight.clear()

    @property
    def is_running(self) -> bool:
        return self._running

    def status(self) -> Dict[str, Any]:
        return {
            kind: {
                "status": state.status,
                "intervalSeconds": state.interval_seconds,
                "runCount": state.run_count,
                "lastError": state.last_error,
                "nextRun": state.next_run.isoformat() if state.next_run else None,
            }
            for kind, state in self._state.items()
        }

    # ---------------------------
    # Scheduling and execution
    # ---------------------------
    async def _run_loop(self) -> None:
        try:
            while self._running:
                self._schedule_due_sweeps()
                await asyncio.sleep(self._poll_seconds)
        except asyncio.CancelledError:
            return
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Scheduler loop crashed: %s", exc, exc_info=True)
            self._running = False

    def _schedule_due_sweeps(self) -> None:
        now = datetime.now(timezone.utc)
        for kind, state in self._state.items():
            if state.status == "running":
                continue
            if state.next_run and state.next_run > now:
                continue
            task = asyncio.create_task(self.run_sweep(kind), name=f"sweep:{kind}")
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def run_sweep(self, kind: str) -> None:
        state = self._state[kind]
        runner: Callable[[], Awaitable[Any]] = (
            self.worker.run_full_sweep if kind == "full" else self.worker.run_active_sweep
        )
        state.status = "running"
        state.last_started = datetime.now(timezone.utc)
        try:
            report = await asyncio.wait_for(runner(), timeout=self._timeout)
            state.last_report = report.to_dict()
            state.last_error = None
            state.consecutive_errors = 0
        except asyncio.TimeoutError:
            state.last_error = f"sweep timed out after {self._timeout}s"
            state.consecutive_errors += 1
            self.logger.warning("%s sweep timed out", kind.capitalize())
        except Exception as exc:  # noqa: BLE001
            state.last_error = str(exc)
            state.consecutive_errors += 1
            self.logger.warning("%s sweep failed: %s", kind.capitalize(), exc, exc_info=True)
        finally:
            state.run_count += 1
            state.last_completed = datetime.now(timezone.utc)
            backoff_multiplier = min(max(1, state.consecutive_errors), 5)
            delay = state.interval_seconds * backoff_multiplier
            state.next_run = datetime.now(timezone.utc) + timedelta(seconds=delay)
            state.status = "idle"


_scheduler: Optional[SweepScheduler] = None


def get_sweep_scheduler() -> SweepScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = SweepScheduler()
    return _scheduler
