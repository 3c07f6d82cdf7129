"""
REFRESH SCHEDULER

Runs the portfolio reconciliation job on an APScheduler interval and on
explicit triggers, with at most one run in flight.

Idle -> Reconciling -> Idle. A trigger that arrives while Reconciling sets a
single pending flag; the in-flight run loops once more when it finishes.
Further triggers before that rerun starts collapse into the same flag.

Scheduler is orchestration-only and contains no business logic.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

RefreshJob = Callable[[], Awaitable[None]]


class RefreshState(str, enum.Enum):
    IDLE = "idle"
    RECONCILING = "reconciling"


class RefreshScheduler:
    JOB_ID = "portfolio_refresh"

    def __init__(
        self,
        job: RefreshJob,
        interval_seconds: int = 60,
        timezone: str = "Asia/Kolkata",
        enabled: bool = True,
    ):
        self._job = job
        self._interval_seconds = interval_seconds
        self._timezone = timezone
        self._enabled = enabled
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._task: Optional[asyncio.Task] = None
        self._pending = False
        self._closed = False
        self.completed_runs = 0

    @property
    def state(self) -> RefreshState:
        if self._task is not None and not self._task.done():
            return RefreshState.RECONCILING
        return RefreshState.IDLE

    @property
    def has_pending(self) -> bool:
        return self._pending

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Register the interval job. Must be called from a running event loop.
        """
        if self._closed:
            raise RuntimeError("RefreshScheduler has been shut down")
        if self._scheduler is not None or not self._enabled:
            if not self._enabled:
                logger.info("⏰ Portfolio refresh timer disabled")
            return

        scheduler = AsyncIOScheduler(timezone=pytz.timezone(self._timezone))
        scheduler.add_job(
            self._on_tick,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"✅ Portfolio refresh scheduled every {self._interval_seconds}s")

    async def shutdown(self, wait: bool = False) -> None:
        """
        Clear the timer and refuse new triggers. An in-flight run is left to
        finish; pass wait=True to await it.
        """
        self._closed = True
        self._pending = False
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("🛑 Portfolio refresh timer stopped")
        if wait:
            await self.wait_idle()

    # ------------------------------------------------------------------
    # TRIGGERS
    # ------------------------------------------------------------------

    async def _on_tick(self) -> None:
        self.trigger()

    def trigger(self) -> Optional[asyncio.Task]:
        """
        Request a reconciliation. Returns the task that will carry it out,
        or None when the scheduler is closed or no loop is running.
        """
        if self._closed:
            return None
        if self._task is not None and not self._task.done():
            self._pending = True
            return self._task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; refresh left to the next timer tick")
            return None
        self._task = loop.create_task(self._run())
        return self._task

    async def refresh_now(self) -> None:
        """Trigger and wait until a run that started after this call completes."""
        task = self.trigger()
        if task is not None:
            await asyncio.shield(task)

    async def wait_idle(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        while True:
            self._pending = False
            try:
                await self._job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Portfolio refresh job failed")
            self.completed_runs += 1
            if not self._pending or self._closed:
                break
