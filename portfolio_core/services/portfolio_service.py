"""
PORTFOLIO SERVICE

Outward API consumed by the UI layer:
- get_snapshot()          current cached snapshot
- add_position()          MutationResult, never raises on bad input
- remove_position()       no-op for unknown symbols
- on_snapshot_changed()   subscribe to fresh snapshots
- refresh()               manual refresh through the scheduler

Created at app start, torn down at app shutdown. Results of a run that
finishes after close() are discarded.

Store access runs in a worker thread, one call at a time, so file I/O never
blocks the event loop and the store keeps a single writer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, List, TypeVar

from portfolio_core.domain.errors import PositionValidationError
from portfolio_core.domain.models import MutationResult, PortfolioSnapshot
from portfolio_core.domain.services.reconciler import PortfolioReconciler
from portfolio_core.infrastructure.repositories.position_store import PositionStore
from portfolio_core.scheduler.refresh_scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[PortfolioSnapshot], Any]
T = TypeVar("T")


class PortfolioService:
    def __init__(
        self,
        store: PositionStore,
        reconciler: PortfolioReconciler,
        refresh_interval_seconds: int = 60,
        timezone: str = "Asia/Kolkata",
        timer_enabled: bool = True,
    ):
        self._store = store
        self._reconciler = reconciler
        self._snapshot = PortfolioSnapshot()
        self._subscribers: List[SnapshotCallback] = []
        self._closed = False
        self._store_lock = asyncio.Lock()
        self.scheduler = RefreshScheduler(
            job=self._reconcile_once,
            interval_seconds=refresh_interval_seconds,
            timezone=timezone,
            enabled=timer_enabled,
        )

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the timer and run the first reconciliation."""
        self.scheduler.start()
        await self.scheduler.refresh_now()

    async def close(self, wait: bool = False) -> None:
        self._closed = True
        self._subscribers.clear()
        await self.scheduler.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # QUERIES
    # ------------------------------------------------------------------

    def get_snapshot(self) -> PortfolioSnapshot:
        return self._snapshot

    def on_snapshot_changed(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register a callback (plain or coroutine function). Returns a function
        that unsubscribes it.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # MUTATIONS
    # ------------------------------------------------------------------

    async def _with_store(self, func: Callable[..., T], *args: Any) -> T:
        async with self._store_lock:
            return await asyncio.to_thread(func, *args)

    async def add_position(self, symbol: str, shares: float, price: float) -> MutationResult:
        if self._closed:
            return MutationResult.failure("Portfolio service is closed")
        try:
            await self._with_store(self._store.add_position, symbol, shares, price)
        except PositionValidationError as exc:
            logger.info(f"Rejected add_position({symbol!r}, {shares!r}, {price!r}): {exc.message}")
            return MutationResult.failure(exc.message, field=exc.field)
        self.scheduler.trigger()
        return MutationResult.success()

    async def remove_position(self, symbol: str) -> None:
        if self._closed:
            return
        try:
            removed = await self._with_store(self._store.remove_position, symbol)
        except PositionValidationError as exc:
            logger.info(f"Ignored remove_position({symbol!r}): {exc.message}")
            return
        if removed:
            self.scheduler.trigger()

    async def refresh(self) -> PortfolioSnapshot:
        await self.scheduler.refresh_now()
        return self._snapshot

    # ------------------------------------------------------------------
    # RECONCILIATION JOB
    # ------------------------------------------------------------------

    async def _reconcile_once(self) -> None:
        positions = await self._with_store(self._store.load)
        snapshot = await self._reconciler.reconcile(positions)

        if self._closed:
            logger.info("Discarding reconciliation result; service closed")
            return

        await self._with_store(self._store.apply_valuations, snapshot.positions)
        if self._closed:
            return
        self._snapshot = snapshot
        await self._publish(snapshot)

    async def _publish(self, snapshot: PortfolioSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Snapshot subscriber failed")

