"""Periodic per-tenant reconciliation.

Each tenant gets one asyncio task that sleeps for its interval and then
runs reconcile (+ optional apply). A per-tenant asyncio.Lock keeps at most
one cycle in flight; a trigger that arrives while a cycle is running is
skipped rather than queued.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from tracker_sync.core.exceptions import TrackerSyncError
from tracker_sync.reconcile.models import TicketAnalysisResult
from tracker_sync.services.ports import ChangeApplier
from tracker_sync.services.runner import ReconciliationRunner

logger = logging.getLogger(__name__)

__all__ = ["AutoSyncScheduler", "SchedulerStatus"]


@dataclass(frozen=True)
class SchedulerStatus:
    """Snapshot of one tenant's auto-sync state."""

    running: bool
    interval_seconds: float | None
    last_run: datetime | None
    next_run: datetime | None
    run_count: int
    last_info: str
    last_error: str | None = None


@dataclass
class _TenantState:
    interval: float
    selected: tuple[str, ...] = ()
    task: asyncio.Task[None] | None = None
    last_run: datetime | None = None
    run_count: int = 0
    last_error: str | None = None
    last_counts: dict[str, int] = field(default_factory=dict)


class AutoSyncScheduler:
    """Run reconciliation for many tenants on fixed intervals.

    Must be used from within a running event loop.

    Args:
        runner: Performs the fetch + analyze step.
        applier: Optional step applying each result; runs in a worker thread.
        default_interval: Interval used when start() is given none. Defaults
            to the runner's ``scheduler.interval_seconds`` setting.

    """

    def __init__(
        self,
        runner: ReconciliationRunner,
        applier: ChangeApplier | None = None,
        default_interval: float | None = None,
    ) -> None:
        self.runner = runner
        self.applier = applier
        self.default_interval = default_interval or runner.config.scheduler.interval_seconds
        self._states: dict[str, _TenantState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, tenant: str) -> asyncio.Lock:
        lock = self._locks.get(tenant)
        if lock is None:
            lock = self._locks[tenant] = asyncio.Lock()
        return lock

    def is_running(self, tenant: str) -> bool:
        state = self._states.get(tenant)
        return state is not None and state.task is not None and not state.task.done()

    async def start(
        self,
        tenant: str,
        interval_seconds: float | None = None,
        selected: Sequence[str] = (),
    ) -> None:
        """Start (or restart) auto-sync for a tenant.

        Raises:
            ValueError: If ``interval_seconds`` is not positive.

        """
        interval = interval_seconds if interval_seconds is not None else self.default_interval
        if interval <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval}")
        if self.is_running(tenant):
            await self.stop(tenant)

        state = self._states.get(tenant)
        if state is None:
            state = self._states[tenant] = _TenantState(interval=interval)
        state.interval = interval
        state.selected = tuple(selected)
        state.task = asyncio.create_task(self._loop(tenant), name=f"auto-sync-{tenant}")
        logger.info("Auto-sync started for tenant %s every %.1fs", tenant, interval)

    async def stop(self, tenant: str) -> bool:
        """Stop auto-sync for a tenant. Returns False if it was not running."""
        if not self.is_running(tenant):
            return False
        state = self._states[tenant]
        task = state.task
        state.task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Auto-sync stopped for tenant %s", tenant)
        return True

    async def stop_all(self) -> None:
        """Stop every running tenant loop."""
        for tenant in list(self._states):
            await self.stop(tenant)

    async def run_once(
        self,
        tenant: str,
        selected: Sequence[str] | None = None,
    ) -> TicketAnalysisResult | None:
        """Run one reconcile + apply cycle now.

        Returns:
            The result, or None if a cycle for this tenant was already in
            flight and this trigger was skipped.

        Raises:
            TrackerSyncError: If the fetch or apply step fails.

        """
        lock = self._lock_for(tenant)
        if lock.locked():
            logger.info("Skipping auto-sync for tenant %s: previous run still in progress", tenant)
            return None

        state = self._states.get(tenant)
        if state is None:
            state = self._states[tenant] = _TenantState(interval=self.default_interval)
        buckets = tuple(selected) if selected is not None else state.selected

        async with lock:
            try:
                result = await self.runner.run(tenant, buckets)
                if self.applier is not None:
                    await asyncio.to_thread(self.applier, tenant, result)
            except Exception as e:
                state.last_run = datetime.now(UTC)
                state.last_error = str(e)
                raise
            state.last_run = datetime.now(UTC)
            state.last_error = None
            state.run_count += 1
            state.last_counts = {
                "matched": len(result.matched),
                "mismatched": len(result.mismatched),
                "missing": len(result.missing_issues),
                "orphaned": len(result.orphaned_issues),
            }
        return result

    async def _loop(self, tenant: str) -> None:
        while True:
            state = self._states[tenant]
            await asyncio.sleep(state.interval)
            try:
                await self.run_once(tenant)
            except TrackerSyncError as e:
                logger.error("Auto-sync for tenant %s failed: %s", tenant, e)
            except Exception:
                logger.exception("Auto-sync for tenant %s failed unexpectedly", tenant)

    def status(self, tenant: str) -> SchedulerStatus:
        """Current auto-sync state for a tenant."""
        state = self._states.get(tenant)
        running = self.is_running(tenant)
        if state is None:
            return SchedulerStatus(
                running=False,
                interval_seconds=None,
                last_run=None,
                next_run=None,
                run_count=0,
                last_info="No sync performed yet",
            )

        next_run = None
        if running and state.last_run is not None:
            next_run = state.last_run + timedelta(seconds=state.interval)
        if state.last_run is None:
            info = "No sync performed yet"
        else:
            counts = ", ".join(f"{k}={v}" for k, v in state.last_counts.items())
            info = f"Last sync: {state.last_run:%Y-%m-%d %H:%M:%S}"
            if counts:
                info = f"{info} ({counts})"
        return SchedulerStatus(
            running=running,
            interval_seconds=state.interval if running else None,
            last_run=state.last_run,
            next_run=next_run,
            run_count=state.run_count,
            last_info=info,
            last_error=state.last_error,
        )
