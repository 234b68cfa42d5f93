"""One reconciliation run: fetch both snapshots, then analyze.

The two tracker snapshots (and the explicit mapping table) are fetched
concurrently in worker threads. A run is all-or-nothing: if any fetch fails
or the fetch timeout expires, the remaining fetches are cancelled and
FetchError is raised; no partial result is ever produced.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from tracker_sync.core.config.models import SyncConfig
from tracker_sync.core.exceptions import FetchError
from tracker_sync.reconcile.engine import analyze
from tracker_sync.reconcile.models import TicketAnalysisResult
from tracker_sync.services.ports import IgnoreChecker, IssueSource, MappingStore, TaskSource

logger = logging.getLogger(__name__)

__all__ = ["ReconciliationRunner"]

T = TypeVar("T")


class ReconciliationRunner:
    """Fetch-then-analyze for one tenant at a time.

    Args:
        tasks: Task board snapshot source.
        issues: Issue tracker snapshot source.
        mappings: Explicit mapping store; None runs without explicit mappings.
        ignore: Ignore checker; None ignores nothing.
        config: Settings; defaults to SyncConfig().

    """

    def __init__(
        self,
        tasks: TaskSource,
        issues: IssueSource,
        mappings: MappingStore | None = None,
        ignore: IgnoreChecker | None = None,
        config: SyncConfig | None = None,
    ) -> None:
        self.tasks = tasks
        self.issues = issues
        self.mappings = mappings
        self.ignore = ignore
        self.config = config or SyncConfig()

    async def _fetch(self, source: str, tenant: str, fn: Callable[[str], T]) -> T:
        try:
            return await asyncio.to_thread(fn, tenant)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise FetchError(f"Fetching {source} failed: {e}", source=source, tenant=tenant) from e

    async def fetch(self, tenant: str) -> tuple[list[Any], list[Any], list[Any]]:
        """Fetch tasks, issues and mappings concurrently.

        Raises:
            FetchError: If any fetch fails or the timeout expires.

        """
        timeout = self.config.scheduler.fetch_timeout_seconds
        jobs = [
            asyncio.ensure_future(self._fetch("tasks", tenant, self.tasks.fetch_all)),
            asyncio.ensure_future(self._fetch("issues", tenant, self.issues.fetch_all)),
        ]
        if self.mappings is not None:
            jobs.append(asyncio.ensure_future(self._fetch("mappings", tenant, self.mappings.lookup)))

        try:
            async with asyncio.timeout(timeout):
                results = await asyncio.gather(*jobs)
        except TimeoutError as e:
            raise FetchError(
                f"Fetching snapshots timed out after {timeout:.1f}s",
                source="timeout",
                tenant=tenant,
            ) from e
        finally:
            for job in jobs:
                if not job.done():
                    job.cancel()

        tasks, issues = results[0], results[1]
        mappings = results[2] if len(results) > 2 else []
        return tasks, issues, mappings

    async def run(self, tenant: str, selected: Sequence[str] = ()) -> TicketAnalysisResult:
        """Fetch both snapshots and reconcile them.

        Args:
            tenant: Tenant whose trackers are reconciled.
            selected: Buckets to analyze; empty analyzes every column.

        Returns:
            The partitioned result.

        Raises:
            FetchError: If any snapshot could not be fetched in time.

        """
        tasks, issues, mappings = await self.fetch(tenant)
        ignored = self.ignore.ignored(tenant) if self.ignore is not None else frozenset()
        logger.info(
            "Tenant %s: fetched %d tasks, %d issues, %d mappings",
            tenant,
            len(tasks),
            len(issues),
            len(mappings),
        )
        return analyze(
            tasks,
            issues,
            mappings,
            selected_buckets=selected,
            ignored=ignored,
            config=self.config,
        )
