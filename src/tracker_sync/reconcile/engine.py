"""Reconciliation pipeline entry point.

    filter_by_buckets(tasks) -> resolve(tasks, issues, mappings)
        -> ignore filter -> classify -> TicketAnalysisResult

The engine is a pure function of its inputs: it performs no I/O and keeps
no state between calls, so the same inputs always produce the same result.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from tracker_sync.core.config.models import SyncConfig
from tracker_sync.reconcile.classifier import classify
from tracker_sync.reconcile.models import (
    ExplicitMapping,
    IssueRecord,
    TaskRecord,
    TicketAnalysisResult,
)
from tracker_sync.reconcile.resolver import build_tiers, resolve
from tracker_sync.reconcile.sections import filter_by_buckets

logger = logging.getLogger(__name__)

__all__ = ["analyze"]


def analyze(
    tasks: Sequence[TaskRecord],
    issues: Sequence[IssueRecord],
    mappings: Sequence[ExplicitMapping] = (),
    selected_buckets: Sequence[str] = (),
    ignored: Collection[str] = frozenset(),
    config: SyncConfig | None = None,
) -> TicketAnalysisResult:
    """Reconcile one task snapshot against one issue snapshot.

    Args:
        tasks: Every task on the board.
        issues: Every issue in the tracker project.
        mappings: Persisted explicit task/issue mappings.
        selected_buckets: Buckets to analyze; empty analyzes every column.
        ignored: Task ids excluded from the result.
        config: Settings; defaults to SyncConfig().

    Returns:
        The partitioned TicketAnalysisResult.

    Raises:
        TypeError: If a required sequence is None.

    Example:
        >>> result = analyze(tasks, issues, selected_buckets=["dev"])
        >>> result.counts()["matched"]
        3

    """
    if tasks is None or issues is None or mappings is None or selected_buckets is None:
        raise TypeError("tasks, issues, mappings and selected_buckets must not be None")
    config = config or SyncConfig()

    logger.info(
        "Analyzing %d tasks against %d issues (buckets=%s, mappings=%d, ignored=%d)",
        len(tasks),
        len(issues),
        list(selected_buckets) or "all",
        len(mappings),
        len(ignored),
    )

    filtered = filter_by_buckets(tasks, selected_buckets)
    tiers = build_tiers(config.resolver, mappings)
    resolution = resolve(filtered, issues, mappings, tiers, all_tasks=tasks)
    return classify(
        filtered,
        resolution,
        selected_buckets,
        ignored,
        config,
        all_tasks=tasks,
        mappings=mappings,
    )
