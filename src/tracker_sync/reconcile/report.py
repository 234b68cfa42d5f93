"""Summaries and breakdowns of a TicketAnalysisResult."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any

from tracker_sync.reconcile.models import TaskRecord, TicketAnalysisResult
from tracker_sync.reconcile.status import statuses_match

logger = logging.getLogger(__name__)

__all__ = [
    "TICKET_TYPES",
    "AnalysisSummary",
    "detailed_breakdown",
    "summarize",
    "tickets_by_type",
]

# Selector name -> TicketAnalysisResult attribute
TICKET_TYPES: dict[str, str] = {
    "matched": "matched",
    "mismatched": "mismatched",
    "missing": "missing_issues",
    "orphaned": "orphaned_issues",
    "blocked": "blocked",
    "ready_for_stage": "ready_for_stage",
    "findings": "findings",
    "findings_alerts": "findings_alerts",
    "display_only": "display_only",
    "unclassified": "unclassified",
}


@dataclass(frozen=True)
class AnalysisSummary:
    """Headline numbers for one run.

    Attributes:
        total: matched + mismatched + missing; the denominator of sync_health.
        sync_health: Percentage of ``total`` that is in sync; 100.0 when
            there is nothing to compare.

    """

    matched: int
    mismatched: int
    missing: int
    orphaned: int
    blocked: int
    ready_for_stage: int
    findings: int
    findings_alerts: int
    display_only: int
    unclassified: int
    ignored: int
    tag_mismatches: int
    status_mismatches: int
    total: int
    sync_health: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize(result: TicketAnalysisResult) -> AnalysisSummary:
    """Compute headline counts and sync health.

    Examples:
        >>> summarize(TicketAnalysisResult()).sync_health
        100.0

    """
    tag_mismatches = sum(1 for t in result.mismatched if t.tag_mismatch)
    status_mismatches = sum(
        1
        for t in result.mismatched
        if not statuses_match(t.task_stage, t.task_status, t.issue_stage, t.issue_status)
    )
    total = len(result.matched) + len(result.mismatched) + len(result.missing_issues)
    sync_health = 100.0 if total == 0 else len(result.matched) / total * 100

    return AnalysisSummary(
        matched=len(result.matched),
        mismatched=len(result.mismatched),
        missing=len(result.missing_issues),
        orphaned=len(result.orphaned_issues),
        blocked=len(result.blocked),
        ready_for_stage=len(result.ready_for_stage),
        findings=len(result.findings),
        findings_alerts=len(result.findings_alerts),
        display_only=len(result.display_only),
        unclassified=len(result.unclassified),
        ignored=len(result.ignored),
        tag_mismatches=tag_mismatches,
        status_mismatches=status_mismatches,
        total=total,
        sync_health=sync_health,
    )


def _compared_tasks(result: TicketAnalysisResult) -> list[TaskRecord]:
    return [
        *(t.task for t in result.matched),
        *(t.task for t in result.mismatched),
        *result.missing_issues,
    ]


def detailed_breakdown(result: TicketAnalysisResult) -> dict[str, Any]:
    """Break a result down by status transition, column and tag.

    Returns:
        Dict with ``status_transitions`` ("issue -> task" label counts for
        mismatched pairs), ``missing_by_section``, ``tag_counts``,
        ``tagged_tickets``, ``total_tickets`` and ``tag_coverage`` (percent
        of compared tasks carrying at least one tag).

    """
    transitions = Counter(f"{t.issue_status} -> {t.task_status}" for t in result.mismatched)
    missing_by_section = Counter(task.section for task in result.missing_issues)

    tasks = _compared_tasks(result)
    tag_counts: Counter[str] = Counter()
    tagged = 0
    for task in tasks:
        if task.tags:
            tagged += 1
            tag_counts.update(task.tags)
    coverage = tagged / len(tasks) * 100 if tasks else 0.0

    return {
        "status_transitions": dict(sorted(transitions.items())),
        "missing_by_section": dict(sorted(missing_by_section.items())),
        "tag_counts": dict(sorted(tag_counts.items())),
        "tagged_tickets": tagged,
        "total_tickets": len(tasks),
        "tag_coverage": coverage,
    }


def tickets_by_type(result: TicketAnalysisResult, kind: str) -> list[Any]:
    """Return one category of a result by its selector name.

    Raises:
        ValueError: If ``kind`` is not one of TICKET_TYPES.

    """
    attr = TICKET_TYPES.get(kind)
    if attr is None:
        raise ValueError(f"invalid ticket type: {kind!r} (expected one of {', '.join(TICKET_TYPES)})")
    return list(getattr(result, attr))
