"""Filtering and sorting of compared tickets by assignee and creation date."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Literal

from tracker_sync.reconcile.models import (
    MatchedTicket,
    MismatchedTicket,
    TaskRecord,
    TicketAnalysisResult,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FilterOptions",
    "SortOptions",
    "TicketFilter",
    "apply_filter_and_sort",
    "filter_options",
]

SortKey = Literal["created_at", "assignee", "title"]
SortOrder = Literal["asc", "desc"]

_VALID_SORT_KEYS = ("created_at", "assignee", "title")


@dataclass(frozen=True)
class TicketFilter:
    """Restrict compared tickets.

    Attributes:
        assignees: Keep tasks assigned to any of these names (case-insensitive).
            Empty keeps all.
        start_date: Drop tasks created before this instant.
        end_date: Drop tasks created after this instant.

    """

    assignees: tuple[str, ...] = ()
    start_date: datetime | None = None
    end_date: datetime | None = None

    @property
    def active(self) -> bool:
        return bool(self.assignees) or self.start_date is not None or self.end_date is not None

    def matches(self, task: TaskRecord) -> bool:
        if self.assignees:
            name = (task.assignee or "").lower()
            if not any(name == wanted.lower() for wanted in self.assignees):
                return False
        if self.start_date is not None:
            if task.created_at is None or task.created_at < self.start_date:
                return False
        if self.end_date is not None:
            if task.created_at is None or task.created_at > self.end_date:
                return False
        return True


@dataclass(frozen=True)
class SortOptions:
    sort_by: SortKey | None = None
    order: SortOrder = "asc"

    def __post_init__(self) -> None:
        if self.sort_by is not None and self.sort_by not in _VALID_SORT_KEYS:
            raise ValueError(f"sort_by must be one of {_VALID_SORT_KEYS}, got {self.sort_by!r}")
        if self.order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', got {self.order!r}")


def _sort_value(task: TaskRecord, key: str) -> Any:
    if key == "created_at":
        # Undated tasks sort first in ascending order
        return (task.created_at is not None, task.created_at.timestamp() if task.created_at else 0.0)
    if key == "assignee":
        return (task.assignee or "").lower()
    return task.title.lower()


def _task_of(entry: MatchedTicket | MismatchedTicket | TaskRecord) -> TaskRecord:
    return entry if isinstance(entry, TaskRecord) else entry.task


def _filter_sort(entries: Sequence[Any], ticket_filter: TicketFilter, sort: SortOptions) -> list[Any]:
    kept = [e for e in entries if ticket_filter.matches(_task_of(e))] if ticket_filter.active else list(entries)
    if sort.sort_by is None:
        return kept
    key = sort.sort_by
    return sorted(kept, key=lambda e: _sort_value(_task_of(e), key), reverse=sort.order == "desc")


def apply_filter_and_sort(
    result: TicketAnalysisResult,
    ticket_filter: TicketFilter | None = None,
    sort: SortOptions | None = None,
) -> TicketAnalysisResult:
    """Return a copy of ``result`` with matched, mismatched and missing lists filtered and sorted.

    Other categories are carried over unchanged. The input is not modified.
    """
    ticket_filter = ticket_filter or TicketFilter()
    sort = sort or SortOptions()
    filtered = replace(
        result,
        matched=_filter_sort(result.matched, ticket_filter, sort),
        mismatched=_filter_sort(result.mismatched, ticket_filter, sort),
        missing_issues=_filter_sort(result.missing_issues, ticket_filter, sort),
    )
    logger.debug(
        "Filter kept %d matched, %d mismatched, %d missing",
        len(filtered.matched),
        len(filtered.mismatched),
        len(filtered.missing_issues),
    )
    return filtered


@dataclass(frozen=True)
class FilterOptions:
    assignees: list[str] = field(default_factory=list)
    earliest: datetime | None = None
    latest: datetime | None = None


def filter_options(result: TicketAnalysisResult) -> FilterOptions:
    """Values available for filtering: unique assignees and the created-at range."""
    tasks = [
        *(t.task for t in result.matched),
        *(t.task for t in result.mismatched),
        *result.missing_issues,
    ]
    assignees = sorted({t.assignee for t in tasks if t.assignee}, key=lambda n: (n.lower(), n))
    dates = [t.created_at for t in tasks if t.created_at is not None]
    return FilterOptions(
        assignees=assignees,
        earliest=min(dates) if dates else None,
        latest=max(dates) if dates else None,
    )
