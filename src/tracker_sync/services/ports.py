"""Collaborator interfaces consumed by the runner and scheduler.

Transport to the real trackers lives outside this package; anything that
satisfies these protocols can be plugged in. Implementations are called
from worker threads (asyncio.to_thread) and must not rely on an event loop.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tracker_sync.reconcile.models import (
    ExplicitMapping,
    IssueRecord,
    TaskRecord,
    TicketAnalysisResult,
)

__all__ = [
    "ChangeApplier",
    "IgnoreChecker",
    "IssueSource",
    "MappingStore",
    "TaskSource",
]


@runtime_checkable
class TaskSource(Protocol):
    """Fetches the full task board snapshot for a tenant."""

    def fetch_all(self, tenant: str) -> list[TaskRecord]: ...


@runtime_checkable
class IssueSource(Protocol):
    """Fetches the full issue tracker snapshot for a tenant."""

    def fetch_all(self, tenant: str) -> list[IssueRecord]: ...


@runtime_checkable
class MappingStore(Protocol):
    """Persisted explicit task/issue mappings."""

    def lookup(self, tenant: str) -> list[ExplicitMapping]: ...

    def record(self, tenant: str, mapping: ExplicitMapping) -> None: ...


@runtime_checkable
class IgnoreChecker(Protocol):
    """Tenant-scoped set of ignored task ids."""

    def is_ignored(self, tenant: str, identifier: str) -> bool: ...

    def ignored(self, tenant: str) -> frozenset[str]: ...


class ChangeApplier(Protocol):
    """Optional step that pushes a reconciliation result back to the trackers."""

    def __call__(self, tenant: str, result: TicketAnalysisResult) -> None: ...
