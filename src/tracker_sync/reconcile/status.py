"""Status label normalization.

Both trackers use free-text status labels ("In Progress", "in-progress",
"DEV", "On Hold", ...). Everything downstream compares CanonicalStage
values produced here; raw labels are kept only for display.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from tracker_sync.reconcile.models import CanonicalStage

logger = logging.getLogger(__name__)

__all__ = [
    "ACTIVE_STAGES",
    "STATUS_SYNONYMS",
    "canonical_key",
    "display_status",
    "is_active_stage",
    "normalize_status",
    "statuses_match",
]

_SEPARATORS = re.compile(r"[\s_\-]+")

STATUS_SYNONYMS: dict[str, CanonicalStage] = {
    "backlog": CanonicalStage.BACKLOG,
    "open": CanonicalStage.BACKLOG,
    "to do": CanonicalStage.BACKLOG,
    "todo": CanonicalStage.BACKLOG,
    "in progress": CanonicalStage.IN_PROGRESS,
    "inprogress": CanonicalStage.IN_PROGRESS,
    "dev": CanonicalStage.DEV,
    "development": CanonicalStage.DEV,
    "in dev": CanonicalStage.DEV,
    "stage": CanonicalStage.STAGE,
    "staging": CanonicalStage.STAGE,
    "in stage": CanonicalStage.STAGE,
    "blocked": CanonicalStage.BLOCKED,
    "on hold": CanonicalStage.BLOCKED,
    "ready for stage": CanonicalStage.READY_FOR_STAGE,
    "findings": CanonicalStage.FINDINGS,
}

ACTIVE_STAGES: frozenset[CanonicalStage] = frozenset(
    {
        CanonicalStage.BACKLOG,
        CanonicalStage.IN_PROGRESS,
        CanonicalStage.DEV,
        CanonicalStage.STAGE,
        CanonicalStage.BLOCKED,
    }
)


def canonical_key(raw: str | None) -> str:
    """Lower-case a label and fold ``-``, ``_`` and whitespace runs to one space.

    Examples:
        >>> canonical_key("  In_Progress ")
        'in progress'

    """
    if not raw:
        return ""
    return _SEPARATORS.sub(" ", raw.lower()).strip()


def normalize_status(
    raw: str | None,
    extra_synonyms: Mapping[str, str] | None = None,
) -> CanonicalStage:
    """Map a raw status label to its canonical stage.

    Args:
        raw: Label as it appears on either tracker.
        extra_synonyms: Additional raw label -> canonical label pairs
            (e.g. from ``SyncConfig.status_synonyms``). Consulted after the
            built-in table.

    Returns:
        The matching stage, or CanonicalStage.UNMAPPED for unknown labels.

    Examples:
        >>> normalize_status("IN PROGRESS") is normalize_status("in-progress")
        True
        >>> normalize_status("Closed")
        <CanonicalStage.UNMAPPED: 'Unmapped'>

    """
    key = canonical_key(raw)
    if not key:
        return CanonicalStage.UNMAPPED
    stage = STATUS_SYNONYMS.get(key)
    if stage is not None:
        return stage
    if extra_synonyms:
        for synonym, label in extra_synonyms.items():
            if canonical_key(synonym) == key:
                return STATUS_SYNONYMS.get(canonical_key(label), CanonicalStage.UNMAPPED)
    return CanonicalStage.UNMAPPED


def display_status(raw: str | None, stage: CanonicalStage) -> str:
    """Label to show for a status: the canonical label, or the raw text if unmapped."""
    if stage is CanonicalStage.UNMAPPED:
        return (raw or "").strip() or stage.value
    return stage.value


def is_active_stage(stage: CanonicalStage) -> bool:
    """Return True for stages that mean work is still open."""
    return stage in ACTIVE_STAGES


def statuses_match(
    task_stage: CanonicalStage,
    task_label: str | None,
    issue_stage: CanonicalStage,
    issue_label: str | None,
) -> bool:
    """Compare two statuses.

    Known stages compare by identity. Two unmapped statuses fall back to a
    case- and separator-insensitive comparison of their raw labels; an
    unmapped status never equals a known one.

    """
    if task_stage is CanonicalStage.UNMAPPED and issue_stage is CanonicalStage.UNMAPPED:
        left, right = canonical_key(task_label), canonical_key(issue_label)
        return bool(left) and left == right
    return task_stage is issue_stage
