"""Board column (section) classification.

Column names on the task board are free text ("Backlog", "DEV - sprint 4",
"Ready for Stage"). This module decides which bucket a column belongs to
using containment rules with explicit exclusions, so that e.g.
"Ready for Stage" is never counted as a "stage" column.

Public API:
    - BUILTIN_BUCKETS: Built-in buckets in precedence order
    - section_matches: Does a column belong to a bucket
    - classify_section: Does a column belong to any of several buckets
    - bucket_for: The single bucket a column belongs to
    - filter_by_buckets: Restrict tasks to selected buckets
    - resolve_bucket_selection: Map API-style column keys to bucket names
    - stage_for_bucket: Canonical stage a bucket implies
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from tracker_sync.core.config.models import DEFAULT_SYNCABLE_BUCKETS
from tracker_sync.reconcile.models import CanonicalStage, TaskRecord
from tracker_sync.reconcile.status import canonical_key, normalize_status

logger = logging.getLogger(__name__)

__all__ = [
    "BACKLOG",
    "BLOCKED",
    "BUILTIN_BUCKETS",
    "DEV",
    "FINDINGS",
    "IN_PROGRESS",
    "READY_FOR_STAGE",
    "STAGE",
    "bucket_for",
    "classify_section",
    "filter_by_buckets",
    "resolve_bucket_selection",
    "section_matches",
    "stage_for_bucket",
]

BACKLOG = "backlog"
IN_PROGRESS = "in progress"
DEV = "dev"
STAGE = "stage"
BLOCKED = "blocked"
READY_FOR_STAGE = "ready for stage"
FINDINGS = "findings"

# Order matters: the first matching bucket wins in bucket_for().
BUILTIN_BUCKETS: tuple[str, ...] = (
    FINDINGS,
    READY_FOR_STAGE,
    BLOCKED,
    IN_PROGRESS,
    DEV,
    STAGE,
    BACKLOG,
)

_SELECTION_KEYS: dict[str, str] = {
    "backlog": BACKLOG,
    "in_progress": IN_PROGRESS,
    "dev": DEV,
    "stage": STAGE,
    "blocked": BLOCKED,
    "ready_for_stage": READY_FOR_STAGE,
    "findings": FINDINGS,
}

ALL_SYNCABLE = "all_syncable"


def section_matches(section: str | None, bucket: str) -> bool:
    """Return True if a column name belongs to ``bucket``.

    Examples:
        >>> section_matches("Ready for Stage", "stage")
        False
        >>> section_matches("STAGE (QA)", "stage")
        True
        >>> section_matches("Backlog - in progress", "backlog")
        False

    """
    name = canonical_key(section)
    wanted = canonical_key(bucket)
    if not name or not wanted:
        return False

    if wanted == BACKLOG:
        return "backlog" in name and not any(
            word in name for word in ("dev", "stage", "blocked", "progress")
        )
    if wanted == IN_PROGRESS:
        return "in progress" in name or ("progress" in name and "backlog" not in name)
    if wanted in (DEV, STAGE):
        return wanted in name and "ready" not in name
    if wanted == BLOCKED:
        return "blocked" in name
    if wanted == READY_FOR_STAGE:
        return "ready" in name and "stage" in name
    return wanted in name


def classify_section(section: str | None, candidate_buckets: Iterable[str]) -> bool:
    """Return True if the column belongs to any of ``candidate_buckets``."""
    return any(section_matches(section, bucket) for bucket in candidate_buckets)


def bucket_for(section: str | None, extra_buckets: Iterable[str] = ()) -> str | None:
    """Return the single bucket a column belongs to.

    Precedence: an exact bucket name wins; then the built-in buckets in
    BUILTIN_BUCKETS order; then ``extra_buckets`` (configured or selected
    names) by substring, longest name first.

    Args:
        section: Column name.
        extra_buckets: Additional bucket names, e.g. display-only columns.

    Returns:
        Bucket name, or None if no bucket recognizes the column.

    Examples:
        >>> bucket_for("Ready for Stage")
        'ready for stage'
        >>> bucket_for("Archive", ["archive"])
        'archive'
        >>> bucket_for("Icebox") is None
        True

    """
    name = canonical_key(section)
    if not name:
        return None

    extras = [key for key in (canonical_key(b) for b in extra_buckets) if key]
    if name in BUILTIN_BUCKETS or name in extras:
        return name

    for bucket in BUILTIN_BUCKETS:
        if section_matches(name, bucket):
            return bucket

    for bucket in sorted(set(extras), key=lambda b: (-len(b), b)):
        if bucket in name:
            return bucket
    return None


def filter_by_buckets(tasks: Sequence[TaskRecord], selected: Sequence[str]) -> list[TaskRecord]:
    """Keep tasks whose column belongs to any selected bucket.

    An empty selection keeps every task.

    Raises:
        TypeError: If ``tasks`` or ``selected`` is None.

    """
    if tasks is None or selected is None:
        raise TypeError("tasks and selected must be sequences, not None")
    if not selected:
        return list(tasks)

    kept = [task for task in tasks if classify_section(task.section, selected)]
    logger.debug("Filtered %d of %d tasks into buckets %s", len(kept), len(tasks), list(selected))
    return kept


def resolve_bucket_selection(
    column: str | None,
    syncable: Sequence[str] = DEFAULT_SYNCABLE_BUCKETS,
    known: Iterable[str] = (),
) -> list[str]:
    """Translate an API-style column key into bucket names.

    ``None``, ``""`` and ``"all_syncable"`` select every syncable bucket.
    Keys such as ``in_progress`` map to ``"in progress"``; plain bucket
    names (built-in or listed in ``known``) are accepted as-is. Unknown keys
    fall back to all syncable buckets with a warning.

    Examples:
        >>> resolve_bucket_selection("ready_for_stage")
        ['ready for stage']

    """
    if not column or column.strip().lower() == ALL_SYNCABLE:
        return list(syncable)

    key = column.strip().lower()
    if key in _SELECTION_KEYS:
        return [_SELECTION_KEYS[key]]

    name = canonical_key(column)
    if name in BUILTIN_BUCKETS or name in {canonical_key(k) for k in known}:
        return [name]

    logger.warning("Unknown column selection %r, using all syncable columns", column)
    return list(syncable)


def stage_for_bucket(bucket: str | None) -> CanonicalStage:
    """Canonical stage implied by a bucket name; UNMAPPED for custom buckets."""
    return normalize_status(bucket)
