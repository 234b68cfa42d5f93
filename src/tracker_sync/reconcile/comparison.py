"""Title and description drift detection for paired records."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from tracker_sync.core.config.models import DEFAULT_BACK_REFERENCE_LABEL
from tracker_sync.reconcile.models import ExplicitMapping, IssueRecord, TaskRecord

logger = logging.getLogger(__name__)

__all__ = [
    "ContentChanges",
    "MappingChange",
    "changed_mappings",
    "compare_content",
    "sanitize_for_comparison",
    "strip_back_reference",
]

_BLANK_LINE_RUNS = re.compile(r"\n{3,}")
_TRAILING_SPACE = re.compile(r"[ \t]+\n")


@dataclass(frozen=True)
class ContentChanges:
    """Content differences between a task and its issue.

    ``old_*`` values come from the issue, ``new_*`` from the task; they are
    only populated for the field that changed.
    """

    title_changed: bool = False
    description_changed: bool = False
    old_title: str = ""
    new_title: str = ""
    old_description: str = ""
    new_description: str = ""

    @property
    def has_changes(self) -> bool:
        return self.title_changed or self.description_changed


@dataclass(frozen=True)
class MappingChange:
    """An explicitly mapped pair whose content drifted."""

    mapping: ExplicitMapping
    task: TaskRecord
    issue: IssueRecord
    changes: ContentChanges


def strip_back_reference(description: str | None, label: str = DEFAULT_BACK_REFERENCE_LABEL) -> str:
    """Remove every line carrying the back-reference label and trim the rest."""
    if not description:
        return ""
    lines = [line for line in description.splitlines() if label not in line]
    return "\n".join(lines).strip()


def sanitize_for_comparison(text: str | None) -> str:
    """Normalize text so cosmetic edits do not count as drift.

    Unifies line endings, drops trailing spaces, folds runs of blank lines
    and lower-cases.

    Examples:
        >>> sanitize_for_comparison("  Hello \\r\\n\\n\\n\\nWorld ")
        'hello\\n\\nworld'

    """
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _TRAILING_SPACE.sub("\n", text.strip())
    text = _BLANK_LINE_RUNS.sub("\n\n", text)
    return text.lower()


def compare_content(
    task: TaskRecord,
    issue: IssueRecord,
    label: str = DEFAULT_BACK_REFERENCE_LABEL,
) -> ContentChanges:
    """Compare a task's title and notes against its issue's summary and description."""
    title_changed = sanitize_for_comparison(task.title) != sanitize_for_comparison(issue.summary)
    issue_body = strip_back_reference(issue.description, label)
    description_changed = sanitize_for_comparison(task.notes) != sanitize_for_comparison(issue_body)
    return ContentChanges(
        title_changed=title_changed,
        description_changed=description_changed,
        old_title=issue.summary if title_changed else "",
        new_title=task.title if title_changed else "",
        old_description=issue_body if description_changed else "",
        new_description=task.notes if description_changed else "",
    )


def changed_mappings(
    tasks: Sequence[TaskRecord],
    issues: Sequence[IssueRecord],
    mappings: Sequence[ExplicitMapping],
    label: str = DEFAULT_BACK_REFERENCE_LABEL,
) -> list[MappingChange]:
    """List explicitly mapped pairs whose content drifted.

    Mappings whose task or issue is absent from the snapshots are skipped.
    """
    by_task = {task.id: task for task in tasks}
    by_issue: dict[str, IssueRecord] = {}
    for issue in issues:
        for ident in issue.identifiers:
            by_issue.setdefault(ident, issue)

    changed: list[MappingChange] = []
    for mapping in sorted(mappings, key=lambda m: (m.task_id, m.issue_id)):
        task = by_task.get(mapping.task_id)
        issue = by_issue.get(mapping.issue_id)
        if task is None or issue is None:
            continue
        changes = compare_content(task, issue, label)
        if changes.has_changes:
            changed.append(MappingChange(mapping=mapping, task=task, issue=issue, changes=changes))
    logger.debug("%d of %d mappings have content drift", len(changed), len(mappings))
    return changed
