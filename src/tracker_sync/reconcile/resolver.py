"""Identity resolution between task board tasks and issue tracker issues.

The two trackers share no primary key. Pairs are found by an ordered list
of tiers, strongest first:

1. ExplicitMappingTier: persisted (task_id, issue_id) table
2. BackReferenceTier: task id embedded in the issue description
3. TitleMatchTier: exact equality of normalized titles

Each tier only sees the tasks and issues earlier tiers left unpaired, and
an issue is claimed the moment it is paired, so every task and every issue
ends up in at most one pair. Inputs are processed in sorted id order so the
outcome does not depend on fetch order.

Issues that tiers 1 and 2 tie to a task outside the analyzed bucket
selection are reserved up front; they are never paired with another task.
"""

from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from tracker_sync.core.config.models import DEFAULT_BACK_REFERENCE_LABEL
from tracker_sync.reconcile.models import ExplicitMapping, IssueRecord, MatchTier, TaskRecord

if TYPE_CHECKING:
    from tracker_sync.core.config.models import ResolverConfig

logger = logging.getLogger(__name__)

__all__ = [
    "BackReferenceTier",
    "ExplicitMappingTier",
    "Resolution",
    "ResolverTier",
    "TitleMatchTier",
    "build_tiers",
    "extract_back_reference",
    "format_back_reference",
    "normalize_title",
    "resolve",
]

_TITLE_KEY_PREFIX = re.compile(r"^[a-z][a-z0-9]*-\d+:?\s*")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_RESERVING_TIERS = frozenset({MatchTier.EXPLICIT, MatchTier.BACK_REFERENCE})


# ============================================================================
# Helpers
# ============================================================================


def format_back_reference(task_id: str, label: str = DEFAULT_BACK_REFERENCE_LABEL) -> str:
    """Line written into an issue description when the issue is created from a task.

    Examples:
        >>> format_back_reference("1203")
        '[Task ID: 1203]'

    """
    return f"[{label} {task_id}]"


def extract_back_reference(
    description: str | None,
    label: str = DEFAULT_BACK_REFERENCE_LABEL,
) -> str | None:
    """Extract the task id embedded in an issue description.

    The first line containing ``label`` is split on it; the remainder is
    stripped of whitespace and a trailing ``]``.

    Examples:
        >>> extract_back_reference("Body\\n[Task ID: 1203]")
        '1203'
        >>> extract_back_reference("no marker") is None
        True

    """
    if not description or not label:
        return None
    for line in description.splitlines():
        if label in line:
            ref = line.split(label, 1)[1].strip().rstrip("]").strip()
            return ref or None
    return None


def normalize_title(title: str | None) -> str:
    """Normalize a title for exact matching.

    Lower-cases, drops a leading issue key such as ``ARD-123:`` and folds
    punctuation and whitespace runs to single spaces.

    Examples:
        >>> normalize_title("ARD-42: Fix  Login-Flow!")
        'fix login flow'

    """
    if not title:
        return ""
    text = _TITLE_KEY_PREFIX.sub("", title.strip().lower())
    return _NON_ALNUM.sub(" ", text).strip()


def _sorted_tasks(tasks: Sequence[TaskRecord]) -> list[TaskRecord]:
    return sorted(tasks, key=lambda t: t.id)


def _sorted_issues(issues: Sequence[IssueRecord]) -> list[IssueRecord]:
    return sorted(issues, key=lambda i: (i.id, i.readable_id))


# ============================================================================
# Tiers
# ============================================================================


class ResolverTier(Protocol):
    """One pairing strategy.

    ``propose`` yields candidate pairs in priority order. The resolver
    accepts a proposal only while both sides are still unpaired.
    """

    tier: MatchTier

    def propose(
        self,
        tasks: Sequence[TaskRecord],
        issues: Sequence[IssueRecord],
        anomalies: list[str],
    ) -> Iterator[tuple[TaskRecord, IssueRecord]]: ...


class ExplicitMappingTier:
    """Pairs from the persisted mapping table.

    A mapping's issue id may be either the internal id or the readable key.
    When several mappings name the same task or the same issue, the lowest
    ``(task_id, issue_id)`` wins and the rest are reported as anomalies.
    """

    tier = MatchTier.EXPLICIT

    def __init__(self, mappings: Sequence[ExplicitMapping]) -> None:
        self.mappings = sorted(
            (m for m in mappings if m.task_id and m.issue_id),
            key=lambda m: (m.task_id, m.issue_id),
        )

    def propose(
        self,
        tasks: Sequence[TaskRecord],
        issues: Sequence[IssueRecord],
        anomalies: list[str],
    ) -> Iterator[tuple[TaskRecord, IssueRecord]]:
        by_task = {task.id: task for task in tasks}
        by_issue: dict[str, IssueRecord] = {}
        for issue in issues:
            for ident in issue.identifiers:
                by_issue.setdefault(ident, issue)

        task_counts = Counter(m.task_id for m in self.mappings)
        issue_counts = Counter(m.issue_id for m in self.mappings)
        for task_id, count in sorted(task_counts.items()):
            if count > 1:
                _anomaly(anomalies, f"task {task_id} has {count} explicit mappings; lowest wins")
        for issue_id, count in sorted(issue_counts.items()):
            if count > 1:
                _anomaly(anomalies, f"issue {issue_id} has {count} explicit mappings; lowest wins")

        for mapping in self.mappings:
            task = by_task.get(mapping.task_id)
            issue = by_issue.get(mapping.issue_id)
            if task is not None and issue is not None:
                yield task, issue


class BackReferenceTier:
    """Pairs issues whose description names a task id after ``label``."""

    tier = MatchTier.BACK_REFERENCE

    def __init__(self, label: str = DEFAULT_BACK_REFERENCE_LABEL) -> None:
        self.label = label

    def propose(
        self,
        tasks: Sequence[TaskRecord],
        issues: Sequence[IssueRecord],
        anomalies: list[str],
    ) -> Iterator[tuple[TaskRecord, IssueRecord]]:
        by_task = {task.id: task for task in tasks}
        referencing: dict[str, list[IssueRecord]] = defaultdict(list)
        for issue in issues:
            ref = extract_back_reference(issue.description, self.label)
            if ref and ref in by_task:
                referencing[ref].append(issue)

        for task_id in sorted(referencing):
            candidates = referencing[task_id]
            if len(candidates) > 1:
                ids = ", ".join(issue.display_id for issue in candidates)
                _anomaly(anomalies, f"task {task_id} is referenced by several issues: {ids}")
            for issue in candidates:
                yield by_task[task_id], issue


class TitleMatchTier:
    """Pairs on exact normalized-title equality.

    Titles shared by more than one unpaired task or more than one unpaired
    issue are ambiguous and never paired. Empty titles never match.
    """

    tier = MatchTier.TITLE

    def propose(
        self,
        tasks: Sequence[TaskRecord],
        issues: Sequence[IssueRecord],
        anomalies: list[str],
    ) -> Iterator[tuple[TaskRecord, IssueRecord]]:
        task_titles: dict[str, list[TaskRecord]] = defaultdict(list)
        for task in tasks:
            key = normalize_title(task.title)
            if key:
                task_titles[key].append(task)
        issue_titles: dict[str, list[IssueRecord]] = defaultdict(list)
        for issue in issues:
            key = normalize_title(issue.summary)
            if key:
                issue_titles[key].append(issue)

        for key in sorted(task_titles.keys() & issue_titles.keys()):
            task_group, issue_group = task_titles[key], issue_titles[key]
            if len(task_group) > 1 or len(issue_group) > 1:
                logger.debug(
                    "Skipping ambiguous title %r (%d tasks, %d issues)",
                    key,
                    len(task_group),
                    len(issue_group),
                )
                continue
            yield task_group[0], issue_group[0]


def build_tiers(
    config: ResolverConfig | None = None,
    mappings: Sequence[ExplicitMapping] = (),
) -> list[ResolverTier]:
    """Build the enabled tiers in their fixed order."""
    if config is None:
        return [ExplicitMappingTier(mappings), BackReferenceTier(), TitleMatchTier()]

    tiers: list[ResolverTier] = []
    if config.enable_explicit:
        tiers.append(ExplicitMappingTier(mappings))
    if config.enable_back_reference:
        tiers.append(BackReferenceTier(config.back_reference_label))
    if config.enable_title_match:
        tiers.append(TitleMatchTier())
    return tiers


# ============================================================================
# Resolution
# ============================================================================


@dataclass
class Resolution:
    """Outcome of identity resolution.

    Attributes:
        pairs: Task id -> paired issue.
        matched_by: Task id -> tier that produced the pair.
        unmatched_tasks: Tasks with no counterpart, in id order.
        unmatched_issues: Issues with no counterpart, in id order.
        anomalies: Data-quality problems seen while pairing.

    """

    pairs: dict[str, IssueRecord] = field(default_factory=dict)
    matched_by: dict[str, MatchTier] = field(default_factory=dict)
    unmatched_tasks: list[TaskRecord] = field(default_factory=list)
    unmatched_issues: list[IssueRecord] = field(default_factory=list)
    anomalies: list[str] = field(default_factory=list)


def _anomaly(anomalies: list[str], message: str) -> None:
    logger.warning("Data-quality anomaly: %s", message)
    anomalies.append(message)


def _run_tiers(
    tiers: Sequence[ResolverTier],
    tasks: list[TaskRecord],
    issues: list[IssueRecord],
    resolution: Resolution,
    used_issues: set[int],
) -> None:
    for tier in tiers:
        open_tasks = [t for t in tasks if t.id not in resolution.pairs]
        open_issues = [i for i in issues if id(i) not in used_issues]
        if not open_tasks or not open_issues:
            break
        paired = 0
        for task, issue in tier.propose(open_tasks, open_issues, resolution.anomalies):
            if task.id in resolution.pairs or id(issue) in used_issues:
                continue
            resolution.pairs[task.id] = issue
            resolution.matched_by[task.id] = tier.tier
            used_issues.add(id(issue))
            paired += 1
            logger.debug("Paired task %s with issue %s via %s", task.id, issue.display_id, tier.tier.value)
        logger.debug("Tier %s paired %d tasks", tier.tier.value, paired)


def _reserved_issues(
    tiers: Sequence[ResolverTier],
    tasks: Sequence[TaskRecord],
    all_tasks: Sequence[TaskRecord],
    issues: list[IssueRecord],
) -> set[int]:
    """Issues an explicit mapping or back-reference ties to a task outside ``tasks``."""
    strong = [tier for tier in tiers if tier.tier in _RESERVING_TIERS]
    in_scope = {task.id for task in tasks}
    if not strong or all(task.id in in_scope for task in all_tasks):
        return set()

    # Anomalies of this pass are reported again by the real one
    full = Resolution()
    _run_tiers(strong, _sorted_tasks(all_tasks), issues, full, set())
    reserved: set[int] = set()
    for task_id, issue in sorted(full.pairs.items()):
        if task_id not in in_scope:
            logger.debug("Issue %s reserved for out-of-scope task %s", issue.display_id, task_id)
            reserved.add(id(issue))
    return reserved


def resolve(
    tasks: Sequence[TaskRecord],
    issues: Sequence[IssueRecord],
    mappings: Sequence[ExplicitMapping] = (),
    tiers: Sequence[ResolverTier] | None = None,
    all_tasks: Sequence[TaskRecord] | None = None,
) -> Resolution:
    """Pair tasks with issues.

    When ``all_tasks`` is given, an issue that an explicit mapping or a
    back-reference ties to a task filtered out of ``tasks`` is left unpaired,
    so a weaker tier never hands it to a different task. It is returned in
    ``unmatched_issues`` for orphan classification.

    Args:
        tasks: Tasks to pair (usually already filtered by bucket).
        issues: Every issue in the tracker project.
        mappings: Persisted explicit mappings. Ignored when ``tiers`` is given.
        tiers: Tier list to run; defaults to all three tiers.
        all_tasks: The unfiltered board ``tasks`` was selected from.

    Returns:
        Resolution with at most one issue per task and one task per issue.

    Raises:
        TypeError: If ``tasks``, ``issues`` or ``mappings`` is None.

    """
    if tasks is None or issues is None or mappings is None:
        raise TypeError("tasks, issues and mappings must be sequences, not None")
    if tiers is None:
        tiers = build_tiers(None, mappings)

    resolution = Resolution()
    sorted_tasks = _sorted_tasks(tasks)
    sorted_issues = _sorted_issues(issues)
    reserved = _reserved_issues(tiers, tasks, all_tasks, sorted_issues) if all_tasks is not None else set()

    _run_tiers(tiers, sorted_tasks, sorted_issues, resolution, set(reserved))

    paired_issues = {id(issue) for issue in resolution.pairs.values()}
    resolution.unmatched_tasks = [t for t in sorted_tasks if t.id not in resolution.pairs]
    resolution.unmatched_issues = [i for i in sorted_issues if id(i) not in paired_issues]
    logger.info(
        "Resolved %d pairs; %d tasks and %d issues unmatched (%d reserved)",
        len(resolution.pairs),
        len(resolution.unmatched_tasks),
        len(resolution.unmatched_issues),
        len(reserved),
    )
    return resolution
