"""Partition resolved tasks and issues into actionable categories.

Routing rules per task (after the ignore filter), by bucket:

- findings: listed in ``findings``; alert if the paired issue is still active
- ready for stage: compared against the expected issue status ("Dev");
  always also listed in ``ready_for_stage``
- display-only: listed in ``display_only``; never reported missing
- no bucket: ``unclassified`` (the column mapping needs extending)
- anything else: ``missing_issues`` when unpaired and syncable, ``blocked``
  when paired in the blocked column, otherwise matched/mismatched

Unpaired issues are orphaned when the task they reference no longer exists,
or exists outside the analyzed buckets while sitting in a syncable column.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from tracker_sync.core.config.models import ColumnMapping, SyncConfig
from tracker_sync.reconcile.comparison import ContentChanges, compare_content
from tracker_sync.reconcile.models import (
    CanonicalStage,
    ExplicitMapping,
    FindingsAlert,
    IssueRecord,
    MatchedTicket,
    MatchTier,
    MismatchedTicket,
    TaskRecord,
    TicketAnalysisResult,
)
from tracker_sync.reconcile.resolver import Resolution, extract_back_reference
from tracker_sync.reconcile.sections import (
    BLOCKED,
    FINDINGS,
    READY_FOR_STAGE,
    bucket_for,
    stage_for_bucket,
)
from tracker_sync.reconcile.status import (
    canonical_key,
    display_status,
    is_active_stage,
    normalize_status,
    statuses_match,
)
from tracker_sync.reconcile.tags import map_tag_to_label, primary_tag

logger = logging.getLogger(__name__)

__all__ = ["classify"]


@dataclass(frozen=True)
class _TaskStatus:
    stage: CanonicalStage
    label: str


class _Classifier:
    """Single-run state for classify(); not reused across runs."""

    def __init__(
        self,
        config: SyncConfig,
        selected_buckets: Sequence[str],
        result: TicketAnalysisResult,
    ) -> None:
        self.config = config
        self.result = result
        self.syncable = set(config.columns.syncable)
        self.display_only = set(config.columns.display_only)
        self.extra_buckets = [
            *config.columns.syncable,
            *config.columns.display_only,
            *(canonical_key(b) for b in selected_buckets),
        ]
        self.label = config.resolver.back_reference_label
        self.expected_stage = normalize_status(
            config.ready_for_stage_expected, config.status_synonyms
        )

    def anomaly(self, message: str) -> None:
        logger.warning("Data-quality anomaly: %s", message)
        self.result.anomalies.append(message)

    # ------------------------------------------------------------------
    # Task helpers
    # ------------------------------------------------------------------

    def bucket(self, task: TaskRecord) -> str | None:
        return bucket_for(task.section, self.extra_buckets)

    def column_mapping(self, task: TaskRecord) -> ColumnMapping | None:
        return self.config.columns.mapping_for(task.section)

    def is_syncable(self, task: TaskRecord) -> bool:
        mapping = self.column_mapping(task)
        if mapping is not None:
            return not mapping.display_only
        bucket = self.bucket(task)
        return bucket is not None and bucket in self.syncable

    def task_status(self, task: TaskRecord, bucket: str) -> _TaskStatus:
        mapping = self.column_mapping(task)
        if mapping is not None and mapping.status:
            stage = normalize_status(mapping.status, self.config.status_synonyms)
            return _TaskStatus(stage, display_status(mapping.status, stage))
        stage = stage_for_bucket(bucket)
        return _TaskStatus(stage, display_status(task.section, stage))

    def tag_mismatch(self, task: TaskRecord, issue: IssueRecord) -> bool:
        mapped = map_tag_to_label(primary_tag(task.tags), self.config.tag_mapping)
        subsystem = issue.subsystem.strip()
        if not mapped or not subsystem:
            return False
        return mapped.lower() != subsystem.lower()

    def content_changes(self, task: TaskRecord, issue: IssueRecord) -> ContentChanges | None:
        if not self.config.detect_content_changes:
            return None
        changes = compare_content(task, issue, self.label)
        return changes if changes.has_changes else None

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def record_pair(
        self,
        task: TaskRecord,
        issue: IssueRecord,
        tier: MatchTier,
        status: _TaskStatus,
        *,
        blocked: bool = False,
    ) -> None:
        issue_stage = normalize_status(issue.state, self.config.status_synonyms)
        tag_mismatch = self.tag_mismatch(task, issue)
        in_sync = statuses_match(status.stage, status.label, issue_stage, issue.state)
        changes = self.content_changes(task, issue) if in_sync and not blocked else None

        if blocked or (in_sync and changes is None):
            entry = MatchedTicket(
                task=task,
                issue=issue,
                status=status.label,
                task_stage=status.stage,
                issue_stage=issue_stage,
                matched_by=tier,
                task_tags=task.tags,
                issue_subsystem=issue.subsystem,
                tag_mismatch=tag_mismatch,
            )
            (self.result.blocked if blocked else self.result.matched).append(entry)
            return

        self.result.mismatched.append(
            MismatchedTicket(
                task=task,
                issue=issue,
                task_status=status.label,
                issue_status=display_status(issue.state, issue_stage),
                task_stage=status.stage,
                issue_stage=issue_stage,
                matched_by=tier,
                task_tags=task.tags,
                issue_subsystem=issue.subsystem,
                tag_mismatch=tag_mismatch,
                title_mismatch=changes.title_changed if changes else False,
                description_mismatch=changes.description_changed if changes else False,
            )
        )

    def classify_task(self, task: TaskRecord, resolution: Resolution) -> None:
        bucket = self.bucket(task)
        issue = resolution.pairs.get(task.id)
        tier = resolution.matched_by.get(task.id)
        if issue is not None and not issue.id.strip():
            self.anomaly(f"task {task.id} is paired with an issue that has no id; treating as unpaired")
            issue = None

        if bucket == FINDINGS:
            self.result.findings.append(task)
            if issue is not None:
                issue_stage = normalize_status(issue.state, self.config.status_synonyms)
                if is_active_stage(issue_stage):
                    self.result.findings_alerts.append(
                        FindingsAlert(
                            task=task,
                            issue=issue,
                            issue_status=issue.state,
                            message=(
                                f"HIGH ALERT: '{task.title}' is in Findings but still "
                                f"active on the issue tracker ({issue.state})"
                            ),
                        )
                    )
            return

        if bucket == READY_FOR_STAGE:
            self.result.ready_for_stage.append(task)
            if issue is None or tier is None:
                self.result.missing_issues.append(task)
                return
            expected = _TaskStatus(
                self.expected_stage,
                display_status(self.config.ready_for_stage_expected, self.expected_stage),
            )
            self.record_pair(task, issue, tier, expected)
            return

        mapping = self.column_mapping(task)
        if (mapping is not None and mapping.display_only) or bucket in self.display_only:
            self.result.display_only.append(task)
            return

        if bucket is None and mapping is None:
            self.result.unclassified.append(task)
            self.anomaly(f"task {task.id} sits in column {task.section!r} that matches no bucket")
            return
        if bucket is None:
            bucket = canonical_key(task.section)

        if issue is None or tier is None:
            if self.is_syncable(task):
                self.result.missing_issues.append(task)
            else:
                self.result.unclassified.append(task)
                self.anomaly(f"task {task.id} in non-syncable column {task.section!r} has no issue")
            return

        self.record_pair(task, issue, tier, self.task_status(task, bucket), blocked=bucket == BLOCKED)

    def classify_orphans(
        self,
        unmatched_issues: Sequence[IssueRecord],
        tasks: Sequence[TaskRecord],
        all_tasks: Sequence[TaskRecord],
        mappings: Sequence[ExplicitMapping],
    ) -> None:
        mapped_task: dict[str, str] = {}
        for mapping in sorted(mappings, key=lambda m: (m.task_id, m.issue_id)):
            mapped_task.setdefault(mapping.issue_id, mapping.task_id)

        analyzed = {task.id for task in tasks}
        everywhere = {task.id: task for task in all_tasks}

        for issue in unmatched_issues:
            ref = next((mapped_task[i] for i in issue.identifiers if i in mapped_task), None)
            if ref is None:
                ref = extract_back_reference(issue.description, self.label)
            if not ref:
                continue
            if ref in analyzed:
                continue
            original = everywhere.get(ref)
            if original is None or self.is_syncable(original):
                logger.debug("Issue %s is orphaned (references task %s)", issue.display_id, ref)
                self.result.orphaned_issues.append(issue)


def classify(
    tasks: Sequence[TaskRecord],
    resolution: Resolution,
    selected_buckets: Sequence[str],
    ignored: Collection[str],
    config: SyncConfig | None = None,
    all_tasks: Sequence[TaskRecord] | None = None,
    mappings: Sequence[ExplicitMapping] = (),
) -> TicketAnalysisResult:
    """Partition tasks and unpaired issues into a TicketAnalysisResult.

    Args:
        tasks: Tasks in the analyzed buckets.
        resolution: Pairing produced by resolve().
        selected_buckets: Bucket names the run was restricted to.
        ignored: Task ids to leave out of every category.
        config: Column, status and resolver settings. Defaults to SyncConfig().
        all_tasks: Full task snapshot before bucket filtering; used to tell
            orphaned issues from issues whose task is merely filtered out.
            Defaults to ``tasks``.
        mappings: Explicit mappings, consulted to find the task an unpaired
            issue refers to.

    Returns:
        The partitioned result. Never raises on malformed records; problems
        are recorded in ``anomalies``.

    """
    if tasks is None or resolution is None or selected_buckets is None or ignored is None:
        raise TypeError("tasks, resolution, selected_buckets and ignored are required")
    config = config or SyncConfig()
    if all_tasks is None:
        all_tasks = tasks

    result = TicketAnalysisResult(
        selected_buckets=[canonical_key(b) for b in selected_buckets],
        ignored=sorted(ignored),
        anomalies=list(resolution.anomalies),
    )
    classifier = _Classifier(config, selected_buckets, result)

    for task in sorted(tasks, key=lambda t: t.id):
        if task.id in ignored:
            logger.debug("Skipping ignored task %s", task.id)
            continue
        classifier.classify_task(task, resolution)

    classifier.classify_orphans(resolution.unmatched_issues, tasks, all_tasks, mappings)

    logger.info(
        "Classified %d tasks: %d matched, %d mismatched, %d missing, %d orphaned",
        len(tasks),
        len(result.matched),
        len(result.mismatched),
        len(result.missing_issues),
        len(result.orphaned_issues),
    )
    return result
