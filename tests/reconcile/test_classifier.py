"""Tests for partitioning resolved records into result categories."""

from __future__ import annotations

from collections.abc import Collection, Sequence

import pytest

from tracker_sync.core.config.models import ColumnConfig, ColumnMapping, SyncConfig
from tracker_sync.reconcile.classifier import classify
from tracker_sync.reconcile.models import (
    CanonicalStage,
    ExplicitMapping,
    IssueRecord,
    MatchTier,
    TaskRecord,
    TicketAnalysisResult,
)
from tracker_sync.reconcile.resolver import Resolution, build_tiers, resolve


def run(
    tasks: Sequence[TaskRecord],
    issues: Sequence[IssueRecord],
    *,
    mappings: Sequence[ExplicitMapping] = (),
    config: SyncConfig | None = None,
    selected: Sequence[str] = (),
    ignored: Collection[str] = frozenset(),
    all_tasks: Sequence[TaskRecord] | None = None,
) -> TicketAnalysisResult:
    config = config or SyncConfig()
    resolution = resolve(tasks, issues, mappings, build_tiers(config.resolver, mappings))
    return classify(tasks, resolution, selected, ignored, config, all_tasks=all_tasks, mappings=mappings)


class TestPairedTasks:
    """Matched, mismatched and blocked routing."""

    def test_same_stage_is_matched(self, make_task, make_issue) -> None:
        result = run([make_task("t1", section="Dev")], [make_issue("i1", state="DEV", task_ref="t1")])

        assert len(result.matched) == 1
        entry = result.matched[0]
        assert entry.status == "Dev"
        assert entry.task_stage is CanonicalStage.DEV
        assert entry.issue_stage is CanonicalStage.DEV
        assert entry.matched_by is MatchTier.BACK_REFERENCE
        assert result.mismatched == []

    def test_different_stage_is_mismatched(self, make_task, make_issue) -> None:
        result = run([make_task("t1", section="Development")], [make_issue("i1", state="STAGE", task_ref="t1")])

        assert len(result.mismatched) == 1
        entry = result.mismatched[0]
        assert (entry.task_status, entry.issue_status) == ("Dev", "Stage")
        assert entry.issue.state == "STAGE"
        assert entry.issue_stage is CanonicalStage.STAGE
        assert not entry.title_mismatch

    def test_blocked_column_is_never_compared(self, make_task, make_issue) -> None:
        result = run([make_task("t1", section="Blocked")], [make_issue("i1", state="Dev", task_ref="t1")])

        assert [e.task.id for e in result.blocked] == ["t1"]
        assert result.matched == []
        assert result.mismatched == []

    def test_status_synonyms_from_config(self, make_task, make_issue) -> None:
        config = SyncConfig(status_synonyms={"QA": "Stage"})
        result = run(
            [make_task("t1", section="Stage")],
            [make_issue("i1", state="QA", task_ref="t1")],
            config=config,
        )
        assert len(result.matched) == 1

    def test_tag_mismatch_flag(self, make_task, make_issue) -> None:
        tasks = [
            make_task("t1", tags=("iOS",)),
            make_task("t2", tags=("iOS",)),
            make_task("t3"),
        ]
        issues = [
            make_issue("i1", subsystem="Web", task_ref="t1"),
            make_issue("i2", subsystem="Mobile", task_ref="t2"),
            make_issue("i3", subsystem="Web", task_ref="t3"),
        ]
        result = run(tasks, issues)
        flags = {e.task.id: e.tag_mismatch for e in result.matched}
        assert flags == {"t1": True, "t2": False, "t3": False}

    def test_content_drift_when_enabled(self, make_task, make_issue) -> None:
        tasks = [make_task("t1", title="New title")]
        issues = [make_issue("i1", summary="Old title", task_ref="t1")]

        assert len(run(tasks, issues).matched) == 1

        result = run(tasks, issues, config=SyncConfig(detect_content_changes=True))
        assert len(result.mismatched) == 1
        assert result.mismatched[0].title_mismatch
        assert not result.mismatched[0].description_mismatch

    def test_issue_without_id_is_treated_as_unpaired(self, make_task) -> None:
        task = make_task("t1")
        resolution = Resolution(
            pairs={"t1": IssueRecord(id="  ")},
            matched_by={"t1": MatchTier.TITLE},
        )
        result = classify([task], resolution, [], set())
        assert result.missing_issues == [task]
        assert any("no id" in a for a in result.anomalies)


class TestUnpairedTasks:
    def test_syncable_task_is_missing(self, make_task) -> None:
        result = run([make_task("t1", section="Backlog")], [])
        assert [t.id for t in result.missing_issues] == ["t1"]

    def test_blocked_unpaired_is_missing(self, make_task) -> None:
        result = run([make_task("t1", section="Blocked")], [])
        assert [t.id for t in result.missing_issues] == ["t1"]
        assert result.blocked == []

    def test_unknown_column_is_unclassified(self, make_task) -> None:
        result = run([make_task("t1", section="Icebox")], [])
        assert [t.id for t in result.unclassified] == ["t1"]
        assert result.missing_issues == []
        assert any("Icebox" in a for a in result.anomalies)

    def test_non_syncable_bucket_without_issue(self, make_task) -> None:
        config = SyncConfig(columns=ColumnConfig(syncable=["dev"]))
        result = run([make_task("t1", section="Backlog")], [], config=config)
        assert [t.id for t in result.unclassified] == ["t1"]


class TestSpecialColumns:
    def test_ready_for_stage_expects_dev(self, make_task, make_issue) -> None:
        tasks = [
            make_task("t1", section="Ready for Stage"),
            make_task("t2", section="Ready for Stage"),
            make_task("t3", section="Ready for Stage"),
        ]
        issues = [
            make_issue("i1", state="Dev", task_ref="t1"),
            make_issue("i2", state="Stage", task_ref="t2"),
        ]
        result = run(tasks, issues)

        assert [t.id for t in result.ready_for_stage] == ["t1", "t2", "t3"]
        assert [e.task.id for e in result.matched] == ["t1"]
        assert result.matched[0].status == "Dev"
        assert [e.task.id for e in result.mismatched] == ["t2"]
        assert result.mismatched[0].task_status == "Dev"
        assert [t.id for t in result.missing_issues] == ["t3"]

    def test_ready_for_stage_expected_is_configurable(self, make_task, make_issue) -> None:
        config = SyncConfig(ready_for_stage_expected="Stage")
        result = run(
            [make_task("t1", section="Ready for Stage")],
            [make_issue("i1", state="staging", task_ref="t1")],
            config=config,
        )
        assert len(result.matched) == 1

    @pytest.mark.parametrize(
        ("state", "alerts"),
        [("Dev", 1), ("In Progress", 1), ("Blocked", 1), ("Closed", 0), ("Ready for Stage", 0)],
    )
    def test_findings_alert_only_for_active_issue(self, make_task, make_issue, state, alerts) -> None:
        task = make_task("t1", section="Findings", title="Crash on save")
        result = run([task], [make_issue("i1", state=state, task_ref="t1")])

        assert result.findings == [task]
        assert len(result.findings_alerts) == alerts
        assert result.missing_issues == []
        if alerts:
            assert result.findings_alerts[0].message == (
                f"HIGH ALERT: 'Crash on save' is in Findings but still active on the issue tracker ({state})"
            )

    def test_findings_without_issue(self, make_task) -> None:
        result = run([make_task("t1", section="Findings")], [])
        assert len(result.findings) == 1
        assert result.missing_issues == []

    def test_display_only_bucket(self, make_task) -> None:
        config = SyncConfig(columns=ColumnConfig(display_only=["findings", "archive"]))
        result = run([make_task("t1", section="Archive 2025")], [], config=config)
        assert [t.id for t in result.display_only] == ["t1"]
        assert result.missing_issues == []


class TestColumnMappings:
    def test_status_override(self, make_task, make_issue) -> None:
        config = SyncConfig(
            columns=ColumnConfig(mappings=[ColumnMapping(section="QA Review", status="Stage")])
        )
        tasks = [make_task("t1", section="QA Review"), make_task("t2", section="qa review")]
        result = run(tasks, [make_issue("i1", state="Stage", task_ref="t1")], config=config)

        assert [e.task.id for e in result.matched] == ["t1"]
        assert result.matched[0].status == "Stage"
        assert [t.id for t in result.missing_issues] == ["t2"]
        assert result.unclassified == []

    def test_display_only_override(self, make_task) -> None:
        config = SyncConfig(
            columns=ColumnConfig(mappings=[ColumnMapping(section="Icebox", display_only=True)])
        )
        result = run([make_task("t1", section="Icebox")], [], config=config)
        assert [t.id for t in result.display_only] == ["t1"]


class TestIgnored:
    def test_ignored_tasks_are_skipped(self, make_task) -> None:
        tasks = [make_task("t1"), make_task("t2")]
        result = run(tasks, [], ignored={"t2", "t0"})
        assert [t.id for t in result.missing_issues] == ["t1"]
        assert result.ignored == ["t0", "t2"]


class TestOrphans:
    def test_reference_to_deleted_task(self, make_task, make_issue) -> None:
        result = run([make_task("t1")], [make_issue("i9", task_ref="gone")])
        assert [i.id for i in result.orphaned_issues] == ["i9"]

    def test_issue_without_reference_is_not_orphaned(self, make_task, make_issue) -> None:
        result = run([make_task("t1")], [make_issue("i9")])
        assert result.orphaned_issues == []

    def test_reference_via_explicit_mapping(self, make_task, make_issue) -> None:
        result = run(
            [make_task("t1")],
            [make_issue("i9")],
            mappings=[ExplicitMapping("gone", "i9")],
        )
        assert [i.id for i in result.orphaned_issues] == ["i9"]

    def test_task_outside_analyzed_buckets(self, make_task, make_issue) -> None:
        analyzed = [make_task("t1", section="Dev")]
        everything = [
            *analyzed,
            make_task("t2", section="Stage"),
            make_task("t3", section="Icebox"),
        ]
        issues = [make_issue("i2", task_ref="t2"), make_issue("i3", task_ref="t3")]
        result = run(analyzed, issues, selected=["dev"], all_tasks=everything)

        # t2 still sits in a syncable column; t3 was moved somewhere unsynced
        assert [i.id for i in result.orphaned_issues] == ["i2"]


class TestClassifyArguments:
    def test_none_rejected(self) -> None:
        with pytest.raises(TypeError):
            classify([], Resolution(), None, set())  # type: ignore[arg-type]

    def test_selected_buckets_recorded(self) -> None:
        result = classify([], Resolution(), ["In_Progress", "dev"], set())
        assert result.selected_buckets == ["in progress", "dev"]
