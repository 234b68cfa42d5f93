"""Tests for title/description drift detection."""

from __future__ import annotations

import pytest

from tracker_sync.reconcile.comparison import (
    changed_mappings,
    compare_content,
    sanitize_for_comparison,
    strip_back_reference,
)
from tracker_sync.reconcile.models import ExplicitMapping, IssueRecord, TaskRecord


class TestSanitize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("  Hello \r\n\n\n\nWorld ", "hello\n\nworld"),
            ("a\rb", "a\nb"),
            ("line   \nnext", "line\nnext"),
            ("Same", "same"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_sanitize(self, text: str | None, expected: str) -> None:
        assert sanitize_for_comparison(text) == expected


class TestStripBackReference:
    def test_removes_marker_lines(self) -> None:
        assert strip_back_reference("Body\n\n[Task ID: 12]") == "Body"

    def test_custom_label(self) -> None:
        assert strip_back_reference("Body\n[Asana ID: 1]", "Asana ID:") == "Body"

    def test_empty(self) -> None:
        assert strip_back_reference(None) == ""


class TestCompareContent:
    def test_identical_modulo_cosmetics(self) -> None:
        task = TaskRecord(id="t1", title="Fix Login", notes="Steps:\r\n1. open")
        issue = IssueRecord(id="i1", summary="fix login ", description="Steps:\n1. open\n\n[Task ID: t1]")
        changes = compare_content(task, issue)
        assert not changes.has_changes
        assert changes.old_title == changes.new_title == ""

    def test_title_changed(self) -> None:
        task = TaskRecord(id="t1", title="New title")
        issue = IssueRecord(id="i1", summary="Old title")
        changes = compare_content(task, issue)
        assert changes.title_changed
        assert not changes.description_changed
        assert (changes.old_title, changes.new_title) == ("Old title", "New title")

    def test_description_changed(self) -> None:
        task = TaskRecord(id="t1", title="T", notes="new body")
        issue = IssueRecord(id="i1", summary="T", description="old body\n[Task ID: t1]")
        changes = compare_content(task, issue)
        assert changes.description_changed
        assert changes.old_description == "old body"
        assert changes.new_description == "new body"


class TestChangedMappings:
    def test_lists_only_drifted_pairs(self) -> None:
        tasks = [TaskRecord(id="t1", title="A"), TaskRecord(id="t2", title="B")]
        issues = [
            IssueRecord(id="2-1", readable_id="ARD-1", summary="A"),
            IssueRecord(id="2-2", readable_id="ARD-2", summary="B (old)"),
        ]
        mappings = [
            ExplicitMapping("t2", "ARD-2"),
            ExplicitMapping("t1", "2-1"),
            ExplicitMapping("t3", "2-9"),
        ]
        changed = changed_mappings(tasks, issues, mappings)

        assert [c.mapping.task_id for c in changed] == ["t2"]
        assert changed[0].issue.id == "2-2"
        assert changed[0].changes.title_changed
