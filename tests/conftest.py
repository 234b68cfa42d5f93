"""Pytest configuration and fixtures for tracker-sync tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from tracker_sync.core.config import SyncConfig
from tracker_sync.reconcile.models import ExplicitMapping, IssueRecord, TaskRecord


@pytest.fixture(autouse=True)
def isolate_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from an empty directory.

    Keeps a tracker-sync.yaml in the developer's working directory from
    leaking into CLI tests.
    """
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config() -> SyncConfig:
    """Default configuration."""
    return SyncConfig()


@pytest.fixture
def make_task() -> Callable[..., TaskRecord]:
    """Factory for TaskRecord with sensible defaults."""

    def _make(task_id: str, section: str = "Dev", title: str | None = None, **kwargs: Any) -> TaskRecord:
        return TaskRecord(id=task_id, title=title if title is not None else f"Task {task_id}", section=section, **kwargs)

    return _make


@pytest.fixture
def make_issue() -> Callable[..., IssueRecord]:
    """Factory for IssueRecord with sensible defaults."""

    def _make(
        issue_id: str,
        state: str = "Dev",
        summary: str | None = None,
        task_ref: str | None = None,
        **kwargs: Any,
    ) -> IssueRecord:
        description = kwargs.pop("description", "")
        if task_ref is not None:
            description = f"{description}\n[Task ID: {task_ref}]".strip()
        return IssueRecord(
            id=issue_id,
            summary=summary if summary is not None else f"Issue {issue_id}",
            state=state,
            description=description,
            **kwargs,
        )

    return _make


@pytest.fixture
def mapping() -> Callable[[str, str], ExplicitMapping]:
    return lambda task_id, issue_id: ExplicitMapping(task_id=task_id, issue_id=issue_id)


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write ``data`` as YAML under tmp_path and return the path."""

    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write
