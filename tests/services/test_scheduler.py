"""Tests for the per-tenant auto-sync scheduler."""

from __future__ import annotations

import asyncio
import logging

import pytest

from tracker_sync.core.exceptions import FetchError
from tracker_sync.reconcile.models import TaskRecord, TicketAnalysisResult
from tracker_sync.services.runner import ReconciliationRunner
from tracker_sync.services.scheduler import AutoSyncScheduler


class Tasks:
    def fetch_all(self, tenant: str) -> list[TaskRecord]:
        return [TaskRecord(id="1", section="Dev")]


class Issues:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def fetch_all(self, tenant: str) -> list:
        if self.fail:
            raise RuntimeError("boom")
        return []


class RecordingApplier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, TicketAnalysisResult]] = []

    def __call__(self, tenant: str, result: TicketAnalysisResult) -> None:
        self.calls.append((tenant, result))


@pytest.fixture
def runner() -> ReconciliationRunner:
    return ReconciliationRunner(Tasks(), Issues())


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_runs_and_applies(self, runner) -> None:
        applier = RecordingApplier()
        scheduler = AutoSyncScheduler(runner, applier)

        result = await scheduler.run_once("acme")

        assert result is not None
        assert [t.id for t in result.missing_issues] == ["1"]
        assert applier.calls == [("acme", result)]
        status = scheduler.status("acme")
        assert status.run_count == 1
        assert status.last_error is None
        assert status.last_info.startswith("Last sync: ")
        assert "missing=1" in status.last_info

    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_skipped(self, runner, caplog) -> None:
        scheduler = AutoSyncScheduler(runner)
        lock = scheduler._lock_for("acme")

        async with lock:
            with caplog.at_level(logging.INFO):
                assert await scheduler.run_once("acme") is None

        assert "previous run still in progress" in caplog.text
        assert scheduler.status("acme").run_count == 0

    @pytest.mark.asyncio
    async def test_other_tenants_not_blocked(self, runner) -> None:
        scheduler = AutoSyncScheduler(runner)
        async with scheduler._lock_for("acme"):
            assert await scheduler.run_once("globex") is not None

    @pytest.mark.asyncio
    async def test_failure_recorded_and_raised(self) -> None:
        scheduler = AutoSyncScheduler(ReconciliationRunner(Tasks(), Issues(fail=True)))

        with pytest.raises(FetchError):
            await scheduler.run_once("acme")

        status = scheduler.status("acme")
        assert status.run_count == 0
        assert status.last_run is not None
        assert "boom" in (status.last_error or "")


class TestLifecycle:
    def test_status_before_any_run(self, runner) -> None:
        status = AutoSyncScheduler(runner).status("acme")
        assert not status.running
        assert status.interval_seconds is None
        assert status.last_info == "No sync performed yet"

    def test_default_interval_from_config(self, runner) -> None:
        assert AutoSyncScheduler(runner).default_interval == 15.0
        assert AutoSyncScheduler(runner, default_interval=5).default_interval == 5

    @pytest.mark.asyncio
    async def test_start_runs_periodically_and_stop(self, runner) -> None:
        applier = RecordingApplier()
        scheduler = AutoSyncScheduler(runner, applier)

        await scheduler.start("acme", interval_seconds=0.01)
        assert scheduler.is_running("acme")
        for _ in range(200):
            if len(applier.calls) >= 2:
                break
            await asyncio.sleep(0.01)

        status = scheduler.status("acme")
        assert status.running
        assert status.interval_seconds == 0.01
        assert status.next_run is not None

        assert await scheduler.stop("acme") is True
        assert not scheduler.is_running("acme")
        assert await scheduler.stop("acme") is False
        assert len(applier.calls) >= 2

    @pytest.mark.asyncio
    async def test_loop_survives_failures(self, caplog) -> None:
        scheduler = AutoSyncScheduler(ReconciliationRunner(Tasks(), Issues(fail=True)))
        await scheduler.start("acme", interval_seconds=0.01)
        for _ in range(200):
            if scheduler.status("acme").last_error:
                break
            await asyncio.sleep(0.01)

        assert scheduler.is_running("acme")
        await scheduler.stop_all()
        assert not scheduler.is_running("acme")
        assert "Auto-sync for tenant acme failed" in caplog.text

    @pytest.mark.asyncio
    async def test_restart_replaces_loop(self, runner) -> None:
        scheduler = AutoSyncScheduler(runner)
        await scheduler.start("acme", interval_seconds=60)
        await scheduler.start("acme", interval_seconds=30, selected=["dev"])

        assert scheduler.is_running("acme")
        assert scheduler.status("acme").interval_seconds == 30
        await scheduler.stop_all()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interval", [0, -1])
    async def test_invalid_interval(self, runner, interval) -> None:
        with pytest.raises(ValueError, match="positive"):
            await AutoSyncScheduler(runner).start("acme", interval_seconds=interval)
