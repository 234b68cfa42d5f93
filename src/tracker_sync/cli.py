"""tracker-sync command line interface.

Example:
    $ tracker-sync analyze tasks.yaml issues.yaml
    $ tracker-sync analyze tasks.yaml issues.yaml --mappings mappings.yaml --columns dev,stage
    $ tracker-sync analyze tasks.json issues.json --type missing --json
    $ tracker-sync config verify tracker-sync.yaml
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tracker_sync.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _setup_logging,
    _warning,
    console,
)
from tracker_sync.commands.config import config_app
from tracker_sync.core.async_utils import run_fetch_bound
from tracker_sync.core.config import DEFAULT_CONFIG_FILENAME, SyncConfig, load_config
from tracker_sync.core.exceptions import ConfigError, TrackerSyncError
from tracker_sync.reconcile.filtering import SortOptions, TicketFilter, apply_filter_and_sort
from tracker_sync.reconcile.models import (
    FindingsAlert,
    IssueRecord,
    MatchedTicket,
    MismatchedTicket,
    TaskRecord,
    TicketAnalysisResult,
    jsonable,
)
from tracker_sync.reconcile.report import TICKET_TYPES, AnalysisSummary, summarize, tickets_by_type
from tracker_sync.reconcile.sections import resolve_bucket_selection
from tracker_sync.services.ignore import IgnoreList
from tracker_sync.services.mappings import InMemoryMappingStore, load_mapping_file
from tracker_sync.services.runner import ReconciliationRunner
from tracker_sync.services.snapshots import SnapshotFileSource

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tracker-sync",
    help="Reconcile a task board with an issue tracker",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ============================================================================
# Helpers
# ============================================================================


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _load_effective_config(config: Path | None) -> SyncConfig:
    if config is None:
        default = Path(DEFAULT_CONFIG_FILENAME)
        return load_config(default) if default.is_file() else SyncConfig()
    return load_config(config)


def _selected_buckets(columns: str | None, config: SyncConfig) -> list[str]:
    parts = _split_csv(columns)
    if not parts:
        return list(config.columns.syncable)
    selected: list[str] = []
    for part in parts:
        for bucket in resolve_bucket_selection(
            part,
            config.columns.syncable,
            known=[*config.columns.syncable, *config.columns.display_only],
        ):
            if bucket not in selected:
                selected.append(bucket)
    return selected


def _parse_date(value: str | None, option: str, end_of_day: bool = False) -> datetime | None:
    """Parse an ISO date or datetime; a bare date with ``end_of_day`` covers that whole day."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        _error(f"Invalid {option} date: '{value}'. Use YYYY-MM-DD.")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    if end_of_day and "T" not in value and " " not in value.strip():
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_json(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return jsonable(asdict(value))
    return jsonable(value)


def _row_for(entry: Any) -> tuple[str, str, str, str]:
    """(task id, title, task side, issue side) for any result entry."""
    if isinstance(entry, MismatchedTicket):
        return (
            entry.task.id,
            entry.task.title,
            entry.task_status,
            f"{entry.issue.display_id}: {entry.issue_status}",
        )
    if isinstance(entry, MatchedTicket):
        return (entry.task.id, entry.task.title, entry.status, f"{entry.issue.display_id}: {entry.issue.state}")
    if isinstance(entry, FindingsAlert):
        return (entry.task.id, entry.task.title, entry.task.section, f"{entry.issue.display_id}: {entry.issue_status}")
    if isinstance(entry, TaskRecord):
        return (entry.id, entry.title, entry.section, "-")
    if isinstance(entry, IssueRecord):
        return ("-", entry.summary, "-", f"{entry.display_id}: {entry.state}")
    return ("-", str(entry), "-", "-")


def _ticket_table(title: str, entries: list[Any]) -> Table:
    table = Table(title=title)
    table.add_column("Task", style="cyan")
    table.add_column("Title", max_width=50)
    table.add_column("Task status")
    table.add_column("Issue")
    for entry in entries:
        table.add_row(*(escape(str(cell)) for cell in _row_for(entry)))
    return table


def _format_text_output(result: TicketAnalysisResult, summary: AnalysisSummary) -> None:
    health_color = "green" if summary.sync_health >= 90 else "yellow" if summary.sync_health >= 60 else "red"
    panel = Panel(
        f"[bold]{summary.matched}[/bold] matched, "
        f"[bold]{summary.mismatched}[/bold] mismatched, "
        f"[bold]{summary.missing}[/bold] missing, "
        f"[bold]{summary.orphaned}[/bold] orphaned\n"
        f"Sync health: [{health_color}]{summary.sync_health:.1f}%[/{health_color}]",
        title=f"Reconciliation: {', '.join(result.selected_buckets) or 'all columns'}",
        border_style=health_color,
    )
    console.print(panel)

    counts = Table(title="Categories")
    counts.add_column("Category")
    counts.add_column("Count", justify="right")
    for name, value in summary.to_dict().items():
        if name == "sync_health":
            continue
        counts.add_row(name.replace("_", " "), str(value))
    console.print(counts)

    if result.findings_alerts:
        console.print()
        for alert in result.findings_alerts:
            console.print(f"[bold red]{escape(alert.message)}[/bold red]")
    if result.mismatched:
        console.print(_ticket_table("Mismatched", result.mismatched))
    if result.missing_issues:
        console.print(_ticket_table("Missing on issue tracker", result.missing_issues))
    if result.orphaned_issues:
        console.print(_ticket_table("Orphaned issues", result.orphaned_issues))
    for anomaly in result.anomalies:
        _warning(escape(anomaly))


# ============================================================================
# Commands
# ============================================================================


@app.command(name="analyze")
def analyze_command(
    tasks: Path = typer.Argument(..., help="Task board snapshot (YAML/JSON file or per-tenant directory)"),
    issues: Path = typer.Argument(..., help="Issue tracker snapshot (YAML/JSON file or per-tenant directory)"),
    mappings: Path | None = typer.Option(
        None,
        "--mappings",
        "-m",
        help="YAML/JSON list of explicit {task_id, issue_id} mappings",
    ),
    ignore: Path | None = typer.Option(
        None,
        "--ignore",
        "-i",
        help="Ignore list file (tenant -> task ids)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Config file (default: ./{DEFAULT_CONFIG_FILENAME} if present)",
    ),
    tenant: str = typer.Option("default", "--tenant", "-t", help="Tenant to analyze"),
    columns: str | None = typer.Option(
        None,
        "--columns",
        help="Comma-separated columns (e.g. 'dev,ready_for_stage'); default: all syncable",
    ),
    kind: str | None = typer.Option(
        None,
        "--type",
        help=f"Only show one category: {', '.join(TICKET_TYPES)}",
    ),
    assignees: str | None = typer.Option(
        None,
        "--assignees",
        help="Comma-separated assignee names to keep",
    ),
    since: str | None = typer.Option(None, "--since", help="Keep tasks created on/after (YYYY-MM-DD)"),
    until: str | None = typer.Option(None, "--until", help="Keep tasks created on/before (YYYY-MM-DD)"),
    sort_by: str | None = typer.Option(
        None,
        "--sort",
        help="Sort compared tickets by created_at, assignee or title",
    ),
    descending: bool = typer.Option(False, "--desc", help="Sort descending"),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output with debug logging",
    ),
) -> None:
    """Reconcile a task snapshot against an issue snapshot.

    Exit codes:
        0 = analysis completed
        1 = a snapshot or mapping file could not be read
        2 = invalid configuration or arguments

    """
    _setup_logging(verbose=verbose, quiet=json_output)

    if kind is not None and kind not in TICKET_TYPES:
        _error(f"Invalid ticket type: '{kind}'. Use one of: {', '.join(TICKET_TYPES)}.")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    try:
        sort = SortOptions(sort_by=sort_by, order="desc" if descending else "asc")  # type: ignore[arg-type]
    except ValueError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    ticket_filter = TicketFilter(
        assignees=tuple(_split_csv(assignees)),
        start_date=_parse_date(since, "--since"),
        end_date=_parse_date(until, "--until", end_of_day=True),
    )

    try:
        sync_config = _load_effective_config(config)
        ignore_list = IgnoreList(ignore) if ignore is not None else None
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    selected = _selected_buckets(columns, sync_config)

    try:
        mapping_store = (
            InMemoryMappingStore({tenant: load_mapping_file(mappings)}) if mappings is not None else None
        )
        runner = ReconciliationRunner(
            SnapshotFileSource.tasks(tasks),
            SnapshotFileSource.issues(issues),
            mapping_store,
            ignore_list,
            sync_config,
        )
        result = run_fetch_bound(runner.run(tenant, selected))
    except TrackerSyncError as e:
        _error(str(e))
        if verbose:
            console.print_exception()
        raise typer.Exit(code=EXIT_ERROR) from None

    if ticket_filter.active or sort.sort_by is not None:
        result = apply_filter_and_sort(result, ticket_filter, sort)
    summary = summarize(result)

    if json_output:
        if kind is not None:
            payload: dict[str, Any] = {
                "type": kind,
                "tickets": [_to_json(t) for t in tickets_by_type(result, kind)],
            }
        else:
            payload = {"summary": summary.to_dict(), "result": result.to_dict()}
        # Plain print: Rich would wrap long JSON lines
        print(json.dumps(payload, indent=2))
    elif kind is not None:
        console.print(_ticket_table(kind.replace("_", " ").title(), tickets_by_type(result, kind)))
    else:
        _format_text_output(result, summary)

    raise typer.Exit(code=EXIT_SUCCESS)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
