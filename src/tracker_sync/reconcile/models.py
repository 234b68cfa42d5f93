"""Domain records for task board / issue tracker reconciliation.

Records from both trackers are frozen dataclasses built once per run from
whatever shape the fetcher produced. The engine never mutates them.

Public API:
    - CanonicalStage: Lifecycle stage shared by both trackers
    - MatchTier: Which resolver tier produced a pair
    - TaskRecord / IssueRecord / ExplicitMapping: Input records
    - MatchedTicket / MismatchedTicket / FindingsAlert: Output entries
    - TicketAnalysisResult: Partitioned outcome of one reconciliation run
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

__all__ = [
    "CanonicalStage",
    "MatchTier",
    "TaskRecord",
    "IssueRecord",
    "ExplicitMapping",
    "MatchedTicket",
    "MismatchedTicket",
    "FindingsAlert",
    "TicketAnalysisResult",
    "jsonable",
    "parse_timestamp",
]


# ============================================================================
# Enums
# ============================================================================


class CanonicalStage(Enum):
    """Lifecycle stage both trackers are normalized to.

    Values are the display labels used in reports.

    Examples:
        >>> CanonicalStage.IN_PROGRESS.value
        'In Progress'

    """

    BACKLOG = "Backlog"
    IN_PROGRESS = "In Progress"
    DEV = "Dev"
    STAGE = "Stage"
    BLOCKED = "Blocked"
    READY_FOR_STAGE = "Ready for Stage"
    FINDINGS = "Findings"
    UNMAPPED = "Unmapped"


class MatchTier(Enum):
    """Resolver tier that paired a task with an issue."""

    EXPLICIT = "explicit"
    BACK_REFERENCE = "back_reference"
    TITLE = "title"


# ============================================================================
# Parsing helpers
# ============================================================================


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings or epoch milliseconds into an aware datetime.

    Returns None for missing or unparseable values; a bad timestamp is
    never a reason to drop a record.

    Examples:
        >>> parse_timestamp(0)
        datetime.datetime(1970, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_timestamp("not a date") is None
        True

    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Ignoring unparseable timestamp %r", value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _name_of(value: Any) -> str:
    """Extract a display name from a plain value or a ``{"name": ...}`` dict."""
    if isinstance(value, Mapping):
        return _text(value.get("name") or value.get("localizedName"))
    return _text(value)


def _custom_field(data: Mapping[str, Any], name: str) -> str:
    for custom in data.get("customFields") or ():
        if isinstance(custom, Mapping) and _text(custom.get("name")).lower() == name:
            return _name_of(custom.get("value"))
    return ""


# ============================================================================
# Input records
# ============================================================================


@dataclass(frozen=True)
class TaskRecord:
    """A work item on the task board (the team-facing tracker).

    Attributes:
        id: Opaque task identifier.
        title: Task name.
        notes: Free-text body.
        section: Name of the board column the task currently sits in.
        tags: Tag names in declaration order.
        assignee: Assignee display name, if any.
        created_at: Creation time, if known.

    """

    id: str
    title: str = ""
    notes: str = ""
    section: str = ""
    tags: tuple[str, ...] = ()
    assignee: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskRecord:
        """Build a record from a snapshot mapping.

        Accepts both the flat shape (``id``, ``title``, ``section``, ``tags``)
        and the board API shape (``gid``, ``name``, ``memberships[0].section.name``,
        ``tags[].name``, ``assignee.name``).

        """
        section = _text(data.get("section"))
        if not section:
            memberships = data.get("memberships") or ()
            if memberships and isinstance(memberships[0], Mapping):
                section = _name_of(memberships[0].get("section"))
        tags = tuple(t for t in (_name_of(tag) for tag in data.get("tags") or ()) if t)
        assignee = _name_of(data.get("assignee")) or None
        return cls(
            id=_text(data.get("id") or data.get("gid")),
            title=_text(data.get("title") or data.get("name")),
            notes=_text(data.get("notes")),
            section=section,
            tags=tags,
            assignee=assignee,
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class IssueRecord:
    """An issue on the issue tracker (the engineering-facing tracker).

    Attributes:
        id: Internal issue identifier.
        readable_id: Human-readable key such as ``ARD-123``.
        summary: Issue title.
        description: Body; may embed a back-reference to a task id.
        state: Raw status label.
        subsystem: Subsystem / component label.
        created_at: Creation time, if known.
        updated_at: Last update time, if known.

    """

    id: str
    readable_id: str = ""
    summary: str = ""
    description: str = ""
    state: str = ""
    subsystem: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def identifiers(self) -> Iterator[str]:
        """Yield every non-blank identifier form of this issue."""
        for ident in (self.id, self.readable_id):
            if ident.strip():
                yield ident

    @property
    def display_id(self) -> str:
        """Readable key when present, internal id otherwise."""
        return self.readable_id or self.id

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IssueRecord:
        """Build a record from a snapshot mapping.

        State and subsystem are read from top-level ``state``/``subsystem``
        keys or from the tracker's ``customFields`` list.

        """
        return cls(
            id=_text(data.get("id")),
            readable_id=_text(data.get("readable_id") or data.get("idReadable")),
            summary=_text(data.get("summary") or data.get("title")),
            description=_text(data.get("description")),
            state=_name_of(data.get("state")) or _custom_field(data, "state"),
            subsystem=_name_of(data.get("subsystem")) or _custom_field(data, "subsystem"),
            created_at=parse_timestamp(data.get("created_at", data.get("created"))),
            updated_at=parse_timestamp(data.get("updated_at", data.get("updated"))),
        )


@dataclass(frozen=True)
class ExplicitMapping:
    """Persisted, authoritative pairing of a task with an issue."""

    task_id: str
    issue_id: str
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExplicitMapping:
        """Build from ``{task_id, issue_id, created_at}``."""
        return cls(
            task_id=_text(data.get("task_id")).strip(),
            issue_id=_text(data.get("issue_id")).strip(),
            created_at=parse_timestamp(data.get("created_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for YAML persistence."""
        out: dict[str, Any] = {"task_id": self.task_id, "issue_id": self.issue_id}
        if self.created_at is not None:
            out["created_at"] = self.created_at.isoformat()
        return out


# ============================================================================
# Output entries
# ============================================================================


@dataclass(frozen=True)
class MatchedTicket:
    """A paired task/issue whose stages agree."""

    task: TaskRecord
    issue: IssueRecord
    status: str
    task_stage: CanonicalStage
    issue_stage: CanonicalStage
    matched_by: MatchTier
    task_tags: tuple[str, ...] = ()
    issue_subsystem: str = ""
    tag_mismatch: bool = False


@dataclass(frozen=True)
class MismatchedTicket:
    """A paired task/issue whose stages (or content) disagree.

    Attributes:
        task_status: Status label derived from the task's column.
        issue_status: Canonical issue status label; the raw state when unmapped.
        title_mismatch: Titles drifted apart (content detection only).
        description_mismatch: Bodies drifted apart (content detection only).

    """

    task: TaskRecord
    issue: IssueRecord
    task_status: str
    issue_status: str
    task_stage: CanonicalStage
    issue_stage: CanonicalStage
    matched_by: MatchTier
    task_tags: tuple[str, ...] = ()
    issue_subsystem: str = ""
    tag_mismatch: bool = False
    title_mismatch: bool = False
    description_mismatch: bool = False


@dataclass(frozen=True)
class FindingsAlert:
    """A findings-column task whose issue is still in an active stage."""

    task: TaskRecord
    issue: IssueRecord
    issue_status: str
    message: str


# ============================================================================
# Result
# ============================================================================


def jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [jsonable(v) for v in value]
    return value


@dataclass
class TicketAnalysisResult:
    """Partitioned outcome of one reconciliation run.

    Every task that survives the ignore filter lands in exactly one of
    matched, mismatched, missing_issues, blocked, findings, display_only or
    unclassified. Ready-for-stage tasks are additionally listed in
    ``ready_for_stage``.

    Attributes:
        selected_buckets: Bucket names the run was restricted to.
        matched: Pairs in agreement.
        mismatched: Pairs whose stages (or content) differ.
        missing_issues: Syncable tasks without an issue counterpart.
        orphaned_issues: Issues whose referenced task is gone or unsynced.
        blocked: Paired tasks in the blocked column.
        ready_for_stage: Every task in the ready-for-stage column.
        findings: Tasks in the findings column.
        findings_alerts: Findings tasks whose issue is still active.
        display_only: Tasks in informational columns.
        unclassified: Tasks in columns no bucket recognizes.
        ignored: Sorted ignore set applied to the run.
        anomalies: Data-quality warnings raised during the run.

    """

    selected_buckets: list[str] = field(default_factory=list)
    matched: list[MatchedTicket] = field(default_factory=list)
    mismatched: list[MismatchedTicket] = field(default_factory=list)
    missing_issues: list[TaskRecord] = field(default_factory=list)
    orphaned_issues: list[IssueRecord] = field(default_factory=list)
    blocked: list[MatchedTicket] = field(default_factory=list)
    ready_for_stage: list[TaskRecord] = field(default_factory=list)
    findings: list[TaskRecord] = field(default_factory=list)
    findings_alerts: list[FindingsAlert] = field(default_factory=list)
    display_only: list[TaskRecord] = field(default_factory=list)
    unclassified: list[TaskRecord] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    anomalies: list[str] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Return the size of every list field."""
        return {name: len(value) for name, value in vars(self).items() if isinstance(value, list)}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready representation."""
        return jsonable(asdict(self))
