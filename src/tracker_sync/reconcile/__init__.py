"""Reconciliation engine: pair tasks with issues and partition the result.

Public API:
    - analyze: Full pipeline over one pair of snapshots
    - resolve / classify: Individual pipeline stages
    - normalize_status / bucket_for: Vocabulary normalization
    - summarize / apply_filter_and_sort: Reporting over a result
"""

from tracker_sync.reconcile.classifier import classify
from tracker_sync.reconcile.comparison import (
    ContentChanges,
    changed_mappings,
    compare_content,
)
from tracker_sync.reconcile.engine import analyze
from tracker_sync.reconcile.filtering import (
    SortOptions,
    TicketFilter,
    apply_filter_and_sort,
    filter_options,
)
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
from tracker_sync.reconcile.report import (
    AnalysisSummary,
    detailed_breakdown,
    summarize,
    tickets_by_type,
)
from tracker_sync.reconcile.resolver import Resolution, build_tiers, resolve
from tracker_sync.reconcile.sections import (
    bucket_for,
    classify_section,
    filter_by_buckets,
    resolve_bucket_selection,
    section_matches,
)
from tracker_sync.reconcile.status import normalize_status, statuses_match
from tracker_sync.reconcile.tags import TagMapper, map_tag_to_label

__all__ = [
    "AnalysisSummary",
    "CanonicalStage",
    "ContentChanges",
    "ExplicitMapping",
    "FindingsAlert",
    "IssueRecord",
    "MatchTier",
    "MatchedTicket",
    "MismatchedTicket",
    "Resolution",
    "SortOptions",
    "TagMapper",
    "TaskRecord",
    "TicketAnalysisResult",
    "TicketFilter",
    "analyze",
    "apply_filter_and_sort",
    "bucket_for",
    "build_tiers",
    "changed_mappings",
    "classify",
    "classify_section",
    "compare_content",
    "detailed_breakdown",
    "filter_by_buckets",
    "filter_options",
    "map_tag_to_label",
    "normalize_status",
    "resolve",
    "resolve_bucket_selection",
    "section_matches",
    "statuses_match",
    "summarize",
    "tickets_by_type",
]
