"""Reconciliation configuration models.

Pydantic models for the tracker-sync YAML configuration. All models are
frozen so a configuration object can be shared across concurrent runs
without copying.

Example YAML:

    resolver:
      enable_back_reference: false
    columns:
      syncable: [backlog, in progress, dev, stage, blocked, ready for stage]
      display_only: [findings, archive]
      mappings:
        - section: "QA Review"
          status: "Stage"
    ready_for_stage_expected: Dev
    scheduler:
      interval_seconds: 30
"""

from __future__ import annotations

import logging
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_SYNCABLE_BUCKETS: tuple[str, ...] = (
    "backlog",
    "in progress",
    "dev",
    "stage",
    "blocked",
    "ready for stage",
)
DEFAULT_DISPLAY_ONLY_BUCKETS: tuple[str, ...] = ("findings",)
DEFAULT_BACK_REFERENCE_LABEL = "Task ID:"


def _default_tag_mapping() -> dict[str, str]:
    from tracker_sync.reconcile.tags import DEFAULT_TAG_MAPPING

    return dict(DEFAULT_TAG_MAPPING)


def _lower_names(values: Any) -> list[str]:
    if values is None:
        return []
    return [" ".join(str(v).lower().split()) for v in values if str(v).strip()]


class ResolverConfig(BaseModel):
    """Identity resolver tier toggles.

    Tiers always run in the fixed order explicit -> back-reference -> title.
    Disabling a tier turns it into a no-op; it never changes the order of
    the remaining tiers.

    Attributes:
        enable_explicit: Pair records from the persisted mapping table.
        enable_back_reference: Pair issues whose description embeds a task id.
        enable_title_match: Pair on exact normalized-title equality.
        back_reference_label: Marker preceding the task id in issue descriptions.

    """

    model_config = ConfigDict(frozen=True)

    enable_explicit: bool = Field(default=True, description="Use persisted explicit mappings")
    enable_back_reference: bool = Field(
        default=True,
        description="Extract task ids embedded in issue descriptions",
    )
    enable_title_match: bool = Field(default=True, description="Exact normalized-title matching")
    back_reference_label: str = Field(
        default=DEFAULT_BACK_REFERENCE_LABEL,
        min_length=1,
        description="Label preceding the task id in issue descriptions",
    )


class ColumnMapping(BaseModel):
    """Explicit board column -> issue status override."""

    model_config = ConfigDict(frozen=True)

    section: str = Field(min_length=1)
    status: str = ""
    display_only: bool = False

    @model_validator(mode="after")
    def validate_status_or_display_only(self) -> Self:
        """A mapping must either name a status or be display-only."""
        if not self.display_only and not self.status.strip():
            raise ValueError(f"column mapping for {self.section!r} needs a status or display_only")
        return self


class ColumnConfig(BaseModel):
    """Board column (bucket) configuration.

    Attributes:
        syncable: Buckets whose tasks must exist on the issue tracker.
        display_only: Buckets shown for information only; never "missing".
        mappings: Per-column status overrides, matched case-insensitively.

    """

    model_config = ConfigDict(frozen=True)

    syncable: list[str] = Field(default_factory=lambda: list(DEFAULT_SYNCABLE_BUCKETS))
    display_only: list[str] = Field(default_factory=lambda: list(DEFAULT_DISPLAY_ONLY_BUCKETS))
    mappings: list[ColumnMapping] = Field(default_factory=list)

    @field_validator("syncable", "display_only", mode="before")
    @classmethod
    def normalize_bucket_names(cls, v: Any) -> list[str]:
        """Lower-case names and collapse whitespace; YAML None becomes []."""
        return _lower_names(v)

    @model_validator(mode="after")
    def validate_disjoint(self) -> Self:
        """A bucket cannot be both syncable and display-only."""
        overlap = sorted(set(self.syncable) & set(self.display_only))
        if overlap:
            raise ValueError(f"buckets both syncable and display-only: {', '.join(overlap)}")
        return self

    def mapping_for(self, section: str) -> ColumnMapping | None:
        """Return the override for a section label, if any."""
        wanted = section.strip().lower()
        for mapping in self.mappings:
            if mapping.section.strip().lower() == wanted:
                return mapping
        return None


class SchedulerConfig(BaseModel):
    """Background auto-sync scheduler settings."""

    model_config = ConfigDict(frozen=True)

    interval_seconds: float = Field(default=15.0, gt=0, description="Seconds between runs")
    fetch_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Abort the run when either snapshot takes longer than this",
    )


class SyncConfig(BaseModel):
    """Top-level tracker-sync configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    columns: ColumnConfig = Field(default_factory=ColumnConfig)
    status_synonyms: dict[str, str] = Field(
        default_factory=dict,
        description="Extra raw status label -> canonical stage label",
    )
    tag_mapping: dict[str, str] = Field(default_factory=_default_tag_mapping)
    ready_for_stage_expected: str = Field(
        default="Dev",
        description="Issue status expected for tasks in the ready-for-stage column",
    )
    detect_content_changes: bool = Field(
        default=False,
        description="Treat title/description drift on status-equal pairs as a mismatch",
    )
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    @field_validator("tag_mapping", "status_synonyms", mode="before")
    @classmethod
    def coerce_none_to_empty_dict(cls, v: Any) -> dict[str, str]:
        """YAML parses an empty mapping block as None."""
        if v is None:
            return {}
        return v

    @model_validator(mode="after")
    def validate_stage_labels(self) -> Self:
        """Canonical labels referenced by the config must be known stages."""
        from tracker_sync.reconcile.models import CanonicalStage
        from tracker_sync.reconcile.status import normalize_status

        if normalize_status(self.ready_for_stage_expected) is CanonicalStage.UNMAPPED:
            raise ValueError(
                f"ready_for_stage_expected {self.ready_for_stage_expected!r} is not a known stage"
            )
        for raw, label in self.status_synonyms.items():
            if normalize_status(label) is CanonicalStage.UNMAPPED:
                raise ValueError(f"status synonym {raw!r} -> {label!r}: unknown stage")
        if not self.columns.syncable:
            logger.warning("No syncable columns configured: no task will be reported missing")
        return self


