"""Configuration models and loader."""

from tracker_sync.core.config.loader import DEFAULT_CONFIG_FILENAME, load_config
from tracker_sync.core.config.models import (
    DEFAULT_BACK_REFERENCE_LABEL,
    DEFAULT_DISPLAY_ONLY_BUCKETS,
    DEFAULT_SYNCABLE_BUCKETS,
    ColumnConfig,
    ColumnMapping,
    ResolverConfig,
    SchedulerConfig,
    SyncConfig,
)

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_BACK_REFERENCE_LABEL",
    "DEFAULT_DISPLAY_ONLY_BUCKETS",
    "DEFAULT_SYNCABLE_BUCKETS",
    "ColumnConfig",
    "ColumnMapping",
    "ResolverConfig",
    "SchedulerConfig",
    "SyncConfig",
    "load_config",
]
