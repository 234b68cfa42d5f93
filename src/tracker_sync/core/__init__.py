"""Core infrastructure: configuration, exceptions and async helpers."""

from tracker_sync.core.config import SyncConfig, load_config
from tracker_sync.core.exceptions import (
    ConfigError,
    FetchError,
    MappingStoreError,
    SnapshotError,
    TrackerSyncError,
)

__all__ = [
    "SyncConfig",
    "load_config",
    "TrackerSyncError",
    "ConfigError",
    "FetchError",
    "SnapshotError",
    "MappingStoreError",
]
