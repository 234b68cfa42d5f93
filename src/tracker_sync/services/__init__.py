"""Runtime services around the reconciliation engine."""

from tracker_sync.services.ignore import IgnoreList
from tracker_sync.services.mappings import InMemoryMappingStore, YamlMappingStore, load_mapping_file
from tracker_sync.services.ports import (
    ChangeApplier,
    IgnoreChecker,
    IssueSource,
    MappingStore,
    TaskSource,
)
from tracker_sync.services.runner import ReconciliationRunner
from tracker_sync.services.scheduler import AutoSyncScheduler, SchedulerStatus
from tracker_sync.services.snapshots import SnapshotFileSource

__all__ = [
    "AutoSyncScheduler",
    "ChangeApplier",
    "IgnoreChecker",
    "IgnoreList",
    "InMemoryMappingStore",
    "IssueSource",
    "MappingStore",
    "ReconciliationRunner",
    "SchedulerStatus",
    "SnapshotFileSource",
    "TaskSource",
    "YamlMappingStore",
    "load_mapping_file",
]
