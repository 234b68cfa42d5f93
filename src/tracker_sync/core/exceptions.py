"""Exception hierarchy for tracker-sync.

All errors raised by tracker-sync derive from TrackerSyncError so callers
can catch the whole family with one handler.

Data-quality problems inside a snapshot (blank identifiers, duplicate
mappings, unknown columns) are NOT exceptions: the reconciliation engine
logs them and degrades to a conservative classification instead.
"""

__all__ = [
    "TrackerSyncError",
    "ConfigError",
    "FetchError",
    "SnapshotError",
    "MappingStoreError",
]


class TrackerSyncError(Exception):
    """Base class for all tracker-sync errors."""


class ConfigError(TrackerSyncError):
    """Configuration file is missing, unreadable or invalid."""


class FetchError(TrackerSyncError):
    """Fetching a tracker snapshot failed or timed out.

    Fatal to the reconciliation run: no partial result is produced when
    only one side could be read.

    Attributes:
        source: Which side failed ("tasks", "issues" or "mappings").
        tenant: Tenant the run was executing for.

    """

    def __init__(self, message: str, *, source: str = "", tenant: str = "") -> None:
        super().__init__(message)
        self.source = source
        self.tenant = tenant


class SnapshotError(TrackerSyncError):
    """Snapshot file could not be read or has an unexpected shape."""


class MappingStoreError(TrackerSyncError):
    """Explicit mapping table could not be read or written."""
