"""Task and issue sources backed by snapshot files.

A snapshot is a YAML document, or JSON when the file ends in ``.json``,
holding a list of records, optionally wrapped in ``{"data": [...]}`` as
tracker APIs return them. ``path`` may also be a directory containing one file per
tenant (``<tenant>.yaml``, ``<tenant>.yml`` or ``<tenant>.json``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Generic, TypeVar

import yaml

from tracker_sync.core.exceptions import SnapshotError
from tracker_sync.reconcile.models import IssueRecord, TaskRecord

logger = logging.getLogger(__name__)

__all__ = ["SnapshotFileSource"]

R = TypeVar("R", TaskRecord, IssueRecord)

_SUFFIXES = (".yaml", ".yml", ".json")


class SnapshotFileSource(Generic[R]):
    """Read records of one kind from a snapshot file or per-tenant directory.

    Use the ``tasks`` / ``issues`` constructors rather than passing a
    factory directly.

    Example:
        >>> source = SnapshotFileSource.tasks(Path("snapshots/tasks"))
        >>> source.fetch_all("acme")

    """

    def __init__(self, path: Path, factory: Callable[[Mapping[str, Any]], R], kind: str) -> None:
        self.path = path
        self._factory = factory
        self.kind = kind

    @classmethod
    def tasks(cls, path: Path) -> SnapshotFileSource[TaskRecord]:
        return SnapshotFileSource(path, TaskRecord.from_dict, "tasks")

    @classmethod
    def issues(cls, path: Path) -> SnapshotFileSource[IssueRecord]:
        return SnapshotFileSource(path, IssueRecord.from_dict, "issues")

    def _file_for(self, tenant: str) -> Path:
        if not self.path.is_dir():
            return self.path
        for suffix in _SUFFIXES:
            candidate = self.path / f"{tenant}{suffix}"
            if candidate.is_file():
                return candidate
        raise SnapshotError(f"No {self.kind} snapshot for tenant {tenant!r} in {self.path}")

    def fetch_all(self, tenant: str) -> list[R]:
        """Load every record for ``tenant``.

        Raises:
            SnapshotError: If the file is missing, unparseable or not a list
                of mappings.

        """
        path = self._file_for(tenant)
        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise SnapshotError(f"Cannot read {self.kind} snapshot {path}: {e}") from e

        if isinstance(data, dict) and "data" in data:
            data = data["data"]
        if data is None:
            data = []
        if not isinstance(data, list):
            raise SnapshotError(f"{self.kind} snapshot {path} must contain a list of records")

        records: list[R] = []
        for index, entry in enumerate(data):
            if not isinstance(entry, Mapping):
                raise SnapshotError(f"{self.kind} snapshot {path}: entry {index} is not a mapping")
            records.append(self._factory(entry))
        logger.debug("Read %d %s from %s", len(records), self.kind, path)
        return records
