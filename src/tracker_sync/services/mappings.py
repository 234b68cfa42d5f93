"""Explicit mapping stores.

YAML layout used by YamlMappingStore:

    acme:
      - task_id: "1203"
        issue_id: ARD-12
        created_at: "2026-03-01T09:00:00+00:00"
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any

import yaml

from tracker_sync.core.exceptions import MappingStoreError
from tracker_sync.reconcile.models import ExplicitMapping

logger = logging.getLogger(__name__)

__all__ = ["InMemoryMappingStore", "YamlMappingStore", "load_mapping_file"]


def _parse_entries(entries: Any, origin: str) -> list[ExplicitMapping]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise MappingStoreError(f"{origin}: expected a list of mappings")
    mappings = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise MappingStoreError(f"{origin}: mapping entries must be mappings, got {entry!r}")
        mapping = ExplicitMapping.from_dict(entry)
        if not mapping.task_id or not mapping.issue_id:
            logger.warning("Skipping incomplete mapping %r in %s", entry, origin)
            continue
        mappings.append(mapping)
    return mappings


def load_mapping_file(path: Path) -> list[ExplicitMapping]:
    """Read a flat YAML/JSON list of ``{task_id, issue_id}`` entries.

    Raises:
        MappingStoreError: If the file is unreadable or malformed.

    """
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise MappingStoreError(f"Cannot read mappings from {path}: {e}") from e
    if isinstance(data, dict) and "mappings" in data:
        data = data["mappings"]
    return _parse_entries(data, str(path))


class InMemoryMappingStore:
    """Mapping store backed by a dict; for tests and one-shot CLI runs."""

    def __init__(self, initial: dict[str, list[ExplicitMapping]] | None = None) -> None:
        self._lock = threading.Lock()
        self._mappings: dict[str, list[ExplicitMapping]] = defaultdict(list)
        for tenant, mappings in (initial or {}).items():
            self._mappings[tenant].extend(mappings)

    def lookup(self, tenant: str) -> list[ExplicitMapping]:
        with self._lock:
            return list(self._mappings[tenant])

    def record(self, tenant: str, mapping: ExplicitMapping) -> None:
        with self._lock:
            existing = self._mappings[tenant]
            if any(m.task_id == mapping.task_id and m.issue_id == mapping.issue_id for m in existing):
                return
            existing.append(mapping)


class YamlMappingStore(InMemoryMappingStore):
    """Mapping store persisted to a YAML file keyed by tenant.

    Args:
        path: Backing file. Created on first ``record`` if absent.

    Raises:
        MappingStoreError: If an existing file cannot be parsed.

    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.exists():
            self._load()

    def _load(self) -> None:
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise MappingStoreError(f"Cannot read mapping store {self.path}: {e}") from e
        if data is None:
            return
        if not isinstance(data, dict):
            raise MappingStoreError(f"Mapping store {self.path} must map tenants to lists")
        for tenant, entries in data.items():
            self._mappings[str(tenant)] = _parse_entries(entries, f"{self.path}:{tenant}")
        logger.debug("Loaded mappings for %d tenants from %s", len(data), self.path)

    def record(self, tenant: str, mapping: ExplicitMapping) -> None:
        super().record(tenant, mapping)
        with self._lock:
            data = {
                t: [m.to_dict() for m in sorted(ms, key=lambda m: (m.task_id, m.issue_id))]
                for t, ms in sorted(self._mappings.items())
                if ms
            }
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
            except OSError as e:
                raise MappingStoreError(f"Cannot write mapping store {self.path}: {e}") from e
        logger.info("Recorded mapping %s -> %s for tenant %s", mapping.task_id, mapping.issue_id, tenant)
