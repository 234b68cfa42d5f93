"""Tenant-scoped ignore list.

Temporary ignores live in memory for the lifetime of the process.
Permanent ignores are written to a YAML file on every change:

    acme:
      - "1203"
      - "1207"
    globex: []
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any

import yaml

from tracker_sync.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["IgnoreList"]


class IgnoreList:
    """Temporary and permanent task ignores, keyed by tenant.

    Safe to share between the scheduler's tenant loops: all access goes
    through one lock.

    Args:
        path: YAML file holding permanent ignores. None keeps everything in
            memory.

    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._temporary: dict[str, set[str]] = defaultdict(set)
        self._permanent: dict[str, set[str]] = defaultdict(set)
        if path is not None and path.exists():
            self._load(path)

    def _load(self, path: Path) -> None:
        try:
            data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load ignore list {path}: {e}") from e
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Ignore list {path} must map tenants to id lists")
        for tenant, ids in data.items():
            if ids is None:
                ids = []
            if not isinstance(ids, list):
                raise ConfigError(f"Ignore list {path}: ids for tenant {tenant!r} must be a list")
            self._permanent[str(tenant)] = {str(i) for i in ids if str(i).strip()}
        logger.debug("Loaded permanent ignores for %d tenants from %s", len(data), path)

    def _save(self) -> None:
        if self._path is None:
            return
        data = {tenant: sorted(ids) for tenant, ids in sorted(self._permanent.items()) if ids}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")

    # IgnoreChecker

    def is_ignored(self, tenant: str, identifier: str) -> bool:
        with self._lock:
            return identifier in self._temporary[tenant] or identifier in self._permanent[tenant]

    def ignored(self, tenant: str) -> frozenset[str]:
        """Union of temporary and permanent ignores for a tenant."""
        with self._lock:
            return frozenset(self._temporary[tenant] | self._permanent[tenant])

    # Mutation

    def add(self, tenant: str, identifier: str, *, permanent: bool = False) -> None:
        """Ignore a task id.

        Raises:
            ValueError: If ``identifier`` is blank.

        """
        identifier = identifier.strip()
        if not identifier:
            raise ValueError("identifier must be non-empty")
        with self._lock:
            if permanent:
                self._temporary[tenant].discard(identifier)
                self._permanent[tenant].add(identifier)
                self._save()
            else:
                self._temporary[tenant].add(identifier)
        logger.info(
            "Ignoring %s for tenant %s (%s)",
            identifier,
            tenant,
            "permanent" if permanent else "temporary",
        )

    def remove(self, tenant: str, identifier: str) -> bool:
        """Stop ignoring a task id. Returns False if it was not ignored."""
        with self._lock:
            was_temp = identifier in self._temporary[tenant]
            was_perm = identifier in self._permanent[tenant]
            self._temporary[tenant].discard(identifier)
            if was_perm:
                self._permanent[tenant].discard(identifier)
                self._save()
        return was_temp or was_perm

    def clear(self, tenant: str, *, temporary: bool = True, permanent: bool = False) -> None:
        """Drop a tenant's temporary and/or permanent ignores."""
        with self._lock:
            if temporary:
                self._temporary[tenant].clear()
            if permanent and self._permanent[tenant]:
                self._permanent[tenant].clear()
                self._save()

    def status(self, tenant: str) -> dict[str, Any]:
        """Sorted temporary and permanent ids plus the total count."""
        with self._lock:
            temp = sorted(self._temporary[tenant])
            perm = sorted(self._permanent[tenant])
        return {
            "temporary": temp,
            "permanent": perm,
            "total": len(set(temp) | set(perm)),
        }
