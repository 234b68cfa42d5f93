"""Task tag -> issue subsystem mapping.

Tasks carry free-form tags ("Mobile", "iOS", "DevOps"); issues carry a
single subsystem label. The mapper translates a task's primary tag so the
classifier can flag pairs whose subsystem disagrees with the task's tags.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from tracker_sync.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_TAG_MAPPING",
    "TagMapper",
    "map_tag_to_label",
    "map_tags",
    "primary_tag",
]

DEFAULT_TAG_MAPPING: Mapping[str, str] = {
    "Mobile": "mobile",
    "Web": "web",
    "API": "backend",
    "Frontend": "frontend",
    "Backend": "backend",
    "iOS": "mobile",
    "Android": "mobile",
    "Desktop": "desktop",
    "Database": "backend",
    "UI/UX": "frontend",
    "DevOps": "infrastructure",
    "QA": "testing",
    "Testing": "testing",
    "Security": "security",
    "Performance": "performance",
}


def map_tag_to_label(tag: str | None, table: Mapping[str, str] | None = None) -> str:
    """Translate one tag into an issue subsystem label.

    Lookup order: exact key, case-insensitive key, then the lower-cased tag
    itself. Only empty input yields an empty string; a blank tag comes back
    lower-cased like any other unmapped tag.

    Examples:
        >>> map_tag_to_label("ios")
        'mobile'
        >>> map_tag_to_label("Billing")
        'billing'

    """
    if not tag:
        return ""
    if table is None:
        table = DEFAULT_TAG_MAPPING
    if tag in table:
        return table[tag]
    wanted = tag.lower()
    for key in sorted(table):
        if key.lower() == wanted:
            return table[key]
    return wanted


def primary_tag(tags: Iterable[str]) -> str:
    """Return the first non-blank tag, or an empty string."""
    for tag in tags:
        if tag and tag.strip():
            return tag
    return ""


def map_tags(tags: Iterable[str], table: Mapping[str, str] | None = None) -> str:
    """Return the first non-empty mapping among ``tags``."""
    for tag in tags:
        if not tag or not tag.strip():
            continue
        label = map_tag_to_label(tag, table)
        if label:
            return label
    return ""


class TagMapper:
    """Editable tag mapping table seeded with the defaults.

    Args:
        mappings: Initial table. Defaults to DEFAULT_TAG_MAPPING.

    """

    def __init__(self, mappings: Mapping[str, str] | None = None) -> None:
        self._mappings: dict[str, str] = dict(DEFAULT_TAG_MAPPING if mappings is None else mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, tag: object) -> bool:
        return tag in self._mappings

    @property
    def mappings(self) -> dict[str, str]:
        """Copy of the current table."""
        return dict(self._mappings)

    @staticmethod
    def validate(tag: str, label: str) -> bool:
        """Both sides must be non-blank."""
        return bool(tag and tag.strip()) and bool(label and label.strip())

    def add(self, tag: str, label: str) -> None:
        """Add a mapping.

        Raises:
            ValueError: If either side is blank or the tag is already mapped.

        """
        if not self.validate(tag, label):
            raise ValueError("tag and label must be non-empty")
        tag = tag.strip()
        if tag in self._mappings:
            raise ValueError(f"tag {tag!r} is already mapped to {self._mappings[tag]!r}")
        self._mappings[tag] = label.strip()

    def update(self, tag: str, label: str) -> None:
        """Change the label of an existing mapping.

        Raises:
            KeyError: If the tag is not mapped.
            ValueError: If the label is blank.

        """
        if not self.validate(tag, label):
            raise ValueError("tag and label must be non-empty")
        tag = tag.strip()
        if tag not in self._mappings:
            raise KeyError(tag)
        self._mappings[tag] = label.strip()

    def remove(self, tag: str) -> None:
        """Delete a mapping; raises KeyError if absent."""
        del self._mappings[tag]

    def reset(self) -> None:
        """Restore the default table."""
        self._mappings = dict(DEFAULT_TAG_MAPPING)

    def map_tag(self, tag: str | None) -> str:
        return map_tag_to_label(tag, self._mappings)

    def map_tags(self, tags: Iterable[str]) -> str:
        return map_tags(tags, self._mappings)

    def tags_for_label(self, label: str) -> list[str]:
        """Reverse lookup: every tag mapped to ``label`` (case-insensitive), sorted."""
        wanted = label.lower()
        return sorted(tag for tag, value in self._mappings.items() if value.lower() == wanted)

    def labels(self) -> list[str]:
        """Distinct labels, sorted."""
        return sorted(set(self._mappings.values()))

    def custom_mappings(self) -> dict[str, str]:
        """Entries that differ from, or are absent in, the defaults."""
        return {
            tag: label
            for tag, label in self._mappings.items()
            if DEFAULT_TAG_MAPPING.get(tag) != label
        }

    def stats(self) -> dict[str, Any]:
        """Mapping statistics: totals and per-label tag counts."""
        counts: dict[str, int] = {}
        for label in self._mappings.values():
            counts[label] = counts.get(label, 0) + 1
        return {
            "total_mappings": len(self._mappings),
            "unique_labels": len(counts),
            "label_counts": dict(sorted(counts.items())),
        }

    def export_yaml(self, path: Path) -> None:
        """Write the table as a YAML mapping."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(dict(sorted(self._mappings.items())), sort_keys=False),
            encoding="utf-8",
        )
        logger.info("Exported %d tag mappings to %s", len(self._mappings), path)

    @classmethod
    def from_yaml(cls, path: Path) -> TagMapper:
        """Load a table previously written by export_yaml.

        Invalid entries are skipped with a warning.

        Raises:
            ConfigError: If the file cannot be read or is not a mapping.

        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load tag mappings from {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Tag mapping file {path} must contain a mapping")

        table: dict[str, str] = {}
        for tag, label in data.items():
            if not cls.validate(str(tag), str(label or "")):
                logger.warning("Skipping invalid tag mapping %r -> %r in %s", tag, label, path)
                continue
            table[str(tag).strip()] = str(label).strip()
        return cls(table)
