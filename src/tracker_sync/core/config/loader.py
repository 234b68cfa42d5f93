"""Configuration loading from YAML files or plain dicts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tracker_sync.core.config.models import SyncConfig
from tracker_sync.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_CONFIG_FILENAME", "load_config"]

DEFAULT_CONFIG_FILENAME = "tracker-sync.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    # yaml.safe_load returns None for empty/whitespace-only content
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping, got {type(data).__name__}")
    return data


def load_config(source: Path | str | dict[str, Any] | None = None) -> SyncConfig:
    """Load and validate tracker-sync configuration.

    Args:
        source: Path to a YAML file, an already-parsed dict, or None for
            built-in defaults.

    Returns:
        Validated, frozen SyncConfig.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or
            fails schema validation.

    """
    if source is None:
        return SyncConfig()

    if isinstance(source, dict):
        data = source
        origin = "<dict>"
    else:
        path = Path(source)
        data = _read_yaml(path)
        origin = str(path)

    try:
        config = SyncConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {origin}:\n{e}") from e

    logger.debug(
        "Loaded config from %s: syncable=%s display_only=%s",
        origin,
        config.columns.syncable,
        config.columns.display_only,
    )
    return config
