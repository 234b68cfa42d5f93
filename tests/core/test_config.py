"""Tests for configuration models and loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tracker_sync.core.config import (
    DEFAULT_DISPLAY_ONLY_BUCKETS,
    DEFAULT_SYNCABLE_BUCKETS,
    ColumnConfig,
    ColumnMapping,
    ResolverConfig,
    SyncConfig,
    load_config,
)
from tracker_sync.core.exceptions import ConfigError
from tracker_sync.reconcile.tags import DEFAULT_TAG_MAPPING


class TestDefaults:
    def test_default_config(self, config: SyncConfig) -> None:
        assert config.columns.syncable == list(DEFAULT_SYNCABLE_BUCKETS)
        assert config.columns.display_only == list(DEFAULT_DISPLAY_ONLY_BUCKETS)
        assert config.resolver == ResolverConfig()
        assert config.resolver.enable_back_reference is True
        assert config.ready_for_stage_expected == "Dev"
        assert config.tag_mapping == dict(DEFAULT_TAG_MAPPING)
        assert config.scheduler.interval_seconds == 15.0
        assert config.detect_content_changes is False

    def test_frozen(self, config: SyncConfig) -> None:
        with pytest.raises(ValidationError):
            config.ready_for_stage_expected = "Stage"  # type: ignore[misc]


class TestColumnConfig:
    def test_names_normalized(self) -> None:
        columns = ColumnConfig(syncable=["  Dev ", "In   Progress"], display_only=None)
        assert columns.syncable == ["dev", "in progress"]
        assert columns.display_only == []

    def test_overlap_rejected(self) -> None:
        with pytest.raises(ValidationError, match="both syncable and display-only: dev"):
            ColumnConfig(syncable=["dev", "stage"], display_only=["Dev"])

    def test_mapping_for_is_case_insensitive(self) -> None:
        mapping = ColumnMapping(section="QA Review", status="Stage")
        columns = ColumnConfig(mappings=[mapping])
        assert columns.mapping_for(" qa review ") == mapping
        assert columns.mapping_for("Dev") is None

    def test_mapping_needs_status_or_display_only(self) -> None:
        with pytest.raises(ValidationError, match="needs a status or display_only"):
            ColumnMapping(section="QA")
        assert ColumnMapping(section="QA", display_only=True).status == ""


class TestSyncConfigValidation:
    def test_unknown_ready_for_stage_label(self) -> None:
        with pytest.raises(ValidationError, match="not a known stage"):
            SyncConfig(ready_for_stage_expected="Shipped")

    def test_unknown_synonym_target(self) -> None:
        with pytest.raises(ValidationError, match="unknown stage"):
            SyncConfig(status_synonyms={"QA": "Verified"})

    def test_extra_keys_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            SyncConfig.model_validate({"colums": {}})

    def test_none_mappings_become_empty(self) -> None:
        config = SyncConfig.model_validate({"tag_mapping": None, "status_synonyms": None})
        assert config.tag_mapping == {}
        assert config.status_synonyms == {}

    def test_no_syncable_columns_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        SyncConfig(columns=ColumnConfig(syncable=[]))
        assert "No syncable columns" in caplog.text

    @pytest.mark.parametrize("interval", [0, -5])
    def test_scheduler_interval_positive(self, interval: float) -> None:
        with pytest.raises(ValidationError):
            SyncConfig.model_validate({"scheduler": {"interval_seconds": interval}})


class TestLoadConfig:
    def test_none_gives_defaults(self) -> None:
        assert load_config(None) == SyncConfig()

    def test_from_dict(self) -> None:
        config = load_config({"resolver": {"enable_back_reference": False}})
        assert config.resolver.enable_back_reference is False
        assert config.resolver.enable_title_match is True

    def test_from_file(self, write_yaml) -> None:
        path = write_yaml(
            "tracker-sync.yaml",
            {
                "columns": {
                    "display_only": ["findings", "archive"],
                    "mappings": [{"section": "QA Review", "status": "Stage"}],
                },
                "status_synonyms": {"QA": "Stage"},
                "scheduler": {"interval_seconds": 30},
            },
        )
        config = load_config(path)
        assert config.columns.display_only == ["findings", "archive"]
        assert config.columns.mappings[0].status == "Stage"
        assert config.scheduler.interval_seconds == 30

    def test_accepts_str_path(self, write_yaml) -> None:
        path = write_yaml("c.yaml", {"ready_for_stage_expected": "stage"})
        assert load_config(str(path)).ready_for_stage_expected == "stage"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("   \n", encoding="utf-8")
        assert load_config(path) == SyncConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("columns: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_root(self, write_yaml) -> None:
        with pytest.raises(ConfigError, match="must be a mapping, got list"):
            load_config(write_yaml("c.yaml", ["a"]))

    def test_validation_error_wrapped(self, write_yaml) -> None:
        path = write_yaml("c.yaml", {"columns": {"syncable": ["dev"], "display_only": ["dev"]}})
        with pytest.raises(ConfigError, match="Invalid configuration in") as exc_info:
            load_config(path)
        assert isinstance(exc_info.value.__cause__, ValidationError)
