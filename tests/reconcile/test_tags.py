"""Tests for tag -> subsystem mapping."""

from __future__ import annotations

from pathlib import Path

import pytest

from tracker_sync.core.exceptions import ConfigError
from tracker_sync.reconcile.tags import (
    DEFAULT_TAG_MAPPING,
    TagMapper,
    map_tag_to_label,
    map_tags,
    primary_tag,
)


class TestMapTagToLabel:
    @pytest.mark.parametrize(
        ("tag", "expected"),
        [
            ("Mobile", "mobile"),
            ("iOS", "mobile"),
            ("ios", "mobile"),
            ("DEVOPS", "infrastructure"),
            ("UI/UX", "frontend"),
            ("Billing", "billing"),
            ("", ""),
            ("   ", "   "),
            (" iOS", " ios"),
            (None, ""),
        ],
    )
    def test_default_table(self, tag: str | None, expected: str) -> None:
        assert map_tag_to_label(tag) == expected

    def test_exact_key_beats_case_insensitive(self) -> None:
        table = {"api": "one", "API": "two"}
        assert map_tag_to_label("API", table) == "two"
        assert map_tag_to_label("api", table) == "one"

    def test_case_insensitive_uses_sorted_keys(self) -> None:
        table = {"api": "one", "API": "two"}
        # "API" sorts before "api"
        assert map_tag_to_label("Api", table) == "two"

    def test_custom_table_replaces_defaults(self) -> None:
        assert map_tag_to_label("Mobile", {"Web": "site"}) == "mobile"


class TestPrimaryAndMapTags:
    def test_primary_tag_skips_blanks(self) -> None:
        assert primary_tag(["", "  ", "Web", "API"]) == "Web"
        assert primary_tag([]) == ""

    def test_map_tags_first_non_empty(self) -> None:
        assert map_tags(["", "Android", "Web"]) == "mobile"
        assert map_tags(["  ", "Web"]) == "web"
        assert map_tags([]) == ""


class TestTagMapper:
    def test_seeded_with_defaults(self) -> None:
        mapper = TagMapper()
        assert len(mapper) == len(DEFAULT_TAG_MAPPING)
        assert "iOS" in mapper
        assert mapper.custom_mappings() == {}

    def test_mappings_is_a_copy(self) -> None:
        mapper = TagMapper()
        mapper.mappings["Extra"] = "x"
        assert "Extra" not in mapper

    def test_add_update_remove(self) -> None:
        mapper = TagMapper({})
        mapper.add(" Payments ", " billing ")
        assert mapper.map_tag("payments") == "billing"

        mapper.update("Payments", "finance")
        assert mapper.map_tag("Payments") == "finance"

        mapper.remove("Payments")
        assert len(mapper) == 0

    def test_add_rejects_blank_and_duplicates(self) -> None:
        mapper = TagMapper()
        with pytest.raises(ValueError, match="non-empty"):
            mapper.add("", "x")
        with pytest.raises(ValueError, match="already mapped"):
            mapper.add("Web", "site")

    def test_update_unknown_tag(self) -> None:
        with pytest.raises(KeyError):
            TagMapper({}).update("Nope", "x")

    def test_remove_unknown_tag(self) -> None:
        with pytest.raises(KeyError):
            TagMapper({}).remove("Nope")

    def test_reset(self) -> None:
        mapper = TagMapper({"A": "b"})
        mapper.reset()
        assert mapper.mappings == dict(DEFAULT_TAG_MAPPING)

    def test_reverse_lookup_and_labels(self) -> None:
        mapper = TagMapper()
        assert mapper.tags_for_label("MOBILE") == ["Android", "Mobile", "iOS"]
        assert "backend" in mapper.labels()
        assert mapper.labels() == sorted(mapper.labels())

    def test_custom_mappings(self) -> None:
        mapper = TagMapper()
        mapper.update("Web", "site")
        mapper.add("Payments", "billing")
        assert mapper.custom_mappings() == {"Web": "site", "Payments": "billing"}

    def test_stats(self) -> None:
        stats = TagMapper({"A": "x", "B": "x", "C": "y"}).stats()
        assert stats == {
            "total_mappings": 3,
            "unique_labels": 2,
            "label_counts": {"x": 2, "y": 1},
        }

    def test_yaml_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "tags.yaml"
        TagMapper({"Payments": "billing", "Web": "site"}).export_yaml(path)
        assert TagMapper.from_yaml(path).mappings == {"Payments": "billing", "Web": "site"}

    def test_from_yaml_skips_invalid_entries(self, write_yaml, caplog) -> None:
        path = write_yaml("tags.yaml", {"Good": "label", "Bad": "", "": "x"})
        mapper = TagMapper.from_yaml(path)
        assert mapper.mappings == {"Good": "label"}
        assert "Skipping invalid tag mapping" in caplog.text

    def test_from_yaml_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "tags.yaml"
        path.write_text("", encoding="utf-8")
        assert len(TagMapper.from_yaml(path)) == 0

    def test_from_yaml_rejects_list(self, write_yaml) -> None:
        with pytest.raises(ConfigError, match="must contain a mapping"):
            TagMapper.from_yaml(write_yaml("tags.yaml", ["a", "b"]))

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot load"):
            TagMapper.from_yaml(tmp_path / "missing.yaml")
