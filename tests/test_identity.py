"""Tests for player identity normalization."""

from __future__ import annotations

import json

import pytest

from w3stats.analysis.identity import NameAliasTable, build_alias_table, load_aliases_file
from w3stats.core.config import PlayersConfig


class TestNameAliasTable:
    """Case-insensitive alias lookup."""

    @pytest.fixture
    def table(self):
        return NameAliasTable.from_mapping({"NekoChan": "Neko", "Grubby123": "Grubby"})

    @pytest.mark.parametrize("raw", ["NekoChan", "nekochan", "NEKOCHAN", "nEkOcHaN"])
    def test_alias_in_any_casing(self, table, raw):
        """Every casing of a known alias resolves to the canonical name."""
        assert table.normalize(raw) == "Neko"

    def test_unknown_name_passes_through(self, table):
        assert table.normalize("Moon") == "Moon"

    def test_canonical_name_passes_through(self, table):
        """A canonical name that is not itself an alias stays as written."""
        assert table.normalize("Neko") == "Neko"

    def test_none_and_empty_pass_through(self, table):
        assert table.normalize(None) is None
        assert table.normalize("") == ""

    def test_first_alias_wins_on_case_collision(self):
        """Aliases that differ only by case keep the first mapping."""
        table = NameAliasTable.from_mapping({"Foo": "First", "FOO": "Second"})
        assert table.normalize("foo") == "First"
        assert len(table) == 1

    def test_table_is_immutable(self, table):
        with pytest.raises(TypeError):
            table._lookup["moon"] = "Moon"  # type: ignore[index]

    def test_empty_table(self):
        table = NameAliasTable()
        assert len(table) == 0
        assert table.normalize("Anyone") == "Anyone"


class TestAliasesFile:
    """Loading aliases from a JSON file."""

    def test_load_valid_file(self, tmp_path):
        path = tmp_path / "aliases.json"
        path.write_text(json.dumps({"NekoChan": "Neko", " ": "Blank", "Empty": ""}))

        assert load_aliases_file(path) == {"NekoChan": "Neko"}

    def test_missing_file_is_empty(self, tmp_path):
        assert load_aliases_file(tmp_path / "missing.json") == {}

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "aliases.json"
        path.write_text(json.dumps(["NekoChan", "Neko"]))

        with pytest.raises(ValueError, match="JSON object"):
            load_aliases_file(path)

    def test_table_load(self, tmp_path):
        path = tmp_path / "aliases.json"
        path.write_text(json.dumps({"Happy_": "Happy"}))

        assert NameAliasTable.load(path).normalize("HAPPY_") == "Happy"


class TestBuildAliasTable:
    """Alias table construction from the players config section."""

    def test_inline_aliases(self):
        table = build_alias_table(PlayersConfig(aliases={"NekoChan": "Neko"}))
        assert table.normalize("nekochan") == "Neko"

    def test_inline_overrides_file(self, tmp_path):
        """Inline entries win over file entries, whatever their casing."""
        path = tmp_path / "aliases.json"
        path.write_text(json.dumps({"nekochan": "FromFile", "Other": "Else"}))

        table = build_alias_table(
            PlayersConfig(aliases={"NekoChan": "Neko"}, aliases_file=str(path))
        )
        assert table.normalize("NEKOCHAN") == "Neko"
        assert table.normalize("other") == "Else"
