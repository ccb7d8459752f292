"""Tests for cross-game player statistics."""

from __future__ import annotations

import json

import pytest

from w3stats.analysis.identity import NameAliasTable
from w3stats.analysis.models import AnalysisRecord, DashboardStats
from w3stats.analysis.stats import (
    aggregate_statistics,
    fold_record,
    hero_usage,
    player_rankings,
    race_breakdown,
    win_rate,
)
from w3stats.core.errors import ArtifactFormatError

ALIASES = NameAliasTable.from_mapping({"NekoChan": "Neko"})


@pytest.fixture
def library(replay_root, make_record, make_player, write_replay, write_artifact):
    """Two games of Neko under different spellings, plus a broken artifact."""
    game_a = make_record(
        [
            make_player("NekoChan", 0, actions=50, race="Human", heroes={"Archmage": {}, "order": [1]}),
            make_player("Foe", 1, actions=40, race="Orc", heroes={"Blademaster": {}}),
        ],
        winner_team=0,
    )
    game_b = make_record(
        [
            make_player("Neko", 1, actions=60, race="Human", heroes={"Mountain King": {}, "Archmage": {}}),
            make_player("Spectator", 12, actions=0),
        ],
        winner_team=0,
    )
    write_artifact(write_replay(replay_root / "a.w3g"), game_a)
    write_artifact(write_replay(replay_root / "2024" / "b.w3g"), game_b)
    write_artifact(write_replay(replay_root / "broken.w3g"), "{not json")
    return replay_root


class TestAggregateStatistics:
    """Folding every artifact under the library root."""

    def test_alias_scenario(self, library):
        """Games under an alias and the canonical name land in one bucket."""
        stats = aggregate_statistics(library, ALIASES)

        neko = stats.player_stats["Neko"]
        assert (neko.wins, neko.losses) == (1, 1)
        assert neko.races["Human"].to_dict() == {"wins": 1, "losses": 1}
        assert "NekoChan" not in stats.player_stats

    def test_total_games_skips_broken(self, library):
        assert aggregate_statistics(library, ALIASES).total_games == 2

    def test_inactive_players_excluded(self, library):
        assert "Spectator" not in aggregate_statistics(library, ALIASES).player_stats

    def test_winner_by_team(self, library):
        stats = aggregate_statistics(library, ALIASES)
        assert (stats.player_stats["Foe"].wins, stats.player_stats["Foe"].losses) == (0, 1)

    def test_hero_counts_exclude_order(self, library):
        stats = aggregate_statistics(library, ALIASES)

        assert stats.player_stats["Neko"].heroes == {
            "Human": {"Archmage": 2, "Mountain King": 1}
        }

    def test_deterministic(self, library):
        """Two runs over the same files serialize identically."""
        first = json.dumps(aggregate_statistics(library, ALIASES).to_dict())
        second = json.dumps(aggregate_statistics(library, ALIASES).to_dict())
        assert first == second

    def test_wire_format(self, library):
        data = aggregate_statistics(library, ALIASES).to_dict()

        assert data["totalGames"] == 2
        assert list(data["playerStats"]) == ["Foe", "Neko"]
        assert data["playerStats"]["Foe"] == {
            "wins": 0,
            "losses": 1,
            "races": {"Orc": {"wins": 0, "losses": 1}},
            "heroes": {"Orc": {"Blademaster": 1}},
        }

    def test_artifact_without_game_not_counted(self, replay_root, write_replay, write_artifact):
        write_artifact(write_replay(replay_root / "a.w3g"), {"teams": []})
        assert aggregate_statistics(replay_root, ALIASES).total_games == 0

    def test_absent_team_and_winner_count_as_win(self, replay_root, write_replay, write_artifact):
        write_artifact(
            write_replay(replay_root / "a.w3g"),
            {"game": {}, "teams": [{"1": {"name": "A", "actions": 5, "race": "Orc"}}]},
        )

        player = aggregate_statistics(replay_root, ALIASES).player_stats["A"]

        assert (player.wins, player.losses) == (1, 0)

    def test_game_without_teams_counted(self, replay_root, write_replay, write_artifact):
        write_artifact(write_replay(replay_root / "a.w3g"), {"game": {"winner_team": 0}})

        stats = aggregate_statistics(replay_root, ALIASES)

        assert stats.total_games == 1
        assert stats.player_stats == {}

    def test_empty_root(self, replay_root):
        assert aggregate_statistics(replay_root, ALIASES).to_dict() == {
            "totalGames": 0,
            "playerStats": {},
        }


class TestFoldRecord:
    """Per-game folding rules."""

    def test_detected_race_preferred(self, make_record, make_player):
        stats = DashboardStats()
        record = AnalysisRecord.from_dict(
            make_record([make_player("A", 0, race="Random", race_detected="Undead")])
        )

        fold_record(record, stats, ALIASES)

        assert list(stats.player_stats["A"].races) == ["Undead"]

    def test_unknown_race_and_name(self, make_record, make_player):
        stats = DashboardStats()
        record = AnalysisRecord.from_dict(make_record([make_player(None, 0, race=None)]))

        fold_record(record, stats, ALIASES)

        assert stats.player_stats["Unknown"].races["Unknown"].wins == 1

    def test_empty_heroes_map_creates_bucket(self, make_record, make_player):
        stats = DashboardStats()
        record = AnalysisRecord.from_dict(
            make_record([make_player("A", 0, race="Orc", heroes={"order": []})])
        )

        fold_record(record, stats, ALIASES)

        assert stats.player_stats["A"].heroes == {"Orc": {}}

    def test_malformed_player_rejected_before_folding(self):
        with pytest.raises(ArtifactFormatError):
            AnalysisRecord.from_dict({"game": {}, "teams": [{"1": {"name": ["x"], "actions": 1}}]})


class TestDashboardViews:
    """Rankings and per-player breakdowns."""

    @pytest.fixture
    def stats(self):
        stats = DashboardStats(total_games=5)
        for race, won in [("Human", True), ("Human", True), ("Orc", False)]:
            stats.player("Neko").record_game(race, won)
        stats.player("Neko").record_heroes("Human", ["Archmage", "Paladin"])
        stats.player("Neko").record_heroes("Human", ["Archmage"])
        stats.player("Neko").record_heroes("Orc", ["Blademaster"])
        for won in (True, False):
            stats.player("Foe").record_game("Undead", won)
        return stats

    def test_win_rate(self):
        assert win_rate(2, 3) == 66.7
        assert win_rate(0, 0) == 0.0

    def test_rankings(self, stats):
        assert player_rankings(stats) == [
            {"name": "Neko", "wins": 2, "losses": 1, "totalGames": 3, "winRate": 66.7},
            {"name": "Foe", "wins": 1, "losses": 1, "totalGames": 2, "winRate": 50.0},
        ]

    def test_race_breakdown(self, stats):
        rows = race_breakdown(stats, "Neko")
        assert [r["race"] for r in rows] == ["Human", "Orc"]
        assert rows[0] == {"race": "Human", "wins": 2, "losses": 0, "games": 2, "winRate": 100.0}

    def test_hero_usage_all_races(self, stats):
        rows = hero_usage(stats, "Neko")
        assert rows[0] == {"hero": "Archmage", "games": 2, "percentage": 50.0}
        assert {r["hero"] for r in rows} == {"Archmage", "Paladin", "Blademaster"}

    def test_hero_usage_one_race(self, stats):
        assert hero_usage(stats, "Neko", "Orc") == [
            {"hero": "Blademaster", "games": 1, "percentage": 100.0}
        ]

    def test_unknown_player(self, stats):
        assert race_breakdown(stats, "Nobody") == []
        assert hero_usage(stats, "Nobody") == []
