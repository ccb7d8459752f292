"""
Typed records for analysis artifacts and player aggregates.

Analysis artifacts are schema-less JSON produced by the external decoder.
These dataclasses give the parts W3Stats reads (game info, team slots,
player records) a fixed shape. Anything the decoder adds beyond that is
left in the raw record and passed through untouched.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from w3stats.core.constants import HERO_ORDER_KEY
from w3stats.core.errors import ArtifactFormatError

# Generic "name -> count" map used for action categories and hero picks
NamedCounts = dict[str, int]


def _as_number(value: Any) -> float:
    """Numeric value of a decoder field, 0 for anything non-numeric."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _as_text(value: Any) -> str | None:
    """Labels such as race or color as strings; empty values become None."""
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


# ============================================================================
# Analysis Artifact
# ============================================================================


@dataclass
class PlayerRecord:
    """One player slot of a decoded game."""

    slot_id: str
    name: str | None
    race: str | None = None
    race_detected: str | None = None
    team: int | None = None
    color: str | None = None
    player_id: int | None = None
    actions: float = 0
    apm: float = 0.0
    actions_details: NamedCounts = field(default_factory=dict)
    # hero name -> usage detail; may contain the HERO_ORDER_KEY sentinel
    heroes: dict[str, Any] | None = None

    @property
    def is_active(self) -> bool:
        """Slots without recorded actions are observers or empty seats."""
        return self.actions > 0

    @property
    def effective_race(self) -> str | None:
        """Detected race when known, else the nominal race."""
        return self.race_detected or self.race

    def hero_names(self) -> list[str]:
        """Heroes picked by this player, without the ordering sentinel."""
        if not self.heroes:
            return []
        return [name for name in self.heroes if name != HERO_ORDER_KEY]

    @classmethod
    def from_dict(cls, slot_id: str, data: dict[str, Any]) -> PlayerRecord:
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ArtifactFormatError(f"Player {slot_id} has a non-string name")
        heroes = data.get("heroes")
        details = data.get("actions_details")
        return cls(
            slot_id=str(slot_id),
            name=name,
            race=_as_text(data.get("race")),
            race_detected=_as_text(data.get("race_detected")),
            team=data.get("team"),
            color=_as_text(data.get("color")),
            player_id=data.get("player_id"),
            actions=_as_number(data.get("actions")),
            apm=float(_as_number(data.get("apm"))),
            actions_details=dict(details) if isinstance(details, dict) else {},
            heroes=dict(heroes) if isinstance(heroes, dict) else None,
        )


@dataclass
class GameInfo:
    """The ``game`` and ``header`` sections of an artifact."""

    player_count: int | None = None
    map_path: str | None = None
    winner_team: int | None = None
    duration_ms: int = 0


@dataclass
class AnalysisRecord:
    """A parsed analysis artifact."""

    game: GameInfo
    # Ordered team slots; None where the decoder left a slot empty
    teams: list[list[PlayerRecord] | None]

    def iter_players(self) -> Iterator[PlayerRecord]:
        """All player records across every team slot, in artifact order."""
        for team in self.teams:
            if team is None:
                continue
            yield from team

    def active_players(self) -> list[PlayerRecord]:
        return [p for p in self.iter_players() if p.is_active]

    def is_winner(self, player: PlayerRecord) -> bool:
        """A player wins iff their team id equals the recorded winning team."""
        return player.team == self.game.winner_team

    @classmethod
    def from_dict(cls, data: Any) -> AnalysisRecord:
        """
        Parse a raw artifact.

        Raises:
            ArtifactFormatError: if the record is not an object or its
                ``game`` section is missing or malformed
        """
        if not isinstance(data, dict):
            raise ArtifactFormatError(f"Expected a JSON object, got {type(data).__name__}")

        game_data = data.get("game")
        if not isinstance(game_data, dict):
            raise ArtifactFormatError("Artifact has no 'game' section")

        header = data.get("header")
        duration = header.get("length", 0) if isinstance(header, dict) else 0
        map_path = game_data.get("map")
        game = GameInfo(
            player_count=game_data.get("player_count"),
            map_path=map_path if isinstance(map_path, str) else None,
            winner_team=game_data.get("winner_team"),
            duration_ms=_as_number(duration) or 0,
        )

        teams: list[list[PlayerRecord] | None] = []
        raw_teams = data.get("teams")
        if isinstance(raw_teams, list):
            for slot in raw_teams:
                if not isinstance(slot, dict):
                    teams.append(None)
                    continue
                teams.append(
                    [
                        PlayerRecord.from_dict(slot_id, player)
                        for slot_id, player in slot.items()
                        if isinstance(player, dict)
                    ]
                )

        return cls(game=game, teams=teams)


# ============================================================================
# Player Aggregates
# ============================================================================


@dataclass
class RaceRecord:
    """Win/loss split for one race."""

    wins: int = 0
    losses: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses

    def record(self, won: bool) -> None:
        if won:
            self.wins += 1
        else:
            self.losses += 1

    def to_dict(self) -> dict:
        return {"wins": self.wins, "losses": self.losses}


@dataclass
class PlayerStatAggregate:
    """Cumulative statistics of one canonical player."""

    wins: int = 0
    losses: int = 0
    races: dict[str, RaceRecord] = field(default_factory=dict)
    # race -> hero -> pick count
    heroes: dict[str, NamedCounts] = field(default_factory=dict)

    @property
    def games(self) -> int:
        return self.wins + self.losses

    def record_game(self, race: str, won: bool) -> None:
        if won:
            self.wins += 1
        else:
            self.losses += 1
        self.races.setdefault(race, RaceRecord()).record(won)

    def record_heroes(self, race: str, hero_names: list[str]) -> None:
        bucket = self.heroes.setdefault(race, {})
        for hero in hero_names:
            bucket[hero] = bucket.get(hero, 0) + 1

    def to_dict(self) -> dict:
        return {
            "wins": self.wins,
            "losses": self.losses,
            "races": {race: self.races[race].to_dict() for race in sorted(self.races)},
            "heroes": {
                race: {hero: counts[hero] for hero in sorted(counts)}
                for race, counts in sorted(self.heroes.items())
            },
        }


@dataclass
class DashboardStats:
    """Aggregated statistics over a replay library."""

    total_games: int = 0
    player_stats: dict[str, PlayerStatAggregate] = field(default_factory=dict)

    def player(self, name: str) -> PlayerStatAggregate:
        return self.player_stats.setdefault(name, PlayerStatAggregate())

    def to_dict(self) -> dict:
        return {
            "totalGames": self.total_games,
            "playerStats": {
                name: self.player_stats[name].to_dict() for name in sorted(self.player_stats)
            },
        }
