"""
Cross-game player statistics.

Folds every analysis artifact under a library root into per-player
aggregates keyed by canonical name:

- total wins and losses
- wins and losses per race (detected race preferred over nominal race)
- hero pick counts per race

Nothing is kept between calls; each call re-reads the artifacts and
rebuilds the aggregates from scratch, so the result depends only on what
is on disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from w3stats.analysis.identity import NameAliasTable
from w3stats.analysis.models import AnalysisRecord, DashboardStats
from w3stats.core.constants import ANALYSIS_SUFFIX, UNKNOWN_RACE
from w3stats.core.utils import iter_files

logger = logging.getLogger(__name__)

# Key used for player slots that carry no name
UNKNOWN_PLAYER = "Unknown"


def fold_record(record: AnalysisRecord, stats: DashboardStats, aliases: NameAliasTable) -> None:
    """Add one parsed game to ``stats``. Inactive players are ignored."""
    for player in record.active_players():
        name = aliases.normalize(player.name) or UNKNOWN_PLAYER
        won = record.is_winner(player)
        race = player.effective_race or UNKNOWN_RACE

        aggregate = stats.player(name)
        aggregate.record_game(race, won)

        # Pick counts only; per-hero wins are not tracked
        if player.heroes is not None:
            aggregate.record_heroes(race, player.hero_names())


def aggregate_statistics(
    root: Path,
    aliases: NameAliasTable,
    analysis_suffix: str = ANALYSIS_SUFFIX,
) -> DashboardStats:
    """
    Aggregate every analysis artifact under ``root``.

    Unreadable or malformed artifacts are logged and skipped; they do not
    count toward ``total_games``.
    """
    stats = DashboardStats()

    for artifact_path in iter_files(root, analysis_suffix):
        try:
            with open(artifact_path, encoding="utf-8") as f:
                record = AnalysisRecord.from_dict(json.load(f))
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Failed to parse {artifact_path}: {e}")
            continue

        fold_record(record, stats, aliases)
        stats.total_games += 1

    logger.debug(
        f"Aggregated {stats.total_games} games for {len(stats.player_stats)} players under {root}"
    )
    return stats


# ============================================================================
# Dashboard Views
# ============================================================================


def win_rate(wins: int, games: int) -> float:
    """Win percentage rounded to one decimal, 0 when no games."""
    return round(wins / games * 100, 1) if games > 0 else 0.0


def player_rankings(stats: DashboardStats) -> list[dict[str, Any]]:
    """Players ordered by win rate, then by wins."""
    rows = [
        {
            "name": name,
            "wins": agg.wins,
            "losses": agg.losses,
            "totalGames": agg.games,
            "winRate": win_rate(agg.wins, agg.games),
        }
        for name, agg in sorted(stats.player_stats.items())
    ]
    rows.sort(key=lambda r: (r["winRate"], r["wins"]), reverse=True)
    return rows


def race_breakdown(stats: DashboardStats, player: str) -> list[dict[str, Any]]:
    """Per-race results of one player, most played first."""
    aggregate = stats.player_stats.get(player)
    if aggregate is None:
        return []

    rows = [
        {
            "race": race,
            "wins": record.wins,
            "losses": record.losses,
            "games": record.games,
            "winRate": win_rate(record.wins, record.games),
        }
        for race, record in sorted(aggregate.races.items())
    ]
    rows.sort(key=lambda r: r["games"], reverse=True)
    return rows


def hero_usage(stats: DashboardStats, player: str, race: str | None = None) -> list[dict[str, Any]]:
    """
    Hero pick counts of one player.

    Args:
        stats: Aggregated statistics
        player: Canonical player name
        race: Restrict to one race; None sums picks across all races

    Returns:
        Rows of ``hero``, ``games`` and ``percentage`` (share of all picks
        in the selection), most picked first
    """
    aggregate = stats.player_stats.get(player)
    if aggregate is None:
        return []

    counts: dict[str, int] = {}
    if race is not None:
        counts = dict(aggregate.heroes.get(race, {}))
    else:
        for race_heroes in aggregate.heroes.values():
            for hero, picks in race_heroes.items():
                counts[hero] = counts.get(hero, 0) + picks

    total = sum(counts.values())
    rows = [
        {
            "hero": hero,
            "games": picks,
            "percentage": round(picks / total * 100, 1) if total > 0 else 0.0,
        }
        for hero, picks in sorted(counts.items())
    ]
    rows.sort(key=lambda r: r["games"], reverse=True)
    return rows
