"""
Dashboard route handlers.

Endpoints:
- GET /api/dashboard - per-player aggregates over the whole library
- GET /api/dashboard/rankings - players ordered by win rate
- GET /api/dashboard/players/{name} - race and hero breakdown of one player

Every request re-reads the analysis artifacts on disk.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from w3stats.analysis.stats import hero_usage, player_rankings, race_breakdown, win_rate
from w3stats.api.shared import PlayerDetailResponse, RankingRow, get_library
from w3stats.library.service import ReplayLibrary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(library: ReplayLibrary = Depends(get_library)) -> dict[str, Any]:
    """Aggregated statistics: ``totalGames`` and ``playerStats``."""
    return library.statistics().to_dict()


@router.get("/rankings", response_model=list[RankingRow])
def rankings(library: ReplayLibrary = Depends(get_library)) -> list[RankingRow]:
    return [RankingRow.model_validate(row) for row in player_rankings(library.statistics())]


@router.get("/players/{name}", response_model=PlayerDetailResponse)
def player_detail(
    name: str, race: str | None = None, library: ReplayLibrary = Depends(get_library)
) -> PlayerDetailResponse:
    """Results of one canonical player; aliases resolve to their canonical name."""
    canonical = library.aliases.normalize(name)
    stats = library.statistics()

    aggregate = stats.player_stats.get(canonical)
    if aggregate is None:
        raise HTTPException(status_code=404, detail=f"Player not found: {name}")

    return PlayerDetailResponse(
        name=canonical,
        wins=aggregate.wins,
        losses=aggregate.losses,
        total_games=aggregate.games,
        win_rate=win_rate(aggregate.wins, aggregate.games),
        races=race_breakdown(stats, canonical),
        heroes=hero_usage(stats, canonical, race),
    )
