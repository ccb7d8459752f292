"""
Compact previews of analysis artifacts for directory listings.

A preview carries just enough to render a file row: map, duration,
active players and winners. Building one never raises; a corrupt or
oddly shaped artifact produces no preview so the rest of the folder
still lists.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from w3stats.analysis.identity import NameAliasTable
from w3stats.analysis.models import AnalysisRecord
from w3stats.core.constants import MAP_EXTENSIONS, UNKNOWN_MAP
from w3stats.core.errors import ArtifactFormatError

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def map_display_name(map_path: str | None, extensions: Sequence[str] = MAP_EXTENSIONS) -> str:
    """
    Human-readable map name from a decoder map path.

    ``Maps\\FrozenThrone\\(4)TwistedMeadows.w3x`` -> ``(4)TwistedMeadows``
    """
    if not map_path:
        return UNKNOWN_MAP
    name = re.split(r"[\\/]", map_path)[-1]
    for ext in extensions:
        if name.lower().endswith(ext.lower()):
            return name[: len(name) - len(ext)]
    return name


def format_duration(duration_ms: float | None) -> str:
    """Game length in ``m:ss``."""
    if not duration_ms:
        return "0:00"
    seconds = int(duration_ms // 1000)
    return f"{seconds // 60}:{seconds % 60:02d}"


def _normalized_or_none(aliases: NameAliasTable, name: str | None) -> str | None:
    normalized = aliases.normalize(name)
    return normalized if normalized != name else None


def build_preview(
    data: Any,
    aliases: NameAliasTable,
    map_extensions: Sequence[str] = MAP_EXTENSIONS,
) -> dict[str, Any] | None:
    """
    Build the preview of a raw analysis record.

    Returns:
        Dict with ``gameInfo``, ``players`` and ``winners``, or None if the
        record is malformed
    """
    try:
        return _preview_of(AnalysisRecord.from_dict(data), aliases, map_extensions)
    except (ArtifactFormatError, TypeError, AttributeError, RecursionError) as e:
        logger.warning(f"Cannot build preview: {e}")
        return None


def _preview_of(
    record: AnalysisRecord,
    aliases: NameAliasTable,
    map_extensions: Sequence[str],
) -> dict[str, Any]:
    game = record.game
    preview: dict[str, Any] = {
        "players": [],
        "winners": [],
        "gameInfo": {
            "playerCount": game.player_count,
            "map": map_display_name(game.map_path, map_extensions),
            "duration": game.duration_ms,
            "winnerTeam": game.winner_team,
        },
    }

    for player in record.active_players():
        normalized = _normalized_or_none(aliases, player.name)
        preview["players"].append(
            {
                "name": player.name,
                "normalizedName": normalized,
                "race": player.race,
                "raceDetected": player.race_detected,
                "color": player.color,
                "team": player.team,
                "apm": round_half_up(player.apm),
            }
        )
        if record.is_winner(player):
            preview["winners"].append(
                {"name": player.name, "normalizedName": normalized, "color": player.color}
            )

    return preview


def read_preview(
    analysis_path: Path,
    aliases: NameAliasTable,
    map_extensions: Sequence[str] = MAP_EXTENSIONS,
) -> dict[str, Any] | None:
    """Load an artifact from disk and build its preview; None on any failure."""
    try:
        with open(analysis_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError, RecursionError) as e:
        logger.error(f"Error reading preview from {analysis_path}: {e}")
        return None

    return build_preview(data, aliases, map_extensions)
