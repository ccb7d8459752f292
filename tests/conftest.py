"""Shared fixtures: synthetic replays, analysis records and config isolation."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from w3stats.api.shared import reset_library
from w3stats.core.config import ENV_MAPPINGS, reset_config
from w3stats.core.constants import OBSERVER_TEAM


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests independent of the developer's config files and environment."""
    for env_var in ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    reset_library()
    yield
    reset_config()
    reset_library()


def _player(name, team, actions=100, race="Human", race_detected=None, color="red", apm=120.0, heroes=None):
    data = {
        "player_id": None,
        "name": name,
        "race": race,
        "race_detected": race_detected,
        "team": team,
        "color": color,
        "actions": actions,
        "apm": apm,
        "actions_details": {"rightclick": actions},
    }
    if heroes is not None:
        data["heroes"] = heroes
    return data


@pytest.fixture
def make_player():
    """Build one decoder player record."""
    return _player


@pytest.fixture
def make_record():
    """
    Build a decoder-shaped analysis record.

    Players are placed into team slots by their ``team`` value; slot ids are
    assigned in order.
    """

    def build(players, winner_team=0, map_path="Maps\\FrozenThrone\\(2)EchoIsles.w3x", length=754000):
        teams: list[dict | None] = []
        for slot_id, player in enumerate(players, start=1):
            team = player.get("team")
            index = team if isinstance(team, int) and 0 <= team < OBSERVER_TEAM else 0
            while len(teams) <= index:
                teams.append(None)
            if teams[index] is None:
                teams[index] = {}
            player = dict(player, player_id=slot_id)
            teams[index][str(slot_id)] = player
        return {
            "header": {"length": length},
            "game": {
                "player_count": len(players),
                "map": map_path,
                "winner_team": winner_team,
            },
            "teams": teams,
        }

    return build


@pytest.fixture
def replay_root(tmp_path) -> Path:
    root = tmp_path / "replay"
    root.mkdir()
    return root


@pytest.fixture
def write_replay():
    """Create a placeholder replay file (contents are never parsed by W3Stats)."""

    def write(path: Path, content: bytes = b"Warcraft III recorded game\x1a\x00") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return write


@pytest.fixture
def write_artifact():
    """
    Write the analysis sidecar of a replay.

    ``age`` shifts the artifact's mtime relative to the replay's: positive
    makes it newer (fresh), negative makes it older (stale).
    """

    def write(replay_path: Path, record, age: float = 10.0) -> Path:
        name = replay_path.name
        if name.lower().endswith(".w3g"):
            name = name[:-4]
        artifact = replay_path.with_name(name + ".w3g_analysis.json")
        text = record if isinstance(record, str) else json.dumps(record, indent=2)
        artifact.write_text(text, encoding="utf-8")
        if replay_path.exists():
            mtime_ns = replay_path.stat().st_mtime_ns + int(age * 1_000_000_000)
            os.utime(artifact, ns=(mtime_ns, mtime_ns))
        return artifact

    return write
