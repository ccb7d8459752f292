"""
Player identity normalization.

Players show up under several spellings across replays ("NekoChan",
"nekochan", "Neko"). The alias table maps every known variation to one
canonical name so statistics for the same person land in one bucket.

The table is built once at startup and passed around explicitly; it is
never mutated afterwards.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from w3stats.core.config import PlayersConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NameAliasTable:
    """Immutable, case-insensitive alias -> canonical name table."""

    _lookup: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, aliases: Mapping[str, str]) -> NameAliasTable:
        """
        Build a table from an alias -> canonical mapping.

        Keys are lowercased once here. When two aliases differ only by
        case, the first one in mapping order wins.
        """
        lookup: dict[str, str] = {}
        for alias, canonical in aliases.items():
            lookup.setdefault(alias.lower(), canonical)
        return cls(MappingProxyType(lookup))

    @classmethod
    def load(cls, path: Path) -> NameAliasTable:
        """Load a table from a JSON object file ({alias: canonical})."""
        return cls.from_mapping(load_aliases_file(path))

    def normalize(self, name: str | None) -> str | None:
        """Return the canonical name for ``name``, or ``name`` unchanged."""
        if not name:
            return name
        return self._lookup.get(name.lower(), name)

    def __len__(self) -> int:
        return len(self._lookup)


def load_aliases_file(path: Path) -> dict[str, str]:
    """
    Read an alias JSON file.

    Blank keys or values are dropped. A missing file yields an empty mapping;
    a file that is not a JSON object raises ValueError.
    """
    if not path.exists():
        logger.warning(f"Aliases file not found: {path}")
        return {}

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Aliases file must contain a JSON object: {path}")

    cleaned: dict[str, str] = {}
    for k, v in raw.items():
        kk = str(k).strip()
        vv = str(v).strip() if v is not None else ""
        if kk and vv:
            cleaned[kk] = vv
    return cleaned


def build_alias_table(players: PlayersConfig) -> NameAliasTable:
    """Build the process alias table: file entries first, inline aliases override."""
    merged: dict[str, str] = {}
    if players.aliases_file:
        merged.update(load_aliases_file(Path(players.aliases_file).expanduser()))

    # Inline entries override file entries case-insensitively
    inline_keys = {alias.lower() for alias in players.aliases}
    merged = {k: v for k, v in merged.items() if k.lower() not in inline_keys}
    merged.update(players.aliases)

    table = NameAliasTable.from_mapping(merged)
    logger.debug(f"Loaded {len(table)} player aliases")
    return table
