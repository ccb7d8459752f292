"""
Replay folder listing.

Lists the immediate children of one library folder: sub-folders and
replay files. Replay files carry a preview of their cached analysis when
one exists. Only the top level is read; nothing is decoded here.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from w3stats.analysis.identity import NameAliasTable
from w3stats.analysis.preview import read_preview
from w3stats.core.constants import ANALYSIS_SUFFIX, MAP_EXTENSIONS, REPLAY_SUFFIX
from w3stats.core.errors import LibraryPathError, LibraryPathNotFound, PathEscapeError
from w3stats.core.utils import has_suffix, replace_suffix, to_posix

logger = logging.getLogger(__name__)


@dataclass
class LibraryEntry:
    """A folder or replay file inside the library."""

    name: str
    path: str  # root-relative, "/" separated
    type: str  # "folder" or "file"
    modified: datetime
    size: int | None = None
    has_analysis: bool = False
    preview: dict[str, Any] | None = None

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "size": self.size,
            "modified": self.modified.isoformat(),
        }
        if not self.is_folder:
            data["hasAnalysis"] = self.has_analysis
            data["preview"] = self.preview
        return data


def resolve_within_root(root: Path, relative_path: str = "") -> Path:
    """
    Resolve a root-relative path and make sure it stays inside ``root``.

    Raises:
        PathEscapeError: if the resolved path is outside the root
    """
    root = root.resolve()
    target = (root / relative_path.lstrip("/\\")).resolve()
    if target != root and root not in target.parents:
        raise PathEscapeError("Access denied", relative_path)
    return target


def list_directory(
    directory: Path,
    relative_path: str,
    aliases: NameAliasTable,
    replay_suffix: str = REPLAY_SUFFIX,
    analysis_suffix: str = ANALYSIS_SUFFIX,
    map_extensions: Sequence[str] = MAP_EXTENSIONS,
) -> list[LibraryEntry]:
    """
    List the folders and replay files directly inside ``directory``.

    Args:
        directory: Absolute, already validated folder
        relative_path: The folder's path relative to the library root
        aliases: Alias table used for preview name normalization
        replay_suffix: Suffix identifying replays (case-insensitive)
        analysis_suffix: Suffix of analysis sidecars
        map_extensions: Extensions stripped from map names in previews

    Returns:
        Entries sorted by name; files that are not replays are left out

    Raises:
        OSError: if ``directory`` itself cannot be read
    """
    entries: list[LibraryEntry] = []

    with os.scandir(directory) as it:
        children = sorted(it, key=lambda e: e.name)

    for child in children:
        child_relative = to_posix(os.path.join(relative_path, child.name))
        try:
            stat = child.stat()
            if child.is_dir():
                entries.append(
                    LibraryEntry(
                        name=child.name,
                        path=child_relative,
                        type="folder",
                        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
            elif child.is_file() and has_suffix(child.name, replay_suffix):
                analysis_path = replace_suffix(Path(child.path), replay_suffix, analysis_suffix)
                has_analysis = analysis_path.is_file()
                entries.append(
                    LibraryEntry(
                        name=child.name,
                        path=child_relative,
                        type="file",
                        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                        size=stat.st_size,
                        has_analysis=has_analysis,
                        preview=(
                            read_preview(analysis_path, aliases, map_extensions)
                            if has_analysis
                            else None
                        ),
                    )
                )
        except OSError as e:
            # Broken symlinks and entries removed mid-listing
            logger.warning(f"Skipping {child.path}: {e}")

    return entries


def browse(
    root: Path,
    relative_path: str,
    aliases: NameAliasTable,
    replay_suffix: str = REPLAY_SUFFIX,
    analysis_suffix: str = ANALYSIS_SUFFIX,
    map_extensions: Sequence[str] = MAP_EXTENSIONS,
) -> dict[str, Any]:
    """
    Browse one folder of the library.

    Returns:
        ``{"currentPath", "items"}`` plus ``"parentPath"`` below the root

    Raises:
        PathEscapeError: if the path leaves the library root
        LibraryPathNotFound: if the folder does not exist
        LibraryPathError: if the path is not a folder
    """
    directory = resolve_within_root(root, relative_path)
    if not directory.exists():
        raise LibraryPathNotFound("Directory not found", relative_path)
    if not directory.is_dir():
        raise LibraryPathError("Path is not a directory", relative_path)

    current = to_posix(relative_path).strip("/")
    items = list_directory(
        directory, current, aliases, replay_suffix, analysis_suffix, map_extensions
    )

    response: dict[str, Any] = {
        "currentPath": current,
        "items": [item.to_dict() for item in items],
    }
    if current:
        response["parentPath"] = to_posix(os.path.dirname(current))
    return response
