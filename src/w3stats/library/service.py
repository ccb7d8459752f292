"""
Replay library facade.

Bundles the browsing root, the analysis cache gate and the alias table
built from configuration, and exposes the library operations the API and
the CLI share: browse, analyze, convert and aggregate. Every path argument
is relative to the library root and validated against it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from w3stats.analysis.identity import NameAliasTable, build_alias_table
from w3stats.analysis.models import DashboardStats
from w3stats.analysis.stats import aggregate_statistics
from w3stats.core.config import W3StatsConfig
from w3stats.core.constants import MAP_EXTENSIONS
from w3stats.core.errors import LibraryPathError, LibraryPathNotFound
from w3stats.infra.cache import AnalysisCache, ConversionSummary
from w3stats.infra.decoder import load_provider
from w3stats.library.scanner import browse, resolve_within_root

logger = logging.getLogger(__name__)


class ReplayLibrary:
    """A replay folder tree with its analysis sidecars."""

    def __init__(
        self,
        root: Path,
        cache: AnalysisCache,
        aliases: NameAliasTable | None = None,
        map_extensions: Sequence[str] = MAP_EXTENSIONS,
    ):
        self.root = Path(root).resolve()
        self.cache = cache
        self.aliases = aliases if aliases is not None else NameAliasTable()
        self.map_extensions = tuple(map_extensions)

    @classmethod
    def from_config(cls, config: W3StatsConfig) -> ReplayLibrary:
        """
        Build the library described by ``config``.

        Raises:
            ProviderUnavailableError: if a configured decoder can't be loaded
        """
        lib = config.library
        cache = AnalysisCache(
            provider=load_provider(config.decoder.provider),
            replay_suffix=lib.replay_suffix,
            analysis_suffix=lib.analysis_suffix,
            json_indent=lib.json_indent,
        )
        return cls(
            root=config.replay_root,
            cache=cache,
            aliases=build_alias_table(config.players),
            map_extensions=lib.map_extensions,
        )

    def ensure_root(self) -> None:
        """Create the library root if it does not exist yet."""
        if not self.root.exists():
            logger.info(f"Creating replay folder: {self.root}")
            self.root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def resolve_directory(self, relative_path: str = "") -> Path:
        directory = resolve_within_root(self.root, relative_path)
        if not directory.exists():
            raise LibraryPathNotFound("Directory not found", relative_path)
        if not directory.is_dir():
            raise LibraryPathError("Path is not a directory", relative_path)
        return directory

    def resolve_file(self, relative_path: str) -> Path:
        path = resolve_within_root(self.root, relative_path)
        if not path.is_file():
            raise LibraryPathNotFound("File not found", relative_path)
        return path

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def browse(self, relative_path: str = "") -> dict[str, Any]:
        """Listing of one folder, see :func:`w3stats.library.scanner.browse`."""
        return browse(
            self.root,
            relative_path,
            self.aliases,
            replay_suffix=self.cache.replay_suffix,
            analysis_suffix=self.cache.analysis_suffix,
            map_extensions=self.map_extensions,
        )

    def analyze(self, relative_path: str) -> dict[str, Any]:
        """
        Analysis record of one replay, decoding it if the cache is stale.

        Raises:
            PathEscapeError: if the path leaves the library root
            LibraryPathNotFound: if the replay does not exist
            ReplayDecodeError: if decoding fails
        """
        return self.cache.load(self.resolve_file(relative_path))

    def convert(self, relative_path: str = "") -> ConversionSummary:
        """Bring every replay under a folder up to date."""
        return self.cache.convert_directory(self.resolve_directory(relative_path))

    def statistics(self) -> DashboardStats:
        """Per-player statistics over every artifact in the library."""
        return aggregate_statistics(self.root, self.aliases, self.cache.analysis_suffix)
