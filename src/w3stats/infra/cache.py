"""
Incremental Analysis Cache for Replay Files

Provides:
- Sidecar storage: each replay's analysis lives next to it as JSON
- Freshness checks (artifact mtime >= replay mtime means reusable)
- Decode-and-persist on a cache miss, with atomic writes
- Bulk conversion over a replay folder tree
- Per-replay locking so concurrent requests decode a file only once

Freshness is a timestamp heuristic, not a content hash: a replay rewritten
within the filesystem's timestamp granularity keeps its stale artifact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import weakref
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from w3stats.core.constants import ANALYSIS_SUFFIX, ARTIFACT_JSON_INDENT, REPLAY_SUFFIX
from w3stats.core.errors import LibraryPathNotFound, ReplayDecodeError
from w3stats.core.utils import PerformanceMonitor, iter_files, replace_suffix
from w3stats.infra.decoder import AnalysisProvider

logger = logging.getLogger(__name__)


class ConversionOutcome(Enum):
    REUSED = "reused"
    CONVERTED = "converted"
    FAILED = "failed"


@dataclass
class ConversionResult:
    """Result of running the cache gate on one replay."""

    replay_path: Path
    analysis_path: Path
    outcome: ConversionOutcome
    record: dict[str, Any] | None = None
    error: str | None = None
    # False when the record was decoded but the artifact could not be written
    persisted: bool = True


@dataclass
class ConversionSummary:
    """Counts from a bulk conversion."""

    total: int = 0
    converted: int = 0
    skipped: int = 0
    failed: int = 0

    def add(self, result: ConversionResult) -> None:
        self.total += 1
        if result.outcome is ConversionOutcome.REUSED:
            self.skipped += 1
        elif result.outcome is ConversionOutcome.CONVERTED:
            self.converted += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return {
            "totalFiles": self.total,
            "convertedFiles": self.converted,
            "skippedFiles": self.skipped,
            "errorFiles": self.failed,
        }


class AnalysisCache:
    """
    Cache gate between replay files and their analysis artifacts.

    The artifact of ``games/match.w3g`` is ``games/match.w3g_analysis.json``.
    It is reused while its mtime is at least the replay's mtime; otherwise
    the replay is decoded again and the artifact overwritten.
    """

    def __init__(
        self,
        provider: AnalysisProvider,
        replay_suffix: str = REPLAY_SUFFIX,
        analysis_suffix: str = ANALYSIS_SUFFIX,
        json_indent: int = ARTIFACT_JSON_INDENT,
    ):
        """
        Initialize the cache gate.

        Args:
            provider: Callable decoding a replay path into a record dict
            replay_suffix: Suffix identifying replay files (case-insensitive)
            analysis_suffix: Suffix of the JSON sidecar
            json_indent: Indent used when writing artifacts
        """
        self.provider = provider
        self.replay_suffix = replay_suffix
        self.analysis_suffix = analysis_suffix
        self.json_indent = json_indent

        # Entries vanish once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def analysis_path_for(self, replay_path: Path) -> Path:
        """Sibling artifact path of a replay."""
        return replace_suffix(replay_path, self.replay_suffix, self.analysis_suffix)

    def is_fresh(self, replay_path: Path) -> bool:
        """True if the artifact exists and is not older than the replay."""
        analysis_path = self.analysis_path_for(replay_path)
        try:
            return analysis_path.stat().st_mtime >= replay_path.stat().st_mtime
        except FileNotFoundError:
            return False

    def _lock_for(self, replay_path: Path) -> threading.Lock:
        key = os.path.normcase(os.path.abspath(replay_path))
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def ensure(self, replay_path: Path, load: bool = False) -> ConversionResult:
        """
        Make sure a fresh artifact exists for ``replay_path``.

        Args:
            replay_path: Replay file to check
            load: Also read a reused artifact into ``result.record``

        Returns:
            ConversionResult with outcome REUSED, CONVERTED or FAILED.
            Decode failures never raise; the replay is left untouched and
            no artifact is written.
        """
        analysis_path = self.analysis_path_for(replay_path)

        with self._lock_for(replay_path):
            if self.is_fresh(replay_path):
                logger.debug(f"Skipping {replay_path.name} - analysis is up to date")
                record = self._read_artifact(analysis_path) if load else None
                if not load or record is not None:
                    return ConversionResult(
                        replay_path, analysis_path, ConversionOutcome.REUSED, record=record
                    )
                # Fresh but unreadable: decode again below

            logger.info(f"Converting {replay_path.name}...")
            try:
                record = self.provider(replay_path)
            except Exception as e:
                logger.error(f"Failed to convert {replay_path.name}: {e}")
                return ConversionResult(
                    replay_path, analysis_path, ConversionOutcome.FAILED, error=str(e)
                )

            persisted = self._write_artifact(analysis_path, record)
            if persisted:
                logger.info(f"Converted {replay_path.name}")

            return ConversionResult(
                replay_path,
                analysis_path,
                ConversionOutcome.CONVERTED,
                record=record,
                persisted=persisted,
            )

    def load(self, replay_path: Path) -> dict[str, Any]:
        """
        Return the analysis record of a replay, from cache or freshly decoded.

        Raises:
            LibraryPathNotFound: if the replay does not exist
            ReplayDecodeError: if the decoder fails
        """
        if not replay_path.is_file():
            raise LibraryPathNotFound("File not found", replay_path)

        result = self.ensure(replay_path, load=True)
        if result.outcome is ConversionOutcome.FAILED:
            raise ReplayDecodeError(replay_path, result.error or "unknown error")
        return result.record  # type: ignore[return-value]

    def convert_directory(self, root: Path) -> ConversionSummary:
        """
        Run the cache gate on every replay under ``root``.

        Failures on individual replays are counted and never stop the walk.
        """
        summary = ConversionSummary()
        logger.info(f"Starting replay conversion in {root}")

        with PerformanceMonitor(f"Conversion of {root}", log_level=logging.DEBUG):
            for replay_path in iter_files(root, self.replay_suffix):
                summary.add(self.ensure(replay_path))

        logger.info(
            f"Conversion complete: {summary.total} total, {summary.converted} converted, "
            f"{summary.skipped} skipped, {summary.failed} errors"
        )
        return summary

    def _read_artifact(self, analysis_path: Path) -> dict[str, Any] | None:
        try:
            with open(analysis_path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read cached analysis {analysis_path.name}: {e}")
            return None

    def _write_artifact(self, analysis_path: Path, record: dict[str, Any]) -> bool:
        """Write the artifact via a temp file and rename; False on failure."""
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=".", suffix=".tmp", dir=analysis_path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=self.json_indent)
            os.replace(tmp_name, analysis_path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save analysis file {analysis_path.name}: {e}")
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return False
