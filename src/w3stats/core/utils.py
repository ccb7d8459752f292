"""
Utility functions for W3Stats.

This module provides:
- Case-insensitive suffix helpers
- An iterative directory walker shared by bulk conversion and statistics
- Performance timing helpers
"""

import logging
import os
import time
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


def has_suffix(name: str, suffix: str) -> bool:
    """Case-insensitive check that ``name`` ends with ``suffix``."""
    return name.lower().endswith(suffix.lower())


def replace_suffix(path: Path, old_suffix: str, new_suffix: str) -> Path:
    """
    Swap a case-insensitive trailing suffix for another.

    ``replay/Game.W3G`` with ``.w3g`` -> ``.w3g_analysis.json`` becomes
    ``replay/Game.w3g_analysis.json``. A name without the old suffix just
    gets the new one appended.
    """
    name = path.name
    if has_suffix(name, old_suffix):
        name = name[: len(name) - len(old_suffix)]
    return path.with_name(name + new_suffix)


def to_posix(relative: str | Path) -> str:
    """Platform-neutral form of a relative path ('' for the root)."""
    text = str(relative).replace("\\", "/")
    return "" if text == "." else text


def iter_files(root: Path, suffix: str) -> Iterator[Path]:
    """
    Yield every file under ``root`` whose name ends with ``suffix``.

    Walks with an explicit stack of pending directories. A failure listing
    ``root`` itself propagates; failures on nested directories are logged
    and that branch is skipped. Directory symlinks are followed once.
    Order is directory-native and not guaranteed.
    """
    pending: list[Path] = [root]
    seen: set[str] = set()
    is_root = True

    while pending:
        current = pending.pop()

        real = os.path.realpath(current)
        if real in seen:
            continue
        seen.add(real)

        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            if is_root:
                raise
            logger.error(f"Error processing directory {current}: {e}")
            continue
        finally:
            is_root = False

        for entry in entries:
            try:
                if entry.is_dir():
                    pending.append(Path(entry.path))
                elif entry.is_file() and has_suffix(entry.name, suffix):
                    yield Path(entry.path)
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry.path}: {e}")


class PerformanceMonitor:
    """
    Context manager for monitoring performance of code blocks.

    Usage:
        with PerformanceMonitor("bulk conversion"):
            cache.convert_directory(root)
    """

    def __init__(self, operation_name: str, log_level: int = logging.INFO):
        self.operation_name = operation_name
        self.log_level = log_level
        self.start_time: float | None = None
        self.elapsed: float = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - (self.start_time or 0)
        if exc_type is not None:
            logger.error(f"{self.operation_name} failed after {self.elapsed:.3f}s: {exc_val}")
        else:
            logger.log(self.log_level, f"{self.operation_name} completed in {self.elapsed:.3f}s")
        return False
