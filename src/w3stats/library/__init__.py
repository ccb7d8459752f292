"""Replay library browsing and operations."""

from w3stats.library.scanner import LibraryEntry, browse, list_directory, resolve_within_root
from w3stats.library.service import ReplayLibrary

__all__ = [
    "LibraryEntry",
    "ReplayLibrary",
    "browse",
    "list_directory",
    "resolve_within_root",
]
