"""
Exception hierarchy for W3Stats.

The library layer raises these; the API maps them onto HTTP status codes
and the CLI onto exit codes.
"""

from pathlib import Path


class W3StatsError(Exception):
    """Base class for all W3Stats errors."""


class LibraryPathError(W3StatsError):
    """A requested library path is unusable."""

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class PathEscapeError(LibraryPathError):
    """The resolved path lies outside the browsing root."""


class LibraryPathNotFound(LibraryPathError):
    """The requested path does not exist."""


class ReplayDecodeError(W3StatsError):
    """The analysis provider failed to decode a replay."""

    def __init__(self, replay_path: Path, reason: str):
        super().__init__(f"Failed to decode {replay_path.name}: {reason}")
        self.replay_path = replay_path
        self.reason = reason


class ProviderUnavailableError(W3StatsError):
    """No analysis provider is configured, or it could not be imported."""


class ArtifactFormatError(W3StatsError, ValueError):
    """A cached analysis artifact is not shaped like an analysis record."""
