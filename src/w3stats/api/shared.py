"""
Shared utilities for the W3Stats API.

Contains the process-wide ReplayLibrary dependency, the mapping from
library errors onto HTTP errors, and the response models used across the
route modules.
"""

import logging
import threading
from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field

from w3stats import __version__  # noqa: F401
from w3stats.core.config import get_config
from w3stats.core.errors import (
    LibraryPathError,
    LibraryPathNotFound,
    PathEscapeError,
    ReplayDecodeError,
)
from w3stats.library.service import ReplayLibrary

logger = logging.getLogger(__name__)

# =============================================================================
# Library Dependency
# =============================================================================

_library: ReplayLibrary | None = None
_library_lock = threading.Lock()


def get_library() -> ReplayLibrary:
    """Library built from the global config on first use."""
    global _library

    with _library_lock:
        if _library is None:
            _library = ReplayLibrary.from_config(get_config())
        return _library


def reset_library() -> None:
    """Drop the cached library so the next request rebuilds it from config."""
    global _library

    with _library_lock:
        _library = None


# =============================================================================
# Error Mapping
# =============================================================================


def require_path(path: str | None) -> str:
    """Validate a required ``path`` query parameter."""
    if not path:
        raise HTTPException(status_code=400, detail="Path parameter is required")
    return path


def http_error(exc: Exception) -> HTTPException:
    """Translate a library error into the matching HTTPException."""
    if isinstance(exc, PathEscapeError):
        return HTTPException(status_code=403, detail="Access denied")
    if isinstance(exc, LibraryPathNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, LibraryPathError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ReplayDecodeError):
        return HTTPException(
            status_code=500,
            detail={"error": "Failed to parse replay file", "details": exc.reason},
        )
    logger.error(f"Unexpected library error: {exc}")
    return HTTPException(status_code=500, detail="Internal server error")


# =============================================================================
# Response Models
# =============================================================================


class CamelModel(BaseModel):
    """Models serialized with the camelCase keys of the wire format."""

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str
    replay_root: str = Field(alias="replayRoot")
    root_exists: bool = Field(alias="rootExists")
    decoder_configured: bool = Field(alias="decoderConfigured")


class ConversionCounts(CamelModel):
    total_files: int = Field(alias="totalFiles")
    converted_files: int = Field(alias="convertedFiles")
    skipped_files: int = Field(alias="skippedFiles")
    error_files: int = Field(alias="errorFiles")


class ConversionResponse(CamelModel):
    message: str = "Conversion process completed"
    result: ConversionCounts


class RankingRow(CamelModel):
    name: str
    wins: int
    losses: int
    total_games: int = Field(alias="totalGames")
    win_rate: float = Field(alias="winRate")


class PlayerDetailResponse(CamelModel):
    name: str
    wins: int
    losses: int
    total_games: int = Field(alias="totalGames")
    win_rate: float = Field(alias="winRate")
    races: list[dict[str, Any]]
    heroes: list[dict[str, Any]]
