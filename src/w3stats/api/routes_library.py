"""
Replay library route handlers.

Endpoints:
- GET /api/browse - list one folder of the library
- GET /api/analyze - analysis record of one replay (decoded on demand)
- GET /api/download - raw replay file
- POST /api/convert - bring every replay under a folder up to date
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from w3stats.api.shared import (
    ConversionCounts,
    ConversionResponse,
    get_library,
    http_error,
    require_path,
)
from w3stats.core.errors import W3StatsError
from w3stats.library.service import ReplayLibrary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["library"])


@router.get("/browse")
def browse_directory(path: str = "", library: ReplayLibrary = Depends(get_library)) -> Any:
    """List folders and replay files, with previews of analyzed replays."""
    try:
        return library.browse(path)
    except W3StatsError as e:
        raise http_error(e) from e


@router.get("/analyze")
def analyze_replay(
    path: str | None = None, library: ReplayLibrary = Depends(get_library)
) -> Any:
    """
    Return the analysis of one replay.

    The cached artifact is served while it is fresh; otherwise the replay
    is decoded and the artifact rewritten.
    """
    relative = require_path(path)
    try:
        return library.analyze(relative)
    except W3StatsError as e:
        raise http_error(e) from e


@router.get("/download")
def download_replay(
    path: str | None = None, library: ReplayLibrary = Depends(get_library)
) -> FileResponse:
    """Download the raw replay file."""
    relative = require_path(path)
    try:
        replay_path = library.resolve_file(relative)
    except W3StatsError as e:
        raise http_error(e) from e

    return FileResponse(
        replay_path, filename=replay_path.name, media_type="application/octet-stream"
    )


@router.post("/convert", response_model=ConversionResponse)
def convert_directory(
    path: str = "", library: ReplayLibrary = Depends(get_library)
) -> ConversionResponse:
    """Run the analysis cache over every replay under a folder."""
    try:
        summary = library.convert(path)
    except W3StatsError as e:
        raise http_error(e) from e

    return ConversionResponse(
        result=ConversionCounts(
            total_files=summary.total,
            converted_files=summary.converted,
            skipped_files=summary.skipped,
            error_files=summary.failed,
        )
    )
