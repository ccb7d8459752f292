"""
Miscellaneous route handlers.

Endpoints:
- GET /health - health check
"""

import logging

from fastapi import APIRouter, Depends

from w3stats.api.shared import HealthResponse, __version__, get_library
from w3stats.core.config import get_config
from w3stats.library.service import ReplayLibrary

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health", response_model=HealthResponse)
def health(library: ReplayLibrary = Depends(get_library)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        version=__version__,
        replay_root=str(library.root),
        root_exists=library.root.is_dir(),
        decoder_configured=bool(get_config().decoder.provider),
    )
