"""
W3Stats Web API

FastAPI application for browsing a Warcraft III replay library and
viewing per-player statistics.

This package exposes:
- app: The FastAPI application (used by uvicorn, server.py, wsgi.py)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from w3stats.api.shared import __version__, get_library
from w3stats.core.config import get_config

logger = logging.getLogger(__name__)


# =============================================================================
# Startup
# =============================================================================


def prepare_library() -> None:
    """Create the replay root and, if enabled, convert every replay in it."""
    library = get_library()
    library.ensure_root()

    if get_config().library.convert_on_startup:
        try:
            library.convert()
        except OSError as e:
            logger.error(f"Startup conversion failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await run_in_threadpool(prepare_library)
    yield


# =============================================================================
# FastAPI App Creation
# =============================================================================

app = FastAPI(
    title="W3Stats API",
    description="Warcraft III replay browser with cached analyses and player statistics",
    version=__version__,
    lifespan=lifespan,
)

# =============================================================================
# CORS & GZip
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# =============================================================================
# Security Middleware
# =============================================================================


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next) -> Response:
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if "/api/" in request.url.path:
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        response.headers["Pragma"] = "no-cache"

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as ``{"error": ...}`` bodies."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to prevent information disclosure."""
    logger.exception(f"Unhandled exception for {request.method} {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# Static Files & Root
# =============================================================================

STATIC_DIR = Path(__file__).parent.parent / "static"

if STATIC_DIR.is_dir():
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/", response_class=HTMLResponse)
async def root() -> HTMLResponse:
    """Serve the main web interface."""
    html_file = STATIC_DIR / "index.html"
    if html_file.exists():
        return HTMLResponse(
            content=html_file.read_text(encoding="utf-8"),
            status_code=200,
            headers={"cache-control": "no-cache, no-store, must-revalidate"},
        )
    return HTMLResponse(
        content="<h1>W3Stats</h1><p>Web interface not found.</p>",
        status_code=200,
        headers={"cache-control": "no-cache"},
    )


# =============================================================================
# Include Route Modules
# =============================================================================

from w3stats.api.routes_library import router as library_router  # noqa: E402
from w3stats.api.routes_misc import router as misc_router  # noqa: E402
from w3stats.api.routes_stats import router as stats_router  # noqa: E402

app.include_router(library_router)
app.include_router(stats_router)
app.include_router(misc_router)
