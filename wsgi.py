"""ASGI entry point for process-manager deployments."""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from w3stats.api import app  # noqa: E402, F401

# For gunicorn with uvicorn workers
# Run with: gunicorn wsgi:app -k uvicorn.workers.UvicornWorker
