"""
W3Stats Web Server Entry Point

Provides the `w3stats-web` command to start the FastAPI server.

Usage:
    w3stats-web                      # Start on the configured host/port (127.0.0.1:3000)
    w3stats-web --port 8000          # Start on custom port
    w3stats-web --host 0.0.0.0       # Listen on all interfaces
    w3stats-web --reload             # Enable auto-reload for development
"""

import argparse
import logging
import os
from pathlib import Path

import uvicorn

from w3stats.core.config import configure_logging, get_config, load_config, set_config

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the W3Stats web server."""
    parser = argparse.ArgumentParser(
        description="W3Stats Warcraft III Replay Browser - Web Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    w3stats-web                       Start server on http://127.0.0.1:3000
    w3stats-web --port 8000           Start on port 8000
    w3stats-web --replay-root ~/w3g   Serve another replay folder
    w3stats-web --reload              Enable auto-reload (development)
        """,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a config file")
    parser.add_argument("--host", default=None, help="Host to bind to (default: from config)")
    parser.add_argument(
        "--port", type=int, default=None, help="Port to bind to (default: from config)"
    )
    parser.add_argument(
        "--replay-root", default=None, help="Replay folder to serve (default: from config)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: from config)",
    )

    args = parser.parse_args()

    config = load_config(args.config) if args.config else get_config()
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.replay_root:
        config.library.replay_root = args.replay_root
        # Reload workers rebuild their config from the environment
        os.environ["W3STATS_REPLAY_ROOT"] = args.replay_root
    if args.log_level:
        config.server.log_level = args.log_level
    set_config(config)
    configure_logging(config.logging)

    logger.info(f"Starting W3Stats web server on http://{config.server.host}:{config.server.port}")
    logger.info(f"Replay folder: {config.replay_root}")
    logger.info("Press Ctrl+C to stop")

    uvicorn.run(
        "w3stats.api:app",
        host=config.server.host,
        port=config.server.port,
        reload=args.reload,
        log_level=config.server.log_level,
    )


if __name__ == "__main__":
    main()
