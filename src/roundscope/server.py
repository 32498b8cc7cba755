"""
Roundscope Web Server Entry Point

Provides the `roundscope-web` command to start the FastAPI server.

Usage:
    roundscope-web                      # Start on default port 3001
    roundscope-web --port 8000          # Start on custom port
    roundscope-web --host 127.0.0.1     # Bind to localhost only
    roundscope-web --demos-dir ./demos  # Serve demos from a directory
    roundscope-web --reload             # Enable auto-reload for development
"""

import argparse
import logging
import os

import uvicorn

from roundscope.core.config import get_config, setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the Roundscope web server."""
    parser = argparse.ArgumentParser(
        description="Roundscope CS2 Scoreboards and Replays - Web Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    roundscope-web                     Start server on http://0.0.0.0:3001
    roundscope-web --port 8000         Start on port 8000
    roundscope-web --host 127.0.0.1    Bind to localhost only
    roundscope-web --reload            Enable auto-reload (development)
        """,
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", 3001)),
        help="Port to bind to (default: $PORT or 3001)",
    )
    parser.add_argument(
        "--demos-dir",
        default=None,
        help="Directory containing .dem files (default from config)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )

    args = parser.parse_args()

    config = get_config()
    config.logging.level = args.log_level.upper()
    setup_logging(config.logging)

    if args.demos_dir:
        # Read by get_config() in the (possibly reloaded) server process
        os.environ["ROUNDSCOPE_DEMOS_DIR"] = args.demos_dir

    logger.info(f"Starting Roundscope web server on http://{args.host}:{args.port}")
    logger.info("Press Ctrl+C to stop")

    # Single worker: the memo cache lives in-process
    uvicorn.run(
        "roundscope.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
