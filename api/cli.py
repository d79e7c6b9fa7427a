#!/usr/bin/env python3
"""CLI for the render gateway.

Usage:
    python -m cli <command>

Commands:
    serve    Run the HTTP server (graceful shutdown outside development)
"""

import argparse
import sys

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)


def cmd_serve(host: str | None, port: int | None) -> int:
    """Run the gateway until it is shut down."""
    from core.lifecycle import serve
    from main import app

    overrides = {
        key: value
        for key, value in (("host", host), ("port", port))
        if value is not None
    }
    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        serve(app, settings)
    except KeyboardInterrupt:
        # Development mode: no handlers installed, Ctrl-C lands here
        logger.info("server.interrupted")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Render gateway CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port", type=int, help="Listen port (default: PORT or 3400)"
    )

    args = parser.parse_args()

    if args.command == "serve":
        return cmd_serve(args.host, args.port)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
