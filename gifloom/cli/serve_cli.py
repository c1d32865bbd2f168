"""
CLI command for running the HTTP service.

Usage:
    gifloom serve
    gifloom serve --host 127.0.0.1 --port 9000
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..config import load_config
from ..exceptions import GifloomError


def cmd_serve(args: argparse.Namespace) -> int:
    """Main handler for ``gifloom serve``."""
    import uvicorn

    from ..api.main import create_app

    try:
        config = load_config(Path(args.config) if args.config else None)
        app = create_app(config)
    except GifloomError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    uvicorn.run(
        app,
        host=args.host or config.host,
        port=args.port or config.port,
        log_level="debug" if args.verbose >= 2 else "info",
    )
    return 0


def build_serve_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``serve`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "serve",
        help="Run the HTTP API",
        description="Serve /upload, /animate and /download over HTTP with uvicorn.",
    )
    p.add_argument(
        "--host", default=None,
        help="Bind address (default: from config, 0.0.0.0)",
    )
    p.add_argument(
        "--port", type=int, default=None,
        help="Port (default: from config, 8080)",
    )
    p.set_defaults(func=cmd_serve)
