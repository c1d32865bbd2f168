"""Main CLI entry point for gifloom."""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from .animate_cli import build_animate_parser
from .ingest_cli import build_ingest_parser
from .serve_cli import build_serve_parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gifloom",
        description="Store images and combine them into animated GIFs",
    )
    parser.add_argument("--version", action="version", version=f"gifloom {__version__}")
    parser.add_argument(
        "--config", default=None,
        help="YAML config file (default: $GIFLOOM_CONFIG, then built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log output (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command")
    build_ingest_parser(subparsers)
    build_animate_parser(subparsers)
    build_serve_parser(subparsers)
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    _configure_logging(args.verbose)
    return args.func(args)


def cli_entry() -> None:
    sys.exit(main())
