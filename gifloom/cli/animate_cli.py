"""
CLI command for turning stored images into an animated GIF.

Usage:
    gifloom animate URL1 URL2 URL3 --delay 50
    gifloom animate URL1 URL2 --archive -o out.gif
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..config import load_config
from ..encoder import FrameDelay
from ..exceptions import ArchiveFailedError, GifloomError
from ..progress import ProgressReporter
from ..service import build_service
from ..types import AnimationResult


def _summary(result: AnimationResult) -> str:
    return json.dumps(
        {"animationUrl": result.stored_url, "downloadUrl": result.download_path},
        indent=2,
    )


def _write_output(result: AnimationResult, output: str | None) -> None:
    if output:
        Path(output).write_bytes(result.encoded_bytes)
        print(f"Wrote {result.frame_count} frames -> {output}", file=sys.stderr)


def cmd_animate(args: argparse.Namespace) -> int:
    """Main handler for ``gifloom animate``."""
    try:
        config = load_config(Path(args.config) if args.config else None)
        service = build_service(config)
    except GifloomError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    frame_delay = FrameDelay(default_cs=args.delay) if args.delay is not None else None
    archive_enabled = args.archive or config.archive_by_default
    try:
        with ProgressReporter(len(args.urls), "Decoding", unit="frame") as progress:
            result = service.pipeline.animate(
                args.urls,
                archive_enabled=archive_enabled,
                frame_delay=frame_delay,
                on_item_done=progress.update,
            )
    except ArchiveFailedError as exc:
        print(_summary(exc.result))
        _write_output(exc.result, args.output)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except GifloomError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        service.close()

    print(_summary(result))
    _write_output(result, args.output)
    return 0


def build_animate_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``animate`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "animate",
        help="Combine stored images into an animated GIF",
        description="Fetch the given image URLs in order and encode them as one looping GIF.",
    )
    p.add_argument(
        "urls", nargs="+",
        help="Image URLs, in frame order",
    )
    p.add_argument(
        "--delay", type=int, default=None,
        help="Per-frame delay in centiseconds (default: from config, 100)",
    )
    p.add_argument(
        "--archive", action="store_true",
        help="Also copy the result to the configured archive",
    )
    p.add_argument(
        "-o", "--output", default=None,
        help="Also write the GIF to this local path",
    )
    p.set_defaults(func=cmd_animate)
