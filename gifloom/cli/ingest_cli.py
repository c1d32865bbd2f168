"""
CLI command for storing local image files as blobs.

Usage:
    gifloom ingest a.png b.jpg c.gif
    gifloom ingest frames/*.png --collect
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from ..config import load_config
from ..exceptions import GifloomError
from ..ingest import accepted_urls
from ..progress import ProgressReporter
from ..service import build_service
from ..types import IngestPolicy, Rejected, UploadTask


def cmd_ingest(args: argparse.Namespace) -> int:
    """Main handler for ``gifloom ingest``."""
    batch = []
    for name in args.files:
        path = Path(name)
        if not path.is_file():
            print(f"Error: file not found: {path}", file=sys.stderr)
            return 1
        batch.append(UploadTask(source_name=path.name, raw_bytes=path.read_bytes()))

    try:
        config = load_config(Path(args.config) if args.config else None)
        if args.collect:
            config = dataclasses.replace(config, ingest_policy=IngestPolicy.COLLECT)
        service = build_service(config)
        try:
            with ProgressReporter(len(batch), "Uploading") as progress:
                results = service.coordinator.ingest(batch, on_item_done=progress.update)
        finally:
            service.close()
    except GifloomError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    output: dict = {"imageUrls": accepted_urls(results)}
    rejected = [r for r in results if isinstance(r, Rejected)]
    if args.collect:
        output["rejected"] = [
            {"sourceName": r.source_name, "kind": r.kind.value, "message": r.message}
            for r in rejected
        ]
    print(json.dumps(output, indent=2))
    return 1 if rejected else 0


def build_ingest_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``ingest`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "ingest",
        help="Store image files and print their URLs",
        description="Validate and store JPEG, PNG and GIF files in the configured blob store.",
    )
    p.add_argument(
        "files", nargs="+",
        help="Image files to store (.jpg, .jpeg, .png, .gif)",
    )
    p.add_argument(
        "--collect", action="store_true",
        help="Store every valid file and report the rest instead of aborting on the first bad one",
    )
    p.set_defaults(func=cmd_ingest)
