#!/usr/bin/env python3
"""CLI for resolving every face in one frame to enrolled students."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from rollcall.cli import add_common_args, build_service, emit, run
from rollcall.errors import InvalidInput
from rollcall.io_utils import load_json, setup_logging
from rollcall.types import AttendanceMark

LOGGER = logging.getLogger("scripts.resolve")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assign detected faces to enrolled students (one-to-one)")
    add_common_args(parser)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--vectors-json", type=Path, help="JSON list of face vectors from one frame")
    source.add_argument("--image", type=Path, help="Frame image; faces are detected and embedded with ArcFace")
    parser.add_argument("--threshold", type=float, default=None, help="Minimum cosine for an assignment")
    parser.add_argument(
        "--strategy",
        choices=("greedy", "optimal"),
        default=None,
        help="Assignment strategy (default from config)",
    )
    parser.add_argument(
        "--attendance-log",
        type=Path,
        default=None,
        help="Append one JSONL attendance mark per matched student",
    )
    parser.add_argument("--providers", type=str, nargs="*", default=None)
    return parser.parse_args(argv)


class JsonlAttendanceLog:
    """Attendance notifier that appends marks to a JSONL file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, mark: AttendanceMark) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(mark.to_dict(), ensure_ascii=False) + os.linesep)


def _main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging()
    service = build_service(args, needs_extractor=args.image is not None)

    vectors = None
    if args.vectors_json is not None:
        vectors = load_json(args.vectors_json)
        if not isinstance(vectors, list):
            raise InvalidInput(f"{args.vectors_json} must hold a list of vectors")

    if args.attendance_log is not None:
        resolution = service.mark_attendance(
            JsonlAttendanceLog(args.attendance_log),
            vectors=vectors,
            raw_media=args.image,
            threshold=args.threshold,
            strategy=args.strategy,
        )
    else:
        resolution = service.batch_resolve(
            vectors=vectors,
            raw_media=args.image,
            threshold=args.threshold,
            strategy=args.strategy,
        )
    emit(resolution.to_dict())


def main(argv: Optional[List[str]] = None) -> int:
    return run(lambda: _main(argv))


if __name__ == "__main__":
    sys.exit(main())
