#!/usr/bin/env python3
"""CLI for threshold matching: a query against the store, or two stored records."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rollcall.cli import add_common_args, build_service, emit, parse_vector, run
from rollcall.io_utils import load_json, setup_logging

LOGGER = logging.getLogger("scripts.compare")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare embeddings against a similarity threshold")
    add_common_args(parser)
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--stored",
        nargs=2,
        metavar=("SOURCE_ID_A", "SOURCE_ID_B"),
        help="Compare two enrolled records",
    )
    mode.add_argument("--vector", type=str, help="Query vector as a JSON array")
    mode.add_argument("--vector-file", type=Path, help="JSON file holding the query vector")
    mode.add_argument("--image", type=str, help="Image to embed with ArcFace")
    parser.add_argument("--source-id", type=str, default=None, help="Restrict a query to one enrolled id")
    parser.add_argument("--threshold", type=float, default=None, help="Override similarity threshold")
    parser.add_argument(
        "--verbose-result",
        action="store_true",
        help="Include the similarity trace / ranked candidates (may expose vector values)",
    )
    parser.add_argument("--providers", type=str, nargs="*", default=None)
    return parser.parse_args(argv)


def _main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging()
    service = build_service(args, needs_extractor=args.image is not None)

    if args.stored:
        source_id_a, source_id_b = args.stored
        result = service.compare_stored(
            source_id_a,
            source_id_b,
            threshold=args.threshold,
            verbose=args.verbose_result,
        )
    else:
        vector = None
        if args.vector:
            vector = parse_vector(args.vector)
        elif args.vector_file:
            vector = load_json(args.vector_file)
        result = service.compare_query(
            vector=vector,
            raw_media=args.image,
            threshold=args.threshold,
            source_id=args.source_id,
            verbose=args.verbose_result,
        )
    LOGGER.info("Match decision: matched=%s threshold=%.3f", result.matched, result.threshold)
    emit(result.to_dict())


def main(argv: Optional[List[str]] = None) -> int:
    return run(lambda: _main(argv))


if __name__ == "__main__":
    sys.exit(main())
