#!/usr/bin/env python3
"""CLI for top-K cosine search over the embedding store."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from rollcall.cli import add_common_args, add_query_args, build_service, emit, query_vector, run
from rollcall.io_utils import setup_logging

LOGGER = logging.getLogger("scripts.search")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank stored embeddings by cosine similarity to a query")
    add_common_args(parser)
    add_query_args(parser)
    parser.add_argument("--top-k", type=int, default=None, help="Number of results (default from config)")
    parser.add_argument("--providers", type=str, nargs="*", default=None)
    return parser.parse_args(argv)


def _main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging()
    service = build_service(args, needs_extractor=args.image is not None)
    hits = service.search(
        vector=query_vector(args),
        raw_media=args.image,
        top_k=args.top_k,
        source_type=args.source_type,
    )
    LOGGER.info("Search returned %d hits", len(hits))
    emit({"results": [hit.to_dict() for hit in hits]})


def main(argv: Optional[List[str]] = None) -> int:
    return run(lambda: _main(argv))


if __name__ == "__main__":
    sys.exit(main())
