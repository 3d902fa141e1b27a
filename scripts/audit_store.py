#!/usr/bin/env python3
"""Audit the embedding store for vectors whose dimensionality has drifted."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from rollcall.cli import add_common_args, emit, resolve_config, run
from rollcall.errors import InvalidInput
from rollcall.io_utils import setup_logging
from rollcall.storage.base import VectorStore
from rollcall.storage.parquet import ParquetVectorStore

LOGGER = logging.getLogger("scripts.audit")

# face-api.js descriptors used by the mobile client are 128-d.
DEFAULT_EXPECTED_DIMS = 128


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report stored embeddings with unexpected dimensions")
    add_common_args(parser)
    parser.add_argument(
        "--expected-dims",
        type=int,
        default=None,
        help=f"Expected vector length (default: config expected_dims or {DEFAULT_EXPECTED_DIMS})",
    )
    parser.add_argument("--show", type=int, default=5, help="Number of offending records to list")
    parser.add_argument("--meta-json", type=Path, default=None, help="Also write a per-source-type summary JSON")
    return parser.parse_args(argv)


def audit_dimensions(
    store: VectorStore,
    expected_dims: int,
    source_type: Optional[str] = None,
    show: int = 5,
) -> Dict[str, Any]:
    records = store.list_all(source_type=source_type)
    bad = [record for record in records if record.dims != expected_dims]
    histogram = Counter(record.dims for record in records)
    return {
        "total": len(records),
        "expected_dims": expected_dims,
        "bad_count": len(bad),
        "dims_histogram": {str(dims): count for dims, count in sorted(histogram.items())},
        "bad_examples": [
            {"source_id": record.source_id, "source_type": record.source_type, "dims": record.dims}
            for record in bad[: max(0, show)]
        ],
    }


def _main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging()
    config = resolve_config(args)
    if config.store_path is None:
        raise InvalidInput("No embedding store configured; pass --store or set store_path")
    store_path = Path(config.store_path)
    if not store_path.exists():
        raise InvalidInput(f"Embedding store not found: {store_path}")
    store = ParquetVectorStore(store_path)
    expected = args.expected_dims or config.expected_dims or DEFAULT_EXPECTED_DIMS

    report = audit_dimensions(store, expected, source_type=args.source_type, show=args.show)
    LOGGER.info("total embeddings: %d", report["total"])
    LOGGER.info("bad embeddings count: %d", report["bad_count"])
    for example in report["bad_examples"]:
        LOGGER.warning("BAD: %s %s len=%d", example["source_id"], example["source_type"], example["dims"])
    if args.meta_json is not None:
        store.write_meta(args.meta_json)
    emit(report)


def main(argv: Optional[List[str]] = None) -> int:
    return run(lambda: _main(argv))


if __name__ == "__main__":
    sys.exit(main())
