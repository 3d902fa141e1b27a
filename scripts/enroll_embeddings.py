#!/usr/bin/env python3
"""CLI for enrolling embeddings into the store from JSON vectors or images."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from rollcall.cli import add_common_args, build_service, emit, run
from rollcall.errors import InvalidInput, RollcallError
from rollcall.io_utils import list_images, load_json, setup_logging

LOGGER = logging.getLogger("scripts.enroll")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Enroll embeddings (upsert by source type + source id)")
    add_common_args(parser)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--vectors-json",
        type=Path,
        help="JSON list of {source_id, vector, label?, metadata?} entries",
    )
    source.add_argument(
        "--images-dir",
        type=Path,
        help="Directory of per-student subdirectories or <source_id>.jpg files",
    )
    parser.add_argument(
        "--metadata",
        type=str,
        default=None,
        help="JSON object merged into every entry's metadata",
    )
    parser.add_argument(
        "--multiple",
        action="store_true",
        help="Enroll every detected face in each image as <source_id>-<n>",
    )
    parser.add_argument(
        "--providers",
        type=str,
        nargs="*",
        default=None,
        help="Execution providers for ONNXRuntime (e.g. CUDAExecutionProvider)",
    )
    parser.add_argument("--continue-on-error", action="store_true", help="Skip failing entries")
    return parser.parse_args(argv)


def load_vector_entries(path: Path) -> List[Dict[str, Any]]:
    payload = load_json(path)
    if isinstance(payload, dict):
        payload = payload.get("entries", [])
    if not isinstance(payload, list):
        raise InvalidInput(f"{path} must hold a list of entries")
    return payload


def parse_metadata(text: Optional[str]) -> Dict[str, Any]:
    if not text:
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"--metadata is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise InvalidInput("--metadata must be a JSON object")
    return value


def check_entry(index: int, entry: Any) -> None:
    if not isinstance(entry, dict):
        raise InvalidInput(f"Entry {index} must be an object, got {type(entry).__name__}", index=index)
    metadata = entry.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise InvalidInput(f"Entry {index} metadata must be an object", index=index)


def iter_image_entries(images_dir: Path) -> Iterable[Tuple[str, Path]]:
    """Yield (source_id, image) pairs; subdirectories name the source id."""
    for entry in sorted(p for p in images_dir.iterdir() if p.is_dir()):
        images = list_images(entry)
        if images:
            yield entry.name, images[0]
            if len(images) > 1:
                LOGGER.warning("%s has %d images; enrolling %s only", entry.name, len(images), images[0].name)
    for image_path in list_images(images_dir):
        yield image_path.stem, image_path


def _main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging()
    extra_meta = parse_metadata(args.metadata)
    service = build_service(args, needs_extractor=args.images_dir is not None)

    receipts: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []

    if args.vectors_json is not None:
        entries = load_vector_entries(args.vectors_json)
        for idx, entry in enumerate(tqdm(entries, desc="enroll", unit="vec")):
            source_id = entry.get("source_id") if isinstance(entry, dict) else None
            try:
                check_entry(idx, entry)
                receipt = service.enroll(
                    source_id,
                    source_type=entry.get("source_type") or args.source_type,
                    vector=entry.get("vector"),
                    label=entry.get("label", ""),
                    metadata={**extra_meta, **(entry.get("metadata") or {})},
                )
            except RollcallError as exc:
                if not args.continue_on_error:
                    raise
                failures.append({"index": idx, "source_id": source_id, **exc.to_dict()})
                continue
            receipts.append(receipt.to_dict())
    else:
        for source_id, image_path in tqdm(list(iter_image_entries(args.images_dir)), desc="enroll", unit="img"):
            try:
                if args.multiple:
                    batch = service.enroll_multiple(
                        source_id,
                        raw_media=image_path,
                        source_type=args.source_type,
                        label=image_path.name,
                        metadata=dict(extra_meta),
                    )
                    receipts.extend(receipt.to_dict() for receipt in batch)
                else:
                    receipt = service.enroll(
                        source_id,
                        source_type=args.source_type,
                        raw_media=image_path,
                        label=image_path.name,
                        metadata=dict(extra_meta),
                    )
                    receipts.append(receipt.to_dict())
            except RollcallError as exc:
                if not args.continue_on_error:
                    raise
                failures.append({"source_id": source_id, **exc.to_dict()})

    LOGGER.info("Enrolled %d embeddings (%d failures) into %s", len(receipts), len(failures), service.config.store_path)
    emit({"enrolled": receipts, "failed": failures})


def main(argv: Optional[List[str]] = None) -> int:
    return run(lambda: _main(argv))


if __name__ == "__main__":
    sys.exit(main())
