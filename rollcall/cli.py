"""Argument and output helpers shared by the CLI entrypoints."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml

from rollcall.config import DEFAULT_CONFIG_PATH, MatchingConfig, load_config
from rollcall.errors import InvalidInput, RollcallError
from rollcall.io_utils import dumps_json, load_json
from rollcall.service import RecognitionService

LOGGER = logging.getLogger("rollcall.cli")


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Matching configuration YAML (default: {DEFAULT_CONFIG_PATH} when present)",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Embedding store parquet file (overrides store_path from config)",
    )
    parser.add_argument(
        "--source-type",
        type=str,
        default=None,
        help="Source type namespace (default from config, e.g. student-face)",
    )
    parser.add_argument(
        "--allow-truncate",
        action="store_true",
        help="Score mismatched vector lengths over their shared prefix instead of rejecting",
    )


def add_query_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--vector", type=str, help="Query vector as a JSON array")
    group.add_argument("--vector-file", type=Path, help="JSON file holding the query vector")
    group.add_argument("--image", type=Path, help="Image to embed with ArcFace")


def resolve_config(args: argparse.Namespace) -> MatchingConfig:
    config = load_config(args.config)
    return config.with_overrides(
        store_path=str(args.store) if args.store is not None else None,
        default_source_type=args.source_type,
        length_policy="truncate" if getattr(args, "allow_truncate", False) else None,
    )


def build_service(args: argparse.Namespace, needs_extractor: bool = False) -> RecognitionService:
    config = resolve_config(args)
    if config.store_path is None:
        raise InvalidInput("No embedding store configured; pass --store or set store_path")
    extractor = None
    if needs_extractor:
        from rollcall.recognition.embed_arcface import ArcFaceExtractor

        extractor = ArcFaceExtractor(providers=getattr(args, "providers", None))
    return RecognitionService.from_config(config, extractor=extractor)


def parse_vector(text: str) -> List[float]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Vector is not valid JSON: {exc}") from exc
    if not isinstance(value, list):
        raise InvalidInput("Vector JSON must be an array of numbers")
    return value


def query_vector(args: argparse.Namespace) -> Optional[Any]:
    if getattr(args, "vector", None):
        return parse_vector(args.vector)
    if getattr(args, "vector_file", None):
        return load_json(args.vector_file)
    return None


def emit(payload: Any) -> None:
    sys.stdout.write(dumps_json(payload) + "\n")


def run(main_fn) -> int:
    """Run ``main_fn`` and convert engine and input-file errors into a JSON error payload."""
    try:
        try:
            main_fn()
        except FileNotFoundError as exc:
            message = f"File not found: {exc.filename}" if exc.filename else str(exc)
            raise InvalidInput(message) from exc
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"Invalid JSON input: {exc}") from exc
        except yaml.YAMLError as exc:
            raise InvalidInput(f"Invalid YAML config: {exc}") from exc
    except RollcallError as exc:
        LOGGER.error("%s", exc.message)
        emit(exc.to_dict())
        return 1
    return 0
