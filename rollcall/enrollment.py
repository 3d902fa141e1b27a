"""Enrollment pipeline: validate an embedding and upsert it into the store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from rollcall.errors import DimensionMismatch, InvalidInput
from rollcall.recognition.extractor import ExtractorLike, run_extractor, run_extractor_many
from rollcall.storage.base import VectorStore
from rollcall.types import EnrollmentReceipt, VectorLike, as_vector, require_text

LOGGER = logging.getLogger("rollcall.enrollment")


def enroll(
    store: VectorStore,
    source_id: str,
    source_type: str,
    vector: VectorLike,
    label: str = "",
    metadata: Optional[Dict[str, Any]] = None,
    expected_dims: Optional[int] = None,
) -> EnrollmentReceipt:
    """Upsert one embedding; the receipt never carries the raw vector."""
    source_id = require_text(source_id, "source_id")
    source_type = require_text(source_type, "source_type")
    vec = as_vector(vector)
    if expected_dims is not None and vec.shape[0] != expected_dims:
        raise DimensionMismatch(
            vec.shape[0],
            expected_dims,
            message=f"{source_type}/{source_id} has {vec.shape[0]} dims, expected {expected_dims}",
        )
    record, replaced = store.put(source_type, source_id, vec, label=label, metadata=metadata)
    return EnrollmentReceipt(id=record.source_id, source_type=record.source_type, dims=record.dims, replaced=replaced)


def enroll_media(
    store: VectorStore,
    extractor: ExtractorLike,
    raw_media: Any,
    source_id: str,
    source_type: str,
    label: str = "",
    metadata: Optional[Dict[str, Any]] = None,
    expected_dims: Optional[int] = None,
) -> EnrollmentReceipt:
    """Extract an embedding from raw media, then enroll it."""
    source_id = require_text(source_id, "source_id")
    vector = run_extractor(extractor, raw_media)
    return enroll(
        store,
        source_id,
        source_type,
        vector,
        label=label,
        metadata=metadata,
        expected_dims=expected_dims,
    )


def enroll_many(
    store: VectorStore,
    extractor: ExtractorLike,
    raw_media: Any,
    source_id: str,
    source_type: str,
    label: str = "",
    metadata: Optional[Dict[str, Any]] = None,
    expected_dims: Optional[int] = None,
) -> List[EnrollmentReceipt]:
    """Enroll every face found in one image as ``<source_id>-<n>``."""
    source_id = require_text(source_id, "source_id")
    vectors = run_extractor_many(extractor, raw_media)
    if not vectors:
        raise InvalidInput("No faces found to enroll", source_id=source_id)
    if expected_dims is not None:
        for vector in vectors:
            if vector.shape[0] != expected_dims:
                raise DimensionMismatch(vector.shape[0], expected_dims)
    receipts: List[EnrollmentReceipt] = []
    for idx, vector in enumerate(vectors):
        face_meta = dict(metadata or {})
        face_meta.update({"parent_id": source_id, "face_index": idx})
        receipts.append(
            enroll(
                store,
                f"{source_id}-{idx}",
                source_type,
                vector,
                label=label,
                metadata=face_meta,
                expected_dims=expected_dims,
            )
        )
    LOGGER.info("Enrolled %d faces under %s/%s", len(receipts), source_type, source_id)
    return receipts
