"""Service facade mapping the logical enroll/compare/search/resolve operations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from rollcall.config import MatchingConfig, validate_threshold
from rollcall.enrollment import enroll, enroll_many
from rollcall.errors import InvalidInput
from rollcall.recognition.extractor import ExtractorLike, run_extractor, run_extractor_many
from rollcall.recognition.matcher import StoreMatcher
from rollcall.recognition.resolver import resolve_batch
from rollcall.recognition.search import search
from rollcall.storage import open_store
from rollcall.storage.base import VectorStore
from rollcall.types import (
    AttendanceMark,
    BatchResolution,
    EnrollmentReceipt,
    PairComparison,
    QueryComparison,
    SearchHit,
    VectorLike,
    utcnow,
)

LOGGER = logging.getLogger("rollcall.service")

AttendanceNotifier = Callable[[AttendanceMark], Any]


class RecognitionService:
    """Binds a store, matching config, and an optional feature extractor.

    Every operation accepts either a ready vector or raw media; raw media is
    passed through the injected extractor.
    """

    def __init__(
        self,
        store: VectorStore,
        config: Optional[MatchingConfig] = None,
        extractor: Optional[ExtractorLike] = None,
    ) -> None:
        self.store = store
        self.config = config or MatchingConfig()
        self.extractor = extractor
        self.matcher = StoreMatcher(
            store,
            similarity_th=self.config.compare_threshold,
            length_policy=self.config.length_policy,
            verbose_limit=self.config.verbose_limit,
        )

    @classmethod
    def from_config(cls, config: MatchingConfig, extractor: Optional[ExtractorLike] = None) -> "RecognitionService":
        return cls(open_store(config.store_path), config=config, extractor=extractor)

    def _vector(self, vector: Optional[VectorLike], raw_media: Any) -> VectorLike:
        if vector is not None and raw_media is not None:
            raise InvalidInput("Provide either vector or raw_media, not both")
        if vector is not None:
            return vector
        if raw_media is None:
            raise InvalidInput("vector or raw_media is required")
        return run_extractor(self.extractor, raw_media)

    def _source_type(self, source_type: Optional[str]) -> str:
        return source_type or self.config.default_source_type

    def enroll(
        self,
        source_id: str,
        source_type: Optional[str] = None,
        vector: Optional[VectorLike] = None,
        raw_media: Any = None,
        label: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EnrollmentReceipt:
        return enroll(
            self.store,
            source_id,
            self._source_type(source_type),
            self._vector(vector, raw_media),
            label=label,
            metadata=metadata,
            expected_dims=self.config.expected_dims,
        )

    def enroll_multiple(
        self,
        source_id: str,
        raw_media: Any,
        source_type: Optional[str] = None,
        label: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[EnrollmentReceipt]:
        return enroll_many(
            self.store,
            self.extractor,
            raw_media,
            source_id,
            self._source_type(source_type),
            label=label,
            metadata=metadata,
            expected_dims=self.config.expected_dims,
        )

    def compare_query(
        self,
        vector: Optional[VectorLike] = None,
        raw_media: Any = None,
        threshold: Optional[float] = None,
        source_type: Optional[str] = None,
        source_id: Optional[str] = None,
        verbose: bool = False,
    ) -> QueryComparison:
        return self.matcher.compare_query(
            self._vector(vector, raw_media),
            threshold=self.config.query_threshold if threshold is None else threshold,
            source_type=self._source_type(source_type),
            source_id=source_id,
            verbose=verbose,
        )

    def compare_stored(
        self,
        source_id_a: str,
        source_id_b: str,
        source_type: Optional[str] = None,
        threshold: Optional[float] = None,
        verbose: bool = False,
    ) -> PairComparison:
        return self.matcher.compare_stored(
            source_id_a,
            source_id_b,
            self._source_type(source_type),
            threshold=threshold,
            verbose=verbose,
        )

    def search(
        self,
        vector: Optional[VectorLike] = None,
        raw_media: Any = None,
        top_k: Optional[int] = None,
        source_type: Optional[str] = None,
    ) -> List[SearchHit]:
        return search(
            self.store,
            self._vector(vector, raw_media),
            top_k=self.config.default_top_k if top_k is None else top_k,
            source_type=source_type,
            length_policy=self.config.length_policy,
            max_top_k=self.config.max_top_k,
        )

    def batch_resolve(
        self,
        vectors: Optional[Sequence[VectorLike]] = None,
        raw_media: Any = None,
        source_type: Optional[str] = None,
        threshold: Optional[float] = None,
        strategy: Optional[str] = None,
    ) -> BatchResolution:
        if vectors is not None and raw_media is not None:
            raise InvalidInput("Provide either vectors or raw_media, not both")
        if vectors is None:
            if raw_media is None:
                raise InvalidInput("vectors or raw_media is required")
            vectors = run_extractor_many(self.extractor, raw_media)
        return resolve_batch(
            self.store,
            vectors,
            self._source_type(source_type),
            validate_threshold(self.config.batch_threshold if threshold is None else threshold),
            strategy=strategy or self.config.batch_strategy,
            length_policy=self.config.length_policy,
        )

    def mark_attendance(
        self,
        notifier: AttendanceNotifier,
        vectors: Optional[Sequence[VectorLike]] = None,
        raw_media: Any = None,
        source_type: Optional[str] = None,
        threshold: Optional[float] = None,
        strategy: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> BatchResolution:
        """Resolve one frame and notify the attendance subsystem per matched student."""
        resolution = self.batch_resolve(
            vectors=vectors,
            raw_media=raw_media,
            source_type=source_type,
            threshold=threshold,
            strategy=strategy,
        )
        when = timestamp or utcnow()
        for assignment in resolution.assignments:
            notifier(AttendanceMark(student_id=assignment.source_id, timestamp=when, score=assignment.score))
        LOGGER.info(
            "Marked %d/%d faces present at %s",
            resolution.matched_count,
            resolution.total_faces,
            when.isoformat(),
        )
        return resolution
