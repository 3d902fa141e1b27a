"""Threshold-gated matching against stored embeddings."""

from __future__ import annotations

import logging
from typing import Optional

from rollcall.config import validate_threshold
from rollcall.recognition.search import rank
from rollcall.recognition.similarity import REJECT, score
from rollcall.storage.base import VectorStore
from rollcall.types import PairComparison, QueryComparison, VectorLike, require_text

LOGGER = logging.getLogger("rollcall.recognition.matcher")


class StoreMatcher:
    """Makes match/no-match decisions for queries and stored pairs."""

    def __init__(
        self,
        store: VectorStore,
        similarity_th: float = 0.90,
        length_policy: str = REJECT,
        verbose_limit: int = 10,
    ) -> None:
        self.store = store
        self.similarity_th = validate_threshold(similarity_th, "similarity_th")
        self.length_policy = length_policy
        self.verbose_limit = verbose_limit

    def compare_stored(
        self,
        source_id_a: str,
        source_id_b: str,
        source_type: str,
        threshold: Optional[float] = None,
        verbose: bool = False,
    ) -> PairComparison:
        """Compare two enrolled records; both must exist."""
        source_id_a = require_text(source_id_a, "source_id_a")
        source_id_b = require_text(source_id_b, "source_id_b")
        threshold = self._threshold(threshold)
        record_a = self.store.get(source_type, source_id_a)
        record_b = self.store.get(source_type, source_id_b)
        similarity = score(record_a.vector, record_b.vector, trace=verbose, length_policy=self.length_policy)
        matched = similarity.cosine >= threshold
        LOGGER.debug(
            "compare_stored %s vs %s (%s): cos=%.4f th=%.3f matched=%s",
            source_id_a,
            source_id_b,
            source_type,
            similarity.cosine,
            threshold,
            matched,
        )
        return PairComparison(
            source_id_a=source_id_a,
            source_id_b=source_id_b,
            source_type=source_type,
            matched=matched,
            cosine=similarity.cosine,
            distance=similarity.distance,
            threshold=threshold,
            trace=similarity.trace,
        )

    def compare_query(
        self,
        query: VectorLike,
        threshold: Optional[float] = None,
        source_type: Optional[str] = None,
        source_id: Optional[str] = None,
        verbose: bool = False,
    ) -> QueryComparison:
        """Find the best stored match for ``query``; an empty corpus never matches."""
        threshold = self._threshold(threshold)
        hits = rank(
            self.store,
            query,
            source_type=source_type,
            source_id=source_id,
            length_policy=self.length_policy,
        )
        best = hits[0] if hits else None
        matched = best is not None and best.score >= threshold
        if best is None:
            LOGGER.debug("compare_query: no candidates for source_type=%s source_id=%s", source_type, source_id)
        else:
            LOGGER.debug(
                "compare_query best=%s score=%.4f th=%.3f matched=%s",
                best.source_id,
                best.score,
                threshold,
                matched,
            )
        return QueryComparison(
            matched=matched,
            threshold=threshold,
            best_match=best,
            candidates=hits[: self.verbose_limit] if verbose else None,
        )

    def _threshold(self, threshold: Optional[float]) -> float:
        if threshold is None:
            return self.similarity_th
        return validate_threshold(threshold)
