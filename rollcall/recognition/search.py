"""Exact top-K nearest-neighbour search over a vector store."""

from __future__ import annotations

import logging
import numbers
from typing import List, Optional

from rollcall.errors import DimensionMismatch, InvalidInput
from rollcall.recognition.similarity import REJECT, score
from rollcall.storage.base import VectorStore
from rollcall.types import SearchHit, VectorLike, as_vector

LOGGER = logging.getLogger("rollcall.recognition.search")

MAX_TOP_K = 100


def validate_top_k(top_k: int, max_top_k: int = MAX_TOP_K) -> int:
    if isinstance(top_k, bool) or not isinstance(top_k, numbers.Integral):
        raise InvalidInput(f"top_k must be an integer, got {top_k!r}")
    if top_k <= 0:
        raise InvalidInput(f"top_k must be positive, got {top_k}")
    if top_k > max_top_k:
        raise InvalidInput(f"top_k must be <= {max_top_k}, got {top_k}")
    return int(top_k)


def rank(
    store: VectorStore,
    query: VectorLike,
    source_type: Optional[str] = None,
    source_id: Optional[str] = None,
    length_policy: str = REJECT,
) -> List[SearchHit]:
    """Score every matching record and return all hits sorted by score.

    Ties keep store order. Under the reject policy, records whose length
    differs from the query are skipped with a warning.
    """
    vec = as_vector(query, name="query")
    records = store.list_all(source_type=source_type, source_id=source_id)
    hits: List[SearchHit] = []
    skipped = 0
    for record in records:
        try:
            similarity = score(vec, record.vector, length_policy=length_policy)
        except DimensionMismatch:
            skipped += 1
            continue
        hits.append(SearchHit(record=record, score=similarity.cosine))
    if skipped:
        LOGGER.warning(
            "Skipped %d/%d records with dims != %d (source_type=%s)",
            skipped,
            len(records),
            vec.shape[0],
            source_type,
        )
    # sorted() is stable, so equal scores keep store iteration order.
    hits = sorted(hits, key=lambda hit: hit.score, reverse=True)
    LOGGER.debug("Ranked %d candidates (source_type=%s)", len(hits), source_type)
    return hits


def search(
    store: VectorStore,
    query: VectorLike,
    top_k: int = 5,
    source_type: Optional[str] = None,
    length_policy: str = REJECT,
    max_top_k: int = MAX_TOP_K,
) -> List[SearchHit]:
    """Return up to ``top_k`` records most similar to ``query``."""
    top_k = validate_top_k(top_k, max_top_k)
    return rank(store, query, source_type=source_type, length_policy=length_policy)[:top_k]
