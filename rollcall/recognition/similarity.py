"""Cosine similarity scoring with an opt-in audit trace."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from rollcall.errors import DimensionMismatch, InvalidInput
from rollcall.types import SimilarityScore, SimilarityTrace, VectorLike, as_vector

LOGGER = logging.getLogger("rollcall.recognition.similarity")

REJECT = "reject"
TRUNCATE = "truncate"


def shared_length(len_a: int, len_b: int, length_policy: str = REJECT) -> int:
    """Return the length to score over, enforcing the mismatch policy."""
    if len_a == len_b:
        return len_a
    if length_policy == TRUNCATE:
        LOGGER.warning(
            "Vector length mismatch (%d vs %d); scoring over shared prefix of %d",
            len_a,
            len_b,
            min(len_a, len_b),
        )
        return min(len_a, len_b)
    if length_policy != REJECT:
        raise InvalidInput(f"Unknown length policy {length_policy!r}")
    LOGGER.debug("Vector length mismatch (%d vs %d); rejecting comparison", len_a, len_b)
    raise DimensionMismatch(len_a, len_b)


def cosine_distance(cosine: float) -> float:
    """Chord distance derived from cosine; Euclidean only for unit vectors."""
    return math.sqrt(max(0.0, 2.0 * (1.0 - cosine)))


def score(
    a: VectorLike,
    b: VectorLike,
    trace: bool = False,
    length_policy: str = REJECT,
) -> SimilarityScore:
    """Score two vectors by cosine similarity.

    A zero denominator (an all-zero vector) is replaced by 1, so the score
    degrades to the raw dot product instead of dividing by zero.
    """
    vec_a = as_vector(a, name="a").astype(np.float64)
    vec_b = as_vector(b, name="b").astype(np.float64)
    length = shared_length(vec_a.shape[0], vec_b.shape[0], length_policy)
    vec_a = vec_a[:length]
    vec_b = vec_b[:length]

    products = vec_a * vec_b
    dot = float(products.sum())
    norm_a = float(np.sqrt(np.dot(vec_a, vec_a)))
    norm_b = float(np.sqrt(np.dot(vec_b, vec_b)))
    denom = norm_a * norm_b
    if denom == 0:
        denom = 1.0
    cosine = dot / denom

    audit = None
    if trace:
        audit = SimilarityTrace(
            length=length,
            dot=dot,
            norm_a=norm_a,
            norm_b=norm_b,
            denom=denom,
            terms=[(float(x), float(y), float(p)) for x, y, p in zip(vec_a, vec_b, products)],
        )
    return SimilarityScore(cosine=cosine, distance=cosine_distance(cosine), trace=audit)


def cosine_similarity(a: VectorLike, b: VectorLike, length_policy: str = REJECT) -> float:
    return score(a, b, length_policy=length_policy).cosine


def cosine_matrix(
    queries: Sequence[np.ndarray],
    candidates: Sequence[np.ndarray],
    length_policy: str = REJECT,
) -> np.ndarray:
    """Return the ``M x N`` cosine matrix between query and candidate vectors.

    Uses the same zero-denominator rule as :func:`score`. Mixed lengths fall
    back to pairwise scoring so the mismatch policy applies per cell.
    """
    num_queries = len(queries)
    num_candidates = len(candidates)
    if num_queries == 0 or num_candidates == 0:
        return np.zeros((num_queries, num_candidates), dtype=np.float64)

    lengths = {int(np.asarray(vec).shape[0]) for vec in queries} | {
        int(np.asarray(vec).shape[0]) for vec in candidates
    }
    if len(lengths) > 1:
        matrix = np.empty((num_queries, num_candidates), dtype=np.float64)
        for i, query in enumerate(queries):
            for j, candidate in enumerate(candidates):
                matrix[i, j] = score(query, candidate, length_policy=length_policy).cosine
        return matrix

    q = np.stack([np.asarray(vec, dtype=np.float64) for vec in queries], axis=0)
    c = np.stack([np.asarray(vec, dtype=np.float64) for vec in candidates], axis=0)
    dots = q @ c.T
    denoms = np.outer(np.linalg.norm(q, axis=1), np.linalg.norm(c, axis=1))
    denoms[denoms == 0] = 1.0
    return dots / denoms
