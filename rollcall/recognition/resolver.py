"""Resolve the faces detected in one frame to enrolled identities.

Every face is assigned to at most one enrolled identity and every identity
to at most one face. The default greedy strategy walks all (face, candidate)
pairs above the threshold from the highest score down and accepts a pair when
neither side is taken yet. Exact ties go to the lower face index, then the
lexicographically smaller source id, so results are reproducible.

Greedy runs in O(MN log MN) against O((M+N)^3) for an optimal matching and is
easy to audit; for a classroom frame against a roster of tens of students the
two rarely differ. ``strategy="optimal"`` solves the maximum-weight matching
with ``scipy.optimize.linear_sum_assignment`` when that matters.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

from rollcall.config import validate_threshold
from rollcall.errors import InvalidInput
from rollcall.recognition.similarity import REJECT, cosine_matrix, shared_length
from rollcall.storage.base import VectorStore
from rollcall.types import Assignment, BatchResolution, FaceOutcome, VectorLike, as_vectors

LOGGER = logging.getLogger("rollcall.recognition.resolver")

GREEDY = "greedy"
OPTIMAL = "optimal"

Candidate = Tuple[int, str, float]


def candidate_pairs(scores: np.ndarray, candidate_ids: Sequence[str], threshold: float) -> List[Candidate]:
    """Flatten the score matrix into threshold-passing pairs in acceptance order."""
    pairs: List[Candidate] = []
    rows, cols = np.nonzero(scores >= threshold)
    for i, j in zip(rows.tolist(), cols.tolist()):
        pairs.append((i, candidate_ids[j], float(scores[i, j])))
    pairs.sort(key=lambda item: (-item[2], item[0], item[1]))
    return pairs


def assign_greedy(scores: np.ndarray, candidate_ids: Sequence[str], threshold: float) -> List[Assignment]:
    """Greedy one-to-one assignment over an ``M x N`` score matrix."""
    _check_shape(scores, candidate_ids)
    used_faces: Set[int] = set()
    used_candidates: Set[str] = set()
    accepted: List[Assignment] = []
    for face_index, source_id, value in candidate_pairs(scores, candidate_ids, threshold):
        if face_index in used_faces or source_id in used_candidates:
            continue
        used_faces.add(face_index)
        used_candidates.add(source_id)
        accepted.append(Assignment(face_index=face_index, source_id=source_id, score=value))
    return accepted


def assign_optimal(scores: np.ndarray, candidate_ids: Sequence[str], threshold: float) -> List[Assignment]:
    """Maximum-weight one-to-one assignment restricted to pairs above threshold."""
    _check_shape(scores, candidate_ids)
    if scores.size == 0:
        return []
    eligible = scores >= threshold
    if not np.any(eligible):
        return []
    # Ineligible cells get a cost no eligible combination can beat.
    cost = np.where(eligible, -scores, 1e6)
    rows, cols = linear_sum_assignment(cost)
    accepted = [
        Assignment(face_index=int(r), source_id=candidate_ids[c], score=float(scores[r, c]))
        for r, c in zip(rows, cols)
        if eligible[r, c]
    ]
    accepted.sort(key=lambda item: (-item.score, item.face_index, item.source_id))
    return accepted


def _check_shape(scores: np.ndarray, candidate_ids: Sequence[str]) -> None:
    if scores.ndim != 2 or scores.shape[1] != len(candidate_ids):
        raise InvalidInput(
            f"Score matrix shape {scores.shape} does not match {len(candidate_ids)} candidates"
        )
    if len(set(candidate_ids)) != len(candidate_ids):
        raise InvalidInput("Candidate ids must be unique")


def resolve_matrix(
    scores: np.ndarray,
    candidate_ids: Sequence[str],
    threshold: float,
    strategy: str = GREEDY,
) -> BatchResolution:
    """Turn a similarity matrix into a per-face resolution."""
    threshold = validate_threshold(threshold)
    if strategy == GREEDY:
        accepted = assign_greedy(scores, candidate_ids, threshold)
    elif strategy == OPTIMAL:
        accepted = assign_optimal(scores, candidate_ids, threshold)
    else:
        raise InvalidInput(f"Unknown assignment strategy {strategy!r}")

    total_faces = int(scores.shape[0])
    by_face = {assignment.face_index: assignment for assignment in accepted}
    outcomes: List[FaceOutcome] = []
    for face_index in range(total_faces):
        best: Optional[float] = float(scores[face_index].max()) if scores.shape[1] else None
        assignment = by_face.get(face_index)
        outcomes.append(
            FaceOutcome(
                face_index=face_index,
                source_id=assignment.source_id if assignment else None,
                score=assignment.score if assignment else None,
                best_score=best,
            )
        )
    return BatchResolution(
        total_faces=total_faces,
        threshold=threshold,
        assignments=accepted,
        outcomes=outcomes,
        strategy=strategy,
    )


def resolve_batch(
    store: VectorStore,
    queries: Sequence[VectorLike],
    source_type: str,
    threshold: float,
    strategy: str = GREEDY,
    length_policy: str = REJECT,
) -> BatchResolution:
    """Resolve ``queries`` (faces of one frame) against the ``source_type`` pool.

    Pure with respect to attendance: callers act on ``matched_student_ids``.
    """
    vectors = as_vectors(queries, name="queries")
    pool = store.list_all(source_type=source_type)
    if vectors and length_policy == REJECT:
        dims = vectors[0].shape[0]
        for vec in vectors[1:]:
            shared_length(dims, vec.shape[0], length_policy)
        compatible = [record for record in pool if record.dims == dims]
        if len(compatible) != len(pool):
            LOGGER.warning(
                "Skipped %d/%d %s candidates with dims != %d",
                len(pool) - len(compatible),
                len(pool),
                source_type,
                dims,
            )
        pool = compatible
    candidate_ids = [record.source_id for record in pool]
    scores = cosine_matrix(vectors, [record.vector for record in pool], length_policy=length_policy)
    resolution = resolve_matrix(scores, candidate_ids, threshold, strategy=strategy)
    LOGGER.info(
        "Resolved %d faces against %d %s candidates: matched=%d (th=%.3f, strategy=%s)",
        resolution.total_faces,
        len(pool),
        source_type,
        resolution.matched_count,
        resolution.threshold,
        strategy,
    )
    return resolution
