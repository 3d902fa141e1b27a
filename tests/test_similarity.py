import math

import numpy as np
import pytest

from rollcall.errors import DimensionMismatch, InvalidInput
from rollcall.recognition.similarity import cosine_distance, cosine_matrix, score


def test_self_similarity_is_one():
    vec = [0.3, -1.2, 4.0, 0.5]
    result = score(vec, vec)
    assert result.cosine == pytest.approx(1.0, abs=1e-9)
    assert result.distance == pytest.approx(0.0, abs=1e-6)


def test_cosine_bounds_on_random_vectors():
    rng = np.random.default_rng(7)
    for _ in range(50):
        a = rng.normal(size=16)
        b = rng.normal(size=16)
        cos = score(a, b).cosine
        assert -1.0 - 1e-9 <= cos <= 1.0 + 1e-9


def test_opposite_vectors():
    result = score([1.0, 0.0], [-1.0, 0.0])
    assert result.cosine == pytest.approx(-1.0)
    assert result.distance == pytest.approx(2.0)


def test_zero_vector_scores_zero_without_dividing_by_zero():
    result = score([0.0, 0.0, 0.0], [1.0, 2.0, 3.0])
    assert result.cosine == 0.0
    assert result.distance == pytest.approx(math.sqrt(2.0))


def test_length_mismatch_rejected_by_default():
    with pytest.raises(DimensionMismatch) as excinfo:
        score([1.0, 0.0, 0.0], [1.0, 0.0])
    assert excinfo.value.to_dict()["error"] == "dimension_mismatch"


def test_length_mismatch_truncates_when_opted_in(caplog):
    with caplog.at_level("WARNING"):
        result = score([1.0, 0.0, 5.0], [1.0, 0.0], trace=True, length_policy="truncate")
    assert result.cosine == pytest.approx(1.0)
    assert result.trace.length == 2
    assert any("mismatch" in rec.getMessage() for rec in caplog.records)


def test_trace_only_when_requested():
    assert score([1.0, 2.0], [3.0, 4.0]).trace is None
    traced = score([1.0, 2.0], [3.0, 4.0], trace=True)
    assert traced.trace.dot == pytest.approx(11.0)
    assert traced.trace.norm_a == pytest.approx(math.sqrt(5.0))
    assert traced.trace.norm_b == pytest.approx(5.0)
    assert traced.trace.denom == pytest.approx(5.0 * math.sqrt(5.0))
    assert traced.trace.terms == [(1.0, 3.0, 3.0), (2.0, 4.0, 8.0)]
    assert "trace" in traced.to_dict()
    assert "trace" not in score([1.0, 2.0], [3.0, 4.0]).to_dict()


def test_empty_vector_is_invalid():
    with pytest.raises(InvalidInput):
        score([], [1.0])


def test_distance_clamps_rounding_above_one():
    assert cosine_distance(1.0000001) == 0.0


def test_cosine_matrix_matches_pairwise_scores():
    queries = [np.array([1.0, 0.0, 0.0]), np.array([0.9, 0.1, 0.0]), np.zeros(3)]
    candidates = [np.array([1.0, 0.0, 0.0]), np.array([0.0, 2.0, 0.0])]
    matrix = cosine_matrix(queries, candidates)
    assert matrix.shape == (3, 2)
    for i, q in enumerate(queries):
        for j, c in enumerate(candidates):
            assert matrix[i, j] == pytest.approx(score(q, c).cosine)


def test_cosine_matrix_empty_sides():
    assert cosine_matrix([], [np.ones(3)]).shape == (0, 1)
    assert cosine_matrix([np.ones(3)], []).shape == (1, 0)
