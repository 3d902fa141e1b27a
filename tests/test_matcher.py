import numpy as np
import pytest

from rollcall.errors import InvalidInput, NotFound
from rollcall.recognition.matcher import StoreMatcher
from rollcall.storage import InMemoryVectorStore


def build_matcher(**kwargs) -> StoreMatcher:
    store = InMemoryVectorStore()
    store.upsert("student-face", "S1", [1.0, 0.0, 0.0])
    store.upsert("student-face", "S2", [0.9, 0.1, 0.0])
    store.upsert("student-face", "S3", [0.0, 0.0, 1.0])
    return StoreMatcher(store, **kwargs)


def test_compare_stored_is_symmetric():
    matcher = build_matcher()
    ab = matcher.compare_stored("S1", "S2", "student-face")
    ba = matcher.compare_stored("S2", "S1", "student-face")
    assert ab.matched == ba.matched
    assert ab.cosine == ba.cosine
    assert ab.distance == ba.distance
    assert ab.matched is True
    assert ab.threshold == pytest.approx(0.9)


def test_compare_stored_applies_threshold():
    matcher = build_matcher()
    result = matcher.compare_stored("S1", "S3", "student-face", threshold=0.5)
    assert result.matched is False
    assert result.cosine == pytest.approx(0.0)


def test_compare_stored_requires_both_records():
    matcher = build_matcher()
    with pytest.raises(NotFound):
        matcher.compare_stored("S1", "MISSING", "student-face")
    with pytest.raises(NotFound):
        matcher.compare_stored("MISSING", "S1", "student-face")
    with pytest.raises(NotFound) as excinfo:
        matcher.compare_stored("X", "Y", "student-face")
    assert excinfo.value.to_dict()["error"] == "not_found"
    with pytest.raises(NotFound):
        matcher.compare_stored("S1", "S2", "other-type")


def test_compare_stored_trace_is_opt_in():
    matcher = build_matcher()
    assert matcher.compare_stored("S1", "S2", "student-face").trace is None
    verbose = matcher.compare_stored("S1", "S2", "student-face", verbose=True)
    assert verbose.trace.length == 3
    assert len(verbose.trace.terms) == 3


def test_compare_query_finds_best_match():
    matcher = build_matcher()
    result = matcher.compare_query([1.0, 0.0, 0.0], threshold=0.95, source_type="student-face")
    assert result.matched is True
    assert result.best_match.source_id == "S1"
    assert result.candidates is None


def test_compare_query_below_threshold_reports_best_anyway():
    matcher = build_matcher()
    result = matcher.compare_query([0.5, 0.5, 0.7], threshold=0.99, source_type="student-face")
    assert result.matched is False
    assert result.best_match is not None
    assert result.to_dict()["matched"] is False


def test_compare_query_empty_store_never_matches():
    matcher = StoreMatcher(InMemoryVectorStore())
    result = matcher.compare_query([1.0, 0.0], threshold=0.0)
    assert result.matched is False
    assert result.best_match is None
    assert result.best_score is None


def test_compare_query_restricted_to_source_id():
    matcher = build_matcher()
    result = matcher.compare_query([1.0, 0.0, 0.0], threshold=0.5, source_type="student-face", source_id="S3")
    assert result.best_match.source_id == "S3"
    assert result.matched is False


def test_compare_query_verbose_is_bounded():
    matcher = build_matcher(verbose_limit=2)
    result = matcher.compare_query([1.0, 0.0, 0.0], threshold=0.5, source_type="student-face", verbose=True)
    assert [hit.source_id for hit in result.candidates] == ["S1", "S2"]


def test_threshold_monotonicity_for_queries():
    matcher = build_matcher()
    rng = np.random.default_rng(3)
    queries = [rng.normal(size=3) for _ in range(20)]
    previous = None
    for threshold in np.linspace(0.0, 1.0, 11):
        count = sum(matcher.compare_query(q, threshold=float(threshold)).matched for q in queries)
        if previous is not None:
            assert count <= previous
        previous = count


@pytest.mark.parametrize("threshold", [-0.1, 1.5, "high"])
def test_threshold_must_be_in_unit_range(threshold):
    matcher = build_matcher()
    with pytest.raises(InvalidInput):
        matcher.compare_query([1.0, 0.0, 0.0], threshold=threshold)


def test_compare_query_uses_matcher_default_threshold():
    matcher = build_matcher(similarity_th=0.95)
    assert matcher.compare_query([1.0, 0.0, 0.0]).best_match.source_id == "S1"
    weak = matcher.compare_query([0.5, 0.5, 0.5])
    assert weak.matched is False
    assert weak.threshold == pytest.approx(0.95)
