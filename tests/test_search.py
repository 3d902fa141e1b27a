import pytest

from rollcall.errors import InvalidInput
from rollcall.recognition.search import rank, search
from rollcall.storage import InMemoryVectorStore


def build_store() -> InMemoryVectorStore:
    store = InMemoryVectorStore()
    store.upsert("student-face", "S1", [1.0, 0.0, 0.0])
    store.upsert("student-face", "S2", [0.0, 1.0, 0.0])
    store.upsert("student-face", "S3", [0.7, 0.7, 0.0])
    store.upsert("text", "T1", [1.0, 0.0, 0.0])
    return store


def test_search_returns_closest_enrolled_student():
    store = InMemoryVectorStore()
    store.upsert("student-face", "S1", [1.0, 0.0, 0.0])
    store.upsert("student-face", "S2", [0.0, 1.0, 0.0])
    hits = search(store, [1.0, 0.0, 0.01], top_k=1, source_type="student-face")
    assert len(hits) == 1
    assert hits[0].source_id == "S1"
    assert hits[0].score == pytest.approx(1.0, abs=1e-3)


def test_search_ranks_descending_and_filters_source_type():
    hits = search(build_store(), [1.0, 0.1, 0.0], top_k=10, source_type="student-face")
    assert [hit.source_id for hit in hits] == ["S1", "S3", "S2"]
    scores = [hit.score for hit in hits]
    assert scores == sorted(scores, reverse=True)


def test_search_without_filter_spans_all_types():
    hits = search(build_store(), [1.0, 0.0, 0.0], top_k=10)
    assert {hit.record.source_type for hit in hits} == {"student-face", "text"}


def test_top_k_is_clamped_to_corpus_size():
    assert len(search(build_store(), [1.0, 0.0, 0.0], top_k=50, source_type="student-face")) == 3


@pytest.mark.parametrize("top_k", [0, -1, 101, 2.5, True])
def test_invalid_top_k(top_k):
    with pytest.raises(InvalidInput):
        search(build_store(), [1.0, 0.0, 0.0], top_k=top_k)


def test_ties_keep_store_order():
    store = InMemoryVectorStore()
    for source_id in ("B", "A", "C"):
        store.upsert("student-face", source_id, [1.0, 0.0])
    hits = search(store, [1.0, 0.0], top_k=3)
    assert [hit.source_id for hit in hits] == ["B", "A", "C"]


def test_empty_store_returns_empty_result():
    assert search(InMemoryVectorStore(), [1.0, 0.0], top_k=5) == []


def test_mismatched_records_are_skipped(caplog):
    store = InMemoryVectorStore()
    store.upsert("student-face", "S1", [1.0, 0.0, 0.0])
    store.upsert("student-face", "OLD", [1.0, 0.0])
    store.upsert("student-face", "OLDER", [0.0, 1.0])
    with caplog.at_level("WARNING"):
        hits = rank(store, [1.0, 0.0, 0.0], source_type="student-face")
    assert [hit.source_id for hit in hits] == ["S1"]
    warnings = [rec.getMessage() for rec in caplog.records if rec.levelname == "WARNING"]
    assert len(warnings) == 1
    assert "Skipped 2/3" in warnings[0]


def test_truncate_policy_scores_mismatched_records():
    store = InMemoryVectorStore()
    store.upsert("student-face", "OLD", [1.0, 0.0])
    hits = rank(store, [1.0, 0.0, 0.0], length_policy="truncate")
    assert hits[0].score == pytest.approx(1.0)


def test_hit_payload_omits_vector():
    hit = search(build_store(), [1.0, 0.0, 0.0], top_k=1)[0]
    payload = hit.to_dict()
    assert "vector" not in payload
    assert payload["dims"] == 3
    assert payload["score"] == pytest.approx(1.0)
