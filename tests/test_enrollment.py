import threading

import numpy as np
import pytest

from rollcall.enrollment import enroll, enroll_many, enroll_media
from rollcall.errors import DimensionMismatch, InvalidInput, UpstreamExtractorFailure
from rollcall.storage import InMemoryVectorStore


class FakeExtractor:
    def __init__(self, vectors):
        self.vectors = vectors
        self.calls = []

    def extract(self, raw_media):
        self.calls.append(raw_media)
        return self.vectors[0]

    def extract_all(self, raw_media):
        self.calls.append(raw_media)
        return list(self.vectors)


class BrokenExtractor:
    def extract(self, raw_media):
        raise RuntimeError("model not loaded")


def test_enroll_twice_keeps_latest_vector():
    store = InMemoryVectorStore()
    first = enroll(store, "S1", "student-face", [1.0, 0.0, 0.0], metadata={"name": "Asha"})
    second = enroll(store, "S1", "student-face", [0.0, 0.0, 1.0])
    assert first.replaced is False
    assert second.replaced is True
    assert store.count() == 1
    np.testing.assert_allclose(store.get("student-face", "S1").vector, [0.0, 0.0, 1.0])


def test_receipt_has_id_and_dims_only():
    receipt = enroll(InMemoryVectorStore(), "S1", "student-face", [0.1] * 128)
    assert receipt.to_dict() == {"id": "S1", "source_type": "student-face", "dims": 128, "replaced": False}


@pytest.mark.parametrize("source_id, vector", [("", [1.0]), ("S1", []), ("S1", None)])
def test_enroll_validates_input(source_id, vector):
    store = InMemoryVectorStore()
    with pytest.raises(InvalidInput):
        enroll(store, source_id, "student-face", vector)
    assert len(store) == 0


def test_enroll_checks_expected_dims():
    store = InMemoryVectorStore()
    with pytest.raises(DimensionMismatch):
        enroll(store, "S1", "student-face", [1.0, 0.0], expected_dims=128)
    assert len(store) == 0


def test_enroll_media_uses_injected_extractor():
    store = InMemoryVectorStore()
    extractor = FakeExtractor([[0.0, 1.0]])
    receipt = enroll_media(store, extractor, b"jpeg-bytes", "S9", "student-face", label="s9.jpg")
    assert receipt.dims == 2
    assert extractor.calls == [b"jpeg-bytes"]
    assert store.get("student-face", "S9").label == "s9.jpg"


def test_enroll_media_accepts_plain_callable():
    store = InMemoryVectorStore()
    receipt = enroll_media(store, lambda raw: [1.0, 2.0, 3.0], "raw", "S1", "student-face")
    assert receipt.dims == 3


def test_extractor_failure_is_wrapped_and_nothing_is_written():
    store = InMemoryVectorStore()
    with pytest.raises(UpstreamExtractorFailure) as excinfo:
        enroll_media(store, BrokenExtractor(), b"x", "S1", "student-face")
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert len(store) == 0


def test_enroll_many_suffixes_face_index():
    store = InMemoryVectorStore()
    extractor = FakeExtractor([[1.0, 0.0], [0.0, 1.0]])
    receipts = enroll_many(store, extractor, "group.jpg", "S1", "student-face", metadata={"class": "7A"})
    assert [r.id for r in receipts] == ["S1-0", "S1-1"]
    meta = store.get("student-face", "S1-1").metadata
    assert meta == {"class": "7A", "parent_id": "S1", "face_index": 1}


def test_enroll_many_rejects_before_writing_anything():
    store = InMemoryVectorStore()
    extractor = FakeExtractor([[1.0, 0.0], [0.0, 1.0, 0.0]])
    with pytest.raises(DimensionMismatch):
        enroll_many(store, extractor, "group.jpg", "S1", "student-face", expected_dims=2)
    assert len(store) == 0


def test_enroll_many_without_faces():
    with pytest.raises(InvalidInput):
        enroll_many(InMemoryVectorStore(), FakeExtractor([]), "empty.jpg", "S1", "student-face")


def test_concurrent_enrollment_reports_a_single_insert():
    store = InMemoryVectorStore()
    receipts = []
    lock = threading.Lock()

    def worker(offset: int) -> None:
        for i in range(10):
            receipt = enroll(store, "S1", "student-face", [float(offset), float(i) + 1.0])
            with lock:
                receipts.append(receipt)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(receipts) == 40
    assert sum(1 for receipt in receipts if not receipt.replaced) == 1
