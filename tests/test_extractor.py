import numpy as np
import pytest

from rollcall.errors import InvalidInput, UpstreamExtractorFailure
from rollcall.recognition.extractor import run_extractor, run_extractor_many


class SingleFace:
    def extract(self, raw_media):
        return np.array([0.6, 0.8], dtype=np.float32)


def test_single_face_extractor_used_for_batches():
    vectors = run_extractor_many(SingleFace(), "frame.jpg")
    assert len(vectors) == 1
    np.testing.assert_allclose(vectors[0], [0.6, 0.8])


def test_engine_errors_from_extractor_pass_through():
    def raises_invalid(raw_media):
        raise InvalidInput("bad media")

    with pytest.raises(InvalidInput):
        run_extractor(raises_invalid, "x")


def test_invalid_extractor_output_is_upstream_failure():
    with pytest.raises(UpstreamExtractorFailure):
        run_extractor(lambda raw: [], "x")
    with pytest.raises(UpstreamExtractorFailure):
        run_extractor(lambda raw: [1.0, float("inf")], "x")


def test_missing_extractor():
    with pytest.raises(UpstreamExtractorFailure) as excinfo:
        run_extractor(None, "x")
    assert excinfo.value.to_dict()["error"] == "upstream_extractor_failure"
