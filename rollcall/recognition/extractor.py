"""Contract for the external feature extractor."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Protocol, Union

import numpy as np

from rollcall.errors import RollcallError, UpstreamExtractorFailure
from rollcall.types import as_vector

LOGGER = logging.getLogger("rollcall.recognition.extractor")


class FeatureExtractor(Protocol):
    """Anything that turns raw media into a fixed-length vector."""

    def extract(self, raw_media: Any) -> np.ndarray:
        ...


ExtractorLike = Union[FeatureExtractor, Callable[[Any], Any]]


def run_extractor(extractor: ExtractorLike, raw_media: Any) -> np.ndarray:
    """Invoke the extractor once and validate its output.

    Failures surface as UpstreamExtractorFailure with the original exception
    chained; retries are left to the caller.
    """
    if extractor is None:
        raise UpstreamExtractorFailure("No feature extractor configured for raw media input")
    fn = getattr(extractor, "extract", extractor)
    try:
        raw_vector = fn(raw_media)
    except RollcallError:
        raise
    except Exception as exc:
        LOGGER.error("Feature extractor failed: %s", exc)
        raise UpstreamExtractorFailure(f"Feature extractor failed: {exc}") from exc
    try:
        return as_vector(raw_vector, name="extracted vector")
    except ValueError as exc:
        raise UpstreamExtractorFailure(f"Feature extractor returned an invalid vector: {exc}") from exc


def run_extractor_many(extractor: ExtractorLike, raw_media: Any) -> List[np.ndarray]:
    """Invoke an extractor that returns one vector per detected face."""
    if extractor is None:
        raise UpstreamExtractorFailure("No feature extractor configured for raw media input")
    fn = getattr(extractor, "extract_all", None)
    if fn is None:
        return [run_extractor(extractor, raw_media)]
    try:
        raw_vectors = fn(raw_media)
    except RollcallError:
        raise
    except Exception as exc:
        LOGGER.error("Feature extractor failed: %s", exc)
        raise UpstreamExtractorFailure(f"Feature extractor failed: {exc}") from exc
    try:
        return [as_vector(vec, name="extracted vector") for vec in raw_vectors]
    except ValueError as exc:
        raise UpstreamExtractorFailure(f"Feature extractor returned an invalid vector: {exc}") from exc
