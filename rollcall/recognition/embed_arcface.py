"""ArcFace feature extractor (insightface + OpenCV)."""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from rollcall.types import l2_normalize

LOGGER = logging.getLogger("rollcall.recognition.embed")

ALIGNED_SIZE = (112, 112)


def _default_providers() -> Tuple[str, ...]:
    """Choose default ONNX providers based on platform."""
    system = platform.system()
    machine = platform.machine().lower()
    if system == "Darwin" and machine in {"arm64", "aarch64"}:
        return ("CoreMLExecutionProvider", "CPUExecutionProvider")
    return ("CPUExecutionProvider",)


def decode_image(raw_media: Any) -> np.ndarray:
    """Decode a path, encoded bytes, or an RGB/BGR array into a BGR image."""
    if isinstance(raw_media, np.ndarray):
        image = raw_media
    elif isinstance(raw_media, (bytes, bytearray, memoryview)):
        buffer = np.frombuffer(bytes(raw_media), dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            raise ValueError("Unable to decode image bytes")
    elif isinstance(raw_media, (str, Path)):
        image = cv2.imread(str(raw_media))
        if image is None:
            raise FileNotFoundError(f"Unable to read image: {raw_media}")
    else:
        raise TypeError(f"Unsupported media type {type(raw_media).__name__}")
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image


class ArcFaceExtractor:
    """Detects faces and produces L2-normalized ArcFace embeddings.

    With ``aligned=True`` inputs are treated as face crops and only resized to
    112x112 before embedding; otherwise insightface's detector locates faces.
    """

    def __init__(
        self,
        model_name: str = "buffalo_l",
        providers: Optional[Sequence[str]] = None,
        det_size: Tuple[int, int] = (640, 640),
        aligned: bool = False,
    ) -> None:
        os.environ.setdefault("OMP_NUM_THREADS", "2")
        os.environ.setdefault("ORT_INTRA_OP_NUM_THREADS", "2")
        try:
            from insightface.app import FaceAnalysis
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "insightface is required for ArcFaceExtractor. "
                "Install it via `pip install insightface`."
            ) from exc

        provider_list: Tuple[str, ...] = _default_providers() if providers is None else tuple(providers)
        LOGGER.info("Loading ArcFace model %s providers=%s", model_name, provider_list)
        analysis = FaceAnalysis(name=model_name, providers=list(provider_list))
        analysis.prepare(ctx_id=0, det_size=det_size)
        recognizer = analysis.models.get("recognition")
        if recognizer is None:
            raise RuntimeError(f"Model pack {model_name} has no recognition model")
        self.analysis = analysis
        self.recognizer = recognizer
        self.providers = provider_list
        self.aligned = aligned

    def embed_aligned(self, face: np.ndarray) -> np.ndarray:
        """Embed a single aligned face crop."""
        if face.shape[:2] != ALIGNED_SIZE:
            face = cv2.resize(face, ALIGNED_SIZE)
        feat = self.recognizer.get_feat(face)
        return l2_normalize(np.asarray(feat, dtype=np.float32).reshape(-1))

    def extract_all(self, raw_media: Any) -> List[np.ndarray]:
        """Return one embedding per detected face, ordered left to right."""
        image = decode_image(raw_media)
        if self.aligned:
            return [self.embed_aligned(image)]
        faces = self.analysis.get(image)
        faces = sorted(faces, key=lambda face: float(face.bbox[0]))
        LOGGER.debug("Detected %d faces in %sx%s image", len(faces), image.shape[1], image.shape[0])
        return [l2_normalize(np.asarray(face.normed_embedding, dtype=np.float32)) for face in faces]

    def extract(self, raw_media: Any) -> np.ndarray:
        """Return the embedding of the largest detected face."""
        image = decode_image(raw_media)
        if self.aligned:
            return self.embed_aligned(image)
        faces = self.analysis.get(image)
        if not faces:
            raise ValueError("No face detected in image")
        largest = max(faces, key=lambda face: float((face.bbox[2] - face.bbox[0]) * (face.bbox[3] - face.bbox[1])))
        return l2_normalize(np.asarray(largest.normed_embedding, dtype=np.float32))
