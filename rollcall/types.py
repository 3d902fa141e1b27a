"""Common dataclasses and type aliases used across the rollcall package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from rollcall.errors import InvalidInput

VectorLike = Union[np.ndarray, Sequence[float]]
RecordKey = Tuple[str, str]

STUDENT_FACE = "student-face"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class VectorRecord:
    """An enrolled embedding keyed by (source_type, source_id)."""

    source_id: str
    source_type: str
    vector: np.ndarray
    label: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> RecordKey:
        return self.source_type, self.source_id

    @property
    def dims(self) -> int:
        return int(self.vector.shape[0])

    def copy(self) -> "VectorRecord":
        return VectorRecord(
            source_id=self.source_id,
            source_type=self.source_type,
            vector=self.vector.copy(),
            label=self.label,
            metadata=dict(self.metadata),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_dict(self, include_vector: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "source_id": self.source_id,
            "source_type": self.source_type,
            "label": self.label,
            "metadata": dict(self.metadata),
            "dims": self.dims,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        # Raw vectors are biometric data; only exported on explicit request.
        if include_vector:
            payload["vector"] = self.vector.astype(float).tolist()
        return payload


@dataclass
class SimilarityTrace:
    """Per-call audit payload for a similarity computation."""

    length: int
    dot: float
    norm_a: float
    norm_b: float
    denom: float
    terms: List[Tuple[float, float, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "length": self.length,
            "dot": self.dot,
            "norm_a": self.norm_a,
            "norm_b": self.norm_b,
            "denom": self.denom,
            "terms": [list(term) for term in self.terms],
        }


@dataclass
class SimilarityScore:
    cosine: float
    distance: float
    trace: Optional[SimilarityTrace] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"cosine": self.cosine, "distance": self.distance}
        if self.trace is not None:
            payload["trace"] = self.trace.to_dict()
        return payload


@dataclass
class SearchHit:
    """A ranked search result."""

    record: VectorRecord
    score: float

    @property
    def source_id(self) -> str:
        return self.record.source_id

    def to_dict(self) -> Dict[str, Any]:
        payload = self.record.to_dict()
        payload["score"] = self.score
        return payload


@dataclass
class PairComparison:
    source_id_a: str
    source_id_b: str
    source_type: str
    matched: bool
    cosine: float
    distance: float
    threshold: float
    trace: Optional[SimilarityTrace] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "source_id_a": self.source_id_a,
            "source_id_b": self.source_id_b,
            "source_type": self.source_type,
            "matched": self.matched,
            "cosine": self.cosine,
            "distance": self.distance,
            "threshold": self.threshold,
        }
        if self.trace is not None:
            payload["trace"] = self.trace.to_dict()
        return payload


@dataclass
class QueryComparison:
    matched: bool
    threshold: float
    best_match: Optional[SearchHit] = None
    candidates: Optional[List[SearchHit]] = None

    @property
    def best_score(self) -> Optional[float]:
        return self.best_match.score if self.best_match is not None else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "matched": self.matched,
            "threshold": self.threshold,
            "best_match": self.best_match.to_dict() if self.best_match is not None else None,
        }
        if self.candidates is not None:
            payload["candidates"] = [hit.to_dict() for hit in self.candidates]
        return payload


@dataclass(frozen=True)
class Assignment:
    """An accepted (face, candidate) pair."""

    face_index: int
    source_id: str
    score: float


@dataclass
class FaceOutcome:
    face_index: int
    source_id: Optional[str] = None
    score: Optional[float] = None
    best_score: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.source_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "face_index": self.face_index,
            "status": "matched" if self.matched else "unmatched",
            "source_id": self.source_id,
            "score": self.score,
            "best_score": self.best_score,
        }


@dataclass
class BatchResolution:
    total_faces: int
    threshold: float
    assignments: List[Assignment] = field(default_factory=list)
    outcomes: List[FaceOutcome] = field(default_factory=list)
    strategy: str = "greedy"

    @property
    def matched_count(self) -> int:
        return len(self.assignments)

    @property
    def matched_student_ids(self) -> List[str]:
        return [assignment.source_id for assignment in self.assignments]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_faces": self.total_faces,
            "matched_count": self.matched_count,
            "matched_student_ids": self.matched_student_ids,
            "threshold": self.threshold,
            "strategy": self.strategy,
            "faces": [outcome.to_dict() for outcome in self.outcomes],
        }


@dataclass
class EnrollmentReceipt:
    id: str
    source_type: str
    dims: int
    replaced: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_type": self.source_type,
            "dims": self.dims,
            "replaced": self.replaced,
        }


@dataclass
class AttendanceMark:
    """Notification handed to the attendance subsystem for a recognised student."""

    student_id: str
    timestamp: datetime
    status: str = "present"
    method: str = "face"
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method,
            "score": self.score,
        }


def as_vector(raw: Any, name: str = "vector") -> np.ndarray:
    """Convert list/array input into a 1D float32 vector, validating contents."""
    if raw is None:
        raise InvalidInput(f"{name} is required")
    if isinstance(raw, np.ndarray) and raw.dtype == object:
        parts = [np.asarray(part, dtype=np.float32).ravel() for part in raw]
        arr = np.concatenate(parts) if parts else np.empty((0,), dtype=np.float32)
    else:
        try:
            arr = np.asarray(raw, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"{name} must be a sequence of numbers") from exc
    arr = arr.reshape(-1)
    if arr.size == 0:
        raise InvalidInput(f"{name} must not be empty")
    if not np.all(np.isfinite(arr)):
        raise InvalidInput(f"{name} contains non-finite values")
    return arr


def as_vectors(raws: Iterable[Any], name: str = "vectors") -> List[np.ndarray]:
    return [as_vector(raw, name=f"{name}[{idx}]") for idx, raw in enumerate(raws)]


def l2_normalize(vec: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    """L2-normalize the input vector."""
    norm = np.linalg.norm(vec)
    if norm < eps:
        return vec
    return vec / norm


def require_text(value: Optional[str], name: str) -> str:
    if value is None:
        raise InvalidInput(f"{name} is required")
    text = str(value).strip()
    if not text:
        raise InvalidInput(f"{name} must not be empty")
    return text
