"""Error taxonomy for the embedding store and matching engine."""

from __future__ import annotations

from typing import Any, Dict


class RollcallError(Exception):
    """Base error; carries a stable ``kind`` for structured results."""

    kind = "error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class InvalidInput(RollcallError, ValueError):
    kind = "invalid_input"


class NotFound(RollcallError, LookupError):
    kind = "not_found"


class DimensionMismatch(RollcallError, ValueError):
    kind = "dimension_mismatch"

    def __init__(self, len_a: int, len_b: int, message: str = "") -> None:
        super().__init__(
            message or f"Vector lengths differ ({len_a} vs {len_b})",
            len_a=len_a,
            len_b=len_b,
        )
        self.len_a = len_a
        self.len_b = len_b


class UpstreamExtractorFailure(RollcallError, RuntimeError):
    kind = "upstream_extractor_failure"
