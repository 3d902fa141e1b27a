"""Matching configuration loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from rollcall.errors import InvalidInput
from rollcall.io_utils import load_yaml
from rollcall.types import STUDENT_FACE

LOGGER = logging.getLogger("rollcall.config")

DEFAULT_CONFIG_PATH = Path("configs/matching.yaml")

LENGTH_POLICIES = ("reject", "truncate")
BATCH_STRATEGIES = ("greedy", "optimal")


@dataclass
class MatchingConfig:
    store_path: Optional[str] = None
    default_source_type: str = STUDENT_FACE
    compare_threshold: float = 0.90
    query_threshold: float = 0.90
    batch_threshold: float = 0.90
    default_top_k: int = 5
    max_top_k: int = 100
    verbose_limit: int = 10
    length_policy: str = "reject"
    batch_strategy: str = "greedy"
    expected_dims: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("compare_threshold", "query_threshold", "batch_threshold"):
            validate_threshold(getattr(self, name), name)
        if self.length_policy not in LENGTH_POLICIES:
            raise InvalidInput(f"length_policy must be one of {LENGTH_POLICIES}, got {self.length_policy!r}")
        if self.batch_strategy not in BATCH_STRATEGIES:
            raise InvalidInput(f"batch_strategy must be one of {BATCH_STRATEGIES}, got {self.batch_strategy!r}")
        if self.max_top_k < 1:
            raise InvalidInput("max_top_k must be >= 1")
        if not 1 <= self.default_top_k <= self.max_top_k:
            raise InvalidInput(f"default_top_k must be within [1, {self.max_top_k}]")
        if self.verbose_limit < 1:
            raise InvalidInput("verbose_limit must be >= 1")
        if self.expected_dims is not None and self.expected_dims < 1:
            raise InvalidInput("expected_dims must be >= 1 when set")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchingConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            LOGGER.warning("Ignoring unknown matching config keys: %s", unknown)
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides: Any) -> "MatchingConfig":
        """Return a copy with non-None overrides applied (CLI flags win over config)."""
        data = self.to_dict()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return MatchingConfig(**data)


def validate_threshold(value: float, name: str = "threshold") -> float:
    try:
        threshold = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number") from exc
    if not 0.0 <= threshold <= 1.0:
        raise InvalidInput(f"{name} must be within [0, 1], got {threshold}")
    return threshold


def load_config(path: Optional[Path] = None) -> MatchingConfig:
    """Load matching config from YAML; missing file yields defaults."""
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Matching config not found: {config_path}")
        LOGGER.debug("No matching config at %s; using defaults", config_path)
        return MatchingConfig()
    data = load_yaml(config_path)
    config = MatchingConfig.from_dict(data)
    LOGGER.info(
        "Matching config: source_type=%s compare_th=%.3f query_th=%.3f batch_th=%.3f policy=%s strategy=%s",
        config.default_source_type,
        config.compare_threshold,
        config.query_threshold,
        config.batch_threshold,
        config.length_policy,
        config.batch_strategy,
    )
    return config
