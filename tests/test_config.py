from pathlib import Path

import pytest

from rollcall.config import MatchingConfig, load_config
from rollcall.errors import InvalidInput
from rollcall.types import STUDENT_FACE


def test_defaults_when_config_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = load_config()
    assert config == MatchingConfig()
    assert config.default_source_type == "student-face"
    assert config.length_policy == "reject"


def test_explicit_missing_config_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_yaml_with_unknown_keys(tmp_path, caplog):
    path = tmp_path / "matching.yaml"
    path.write_text(
        "compare_threshold: 0.8\nbatch_strategy: optimal\nexpected_dims: 512\nlegacy_flag: true\n",
        encoding="utf-8",
    )
    with caplog.at_level("WARNING"):
        config = load_config(path)
    assert config.compare_threshold == pytest.approx(0.8)
    assert config.batch_strategy == "optimal"
    assert config.expected_dims == 512
    assert any("legacy_flag" in rec.getMessage() for rec in caplog.records)


def test_shipped_config_parses():
    path = Path(__file__).resolve().parent.parent / "configs" / "matching.yaml"
    config = load_config(path)
    assert config.store_path == "data/embeddings.parquet"


@pytest.mark.parametrize(
    "overrides",
    [
        {"compare_threshold": 1.2},
        {"length_policy": "pad"},
        {"batch_strategy": "hungarian"},
        {"default_top_k": 0},
        {"default_top_k": 500},
        {"expected_dims": 0},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(InvalidInput):
        MatchingConfig(**overrides)


def test_overrides_skip_none():
    config = MatchingConfig(store_path="a.parquet").with_overrides(store_path=None, query_threshold=0.7)
    assert config.store_path == "a.parquet"
    assert config.query_threshold == pytest.approx(0.7)


def test_default_source_type_is_student_face():
    assert MatchingConfig().default_source_type == STUDENT_FACE == "student-face"
