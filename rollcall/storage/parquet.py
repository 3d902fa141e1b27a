"""Parquet-backed vector store (one row per enrolled key)."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Union

import numpy as np
import pandas as pd

from rollcall.io_utils import atomic_replace, dump_json
from rollcall.storage.memory import InMemoryVectorStore
from rollcall.types import VectorRecord, as_vector

LOGGER = logging.getLogger("rollcall.storage.parquet")

COLUMNS = ["source_type", "source_id", "label", "metadata", "embedding", "created_at", "updated_at"]


class ParquetVectorStore(InMemoryVectorStore):
    """Keeps records in memory and rewrites the parquet file on every change.

    Each write goes to a temporary file that atomically replaces the target,
    so a failed write leaves both the file and the in-memory state unchanged.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            for record in load_records(self.path):
                self._records[record.key] = record
            LOGGER.info("Loaded %d embeddings from %s", len(self._records), self.path)
        else:
            LOGGER.info("Embedding store %s does not exist yet; starting empty", self.path)

    def _commit(self) -> None:
        df = records_to_frame(list(self._records.values()))
        atomic_replace(self.path, lambda tmp: df.to_parquet(tmp, index=False))
        LOGGER.debug("Wrote %d embeddings to %s", len(df), self.path)

    def write_meta(self, meta_path: Path) -> None:
        """Write a JSON sidecar summarising counts and dims per source type."""
        summary: Dict[str, Dict[str, object]] = {}
        for record in self.list_all():
            entry = summary.setdefault(record.source_type, {"count": 0, "dims": []})
            entry["count"] = int(entry["count"]) + 1
            if record.dims not in entry["dims"]:
                entry["dims"].append(record.dims)
        dump_json(meta_path, {"path": str(self.path), "source_types": summary, "total": len(self)})


def records_to_frame(records: List[VectorRecord]) -> pd.DataFrame:
    rows = [
        {
            "source_type": record.source_type,
            "source_id": record.source_id,
            "label": record.label,
            "metadata": json.dumps(record.metadata, default=str),
            "embedding": record.vector.astype(np.float32).tolist(),
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def load_records(parquet_path: Path) -> List[VectorRecord]:
    df = pd.read_parquet(parquet_path)
    missing = [col for col in ("source_type", "source_id", "embedding") if col not in df.columns]
    if missing:
        raise RuntimeError(f"Embedding store {parquet_path} is missing columns {missing}")
    records: List[VectorRecord] = []
    for _, row in df.iterrows():
        raw_meta = row.get("metadata")
        metadata = json.loads(raw_meta) if isinstance(raw_meta, str) and raw_meta else {}
        record = VectorRecord(
            source_id=str(row["source_id"]),
            source_type=str(row["source_type"]),
            vector=as_vector(row["embedding"], name=f"embedding[{row['source_id']}]"),
            label=str(row.get("label") or ""),
            metadata=metadata,
        )
        if isinstance(row.get("created_at"), str):
            record.created_at = datetime.fromisoformat(row["created_at"])
        if isinstance(row.get("updated_at"), str):
            record.updated_at = datetime.fromisoformat(row["updated_at"])
        records.append(record)
    return records
