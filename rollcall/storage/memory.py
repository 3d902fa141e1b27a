"""Thread-safe in-memory vector store."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from rollcall.errors import NotFound
from rollcall.storage.base import VectorStore
from rollcall.types import RecordKey, VectorLike, VectorRecord, as_vector, require_text, utcnow

LOGGER = logging.getLogger("rollcall.storage.memory")


class InMemoryVectorStore(VectorStore):
    """Dict-backed store; records are swapped whole under a lock.

    Subclasses persist through ``_commit``. If it raises, the in-memory change
    is rolled back so the key is left untouched.
    """

    def __init__(self) -> None:
        self._records: Dict[RecordKey, VectorRecord] = {}
        self._lock = threading.RLock()

    def put(
        self,
        source_type: str,
        source_id: str,
        vector: VectorLike,
        label: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[VectorRecord, bool]:
        source_type = require_text(source_type, "source_type")
        source_id = require_text(source_id, "source_id")
        vec = as_vector(vector).copy()
        key = (source_type, source_id)
        with self._lock:
            snapshot = dict(self._records)
            previous = snapshot.get(key)
            now = utcnow()
            record = VectorRecord(
                source_id=source_id,
                source_type=source_type,
                vector=vec,
                label=label or "",
                metadata=dict(metadata or {}),
                created_at=previous.created_at if previous is not None else now,
                updated_at=now,
            )
            self._records[key] = record
            try:
                self._commit()
            except Exception:
                self._records = snapshot
                raise
        if previous is not None:
            LOGGER.info(
                "Replaced %s/%s dims=%d (was %d)", source_type, source_id, record.dims, previous.dims
            )
        else:
            LOGGER.info("Inserted %s/%s dims=%d", source_type, source_id, record.dims)
        return record.copy(), previous is not None

    def get(self, source_type: str, source_id: str) -> VectorRecord:
        with self._lock:
            record = self._records.get((source_type, source_id))
        if record is None:
            raise NotFound(
                f"No embedding for {source_type}/{source_id}",
                source_type=source_type,
                source_id=source_id,
            )
        return record.copy()

    def list_all(self, source_type: Optional[str] = None, source_id: Optional[str] = None) -> List[VectorRecord]:
        with self._lock:
            snapshot = list(self._records.values())
        return [
            record.copy()
            for record in snapshot
            if (source_type is None or record.source_type == source_type)
            and (source_id is None or record.source_id == source_id)
        ]

    def delete(self, source_type: str, source_id: str) -> bool:
        key = (source_type, source_id)
        with self._lock:
            if key not in self._records:
                return False
            snapshot = dict(self._records)
            del self._records[key]
            try:
                self._commit()
            except Exception:
                self._records = snapshot
                raise
        LOGGER.info("Deleted %s/%s", source_type, source_id)
        return True

    def exists(self, source_type: str, source_id: str) -> bool:
        with self._lock:
            return (source_type, source_id) in self._records

    def count(self, source_type: Optional[str] = None) -> int:
        with self._lock:
            if source_type is None:
                return len(self._records)
            return sum(1 for key in self._records if key[0] == source_type)

    def clear(self) -> None:
        with self._lock:
            snapshot = self._records
            self._records = {}
            try:
                self._commit()
            except Exception:
                self._records = snapshot
                raise

    def _commit(self) -> None:
        """Persistence hook; the in-memory store has nothing to flush."""
