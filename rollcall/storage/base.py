"""Abstract contract for vector record storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from rollcall.types import VectorLike, VectorRecord


class VectorStore(ABC):
    """Keyed collection of embeddings, unique per (source_type, source_id).

    Search and matching only depend on this interface, so an indexed backend
    can replace the linear-scan stores without touching callers.
    """

    @abstractmethod
    def put(
        self,
        source_type: str,
        source_id: str,
        vector: VectorLike,
        label: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[VectorRecord, bool]:
        """Insert or fully replace the record for the key.

        Returns the stored record and whether an existing record was replaced,
        both decided atomically with the write.
        """

    def upsert(
        self,
        source_type: str,
        source_id: str,
        vector: VectorLike,
        label: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> VectorRecord:
        """Insert or fully replace the record for the key and return it."""
        record, _ = self.put(source_type, source_id, vector, label=label, metadata=metadata)
        return record

    @abstractmethod
    def get(self, source_type: str, source_id: str) -> VectorRecord:
        """Return the record for the key or raise NotFound."""

    @abstractmethod
    def list_all(self, source_type: Optional[str] = None, source_id: Optional[str] = None) -> List[VectorRecord]:
        """Return a snapshot of matching records in store order."""

    @abstractmethod
    def delete(self, source_type: str, source_id: str) -> bool:
        """Remove the record for the key; return False if it was absent."""

    def exists(self, source_type: str, source_id: str) -> bool:
        return bool(self.list_all(source_type=source_type, source_id=source_id))

    def count(self, source_type: Optional[str] = None) -> int:
        return len(self.list_all(source_type=source_type))

    def source_types(self) -> List[str]:
        seen: Dict[str, None] = {}
        for record in self.list_all():
            seen.setdefault(record.source_type, None)
        return list(seen)

    def __len__(self) -> int:
        return self.count()
