"""Vector record storage backends."""

from rollcall.storage.base import VectorStore
from rollcall.storage.memory import InMemoryVectorStore
from rollcall.storage.parquet import ParquetVectorStore

__all__ = ["VectorStore", "InMemoryVectorStore", "ParquetVectorStore", "open_store"]


def open_store(path=None) -> VectorStore:
    """Open a parquet store at ``path`` or an in-memory store when no path is given."""
    if path is None:
        return InMemoryVectorStore()
    return ParquetVectorStore(path)
