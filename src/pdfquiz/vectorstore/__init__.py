"""Vector store helpers backed by pluggable backends."""

from __future__ import annotations

from pdfquiz.config import PipelineConfig

from .base import IndexEntry, QueryMatch, VectorStore, probe_vector
from .errors import VectorStoreUnavailableError
from .memory_store import InMemoryVectorStore


def create_vector_store(config: PipelineConfig) -> VectorStore:
    """Return the backend named by ``config.vector_store``."""

    backend = config.vector_store.strip().lower()

    if backend in {"memory", "mock"}:
        return InMemoryVectorStore()

    if backend == "chroma":
        from .chroma_store import ChromaVectorStore

        try:
            return ChromaVectorStore(config.chroma_persist_dir)
        except VectorStoreUnavailableError:
            raise
        except Exception as exc:  # pragma: no cover - unexpected backend failure
            raise VectorStoreUnavailableError("Failed to initialise Chroma store", cause=exc) from exc

    raise ValueError(f"Unsupported VECTOR_STORE backend: {backend!r}")


__all__ = [
    "IndexEntry",
    "InMemoryVectorStore",
    "QueryMatch",
    "VectorStore",
    "VectorStoreUnavailableError",
    "create_vector_store",
    "probe_vector",
]
