"""Chroma vector store adapter: one collection per namespace."""
from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

try:  # pragma: no cover - optional dependency
    import chromadb  # type: ignore
except Exception:  # pragma: no cover - gracefully degrade when unavailable
    chromadb = None  # type: ignore

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from chromadb.api import ClientAPI
    from chromadb.api.models.Collection import Collection
else:  # pragma: no cover - runtime fallback types
    ClientAPI = Any  # type: ignore
    Collection = Any  # type: ignore

from .base import IndexEntry, QueryMatch, Where
from .errors import VectorStoreUnavailableError

LOGGER = logging.getLogger(__name__)

DEFAULT_DISTANCE_METRIC = "cosine"

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_MAX_NAME_LENGTH = 63


def collection_name_for(namespace: str) -> str:
    """Map a namespace onto a name Chroma accepts (3-63 chars, alphanumeric ends)."""

    name = _INVALID_NAME_CHARS.sub("_", namespace).strip("._-")
    if len(name) < 3 or len(name) > _MAX_NAME_LENGTH or name != namespace:
        digest = hashlib.sha1(namespace.encode("utf-8")).hexdigest()[:12]
        name = f"{name[: _MAX_NAME_LENGTH - 13]}-{digest}".strip("._-")
        if len(name) < 3:
            name = f"ns-{digest}"
    return name


def _to_chroma_where(where: Optional[Where]) -> Optional[Dict[str, Any]]:
    if not where:
        return None
    clauses = [{key: value} for key, value in where.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _clean_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    # Chroma rejects None values.
    return {key: value for key, value in metadata.items() if value is not None}


class ChromaVectorStore:
    """Adapter around a Chroma vector database."""

    backend_name = "chroma"

    def __init__(
        self,
        persist_dir: str | Path | None = None,
        *,
        client: Optional[ClientAPI] = None,
        distance_metric: str = DEFAULT_DISTANCE_METRIC,
    ) -> None:
        if chromadb is None and client is None:
            raise VectorStoreUnavailableError(
                "chromadb is not installed; cannot initialise persistent vector store"
            )
        self.distance_metric = distance_metric
        self.persist_dir = Path(persist_dir) if persist_dir is not None else None

        try:
            if client is not None:
                self._client = client
            else:
                if self.persist_dir is None:
                    raise ValueError("persist_dir is required when no client is given")
                self.persist_dir.mkdir(parents=True, exist_ok=True)
                self._client = chromadb.PersistentClient(path=str(self.persist_dir))  # type: ignore[union-attr]
        except Exception as exc:  # pragma: no cover - depends on chromadb runtime
            raise VectorStoreUnavailableError(
                "Failed to initialise Chroma persistent client",
                cause=exc,
            ) from exc
        self._collections: Dict[str, Collection] = {}

    def _collection(self, namespace: str) -> Collection:
        collection = self._collections.get(namespace)
        if collection is None:
            collection = self._client.get_or_create_collection(
                name=collection_name_for(namespace),
                metadata={"hnsw:space": self.distance_metric, "namespace": namespace},
            )
            self._collections[namespace] = collection
        return collection

    def upsert(self, namespace: str, entries: Sequence[IndexEntry]) -> None:
        if not entries:
            return
        try:
            self._collection(namespace).upsert(
                ids=[entry.id for entry in entries],
                embeddings=[[float(value) for value in entry.vector] for entry in entries],
                documents=[str(entry.metadata.get("text", "")) for entry in entries],
                metadatas=[_clean_metadata(dict(entry.metadata)) for entry in entries],
            )
        except Exception as exc:
            raise VectorStoreUnavailableError(
                "Failed to upsert entries into vector store", cause=exc, namespace=namespace, operation="upsert"
            ) from exc

    def query(
        self,
        namespace: str,
        vector: Sequence[float],
        top_k: int,
        where: Optional[Where] = None,
    ) -> List[QueryMatch]:
        if top_k <= 0:
            return []

        try:
            collection = self._collection(namespace)
            available = collection.count()
            if available == 0:
                return []
            result = collection.query(
                query_embeddings=[[float(value) for value in vector]],
                n_results=min(top_k, available),
                where=_to_chroma_where(where),
                include=["metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreUnavailableError(
                "Vector store query failed", cause=exc, namespace=namespace, operation="query"
            ) from exc

        ids = (result.get("ids") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        matches: List[QueryMatch] = []
        for item_id, metadata, distance in zip(ids, metadatas, distances):
            score = 1.0 - float(distance) if distance is not None else 0.0
            matches.append(QueryMatch(id=str(item_id), score=score, metadata=dict(metadata or {})))
        return matches

    def delete_namespace(self, namespace: str) -> None:
        name = collection_name_for(namespace)
        self._collections.pop(namespace, None)
        try:
            # get_or_create first so deleting an unknown namespace is a no-op.
            self._client.get_or_create_collection(name=name)
            self._client.delete_collection(name=name)
        except Exception as exc:
            raise VectorStoreUnavailableError(
                "Failed to delete vector store namespace", cause=exc, namespace=namespace, operation="delete"
            ) from exc
        LOGGER.info("Deleted Chroma collection %s for namespace %s", name, namespace)


__all__ = ["ChromaVectorStore", "collection_name_for"]
