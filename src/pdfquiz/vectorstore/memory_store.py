"""Simple in-memory vector store for local runs and tests."""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .base import IndexEntry, Metadata, QueryMatch, Where, matches_where

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _StoredItem:
    """Internal representation of a stored vector."""

    id: str
    vector: List[float]
    metadata: Metadata
    hidden_for: int = 0


class InMemoryVectorStore:
    """Cosine-similarity store keyed by namespace.

    ``visibility_lag`` hides freshly upserted entries from the next N queries
    against their namespace, which mimics a hosted index that is only
    eventually consistent.
    """

    backend_name = "memory"

    def __init__(self, *, visibility_lag: int = 0) -> None:
        if visibility_lag < 0:
            raise ValueError("visibility_lag must be non-negative")
        self.visibility_lag = visibility_lag
        self._namespaces: Dict[str, Dict[str, _StoredItem]] = {}
        self._lock = threading.Lock()

    def upsert(self, namespace: str, entries: Sequence[IndexEntry]) -> None:
        if not entries:
            return
        with self._lock:
            items = self._namespaces.setdefault(namespace, {})
            for entry in entries:
                items[entry.id] = _StoredItem(
                    id=entry.id,
                    vector=[float(value) for value in entry.vector],
                    metadata=dict(entry.metadata),
                    hidden_for=self.visibility_lag,
                )
        LOGGER.debug("Upserted %s entries into %s", len(entries), namespace)

    def query(
        self,
        namespace: str,
        vector: Sequence[float],
        top_k: int,
        where: Optional[Where] = None,
    ) -> List[QueryMatch]:
        if top_k <= 0:
            return []

        with self._lock:
            items = list(self._namespaces.get(namespace, {}).values())
            visible: List[_StoredItem] = []
            for item in items:
                if item.hidden_for > 0:
                    item.hidden_for -= 1
                    continue
                visible.append(item)

        scored: List[QueryMatch] = []
        for item in visible:
            if not matches_where(item.metadata, where):
                continue
            scored.append(
                QueryMatch(
                    id=item.id,
                    score=_cosine_similarity(vector, item.vector),
                    metadata=dict(item.metadata),
                )
            )
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]

    def delete_namespace(self, namespace: str) -> None:
        with self._lock:
            removed = self._namespaces.pop(namespace, None)
        LOGGER.debug("Deleted namespace %s (%s entries)", namespace, len(removed or {}))

    def count(self, namespace: str) -> int:
        with self._lock:
            return len(self._namespaces.get(namespace, {}))


def _cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    if len(vec_a) != len(vec_b):
        raise ValueError("Vectors must be of the same dimension")
    dot = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


__all__ = ["InMemoryVectorStore"]
