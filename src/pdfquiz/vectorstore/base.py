"""Types shared by the vector store backends."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

PROBE_VALUE = 0.1

Metadata = Dict[str, Any]
Where = Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class IndexEntry:
    """A vector plus the chunk metadata stored next to it."""

    id: str
    vector: List[float]
    metadata: Metadata = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class QueryMatch:
    id: str
    score: float
    metadata: Metadata

    @property
    def text(self) -> str:
        return str(self.metadata.get("text", ""))

    @property
    def page_number(self) -> Optional[int]:
        value = self.metadata.get("page_number")
        return int(value) if value is not None else None


class VectorStore(Protocol):
    """Namespaced, eventually-consistent similarity index.

    Entries written by :meth:`upsert` may take a while to show up in
    :meth:`query` results.
    """

    backend_name: str

    def upsert(self, namespace: str, entries: Sequence[IndexEntry]) -> None:
        ...

    def query(
        self,
        namespace: str,
        vector: Sequence[float],
        top_k: int,
        where: Optional[Where] = None,
    ) -> List[QueryMatch]:
        ...

    def delete_namespace(self, namespace: str) -> None:
        ...


def probe_vector(dimension: int) -> List[float]:
    """Constant vector used to check that a namespace answers queries."""

    return [PROBE_VALUE] * dimension


def matches_where(metadata: Mapping[str, Any], where: Optional[Where]) -> bool:
    if not where:
        return True
    return all(metadata.get(key) == value for key, value in where.items())


__all__ = [
    "IndexEntry",
    "Metadata",
    "QueryMatch",
    "VectorStore",
    "Where",
    "matches_where",
    "probe_vector",
]
