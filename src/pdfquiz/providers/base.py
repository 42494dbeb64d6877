"""Base provider interface for embedding services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

__all__ = ["EmbeddingProvider"]


class EmbeddingProvider(ABC):
    """Abstract interface for embedding services (``embedBatch``)."""

    model_name: str = "unknown"

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> Sequence[Any]:
        """Return one raw embedding per text, in input order.

        The return value is not trusted; the embedding client validates its
        shape before use.
        """
