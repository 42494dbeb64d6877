"""Local embedding provider backed by Sentence Transformers."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .base import EmbeddingProvider

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"


class SentenceTransformerProvider(EmbeddingProvider):
    """Wrapper around a SentenceTransformer model, loaded on first use."""

    def __init__(self, model_name_or_path: str | None = None, *, device: Optional[str] = None) -> None:
        self.model_name = model_name_or_path or DEFAULT_MODEL_NAME
        self.device = device
        self._model = None

    def _load(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            LOGGER.info("Loading sentence-transformers model %s", self.model_name)
            self._model = SentenceTransformer(self.model_name, device=self.device)
        return self._model

    @property
    def dimension(self) -> int:
        return int(self._load().get_sentence_embedding_dimension())

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings = self._load().encode(
            list(texts),
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=False,
        )
        return embeddings.tolist()
