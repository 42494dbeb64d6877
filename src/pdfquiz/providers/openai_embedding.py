"""Remote embedding provider using the OpenAI embeddings API."""
from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Sequence

from openai import OpenAI

from .base import EmbeddingProvider

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "text-embedding-ada-002"


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Send a batch of texts to ``/v1/embeddings`` in a single request."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        *,
        dimensions: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model_name = model_name
        self.dimensions = dimensions
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            # max_retries=0: retries are owned by the embedding client.
            self._client = OpenAI(api_key=os.getenv("OPENAI_API_KEY"), max_retries=0)
        return self._client

    def embed_batch(self, texts: Sequence[str]) -> List[Any]:
        kwargs: dict[str, Any] = {"model": self.model_name, "input": list(texts)}
        # Only the text-embedding-3 family accepts a dimensions override.
        if self.dimensions and self.model_name.startswith("text-embedding-3"):
            kwargs["dimensions"] = self.dimensions
        response = self.client.embeddings.create(**kwargs)
        data = sorted(response.data, key=lambda item: item.index)
        LOGGER.debug("OpenAI returned %s embeddings for model %s", len(data), self.model_name)
        return [item.embedding for item in data]
