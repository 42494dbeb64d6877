"""Embedding provider implementations and factory."""
from __future__ import annotations

from pdfquiz.config import DEFAULT_EMBEDDING_MODEL, PipelineConfig

from .base import EmbeddingProvider
from .hash_embedding import HashEmbeddingProvider


def create_embedding_provider(config: PipelineConfig) -> EmbeddingProvider:
    """Instantiate the provider named by ``config.embedding_provider``."""

    name = config.embedding_provider
    if name == "hash":
        return HashEmbeddingProvider(dimension=config.embedding_dimension)
    if name == "openai":
        from .openai_embedding import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(config.embedding_model, dimensions=config.embedding_dimension)
    if name in {"sentence-transformers", "sentence_transformers"}:
        from . import sentence_transformer

        model_name = config.embedding_model
        if model_name == DEFAULT_EMBEDDING_MODEL:
            model_name = sentence_transformer.DEFAULT_MODEL_NAME
        provider = sentence_transformer.SentenceTransformerProvider(model_name)
        if provider.dimension != config.embedding_dimension:
            raise ValueError(
                f"EMBEDDING_DIMENSION={config.embedding_dimension} does not match "
                f"{provider.model_name}, which produces {provider.dimension}-dimensional vectors"
            )
        return provider
    raise ValueError(f"Unsupported EMBEDDING_PROVIDER: {name!r}")


__all__ = ["EmbeddingProvider", "HashEmbeddingProvider", "create_embedding_provider"]
