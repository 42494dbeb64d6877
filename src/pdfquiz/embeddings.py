"""Embedding client: batching, response validation and bounded retries."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from pdfquiz.config import PipelineConfig
from pdfquiz.errors import EmbeddingServiceUnavailable, EmptyEmbeddingInput
from pdfquiz.providers import EmbeddingProvider, create_embedding_provider
from pdfquiz.retry import call_with_retry
from pdfquiz.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)


class EmbeddingErrorKind(str, Enum):
    TRANSIENT = "transient"
    MALFORMED = "malformed"
    DIMENSION_MISMATCH = "dimension_mismatch"


@dataclass(slots=True, frozen=True)
class EmbeddingOutcome:
    """Either validated vectors or the kind of failure that prevented them."""

    vectors: Optional[List[List[float]]] = None
    error_kind: Optional[EmbeddingErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, vectors: List[List[float]]) -> "EmbeddingOutcome":
        return cls(vectors=vectors)

    @classmethod
    def failure(cls, kind: EmbeddingErrorKind, detail: str) -> "EmbeddingOutcome":
        return cls(error_kind=kind, detail=detail)


class _TransientEmbeddingFailure(Exception):
    pass


def validate_embeddings(raw: Any, *, expected_count: int, dimension: int) -> EmbeddingOutcome:
    """Check a provider response once: count, dimensionality and numeric content."""

    if hasattr(raw, "tolist"):
        raw = raw.tolist()
    if not raw:
        return EmbeddingOutcome.failure(EmbeddingErrorKind.TRANSIENT, "No embeddings returned")
    if not isinstance(raw, (list, tuple)):
        return EmbeddingOutcome.failure(
            EmbeddingErrorKind.MALFORMED, f"Expected a list of vectors, got {type(raw).__name__}"
        )
    if len(raw) != expected_count:
        return EmbeddingOutcome.failure(
            EmbeddingErrorKind.MALFORMED, f"Expected {expected_count} vectors, got {len(raw)}"
        )

    vectors: List[List[float]] = []
    for position, item in enumerate(raw):
        if hasattr(item, "tolist"):
            item = item.tolist()
        if not isinstance(item, (list, tuple)):
            return EmbeddingOutcome.failure(
                EmbeddingErrorKind.MALFORMED, f"Vector {position} is not a sequence"
            )
        if len(item) != dimension:
            return EmbeddingOutcome.failure(
                EmbeddingErrorKind.DIMENSION_MISMATCH,
                f"Vector {position} has {len(item)} dimensions, index expects {dimension}",
            )
        try:
            vector = [float(value) for value in item]
        except (TypeError, ValueError):
            return EmbeddingOutcome.failure(
                EmbeddingErrorKind.MALFORMED, f"Vector {position} contains non-numeric values"
            )
        if not all(math.isfinite(value) for value in vector):
            return EmbeddingOutcome.failure(
                EmbeddingErrorKind.MALFORMED, f"Vector {position} contains non-finite values"
            )
        vectors.append(vector)
    return EmbeddingOutcome.success(vectors)


class EmbeddingClient:
    """Turn texts into fixed-dimension vectors, one per text, in input order."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        dimension: int,
        batch_size: int = 100,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        max_input_chars: int = 8191 * 4,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        self.provider = provider
        self.dimension = dimension
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.max_input_chars = max_input_chars
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        provider: Optional[EmbeddingProvider] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "EmbeddingClient":
        return cls(
            provider or create_embedding_provider(config),
            dimension=config.embedding_dimension,
            batch_size=config.embedding_batch_size,
            max_attempts=config.embedding_max_attempts,
            retry_delay=config.embedding_retry_delay,
            max_input_chars=config.max_input_chars,
            sleep=sleep,
        )

    @property
    def model_name(self) -> str:
        return getattr(self.provider, "model_name", type(self.provider).__name__)

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            raise EmptyEmbeddingInput("embed() requires at least one text")

        prepared = [self._prepare(text) for text in texts]
        vectors: List[List[float]] = []
        for offset in range(0, len(prepared), self.batch_size):
            vectors.extend(self._embed_batch(prepared[offset : offset + self.batch_size]))
        return vectors

    def embed_query(self, text: str) -> List[float]:
        return self.embed([text])[0]

    def _prepare(self, text: str) -> str:
        if len(text) > self.max_input_chars:
            LOGGER.warning("Truncated text from %s to %s characters", len(text), self.max_input_chars)
            return text[: self.max_input_chars]
        return text

    def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        attempts = 0
        errors: List[str] = []

        def _attempt() -> EmbeddingOutcome:
            nonlocal attempts
            attempts += 1
            outcome = self._request(batch)
            if outcome.error_kind is EmbeddingErrorKind.TRANSIENT:
                errors.append(outcome.detail)
                raise _TransientEmbeddingFailure(outcome.detail)
            return outcome

        started = time.perf_counter()
        try:
            outcome = call_with_retry(
                _attempt,
                max_attempts=self.max_attempts,
                delay=self.retry_delay,
                retry_on=(_TransientEmbeddingFailure,),
                sleep=self._sleep,
                description="Embedding request",
            )
        except _TransientEmbeddingFailure as error:
            self._emit(len(batch), started, attempts, errors)
            raise EmbeddingServiceUnavailable(
                f"Failed to generate embeddings after {attempts} attempts: {error}", cause=error
            ) from error

        if not outcome.ok:
            errors.append(outcome.detail)
            self._emit(len(batch), started, attempts, errors)
            raise EmbeddingServiceUnavailable(
                f"Embedding service returned an unusable response ({outcome.error_kind.value}): {outcome.detail}"
            )

        self._emit(len(batch), started, attempts, errors)
        return outcome.vectors or []

    def _request(self, batch: List[str]) -> EmbeddingOutcome:
        try:
            raw = self.provider.embed_batch(batch)
        except Exception as error:
            return EmbeddingOutcome.failure(
                EmbeddingErrorKind.TRANSIENT, f"{type(error).__name__}: {error}"
            )
        return validate_embeddings(raw, expected_count=len(batch), dimension=self.dimension)

    def _emit(self, count: int, started: float, attempts: int, errors: List[str]) -> None:
        emit_embeddings_event(
            model=self.model_name,
            count=count,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            attempts=attempts,
            errors=errors,
        )


__all__ = [
    "EmbeddingClient",
    "EmbeddingErrorKind",
    "EmbeddingOutcome",
    "validate_embeddings",
]
