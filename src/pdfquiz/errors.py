"""Exception types raised by the ingestion and retrieval pipeline."""
from __future__ import annotations

USER_FACING_INGEST_ERROR = "Could not process this document, it may be image-only or corrupted."


class PDFQuizError(RuntimeError):
    """Base class for pipeline errors."""


class IngestionError(PDFQuizError):
    """Fatal ingestion failure reported back to the upload caller."""

    user_message = USER_FACING_INGEST_ERROR

    def __init__(self, reason: str, *, cause: Exception | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.__cause__ = cause


class NoExtractableContent(IngestionError):
    """No page yielded usable text after every extraction fallback."""


class UnreadableDocument(IngestionError):
    """Both native extraction and the OCR-only retry failed."""


class EmbeddingServiceUnavailable(IngestionError):
    """The embedding service kept failing until every retry attempt was used."""


class EmptyEmbeddingInput(ValueError):
    """Raised when the embedding client is called with nothing to embed."""


class OCRUnavailable(PDFQuizError):
    """The OCR engine cannot run in this environment."""


class IndexVisibilityTimeout(PDFQuizError):
    """Upserted entries were not visible to queries within the allowed polling attempts.

    This is never raised by the indexer; an instance is attached to the
    :class:`~pdfquiz.indexer.IndexReceipt` and logged as a warning.
    """

    def __init__(self, namespace: str, attempts: int) -> None:
        super().__init__(
            f"Entries in namespace {namespace!r} not query-visible after {attempts} probe attempts"
        )
        self.namespace = namespace
        self.attempts = attempts


__all__ = [
    "USER_FACING_INGEST_ERROR",
    "PDFQuizError",
    "IngestionError",
    "NoExtractableContent",
    "UnreadableDocument",
    "EmbeddingServiceUnavailable",
    "EmptyEmbeddingInput",
    "OCRUnavailable",
    "IndexVisibilityTimeout",
]
