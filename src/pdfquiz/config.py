"""Configuration objects passed explicitly into the ingestion and retrieval entry points."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "pdf-uploads"
NAMESPACE_PREFIX = "chat-"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_EMBEDDING_DIMENSION = 1536

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _bool_from_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    flag = value.strip().lower()
    if flag in _TRUE_VALUES:
        return True
    if flag in _FALSE_VALUES:
        return False
    LOGGER.warning("Invalid boolean for %s: %s; using default %s", name, value, default)
    return default


def _str_from_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(slots=True, frozen=True)
class ExtractionOptions:
    """Per-upload extraction switches (``minTextLength``, ``ocrLanguage`` ...)."""

    min_text_length: int = 50
    ocr_language: str = "eng"
    enable_ocr: bool = True
    skip_image_only_pages: bool = True

    def __post_init__(self) -> None:
        if self.min_text_length < 1:
            raise ValueError("min_text_length must be a positive integer")
        if not self.ocr_language.strip():
            raise ValueError("ocr_language must not be empty")


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    extraction: ExtractionOptions = field(default_factory=ExtractionOptions)
    ocr_max_workers: int = 2
    ocr_zoom: float = 2.0

    chunk_size: int = 1000
    chunk_overlap: int = 200

    embedding_provider: str = "openai"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    embedding_batch_size: int = 100
    embedding_max_attempts: int = 3
    embedding_retry_delay: float = 1.0
    max_input_chars: int = 8191 * 4

    index_poll_interval: float = 3.0
    index_poll_attempts: int = 10

    retrieval_retry_delay: float = 2.5
    page_scan_limit: int = 1000
    min_context_chars: int = 40

    vector_store: str = "memory"
    chroma_persist_dir: str = "chroma_db"
    namespace_prefix: str = NAMESPACE_PREFIX
    default_namespace: str = DEFAULT_NAMESPACE

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be a positive integer")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be non-negative and smaller than chunk_size")
        if self.embedding_dimension < 1:
            raise ValueError("embedding_dimension must be a positive integer")
        if self.embedding_max_attempts < 1 or self.index_poll_attempts < 1:
            raise ValueError("attempt ceilings must be at least 1")
        if self.ocr_max_workers < 1:
            raise ValueError("ocr_max_workers must be at least 1")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a configuration from environment variables, falling back to defaults."""

        defaults = cls()
        extraction_defaults = defaults.extraction
        extraction = ExtractionOptions(
            min_text_length=_int_from_env("MIN_TEXT_LENGTH", extraction_defaults.min_text_length),
            ocr_language=_str_from_env("OCR_LANG", extraction_defaults.ocr_language),
            enable_ocr=_bool_from_env("ENABLE_OCR", extraction_defaults.enable_ocr),
            skip_image_only_pages=_bool_from_env(
                "SKIP_IMAGE_ONLY_PAGES", extraction_defaults.skip_image_only_pages
            ),
        )
        return cls(
            extraction=extraction,
            ocr_max_workers=_int_from_env("OCR_MAX_WORKERS", defaults.ocr_max_workers),
            chunk_size=_int_from_env("CHUNK_SIZE", defaults.chunk_size),
            chunk_overlap=_int_from_env("CHUNK_OVERLAP", defaults.chunk_overlap),
            embedding_provider=_str_from_env("EMBEDDING_PROVIDER", defaults.embedding_provider).lower(),
            embedding_model=_str_from_env("EMBEDDING_MODEL", defaults.embedding_model),
            embedding_dimension=_int_from_env("EMBEDDING_DIMENSION", defaults.embedding_dimension),
            embedding_batch_size=_int_from_env("EMBEDDING_BATCH_SIZE", defaults.embedding_batch_size),
            embedding_max_attempts=_int_from_env(
                "EMBEDDING_MAX_ATTEMPTS", defaults.embedding_max_attempts
            ),
            embedding_retry_delay=_float_from_env(
                "EMBEDDING_RETRY_DELAY", defaults.embedding_retry_delay
            ),
            index_poll_interval=_float_from_env("INDEX_POLL_INTERVAL", defaults.index_poll_interval),
            index_poll_attempts=_int_from_env("INDEX_POLL_ATTEMPTS", defaults.index_poll_attempts),
            retrieval_retry_delay=_float_from_env(
                "RETRIEVAL_RETRY_DELAY", defaults.retrieval_retry_delay
            ),
            vector_store=_str_from_env("VECTOR_STORE", defaults.vector_store).lower(),
            chroma_persist_dir=_str_from_env("CHROMA_PERSIST_DIR", defaults.chroma_persist_dir),
            namespace_prefix=_str_from_env("NAMESPACE_PREFIX", defaults.namespace_prefix),
            default_namespace=_str_from_env("DEFAULT_NAMESPACE", defaults.default_namespace),
        )


def namespace_for(chat_id: str | None, config: PipelineConfig | None = None) -> str:
    """Return the vector store namespace owning a conversation's entries."""

    config = config or PipelineConfig()
    if chat_id is None or not str(chat_id).strip():
        return config.default_namespace
    return f"{config.namespace_prefix}{str(chat_id).strip()}"


__all__ = [
    "DEFAULT_NAMESPACE",
    "NAMESPACE_PREFIX",
    "DEFAULT_EMBEDDING_MODEL",
    "DEFAULT_EMBEDDING_DIMENSION",
    "ExtractionOptions",
    "PipelineConfig",
    "namespace_for",
]
