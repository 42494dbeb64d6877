from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from pdfquiz.config import ExtractionOptions, PipelineConfig, namespace_for
from pdfquiz.context import assemble_context
from pdfquiz.embeddings import EmbeddingClient
from pdfquiz.errors import EmbeddingServiceUnavailable, IngestionError, NoExtractableContent, UnreadableDocument
from pdfquiz.indexer import Indexer
from pdfquiz.ingest.normalization import normalize_text
from pdfquiz.ingest.pipeline import IngestPipeline, PreparedDocument
from pdfquiz.logging_config import AUDIT_LOGGER_NAME
from pdfquiz.prompt_builder import build_system_prompt
from pdfquiz.retriever import PageNotAvailable, RetrievalResult, Retriever
from pdfquiz.telemetry import emit_exception, emit_ingest_event, emit_vectorstore_event
from pdfquiz.vectorstore import VectorStore, VectorStoreUnavailableError, create_vector_store

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

MAX_SELECTED_PAGES = 10
SAMPLE_TEXT_CHARS = 2000


@dataclass(slots=True)
class IngestResult:
    """Structured result returned from :meth:`RAGService.ingest`."""

    namespace: str
    file_name: str
    chunk_count: int
    pages_indexed: List[int]
    skipped_pages: List[int] = field(default_factory=list)
    ocr_pages: List[int] = field(default_factory=list)
    language: Optional[str] = None
    visibility_confirmed: bool = False
    sample_text: str = ""
    duration_seconds: float = 0.0


@dataclass(slots=True)
class PromptContext:
    """Context block and the system prompt built from it."""

    context: str
    grounded: bool
    system_prompt: str


def validate_page_selection(pages: Optional[Iterable[int]]) -> Optional[List[int]]:
    """Deduplicate and check a page selection: 1-based, at most ``MAX_SELECTED_PAGES`` pages."""

    if pages is None:
        return None
    selection = sorted(set(int(page) for page in pages))
    if not selection:
        raise ValueError("Select at least one page")
    if selection[0] < 1:
        raise ValueError("Page numbers start at 1")
    if len(selection) > MAX_SELECTED_PAGES:
        raise ValueError(f"At most {MAX_SELECTED_PAGES} pages can be selected, got {len(selection)}")
    return selection


class RAGService:
    """Ingest PDFs into per-conversation namespaces and build grounded context from them."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        pipeline: IngestPipeline | None = None,
        embedder: EmbeddingClient | None = None,
        store: VectorStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or PipelineConfig()
        self.pipeline = pipeline or IngestPipeline(self.config)
        self.embedder = embedder or EmbeddingClient.from_config(self.config, sleep=sleep)
        self.store = store or create_vector_store(self.config)
        self.indexer = Indexer(
            self.store,
            dimension=self.config.embedding_dimension,
            poll_interval=self.config.index_poll_interval,
            poll_attempts=self.config.index_poll_attempts,
            sleep=sleep,
        )
        self.retriever = Retriever(
            self.embedder,
            self.store,
            page_scan_limit=self.config.page_scan_limit,
            retry_delay=self.config.retrieval_retry_delay,
            sleep=sleep,
        )

    def namespace(self, conversation_id: Optional[str]) -> str:
        return namespace_for(conversation_id, self.config)

    def ingest(
        self,
        document_bytes: bytes,
        conversation_id: Optional[str],
        file_name: str,
        options: Optional[ExtractionOptions] = None,
        *,
        page_selection: Optional[Iterable[int]] = None,
        on_ready: Optional[Callable[[IngestResult], None]] = None,
    ) -> IngestResult:
        """Extract, chunk, embed and index one PDF.

        Raises :class:`IngestionError` subclasses when nothing can be indexed and
        :class:`VectorStoreUnavailableError` when the upsert itself fails. A
        namespace that never became query-visible is reported on the result,
        not raised. ``on_ready`` is called with the result once indexing is done.
        """

        selection = validate_page_selection(page_selection)
        namespace = self.namespace(conversation_id)
        started = time.perf_counter()
        emit_ingest_event(
            "ingest.file.start", file_name=file_name, namespace=namespace, size_bytes=len(document_bytes)
        )

        prepared = self._prepare(document_bytes, file_name, options, selection, namespace)
        texts = [chunk.text for chunk in prepared.chunks]

        try:
            vectors = self.embedder.embed(texts)
        except EmbeddingServiceUnavailable as error:
            emit_exception(
                module=f"{__name__}.embeddings",
                error=error,
                namespace=namespace,
                suggestion="Check the embedding provider credentials and availability",
            )
            raise

        try:
            receipt = self.indexer.index(
                namespace,
                prepared.chunks,
                vectors,
                {"chat_id": conversation_id, "file_name": file_name, "language": prepared.language},
            )
        except VectorStoreUnavailableError as error:
            emit_exception(module=f"{__name__}.vectorstore", error=error, namespace=namespace)
            raise

        extraction = prepared.extraction
        result = IngestResult(
            namespace=namespace,
            file_name=file_name,
            chunk_count=len(prepared.chunks),
            pages_indexed=extraction.page_numbers,
            skipped_pages=list(extraction.skipped_pages),
            ocr_pages=list(extraction.ocr_pages),
            language=prepared.language,
            visibility_confirmed=receipt.visibility_confirmed,
            sample_text=self._sample_text(prepared),
            duration_seconds=time.perf_counter() - started,
        )
        emit_ingest_event(
            "ingest.file.complete",
            file_name=file_name,
            namespace=namespace,
            size_bytes=len(document_bytes),
            duration_ms=result.duration_seconds * 1000.0,
            language=result.language,
            pages=len(result.pages_indexed),
            ocr_pages=len(result.ocr_pages),
            skipped_pages=result.skipped_pages,
            chunks=result.chunk_count,
            visibility_confirmed=result.visibility_confirmed,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "namespace": namespace,
                "file_name": file_name,
                "chunk_count": result.chunk_count,
                "pages": result.pages_indexed,
                "visibility_confirmed": result.visibility_confirmed,
            }
        )

        if on_ready is not None:
            on_ready(result)
        return result

    def retrieve(self, query: str, conversation_id: Optional[str], top_k: int = 3) -> RetrievalResult:
        return self.retriever.retrieve(query, self.namespace(conversation_id), top_k)

    def get_context(self, query: str, conversation_id: Optional[str], top_k: int = 3) -> str:
        """Return the page-cited context block for ``query``, or ``""`` when nothing usable exists."""

        namespace = self.namespace(conversation_id)
        try:
            result = self.retriever.retrieve(query, namespace, top_k)
        except (EmbeddingServiceUnavailable, VectorStoreUnavailableError) as error:
            LOGGER.warning("Context retrieval failed for %s: %s", namespace, error)
            emit_exception(module=f"{__name__}.retriever", error=error, namespace=namespace)
            return ""

        if isinstance(result, PageNotAvailable):
            return result.message
        return assemble_context(result, self.config.min_context_chars)

    def build_prompt(
        self,
        query: str,
        conversation_id: Optional[str],
        *,
        top_k: int = 3,
        chat_history: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> PromptContext:
        context = self.get_context(query, conversation_id, top_k)
        return PromptContext(
            context=context,
            grounded=bool(context),
            system_prompt=build_system_prompt(context, chat_history),
        )

    def clear_context(self, conversation_id: str) -> None:
        """Drop every entry indexed for a conversation."""

        namespace = self.namespace(conversation_id)
        backend = getattr(self.store, "backend_name", type(self.store).__name__)
        try:
            self.store.delete_namespace(namespace)
        except VectorStoreUnavailableError as error:
            emit_vectorstore_event("vectorstore.delete", namespace=namespace, count=0, backend=backend, error=error)
            raise
        emit_vectorstore_event("vectorstore.delete", namespace=namespace, count=0, backend=backend)
        AUDIT_LOGGER.info({"event": "clear_context", "namespace": namespace})

    def _prepare(
        self,
        document_bytes: bytes,
        file_name: str,
        options: Optional[ExtractionOptions],
        selection: Optional[List[int]],
        namespace: str,
    ) -> PreparedDocument:
        try:
            prepared = self.pipeline.prepare(document_bytes, file_name, options, page_selection=selection)
        except IngestionError as error:
            emit_exception(module=f"{__name__}.pipeline", error=error, namespace=namespace)
            raise
        except Exception as error:
            LOGGER.exception("Ingest pipeline failed for %s", file_name)
            emit_exception(module=f"{__name__}.pipeline", error=error, namespace=namespace)
            raise UnreadableDocument(f"Failed to process {file_name}: {error}", cause=error) from error

        if not prepared.chunks:
            raise NoExtractableContent(f"No text chunks could be produced from {file_name}")
        return prepared

    @staticmethod
    def _sample_text(prepared: PreparedDocument) -> str:
        text = " ".join(normalize_text(page.text) for page in prepared.extraction.pages)
        return text[:SAMPLE_TEXT_CHARS]


@lru_cache()
def get_rag_service() -> RAGService:
    """FastAPI dependency returning the shared :class:`RAGService` instance."""

    return RAGService(PipelineConfig.from_env())


__all__ = [
    "IngestResult",
    "MAX_SELECTED_PAGES",
    "PromptContext",
    "RAGService",
    "get_rag_service",
    "validate_page_selection",
]
