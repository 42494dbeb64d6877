"""Utilities for retrieving relevant chunks from the vector store."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from pdfquiz.embeddings import EmbeddingClient
from pdfquiz.retry import poll_until
from pdfquiz.telemetry import emit_retriever_event
from pdfquiz.vectorstore import QueryMatch, VectorStore, probe_vector

LOGGER = logging.getLogger(__name__)

PAGE_REFERENCE_RE = re.compile(r"\b(?:page|pg)\.?\s*(\d+)", re.IGNORECASE)
BROADEN_TRIGGERS = ("analyze", "analyse", "summarize", "summarise")
BROADENED_QUERY = "document content summary"


@dataclass(slots=True, frozen=True)
class SearchResult:
    text: str
    page_number: int
    score: float


@dataclass(slots=True, frozen=True)
class PageNotAvailable:
    """The query asked for a page that has no indexed content."""

    page_number: int

    @property
    def message(self) -> str:
        return (
            f"I don't have access to content from page {self.page_number}. The document may not "
            "have that many pages, or the page content may not be available."
        )


RetrievalResult = Union[List[SearchResult], PageNotAvailable]


def extract_page_reference(query: str) -> Optional[int]:
    """Return the page number a query explicitly asks about ("page 5", "pg. 7"), if any."""

    match = PAGE_REFERENCE_RE.search(query or "")
    return int(match.group(1)) if match else None


def _wants_broad_search(query: str) -> bool:
    lowered = query.lower()
    return any(trigger in lowered for trigger in BROADEN_TRIGGERS)


def _to_result(match: QueryMatch) -> SearchResult:
    return SearchResult(text=match.text, page_number=match.page_number or 0, score=float(match.score))


def _reading_order(match: QueryMatch):
    return (str(match.metadata.get("batch_id", "")), int(match.metadata.get("chunk_index", 0)))


class Retriever:
    """Answer a query either with one page's full text or with the top-K similar chunks."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        page_scan_limit: int = 1000,
        retry_delay: float = 2.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.page_scan_limit = page_scan_limit
        self.retry_delay = retry_delay
        self._sleep = sleep

    def retrieve(self, query: str, namespace: str, top_k: int = 3) -> RetrievalResult:
        if top_k <= 0 or not query or not query.strip():
            return []

        page_number = extract_page_reference(query)
        if page_number is not None:
            return self._retrieve_page(query, namespace, page_number)
        return self._retrieve_semantic(query, namespace, top_k)

    def _retrieve_page(self, query: str, namespace: str, page_number: int) -> RetrievalResult:
        started = time.perf_counter()
        matches = self.store.query(
            namespace,
            probe_vector(self.embedder.dimension),
            self.page_scan_limit,
            where={"page_number": page_number},
        )
        page_matches = [match for match in matches if match.page_number == page_number]
        page_matches.sort(key=_reading_order)

        result: RetrievalResult
        summary: List[dict] = []
        if not page_matches:
            LOGGER.info("No indexed content for page %s in %s", page_number, namespace)
            result = PageNotAvailable(page_number)
        else:
            text = " ".join(match.text for match in page_matches)
            result = [SearchResult(text=text, page_number=page_number, score=1.0)]
            summary = [{"page": page_number, "chunks": len(page_matches)}]

        emit_retriever_event(
            query=query,
            namespace=namespace,
            strategy="page",
            top_k=self.page_scan_limit,
            results=summary,
            attempts=1,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return result

    def _retrieve_semantic(self, query: str, namespace: str, top_k: int) -> List[SearchResult]:
        started = time.perf_counter()
        strategy = "semantic"

        vector = self.embedder.embed_query(query)
        outcome = poll_until(
            lambda: self.store.query(namespace, vector, top_k),
            bool,
            max_attempts=2,
            delay=self.retry_delay,
            sleep=self._sleep,
            description=f"Semantic search in {namespace}",
        )
        if not outcome.satisfied and outcome.last_error is not None:
            raise outcome.last_error
        attempts = outcome.attempts
        matches = outcome.value or []

        if not matches and _wants_broad_search(query):
            LOGGER.info("Falling back to broadened query for %s", namespace)
            attempts += 1
            strategy = "broadened"
            matches = self.store.query(namespace, self.embedder.embed_query(BROADENED_QUERY), top_k)

        results = [_to_result(match) for match in matches if match.text]
        results.sort(key=lambda result: (-result.score, result.page_number))

        emit_retriever_event(
            query=query,
            namespace=namespace,
            strategy=strategy,
            top_k=top_k,
            results=[{"page": result.page_number, "score": round(result.score, 4)} for result in results],
            attempts=attempts,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results


__all__ = [
    "BROADENED_QUERY",
    "PAGE_REFERENCE_RE",
    "PageNotAvailable",
    "RetrievalResult",
    "Retriever",
    "SearchResult",
    "extract_page_reference",
]
