"""Write embedded chunks to the vector store and wait until they are queryable."""
from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pdfquiz.errors import IndexVisibilityTimeout
from pdfquiz.ingest.models import Chunk
from pdfquiz.retry import poll_until
from pdfquiz.telemetry import emit_vectorstore_event
from pdfquiz.vectorstore import IndexEntry, QueryMatch, VectorStore, probe_vector

LOGGER = logging.getLogger(__name__)

ENTRY_ID_PREFIX = "vec-"

_batch_lock = threading.Lock()
_last_batch_ns = 0


@dataclass(slots=True)
class IndexReceipt:
    namespace: str
    entry_ids: List[str] = field(default_factory=list)
    visibility_confirmed: bool = False
    poll_attempts: int = 0
    visibility_error: Optional[IndexVisibilityTimeout] = None


def new_entry_id() -> str:
    return f"{ENTRY_ID_PREFIX}{uuid.uuid4().hex}"


def new_batch_id() -> str:
    """Return an upload batch id; ids sort in creation order."""

    global _last_batch_ns
    with _batch_lock:
        _last_batch_ns = max(time.time_ns(), _last_batch_ns + 1)
        stamp = _last_batch_ns
    return f"{stamp:020d}-{uuid.uuid4().hex[:8]}"


def build_entries(
    chunks: Sequence[Chunk],
    vectors: Sequence[Sequence[float]],
    extra_metadata: Optional[Mapping[str, Any]] = None,
    *,
    batch_id: Optional[str] = None,
) -> List[IndexEntry]:
    """Pair each chunk with its vector; the two sequences must line up exactly.

    Every entry of one call shares ``batch_id`` so a page re-uploaded into the
    same namespace can be read back one upload at a time.
    """

    if len(chunks) != len(vectors):
        raise ValueError(f"Got {len(chunks)} chunks but {len(vectors)} vectors")

    batch_id = batch_id or new_batch_id()
    entries: List[IndexEntry] = []
    for chunk, vector in zip(chunks, vectors):
        metadata: Dict[str, Any] = dict(extra_metadata or {})
        metadata.update(
            {
                "text": chunk.text,
                "page_number": chunk.page_number,
                "chunk_index": chunk.position,
                "batch_id": batch_id,
            }
        )
        entries.append(IndexEntry(id=new_entry_id(), vector=list(vector), metadata=metadata))
    return entries


class Indexer:
    """Upsert entries in one batch, then poll until the namespace answers queries."""

    def __init__(
        self,
        store: VectorStore,
        *,
        dimension: int,
        poll_interval: float = 3.0,
        poll_attempts: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.dimension = dimension
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self._sleep = sleep

    def index(
        self,
        namespace: str,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
        extra_metadata: Optional[Mapping[str, Any]] = None,
    ) -> IndexReceipt:
        entries = build_entries(chunks, vectors, extra_metadata)
        receipt = IndexReceipt(namespace=namespace, entry_ids=[entry.id for entry in entries])
        if not entries:
            return receipt

        backend = getattr(self.store, "backend_name", type(self.store).__name__)
        try:
            self.store.upsert(namespace, entries)
        except Exception as error:
            emit_vectorstore_event(
                "vectorstore.upsert", namespace=namespace, count=len(entries), backend=backend, error=error
            )
            raise
        emit_vectorstore_event("vectorstore.upsert", namespace=namespace, count=len(entries), backend=backend)

        probe = probe_vector(self.dimension)
        outcome = poll_until(
            lambda: self.store.query(namespace, probe, 1),
            _has_matches,
            max_attempts=self.poll_attempts,
            delay=self.poll_interval,
            sleep=self._sleep,
            description=f"Visibility probe for {namespace}",
        )
        receipt.poll_attempts = outcome.attempts
        receipt.visibility_confirmed = outcome.satisfied

        if outcome.satisfied:
            LOGGER.info("Namespace %s visible after %s probe(s)", namespace, outcome.attempts)
        else:
            receipt.visibility_error = IndexVisibilityTimeout(namespace, outcome.attempts)
            LOGGER.warning(
                "%s; continuing without confirmation (last probe error: %s)",
                receipt.visibility_error,
                outcome.last_error,
            )
        emit_vectorstore_event(
            "vectorstore.visibility",
            namespace=namespace,
            count=len(entries),
            backend=backend,
            confirmed=outcome.satisfied,
            attempts=outcome.attempts,
        )
        return receipt


def _has_matches(matches: List[QueryMatch]) -> bool:
    return bool(matches)


__all__ = ["ENTRY_ID_PREFIX", "IndexReceipt", "Indexer", "build_entries", "new_entry_id"]
