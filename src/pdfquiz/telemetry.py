"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Optional

LOGGER = logging.getLogger("pdfquiz.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    namespace: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if namespace:
        event["namespace"] = namespace
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_ingest_event(
    step: str,
    *,
    file_name: str,
    namespace: str,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    language: str | None = None,
    pages: int | None = None,
    ocr_pages: int | None = None,
    skipped_pages: list[int] | None = None,
    chunks: int | None = None,
    visibility_confirmed: bool | None = None,
) -> None:
    details = {
        "file": file_name,
        "size_bytes": size_bytes,
        "language": language,
        "pages": pages,
        "ocr_pages": ocr_pages,
        "skipped_pages": skipped_pages,
        "chunks": chunks,
        "visibility_confirmed": visibility_confirmed,
    }
    log_event(LOGGER, step, namespace=namespace, duration_ms=duration_ms, details=details)


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, attempts: int = 1, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "attempts": attempts,
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    level = "warning" if errors else "info"
    log_event(LOGGER, "embeddings.compute", level=level, duration_ms=duration_ms, details=details)


def emit_vectorstore_event(
    step: str,
    *,
    namespace: str,
    count: int,
    backend: str,
    error: BaseException | None = None,
    **details: Any,
) -> None:
    payload = {"count": count, "backend": backend, **details}
    level = "error" if error else "info"
    log_event(LOGGER, step, level=level, namespace=namespace, details=payload, exc=error)


def emit_retriever_event(
    *,
    query: str,
    namespace: str,
    strategy: str,
    top_k: int,
    results: list[dict[str, Any]],
    attempts: int,
    duration_ms: float,
) -> None:
    details = {
        "query_preview": query[:120],
        "strategy": strategy,
        "top_k": top_k,
        "attempts": attempts,
        "results": results,
    }
    log_event(LOGGER, "retriever.search", namespace=namespace, duration_ms=duration_ms, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    namespace: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        namespace=namespace,
        details=details,
        exc=error,
    )



__all__ = [
    "emit_embeddings_event",
    "emit_exception",
    "emit_ingest_event",
    "emit_retriever_event",
    "emit_vectorstore_event",
    "log_event",
]
