"""Turn retrieval results into the context block placed in the system prompt."""
from __future__ import annotations

from typing import Iterable

from pdfquiz.retriever import SearchResult

MIN_CONTEXT_CHARS = 40


def format_result(result: SearchResult) -> str:
    return f"Page {result.page_number}: {result.text.strip()}"


def assemble_context(results: Iterable[SearchResult], min_chars: int = MIN_CONTEXT_CHARS) -> str:
    """Join results as ``Page n: text`` blocks, in the order received.

    Results with blank text are dropped. A block of ``min_chars`` characters
    or fewer is not worth grounding on, so an empty string is returned instead.
    """

    sections = [format_result(result) for result in results if result.text and result.text.strip()]
    context = "\n\n".join(sections)
    if len(context.strip()) <= min_chars:
        return ""
    return context


__all__ = ["MIN_CONTEXT_CHARS", "assemble_context", "format_result"]
