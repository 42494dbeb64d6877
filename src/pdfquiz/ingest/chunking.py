"""Chunking utilities for breaking page text into embedding-friendly units."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from .models import Chunk, Page
from .normalization import normalize_text

_SENTENCE_END_RE = re.compile(r"[.!?](?=\s)")
LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ChunkingConfig:
    chunk_chars: int = 1000
    overlap_chars: int = 200

    def __post_init__(self) -> None:
        if self.chunk_chars < 1:
            raise ValueError("chunk_chars must be a positive integer")
        if not 0 <= self.overlap_chars < self.chunk_chars:
            raise ValueError("overlap_chars must be non-negative and smaller than chunk_chars")


class TextChunker:
    """Split page text into overlapping chunks respecting semantic boundaries."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk(self, page: Page) -> List[Chunk]:
        text = normalize_text(page.text)
        chunks = [
            Chunk(
                text=chunk_text,
                page_number=page.page_number,
                position=position,
                char_start=start,
                char_end=end,
            )
            for position, (chunk_text, start, end) in enumerate(self._chunk_text(text))
        ]
        LOGGER.debug("Page %s produced %s chunks", page.page_number, len(chunks))
        return chunks

    def chunk_pages(self, pages: Iterable[Page]) -> Iterator[Chunk]:
        for page in pages:
            yield from self.chunk(page)

    def _chunk_text(self, text: str) -> Iterator[Tuple[str, int, int]]:
        if not text:
            return
        chunk_chars = self.config.chunk_chars
        overlap_chars = self.config.overlap_chars
        text_length = len(text)
        start = 0
        while start < text_length:
            tentative_end = min(start + chunk_chars, text_length)
            chunk_end = self._find_semantic_break(text, start, tentative_end)
            if chunk_end <= start:
                chunk_end = tentative_end
            raw_chunk = text[start:chunk_end]
            if not raw_chunk.strip():
                start = chunk_end
                continue
            final_start = start + (len(raw_chunk) - len(raw_chunk.lstrip()))
            final_end = chunk_end - (len(raw_chunk) - len(raw_chunk.rstrip()))
            yield text[final_start:final_end], final_start, final_end
            if final_end >= text_length:
                break
            start = self._next_start(text, final_start, final_end, overlap_chars)

    def _find_semantic_break(self, text: str, start: int, tentative_end: int) -> int:
        if tentative_end >= len(text):
            return len(text)
        segment = text[start:tentative_end]
        min_break = self.config.chunk_chars // 4

        sentence_ends = [match.end() for match in _SENTENCE_END_RE.finditer(segment)]
        if sentence_ends and sentence_ends[-1] >= min_break:
            return start + sentence_ends[-1]

        word_break = segment.rfind(" ")
        if word_break != -1 and word_break >= min_break:
            return start + word_break
        return tentative_end

    @staticmethod
    def _next_start(text: str, chunk_start: int, chunk_end: int, overlap_chars: int) -> int:
        if overlap_chars <= 0:
            return chunk_end
        next_start = max(chunk_end - overlap_chars, chunk_start + 1)
        if text[next_start - 1] != " ":
            # Begin the overlap on a word boundary when one exists inside it.
            boundary = text.find(" ", next_start, chunk_end)
            if boundary != -1:
                next_start = boundary + 1
        return next_start


__all__ = ["ChunkingConfig", "TextChunker"]
