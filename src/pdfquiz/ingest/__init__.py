"""Document ingestion: PDF extraction, OCR fallback and chunking."""
from __future__ import annotations

from .chunking import ChunkingConfig, TextChunker
from .extractors import PDFExtractor
from .models import Chunk, ExtractionMethod, ExtractionResult, Page
from .pipeline import IngestPipeline, PreparedDocument

__all__ = [
    "Chunk",
    "ChunkingConfig",
    "ExtractionMethod",
    "ExtractionResult",
    "IngestPipeline",
    "Page",
    "PDFExtractor",
    "PreparedDocument",
    "TextChunker",
]
