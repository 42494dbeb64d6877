"""High level ingestion pipeline entry point: extraction followed by chunking."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from pdfquiz.config import ExtractionOptions, PipelineConfig

from .chunking import ChunkingConfig, TextChunker
from .extractors import PDFExtractor
from .language import LanguageDetector
from .models import Chunk, ExtractionResult
from .ocr import OCREngine

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PreparedDocument:
    """Chunks ready for embedding together with the extraction report."""

    file_name: str
    extraction: ExtractionResult
    chunks: List[Chunk]
    language: Optional[str]


class IngestPipeline:
    """Pipeline orchestrating document extraction, normalisation and chunking."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        ocr_engine: Optional[OCREngine] = None,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.ocr_engine = ocr_engine
        self.language_detector = language_detector or LanguageDetector()
        self.chunker = TextChunker(
            ChunkingConfig(chunk_chars=self.config.chunk_size, overlap_chars=self.config.chunk_overlap)
        )

    def prepare(
        self,
        file_bytes: bytes,
        file_name: str,
        options: Optional[ExtractionOptions] = None,
        *,
        page_selection: Optional[Iterable[int]] = None,
    ) -> PreparedDocument:
        """Extract and chunk an uploaded PDF."""

        extractor = PDFExtractor(
            options or self.config.extraction,
            ocr_engine=self.ocr_engine,
            max_workers=self.config.ocr_max_workers,
            zoom=self.config.ocr_zoom,
            language_detector=self.language_detector,
        )
        LOGGER.info("Processing file %s (%s bytes)", file_name, len(file_bytes))
        extraction = extractor.extract(file_bytes, page_selection=page_selection)

        chunks = list(self.chunker.chunk_pages(extraction.pages))
        language = self.language_detector.detect(" ".join(chunk.text for chunk in chunks[:5]))
        LOGGER.info("Generated %s chunks for file %s (language=%s)", len(chunks), file_name, language)
        return PreparedDocument(file_name=file_name, extraction=extraction, chunks=chunks, language=language)
