"""Hybrid PDF text extraction: native text first, per-page OCR where it falls short."""
from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pypdf import PdfReader

from pdfquiz.config import ExtractionOptions
from pdfquiz.errors import NoExtractableContent, OCRUnavailable, UnreadableDocument

from .language import LanguageDetector, resolve_ocr_language
from .models import ExtractionMethod, ExtractionResult, Page
from .normalization import clean_extracted_text
from .ocr import OCREngine, TesseractOCREngine, count_pages, render_pages

LOGGER = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = (
    "No text content could be extracted from the PDF. "
    "The document may contain only images or be unreadable."
)
_LANGUAGE_SAMPLE_CHARS = 2000


class PDFExtractor:
    """Extract per-page text from PDF documents with OCR fallback."""

    def __init__(
        self,
        options: Optional[ExtractionOptions] = None,
        *,
        ocr_engine: Optional[OCREngine] = None,
        max_workers: int = 2,
        zoom: float = 2.0,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.options = options or ExtractionOptions()
        self.ocr_engine = ocr_engine or TesseractOCREngine()
        self.max_workers = max(1, max_workers)
        self.zoom = zoom
        self.language_detector = language_detector or LanguageDetector()

    def extract(self, data: bytes, *, page_selection: Optional[Iterable[int]] = None) -> ExtractionResult:
        """Return the pages carrying usable text, sorted by page number.

        Raises :class:`NoExtractableContent` when no page survives and
        :class:`UnreadableDocument` when neither the native reader nor OCR can
        open the document.
        """

        selection = set(page_selection) if page_selection else None
        try:
            native_pages = self._extract_native(data)
        except Exception as error:
            LOGGER.warning("Native PDF text extraction failed: %s", error)
            result = self._extract_ocr_only(data, selection, error)
        else:
            result = self._classify(data, native_pages, selection)

        result.pages.sort(key=lambda page: page.page_number)
        result.skipped_pages.sort()
        result.ocr_pages.sort()
        if not result.pages:
            raise NoExtractableContent(NO_CONTENT_MESSAGE)

        LOGGER.info(
            "Extracted %s pages with text (%s via OCR), skipped %s: %s",
            len(result.pages),
            len(result.ocr_pages),
            len(result.skipped_pages),
            result.skipped_pages,
        )
        return result

    def _extract_native(self, data: bytes) -> Dict[int, str]:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            reader.decrypt("")

        pages: Dict[int, str] = {}
        for index, page in enumerate(reader.pages, start=1):
            try:
                text = page.extract_text() or ""
            except Exception as error:  # pragma: no cover - depends on pdf backend
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index, error)
                text = ""
            pages[index] = clean_extracted_text(text)
            LOGGER.debug("Page %s: extracted %s characters natively", index, len(pages[index]))
        return pages

    def _classify(
        self,
        data: bytes,
        native_pages: Dict[int, str],
        selection: Optional[Set[int]],
    ) -> ExtractionResult:
        options = self.options
        result = ExtractionResult(pages=[])
        candidates: List[int] = []

        for page_number, text in native_pages.items():
            if selection is not None and page_number not in selection:
                continue
            length = len(text)
            if length >= options.min_text_length:
                result.pages.append(Page(page_number, text, ExtractionMethod.NATIVE))
            elif length > 0:
                if options.enable_ocr:
                    LOGGER.debug("Page %s: only %s characters, queued for OCR", page_number, length)
                    candidates.append(page_number)
                else:
                    result.pages.append(Page(page_number, text, ExtractionMethod.NATIVE))
            elif options.skip_image_only_pages or not options.enable_ocr:
                LOGGER.debug("Page %s: skipped (image-only or empty)", page_number)
                result.skipped_pages.append(page_number)
            else:
                candidates.append(page_number)

        if not candidates:
            return result

        sample = " ".join(text for text in native_pages.values() if text)[:_LANGUAGE_SAMPLE_CHARS]
        language = resolve_ocr_language(options.ocr_language, sample, self.language_detector)
        try:
            ocr_texts = self._run_ocr(data, candidates, language)
        except OCRUnavailable as error:
            LOGGER.warning(
                "OCR unavailable (%s); keeping native text for pages %s", error, candidates
            )
            result.ocr_available = False
            ocr_texts = {}

        for page_number in candidates:
            ocr_text = ocr_texts.get(page_number, "")
            native_text = native_pages.get(page_number, "")
            if len(ocr_text) >= options.min_text_length:
                result.pages.append(Page(page_number, ocr_text, ExtractionMethod.OCR))
                result.ocr_pages.append(page_number)
            elif native_text:
                LOGGER.debug("Page %s: OCR did not improve, using native text", page_number)
                result.pages.append(Page(page_number, native_text, ExtractionMethod.NATIVE))
            else:
                result.skipped_pages.append(page_number)
        return result

    def _extract_ocr_only(
        self,
        data: bytes,
        selection: Optional[Set[int]],
        native_error: Exception,
    ) -> ExtractionResult:
        if not self.options.enable_ocr:
            raise UnreadableDocument(
                f"Native PDF text extraction failed: {native_error}", cause=native_error
            )

        LOGGER.info("Attempting full OCR fallback")
        try:
            page_count = count_pages(data)
            numbers = [n for n in range(1, page_count + 1) if selection is None or n in selection]
            language = resolve_ocr_language(self.options.ocr_language, "", self.language_detector)
            ocr_texts = self._run_ocr(data, numbers, language)
        except Exception as ocr_error:
            raise UnreadableDocument(
                "Both text extraction and OCR failed. "
                f"Text extraction error: {native_error}. OCR error: {ocr_error}",
                cause=ocr_error,
            ) from ocr_error

        result = ExtractionResult(pages=[], full_ocr_fallback=True)
        for page_number in numbers:
            text = ocr_texts.get(page_number, "")
            if text:
                result.pages.append(Page(page_number, text, ExtractionMethod.OCR))
                result.ocr_pages.append(page_number)
            else:
                result.skipped_pages.append(page_number)
        return result

    def _run_ocr(self, data: bytes, page_numbers: List[int], language: str) -> Dict[int, str]:
        check = getattr(self.ocr_engine, "check_available", None)
        if callable(check):
            check()

        try:
            images = render_pages(data, page_numbers, zoom=self.zoom)
        except OCRUnavailable:
            raise
        except Exception as error:
            raise OCRUnavailable(f"Failed to render pages for OCR: {error}") from error

        LOGGER.info("Running OCR (%s) on %s pages", language, len(images))
        return self._recognize_all(images, language)

    def _recognize_all(self, images: Dict[int, bytes], language: str) -> Dict[int, str]:
        if not images:
            return {}

        texts: Dict[int, str] = {}
        unavailable: Optional[OCRUnavailable] = None
        workers = min(self.max_workers, len(images))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ocr") as pool:
            futures = {
                pool.submit(self.ocr_engine.recognize, image, language): page_number
                for page_number, image in images.items()
            }
            for future in as_completed(futures):
                page_number, text, error = self._collect(futures[future], future)
                if isinstance(error, OCRUnavailable):
                    unavailable = error
                elif text is not None:
                    texts[page_number] = text

        if unavailable is not None and not texts:
            raise unavailable
        return texts

    @staticmethod
    def _collect(page_number: int, future) -> Tuple[int, Optional[str], Optional[Exception]]:
        try:
            raw = future.result()
        except OCRUnavailable as error:
            return page_number, None, error
        except Exception as error:
            LOGGER.warning("OCR failed for page %s: %s", page_number, error)
            return page_number, None, error
        text = clean_extracted_text(raw)
        LOGGER.debug("Page %s: OCR extracted %s characters", page_number, len(text))
        return page_number, text, None


__all__ = ["PDFExtractor", "NO_CONTENT_MESSAGE"]
