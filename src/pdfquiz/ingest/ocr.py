"""Page rasterisation and Tesseract OCR."""
from __future__ import annotations

import io
import logging
from typing import Dict, Iterable, Protocol

from pdfquiz.errors import OCRUnavailable

try:  # pragma: no cover - optional heavy dependency
    import fitz  # PyMuPDF
except Exception:  # pragma: no cover - gracefully handle missing dependency
    fitz = None  # type: ignore

try:  # pragma: no cover - optional heavy dependency
    import pytesseract  # type: ignore
    from PIL import Image
except Exception:  # pragma: no cover - gracefully handle missing dependency
    pytesseract = None  # type: ignore
    Image = None  # type: ignore

LOGGER = logging.getLogger(__name__)


class OCREngine(Protocol):
    """Contract of an OCR backend: PNG bytes in, recognised text out."""

    def recognize(self, image: bytes, language: str) -> str:
        ...


class TesseractOCREngine:
    """OCR engine backed by the ``tesseract`` binary through pytesseract."""

    def __init__(self, *, config: str = "") -> None:
        self.config = config

    def check_available(self) -> None:
        if pytesseract is None or Image is None:
            raise OCRUnavailable("pytesseract/Pillow are not installed")
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as exc:  # pragma: no cover - depends on environment
            raise OCRUnavailable("tesseract binary is not installed") from exc
        LOGGER.debug("Using tesseract %s", version)

    def recognize(self, image: bytes, language: str) -> str:
        self.check_available()
        with Image.open(io.BytesIO(image)) as picture:
            try:
                return pytesseract.image_to_string(picture, lang=language, config=self.config)
            except pytesseract.TesseractNotFoundError as exc:  # pragma: no cover - depends on environment
                raise OCRUnavailable("tesseract binary is not installed") from exc
            except pytesseract.TesseractError as exc:  # pragma: no cover - depends on traineddata
                raise OCRUnavailable(f"tesseract failed for language {language!r}: {exc}") from exc


def count_pages(data: bytes) -> int:
    """Return the page count using PyMuPDF (used when the native reader fails)."""

    if fitz is None:
        raise OCRUnavailable("PyMuPDF is not installed; cannot rasterise PDF pages")
    with fitz.open(stream=data, filetype="pdf") as document:
        return int(document.page_count)


def render_pages(data: bytes, page_numbers: Iterable[int], *, zoom: float = 2.0) -> Dict[int, bytes]:
    """Render the requested 1-based pages to PNG images.

    Rendering happens sequentially because a PyMuPDF document must not be
    shared between threads; recognition of the rendered images may run in
    parallel.
    """

    if fitz is None:
        raise OCRUnavailable("PyMuPDF is not installed; cannot rasterise PDF pages")

    images: Dict[int, bytes] = {}
    matrix = fitz.Matrix(zoom, zoom)
    with fitz.open(stream=data, filetype="pdf") as document:
        for page_number in sorted(set(page_numbers)):
            if not 1 <= page_number <= document.page_count:
                LOGGER.warning("Page %s is out of range for OCR rendering", page_number)
                continue
            pixmap = document.load_page(page_number - 1).get_pixmap(matrix=matrix)
            images[page_number] = pixmap.tobytes("png")
    return images


__all__ = ["OCREngine", "TesseractOCREngine", "count_pages", "render_pages"]
