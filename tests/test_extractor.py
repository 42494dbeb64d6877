from __future__ import annotations

import pytest

from pdfquiz.config import ExtractionOptions
from pdfquiz.errors import IngestionError, NoExtractableContent, OCRUnavailable, UnreadableDocument
from pdfquiz.ingest import extractors as extractors_module
from pdfquiz.ingest.extractors import PDFExtractor
from pdfquiz.ingest.models import ExtractionMethod

from conftest import PAGE_TEXTS, FakeOCREngine

OCR_TEXT = (
    "Scanned worksheet: label the parts of the cell, including the nucleus, "
    "mitochondria and the cell membrane."
)


class _UnavailableEngine:
    def __init__(self) -> None:
        self.checked = 0

    def check_available(self) -> None:
        self.checked += 1
        raise OCRUnavailable("tesseract binary is not installed")

    def recognize(self, image: bytes, language: str) -> str:  # pragma: no cover - never reached
        raise AssertionError("recognize must not run when the engine is unavailable")


def test_native_pages_skip_ocr(pdf_factory, fake_ocr) -> None:
    data = pdf_factory([PAGE_TEXTS["biology"], PAGE_TEXTS["history"], PAGE_TEXTS["physics"]])

    result = PDFExtractor(ocr_engine=fake_ocr).extract(data)

    assert result.page_numbers == [1, 2, 3]
    assert all(page.method is ExtractionMethod.NATIVE for page in result.pages)
    assert "Photosynthesis" in result.pages[0].text
    assert result.skipped_pages == []
    assert fake_ocr.calls == 0


def test_short_page_is_replaced_by_ocr_text(pdf_factory) -> None:
    engine = FakeOCREngine(OCR_TEXT)
    data = pdf_factory([PAGE_TEXTS["biology"], "Figure 2"])

    result = PDFExtractor(ocr_engine=engine).extract(data)

    assert result.page_numbers == [1, 2]
    assert result.pages[1].method is ExtractionMethod.OCR
    assert result.pages[1].text == OCR_TEXT
    assert result.ocr_pages == [2]
    assert engine.calls == 1


def test_short_page_keeps_native_text_when_ocr_is_no_better(pdf_factory) -> None:
    engine = FakeOCREngine("blurry")
    data = pdf_factory([PAGE_TEXTS["biology"], "Figure 2"])

    result = PDFExtractor(ocr_engine=engine).extract(data)

    assert result.pages[1].method is ExtractionMethod.NATIVE
    assert result.pages[1].text == "Figure 2"
    assert result.ocr_pages == []


def test_blank_page_is_skipped_by_default(pdf_factory, fake_ocr) -> None:
    data = pdf_factory([PAGE_TEXTS["biology"], None, PAGE_TEXTS["physics"]])

    result = PDFExtractor(ocr_engine=fake_ocr).extract(data)

    assert result.page_numbers == [1, 3]
    assert result.skipped_pages == [2]
    assert fake_ocr.calls == 0


def test_blank_page_is_ocr_candidate_when_not_skipping(pdf_factory) -> None:
    engine = FakeOCREngine(OCR_TEXT)
    options = ExtractionOptions(skip_image_only_pages=False)
    data = pdf_factory([PAGE_TEXTS["biology"], None])

    result = PDFExtractor(options, ocr_engine=engine).extract(data)

    assert result.page_numbers == [1, 2]
    assert result.pages[1].method is ExtractionMethod.OCR
    assert engine.calls == 1


def test_ocr_disabled_keeps_short_native_text(pdf_factory, fake_ocr) -> None:
    options = ExtractionOptions(enable_ocr=False, skip_image_only_pages=False)
    data = pdf_factory(["Figure 2", None, PAGE_TEXTS["history"]])

    result = PDFExtractor(options, ocr_engine=fake_ocr).extract(data)

    assert result.page_numbers == [1, 3]
    assert result.pages[0].text == "Figure 2"
    assert result.skipped_pages == [2]
    assert fake_ocr.calls == 0


def test_unavailable_ocr_falls_back_to_native_text(pdf_factory) -> None:
    engine = _UnavailableEngine()
    data = pdf_factory([PAGE_TEXTS["biology"], "Figure 2"])

    result = PDFExtractor(ocr_engine=engine).extract(data)

    assert engine.checked == 1
    assert result.ocr_available is False
    assert result.page_numbers == [1, 2]
    assert result.pages[1].text == "Figure 2"


def test_image_only_document_without_ocr_has_no_content(pdf_factory, fake_ocr) -> None:
    options = ExtractionOptions(enable_ocr=False)
    data = pdf_factory([None, None])

    with pytest.raises(NoExtractableContent) as excinfo:
        PDFExtractor(options, ocr_engine=fake_ocr).extract(data)

    assert isinstance(excinfo.value, IngestionError)
    assert excinfo.value.user_message.startswith("Could not process this document")


def test_unreadable_bytes_fail_after_ocr_retry(fake_ocr) -> None:
    with pytest.raises(UnreadableDocument) as excinfo:
        PDFExtractor(ocr_engine=fake_ocr).extract(b"this is not a pdf")

    assert "OCR error" in excinfo.value.reason


def test_unreadable_bytes_without_ocr(fake_ocr) -> None:
    options = ExtractionOptions(enable_ocr=False)

    with pytest.raises(UnreadableDocument):
        PDFExtractor(options, ocr_engine=fake_ocr).extract(b"this is not a pdf")


def test_full_ocr_fallback_when_native_reader_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(extractors_module, "count_pages", lambda data: 2)
    monkeypatch.setattr(
        extractors_module,
        "render_pages",
        lambda data, numbers, zoom=2.0: {number: f"page-{number}".encode() for number in numbers},
    )
    engine = FakeOCREngine(by_image={b"page-1": OCR_TEXT, b"page-2": ""})

    result = PDFExtractor(ocr_engine=engine).extract(b"%PDF-1.4 truncated")

    assert result.full_ocr_fallback is True
    assert result.page_numbers == [1]
    assert result.skipped_pages == [2]
    assert result.pages[0].method is ExtractionMethod.OCR


def test_ocr_runs_per_page_and_results_are_sorted(pdf_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        extractors_module,
        "render_pages",
        lambda data, numbers, zoom=2.0: {number: f"page-{number}".encode() for number in numbers},
    )
    engine = FakeOCREngine(
        by_image={
            b"page-1": "First scanned page with enough recognised words to pass the threshold.",
            b"page-3": "Third scanned page with enough recognised words to pass the threshold.",
        }
    )
    data = pdf_factory(["p1", PAGE_TEXTS["history"], "p3"])

    result = PDFExtractor(ocr_engine=engine, max_workers=2).extract(data)

    assert result.page_numbers == [1, 2, 3]
    assert result.ocr_pages == [1, 3]
    assert result.pages[0].text.startswith("First scanned page")
    assert result.pages[2].text.startswith("Third scanned page")


def test_page_selection_limits_pages(pdf_factory, fake_ocr) -> None:
    data = pdf_factory([PAGE_TEXTS["biology"], PAGE_TEXTS["history"], PAGE_TEXTS["physics"]])

    result = PDFExtractor(ocr_engine=fake_ocr).extract(data, page_selection=[3, 1])

    assert result.page_numbers == [1, 3]


@pytest.mark.parametrize(
    ("requested", "expected"),
    [("german", "deu"), ("english", "eng"), ("eng+deu", "eng+deu"), ("auto", "eng")],
)
def test_ocr_language_option_is_resolved(pdf_factory, requested: str, expected: str) -> None:
    engine = FakeOCREngine(OCR_TEXT)
    options = ExtractionOptions(ocr_language=requested)
    data = pdf_factory([PAGE_TEXTS["biology"] + " " + PAGE_TEXTS["history"], "Figure 2"])

    PDFExtractor(options, ocr_engine=engine).extract(data)

    assert engine.languages == [expected]


def test_invalid_extraction_options() -> None:
    with pytest.raises(ValueError):
        ExtractionOptions(min_text_length=0)
