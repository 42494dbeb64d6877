"""Shared fixtures: generated PDFs, fake OCR, deterministic embeddings and no-op sleeps."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

import fitz
import pytest

from pdfquiz.config import PipelineConfig
from pdfquiz.embeddings import EmbeddingClient
from pdfquiz.ingest.pipeline import IngestPipeline
from pdfquiz.providers import HashEmbeddingProvider
from pdfquiz.services.rag import RAGService
from pdfquiz.vectorstore import InMemoryVectorStore

TEST_DIMENSION = 16

PAGE_TEXTS = {
    "biology": (
        "Photosynthesis converts light energy into chemical energy stored in glucose. "
        "Chlorophyll inside the chloroplasts absorbs mostly red and blue light. "
        "The light reactions produce ATP and NADPH, which power the Calvin cycle."
    ),
    "history": (
        "The printing press spread across Europe during the fifteenth century. "
        "Cheaper books made literacy more common and helped new ideas travel quickly. "
        "Historians often link the press to the Reformation and the scientific revolution."
    ),
    "physics": (
        "Newton's second law states that force equals mass times acceleration. "
        "A heavier object needs a larger force to reach the same acceleration. "
        "Friction and air resistance act against motion in everyday situations."
    ),
}


def build_pdf(pages: Sequence[Optional[str]]) -> bytes:
    """Build a PDF with one page per entry; ``None`` or ``""`` gives a blank page."""

    document = fitz.open()
    try:
        for text in pages:
            page = document.new_page()
            if text:
                overflow = page.insert_textbox(fitz.Rect(50, 50, 545, 792), text, fontsize=10)
                assert overflow >= 0, "test text does not fit on one page"
        return document.tobytes()
    finally:
        document.close()


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records the requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeOCREngine:
    """OCR engine returning canned text and recording the languages it was asked for."""

    def __init__(self, text: str = "", *, by_image: Optional[Dict[bytes, str]] = None) -> None:
        self.text = text
        self.by_image = by_image or {}
        self.languages: List[str] = []

    def recognize(self, image: bytes, language: str) -> str:
        self.languages.append(language)
        return self.by_image.get(image, self.text)

    @property
    def calls(self) -> int:
        return len(self.languages)


class FlakyProvider:
    """Embedding provider that raises for the first ``failures`` calls."""

    model_name = "flaky"

    def __init__(self, failures: int, dimension: int = TEST_DIMENSION) -> None:
        self.failures = failures
        self.calls = 0
        self._delegate = HashEmbeddingProvider(dimension=dimension)

    def embed_batch(self, texts):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("embedding service unreachable")
        return self._delegate.embed_batch(texts)


@pytest.fixture()
def pdf_factory() -> Callable[[Sequence[Optional[str]]], bytes]:
    return build_pdf


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def fake_ocr() -> FakeOCREngine:
    return FakeOCREngine()


@pytest.fixture()
def test_config() -> PipelineConfig:
    return PipelineConfig(
        embedding_provider="hash",
        embedding_dimension=TEST_DIMENSION,
        vector_store="memory",
        chunk_size=200,
        chunk_overlap=40,
    )


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def embedder(sleep_recorder: SleepRecorder) -> EmbeddingClient:
    return EmbeddingClient(
        HashEmbeddingProvider(dimension=TEST_DIMENSION),
        dimension=TEST_DIMENSION,
        sleep=sleep_recorder,
    )


@pytest.fixture()
def rag_service(
    test_config: PipelineConfig,
    memory_store: InMemoryVectorStore,
    fake_ocr: FakeOCREngine,
    sleep_recorder: SleepRecorder,
) -> RAGService:
    return RAGService(
        test_config,
        pipeline=IngestPipeline(test_config, ocr_engine=fake_ocr),
        store=memory_store,
        sleep=sleep_recorder,
    )
