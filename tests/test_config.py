import sys
import types

import pytest

from pdfquiz.config import ExtractionOptions, PipelineConfig, namespace_for
from pdfquiz.embeddings import EmbeddingClient
from pdfquiz.providers import HashEmbeddingProvider, create_embedding_provider


def test_defaults_match_documented_values() -> None:
    config = PipelineConfig()

    assert config.extraction == ExtractionOptions(
        min_text_length=50, ocr_language="eng", enable_ocr=True, skip_image_only_pages=True
    )
    assert (config.chunk_size, config.chunk_overlap) == (1000, 200)
    assert config.embedding_dimension == 1536
    assert (config.embedding_max_attempts, config.embedding_retry_delay) == (3, 1.0)
    assert (config.index_poll_attempts, config.index_poll_interval) == (10, 3.0)
    assert config.page_scan_limit == 1000


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MIN_TEXT_LENGTH", "80")
    monkeypatch.setenv("OCR_LANG", "deu")
    monkeypatch.setenv("ENABLE_OCR", "false")
    monkeypatch.setenv("CHUNK_SIZE", "1500")
    monkeypatch.setenv("CHUNK_OVERLAP", "300")
    monkeypatch.setenv("EMBEDDING_PROVIDER", "HASH")
    monkeypatch.setenv("INDEX_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("NAMESPACE_PREFIX", "conv-")

    config = PipelineConfig.from_env()

    assert config.extraction.min_text_length == 80
    assert config.extraction.ocr_language == "deu"
    assert config.extraction.enable_ocr is False
    assert (config.chunk_size, config.chunk_overlap) == (1500, 300)
    assert config.embedding_provider == "hash"
    assert config.index_poll_interval == 0.5
    assert namespace_for("1", config) == "conv-1"


def test_from_env_ignores_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHUNK_SIZE", "large")
    monkeypatch.setenv("ENABLE_OCR", "maybe")

    config = PipelineConfig.from_env()

    assert config.chunk_size == 1000
    assert config.extraction.enable_ocr is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"chunk_size": 100, "chunk_overlap": 100},
        {"embedding_dimension": 0},
        {"index_poll_attempts": 0},
        {"ocr_max_workers": 0},
    ],
)
def test_invalid_config_is_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        PipelineConfig(**kwargs)


def test_namespace_for_conversation_and_shared_uploads() -> None:
    assert namespace_for("abc") == "chat-abc"
    assert namespace_for(None) == "pdf-uploads"
    assert namespace_for("  ") == "pdf-uploads"


def test_embedding_client_from_config() -> None:
    config = PipelineConfig(embedding_provider="hash", embedding_dimension=8)

    client = EmbeddingClient.from_config(config)

    assert isinstance(client.provider, HashEmbeddingProvider)
    assert len(client.embed_query("hello")) == 8


def test_unknown_embedding_provider() -> None:
    with pytest.raises(ValueError):
        create_embedding_provider(PipelineConfig(embedding_provider="word2vec"))


class _FakeSentenceTransformer:
    loaded: list = []

    def __init__(self, model_name: str, device=None) -> None:
        self.loaded.append(model_name)

    def get_sentence_embedding_dimension(self) -> int:
        return 384

    def encode(self, texts, **kwargs):
        return _Rows([[0.5] * 384 for _ in texts])


class _Rows(list):
    def tolist(self):
        return [list(row) for row in self]


@pytest.fixture()
def fake_sentence_transformers(monkeypatch: pytest.MonkeyPatch):
    module = types.ModuleType("sentence_transformers")
    module.SentenceTransformer = _FakeSentenceTransformer
    monkeypatch.setitem(sys.modules, "sentence_transformers", module)
    _FakeSentenceTransformer.loaded = []
    return _FakeSentenceTransformer


def test_sentence_transformers_provider_uses_its_own_default_model(
    monkeypatch: pytest.MonkeyPatch, fake_sentence_transformers
) -> None:
    monkeypatch.setenv("EMBEDDING_PROVIDER", "sentence-transformers")
    monkeypatch.setenv("EMBEDDING_DIMENSION", "384")

    client = EmbeddingClient.from_config(PipelineConfig.from_env())
    vectors = client.embed(["hello world"])

    assert fake_sentence_transformers.loaded == ["sentence-transformers/all-MiniLM-L6-v2"]
    assert len(vectors) == 1 and len(vectors[0]) == 384


def test_sentence_transformers_dimension_mismatch_is_rejected(
    monkeypatch: pytest.MonkeyPatch, fake_sentence_transformers
) -> None:
    monkeypatch.setenv("EMBEDDING_PROVIDER", "sentence-transformers")

    with pytest.raises(ValueError, match="produces 384-dimensional vectors"):
        create_embedding_provider(PipelineConfig.from_env())
