from __future__ import annotations

from typing import List, Sequence

import pytest

from pdfquiz.embeddings import EmbeddingClient, EmbeddingErrorKind, validate_embeddings
from pdfquiz.errors import EmbeddingServiceUnavailable, EmptyEmbeddingInput
from pdfquiz.providers import HashEmbeddingProvider

from conftest import TEST_DIMENSION, FlakyProvider


class _RecordingProvider:
    model_name = "recording"

    def __init__(self, dimension: int = TEST_DIMENSION) -> None:
        self.batches: List[List[str]] = []
        self._delegate = HashEmbeddingProvider(dimension=dimension)

    def embed_batch(self, texts: Sequence[str]):
        self.batches.append(list(texts))
        return self._delegate.embed_batch(texts)


class _ArrayLike(list):
    def tolist(self):
        return [list(row) for row in self]


def _client(provider, sleep_recorder, **kwargs) -> EmbeddingClient:
    return EmbeddingClient(provider, dimension=TEST_DIMENSION, sleep=sleep_recorder, **kwargs)


def test_embed_returns_one_vector_per_text(sleep_recorder) -> None:
    provider = _RecordingProvider()
    vectors = _client(provider, sleep_recorder).embed(["alpha", "beta", "alpha"])

    assert len(vectors) == 3
    assert all(len(vector) == TEST_DIMENSION for vector in vectors)
    assert vectors[0] == vectors[2]
    assert vectors[0] != vectors[1]
    assert provider.batches == [["alpha", "beta", "alpha"]]
    assert sleep_recorder.calls == []


def test_empty_input_fails_without_calling_provider(sleep_recorder) -> None:
    provider = _RecordingProvider()

    with pytest.raises(EmptyEmbeddingInput):
        _client(provider, sleep_recorder).embed([])

    assert provider.batches == []


def test_texts_are_batched_in_order(sleep_recorder) -> None:
    provider = _RecordingProvider()
    texts = [f"chunk {index}" for index in range(250)]

    vectors = _client(provider, sleep_recorder, batch_size=100).embed(texts)

    assert [len(batch) for batch in provider.batches] == [100, 100, 50]
    assert vectors[137] == HashEmbeddingProvider(TEST_DIMENSION).embed_batch(["chunk 137"])[0]


def test_transient_failures_are_retried(sleep_recorder) -> None:
    provider = FlakyProvider(failures=2)

    vectors = _client(provider, sleep_recorder).embed(["alpha"])

    assert len(vectors) == 1
    assert provider.calls == 3
    assert sleep_recorder.calls == [1.0, 1.0]


def test_exhausted_retries_raise_service_unavailable(sleep_recorder) -> None:
    provider = FlakyProvider(failures=3)

    with pytest.raises(EmbeddingServiceUnavailable) as excinfo:
        _client(provider, sleep_recorder).embed(["alpha"])

    assert provider.calls == 3
    assert len(sleep_recorder.calls) == 2
    assert "after 3 attempts" in str(excinfo.value)
    assert excinfo.value.user_message.startswith("Could not process this document")


def test_dimension_mismatch_is_not_retried(sleep_recorder) -> None:
    provider = _RecordingProvider(dimension=TEST_DIMENSION + 1)

    with pytest.raises(EmbeddingServiceUnavailable, match="dimension_mismatch"):
        _client(provider, sleep_recorder).embed(["alpha"])

    assert len(provider.batches) == 1
    assert sleep_recorder.calls == []


def test_long_texts_are_truncated(sleep_recorder) -> None:
    provider = _RecordingProvider()

    _client(provider, sleep_recorder, max_input_chars=10).embed(["x" * 50])

    assert provider.batches == [["x" * 10]]


def test_validate_embeddings_accepts_array_like() -> None:
    outcome = validate_embeddings(_ArrayLike([[1, 2], [3, 4]]), expected_count=2, dimension=2)

    assert outcome.ok
    assert outcome.vectors == [[1.0, 2.0], [3.0, 4.0]]


@pytest.mark.parametrize(
    ("raw", "kind"),
    [
        ([], EmbeddingErrorKind.TRANSIENT),
        ([[1.0, 2.0]], EmbeddingErrorKind.MALFORMED),
        ([[1.0, 2.0], "oops"], EmbeddingErrorKind.MALFORMED),
        ([[1.0, 2.0], [1.0]], EmbeddingErrorKind.DIMENSION_MISMATCH),
        ([[1.0, 2.0], [1.0, "x"]], EmbeddingErrorKind.MALFORMED),
        ([[1.0, 2.0], [1.0, float("nan")]], EmbeddingErrorKind.MALFORMED),
    ],
)
def test_validate_embeddings_rejects_bad_shapes(raw, kind: EmbeddingErrorKind) -> None:
    outcome = validate_embeddings(raw, expected_count=2, dimension=2)

    assert not outcome.ok
    assert outcome.error_kind is kind
