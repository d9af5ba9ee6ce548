"""Tests for embedding utilities."""

from unittest.mock import MagicMock

import requests

from news_rag.retrieval.embeddings import EmbeddingProvider, fit_dimension, tokenize


def _session_returning(vector: list[float]) -> MagicMock:
    session = MagicMock()
    resp = MagicMock(ok=True, status_code=200)
    resp.json.return_value = {"data": [{"embedding": vector}]}
    session.post.return_value = resp
    return session


def test_fallback_is_deterministic_and_normalized() -> None:
    provider = EmbeddingProvider(api_key=None, fallback_dim=64)
    first = provider.embed("Markets rally as tech stocks surge")
    second = provider.embed("Markets rally as tech stocks surge")
    assert first == second
    assert len(first) == 64
    assert abs(sum(value * value for value in first) - 1.0) < 1e-6


def test_fallback_ignores_case_and_punctuation() -> None:
    provider = EmbeddingProvider(api_key=None, fallback_dim=32)
    assert provider.embed("Hello, World!") == provider.embed("hello world")
    assert tokenize("Hello, World! 2024") == ["hello", "world", "2024"]


def test_fallback_for_empty_text_is_zero_vector() -> None:
    provider = EmbeddingProvider(api_key=None, fallback_dim=8)
    assert provider.embed("!!!") == [0.0] * 8


def test_missing_key_never_calls_service() -> None:
    session = MagicMock()
    provider = EmbeddingProvider(api_key=None, fallback_dim=16, session=session)
    provider.embed("anything")
    session.post.assert_not_called()


def test_remote_call_sends_bearer_token_and_timeout() -> None:
    session = _session_returning([0.1, 0.2, 0.3])
    provider = EmbeddingProvider(api_key="secret", session=session, timeout=10.0)
    assert provider.embed("text") == [0.1, 0.2, 0.3]
    _, kwargs = session.post.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 10.0
    assert kwargs["json"]["input"] == ["text"]


def test_first_remote_call_establishes_dimension() -> None:
    provider = EmbeddingProvider(api_key="secret", session=_session_returning([1.0] * 5))
    assert provider.dimension is None
    provider.embed("text")
    assert provider.dimension == 5
    assert len(provider.embed("second call")) == 5


def test_remote_vector_truncated_to_dimension() -> None:
    provider = EmbeddingProvider(api_key="secret", dimension=3, session=_session_returning([1.0, 2.0, 3.0, 4.0, 5.0]))
    assert provider.embed("text") == [1.0, 2.0, 3.0]


def test_remote_vector_padded_to_dimension() -> None:
    provider = EmbeddingProvider(api_key="secret", dimension=5, session=_session_returning([1.0, 2.0]))
    assert provider.embed("text") == [1.0, 2.0, 0.0, 0.0, 0.0]


def test_timeout_falls_back_to_local_embedding() -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout("slow")
    provider = EmbeddingProvider(api_key="secret", dimension=16, session=session)
    assert provider.embed("news") == provider.fallback_embed("news")


def test_non_2xx_falls_back_to_local_embedding() -> None:
    session = MagicMock()
    session.post.return_value = MagicMock(ok=False, status_code=401)
    provider = EmbeddingProvider(api_key="expired", fallback_dim=16, session=session)
    assert provider.embed("news") == provider.fallback_embed("news")
    assert provider.dimension is None


def test_malformed_payload_falls_back_to_local_embedding() -> None:
    session = MagicMock()
    resp = MagicMock(ok=True, status_code=200)
    resp.json.return_value = {"data": []}
    session.post.return_value = resp
    provider = EmbeddingProvider(api_key="secret", fallback_dim=16, session=session)
    assert provider.embed("news") == provider.fallback_embed("news")


def test_fit_dimension() -> None:
    assert fit_dimension([1.0, 2.0, 3.0], 2) == [1.0, 2.0]
    assert fit_dimension([1.0], 3) == [1.0, 0.0, 0.0]
    assert fit_dimension([1.0, 2.0], 2) == [1.0, 2.0]
