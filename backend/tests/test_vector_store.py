"""Tests for vector store variants."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock, patch

import pytest
from qdrant_client.http.exceptions import ResponseHandlingException

from news_rag.core.config import Settings
from news_rag.core.errors import IndexUnavailableError
from news_rag.retrieval.embeddings import EmbeddingProvider
from news_rag.retrieval.vector_store import (
    InMemoryVectorStore,
    QdrantVectorStore,
    cosine,
    create_vector_store,
)
from news_rag.utils.ids import coerce_point_id


def test_self_similarity_is_top_match() -> None:
    store = InMemoryVectorStore()
    store.upsert(7, [0.3, 0.4, 0.5], {"text": "seven"})
    store.upsert(8, [0.9, -0.1, 0.0], {"text": "eight"})
    results = store.search([0.3, 0.4, 0.5], 1)
    assert results[0].id == 7
    assert results[0].score == pytest.approx(1.0)
    assert results[0].text == "seven"


@pytest.mark.parametrize("k", [1, 3, 5, 10])
def test_top_k_bound_and_ordering(k: int) -> None:
    store = InMemoryVectorStore()
    vectors = [[1.0, 0.0], [0.8, 0.2], [0.5, 0.5], [0.1, 0.9], [0.0, 1.0]]
    for idx, vector in enumerate(vectors):
        store.upsert(idx, vector, {"text": str(idx)})
    results = store.search([1.0, 0.1], k)
    assert len(results) == min(len(vectors), k)
    scores = [match.score for match in results]
    assert scores == sorted(scores, reverse=True)


def test_empty_store_returns_empty_list() -> None:
    assert InMemoryVectorStore().search([1.0, 0.0], 5) == []


def test_ties_keep_insertion_order() -> None:
    store = InMemoryVectorStore()
    for point_id in (30, 10, 20):
        store.upsert(point_id, [1.0, 0.0], {"text": str(point_id)})
    assert [match.id for match in store.search([1.0, 0.0], 3)] == [30, 10, 20]


def test_upsert_replaces_existing_id() -> None:
    store = InMemoryVectorStore()
    store.upsert(1, [1.0, 0.0], {"text": "old"})
    store.upsert(1, [0.0, 1.0], {"text": "new"})
    assert store.count() == 1
    assert store.search([0.0, 1.0], 1)[0].text == "new"


def test_vectors_harmonized_to_collection_dimension() -> None:
    store = InMemoryVectorStore(dimension=3)
    store.upsert(1, [1.0, 2.0, 3.0, 4.0], {"text": "long"})
    store.upsert(2, [1.0], {"text": "short"})
    assert store.search([1.0, 2.0, 3.0], 2)[0].id == 1
    assert store.dimension == 3


def test_payload_metadata_separated_from_text() -> None:
    store = InMemoryVectorStore()
    store.upsert(1, [1.0, 0.0], {"text": "body", "title": "Headline", "url": "https://x"})
    match = store.search([1.0, 0.0], 1)[0]
    assert match.metadata == {"title": "Headline", "url": "https://x"}
    assert match.title == "Headline"


def test_reset_removes_everything() -> None:
    store = InMemoryVectorStore()
    store.upsert(1, [1.0, 0.0], {"text": "x"})
    store.reset()
    assert store.count() == 0


def test_cosine_handles_zero_vector() -> None:
    assert cosine([0.0, 0.0], [1.0, 0.0]) == 0.0


def test_point_id_coercion() -> None:
    uid = str(uuid.uuid4())
    assert coerce_point_id(42) == 42
    assert coerce_point_id(0) == 0
    assert coerce_point_id(uid) == uid
    for raw in (-1, "article-12", "12", True, None, 1.5):
        synthesized = coerce_point_id(raw)
        assert isinstance(synthesized, int) and not isinstance(synthesized, bool)
        assert synthesized >= 0


def test_non_conforming_ids_get_distinct_entries() -> None:
    store = InMemoryVectorStore()
    first = store.upsert("article-1", [1.0, 0.0], {"text": "a"})
    assert isinstance(first, int)
    assert store.count() == 1


def _qdrant_client(existing_dim: int | None) -> MagicMock:
    client = MagicMock()
    client.collection_exists.return_value = existing_dim is not None
    client.get_collection.return_value.config.params.vectors.size = existing_dim
    return client


def test_qdrant_creates_missing_collection() -> None:
    client = _qdrant_client(None)
    QdrantVectorStore(client, "news", dimension=8).initialize()
    client.create_collection.assert_called_once()
    assert client.create_collection.call_args.kwargs["vectors_config"].size == 8


def test_qdrant_recreates_collection_on_dimension_mismatch() -> None:
    client = _qdrant_client(768)
    QdrantVectorStore(client, "news", dimension=1024).initialize()
    client.delete_collection.assert_called_once_with("news")
    assert client.create_collection.call_args.kwargs["vectors_config"].size == 1024


def test_qdrant_keeps_matching_collection() -> None:
    client = _qdrant_client(1024)
    QdrantVectorStore(client, "news", dimension=1024).initialize()
    client.delete_collection.assert_not_called()
    client.create_collection.assert_not_called()


def test_qdrant_initialize_runs_once() -> None:
    client = _qdrant_client(None)
    store = QdrantVectorStore(client, "news", dimension=8)
    store.initialize()
    client.collection_exists.side_effect = ResponseHandlingException(ConnectionError("refused"))
    store.initialize()
    client.collection_exists.assert_called_once_with("news")
    client.create_collection.assert_called_once()


def test_qdrant_search_maps_payload() -> None:
    client = _qdrant_client(2)
    point = MagicMock(id=5, score=0.75, payload={"text": "body", "title": "T"})
    client.query_points.return_value.points = [point]
    store = QdrantVectorStore(client, "news", dimension=2)
    matches = store.search([1.0, 0.0, 9.0], 3)
    assert matches[0].text == "body"
    assert matches[0].metadata == {"title": "T"}
    assert client.query_points.call_args.kwargs["query"] == [1.0, 0.0]
    assert client.query_points.call_args.kwargs["limit"] == 3


def test_qdrant_unreachable_raises_index_unavailable() -> None:
    client = MagicMock()
    client.collection_exists.side_effect = ResponseHandlingException(ConnectionError("refused"))
    with pytest.raises(IndexUnavailableError):
        QdrantVectorStore(client, "news", dimension=4).initialize()


def test_factory_downgrades_to_memory_when_qdrant_unreachable() -> None:
    settings = Settings(qdrant_url="http://localhost:6333", embedding_dim=16)
    embedder = EmbeddingProvider(api_key=None, dimension=16)
    with patch("news_rag.retrieval.vector_store.QdrantClient") as client_cls:
        client_cls.return_value.collection_exists.side_effect = ResponseHandlingException(ConnectionError("refused"))
        store = create_vector_store(settings, embedder)
    assert isinstance(store, InMemoryVectorStore)
    assert store.dimension == 16


def test_factory_probes_dimension_for_qdrant() -> None:
    settings = Settings(qdrant_url="http://localhost:6333")
    embedder = EmbeddingProvider(api_key=None, fallback_dim=32)
    with patch("news_rag.retrieval.vector_store.QdrantClient") as client_cls:
        client_cls.return_value.collection_exists.return_value = False
        store = create_vector_store(settings, embedder)
    assert isinstance(store, QdrantVectorStore)
    assert store.dimension == 32
    assert embedder.dimension == 32


def test_factory_uses_memory_when_not_configured() -> None:
    store = create_vector_store(Settings(), EmbeddingProvider(api_key=None))
    assert store.backend == "memory"
