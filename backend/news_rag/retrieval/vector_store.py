"""Vector store abstraction with in-process and Qdrant-backed variants."""

from __future__ import annotations

import logging
import math
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Sequence

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, VectorParams

from news_rag.core.errors import IndexUnavailableError
from news_rag.models.entities import Chunk, RetrievedMatch
from news_rag.retrieval.embeddings import fit_dimension
from news_rag.utils.ids import PointId, coerce_point_id

if TYPE_CHECKING:
    from news_rag.core.config import Settings
    from news_rag.retrieval.embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)

DIMENSION_PROBE_TEXT = "dimension probe"


class VectorStore(ABC):
    """Common contract for both storage variants."""

    backend: str = "abstract"

    def __init__(self, dimension: int | None = None) -> None:
        self.dimension = dimension

    def initialize(self) -> None:
        """Prepare backing storage. Default is a no-op."""

    def close(self) -> None:
        """Release backing resources. Default is a no-op."""

    @abstractmethod
    def upsert(self, point_id: object, vector: Sequence[float], payload: dict[str, Any]) -> PointId:
        """Store one vector; returns the identifier actually used."""

    @abstractmethod
    def search(self, vector: Sequence[float], k: int = 5) -> list[RetrievedMatch]:
        """Return up to ``k`` matches ordered by descending cosine score."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored vectors."""

    @abstractmethod
    def reset(self) -> None:
        """Drop every stored vector."""

    def _harmonize(self, vector: Sequence[float]) -> list[float]:
        if self.dimension is None:
            self.dimension = len(vector)
        return fit_dimension(vector, self.dimension)


class InMemoryVectorStore(VectorStore):
    """Keyed in-process collection scanned with cosine similarity."""

    backend = "memory"

    def __init__(self, dimension: int | None = None) -> None:
        super().__init__(dimension)
        self._entries: dict[PointId, Chunk] = {}
        self._lock = threading.Lock()

    def upsert(self, point_id: object, vector: Sequence[float], payload: dict[str, Any]) -> PointId:
        pid = coerce_point_id(point_id)
        metadata = dict(payload)
        text = str(metadata.pop("text", ""))
        with self._lock:
            chunk = Chunk(id=pid, text=text, embedding=self._harmonize(vector), metadata=metadata)
            self._entries[pid] = chunk
        return pid

    def search(self, vector: Sequence[float], k: int = 5) -> list[RetrievedMatch]:
        with self._lock:
            entries = list(self._entries.values())
            dim = self.dimension
        if not entries or k <= 0:
            logger.debug("Memory storage search - no documents available yet")
            return []
        query = fit_dimension(vector, dim) if dim else list(vector)
        scored = [
            RetrievedMatch(id=chunk.id, text=chunk.text, score=cosine(query, chunk.embedding), metadata=dict(chunk.metadata))
            for chunk in entries
        ]
        # sort is stable, so equal scores keep insertion order
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:k]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


class QdrantVectorStore(VectorStore):
    """Delegates storage and search to a Qdrant collection using cosine distance."""

    backend = "qdrant"

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str,
        dimension: int | None = None,
    ) -> None:
        super().__init__(dimension)
        self.client = client
        self.collection_name = collection_name
        self._ready = False

    def initialize(self) -> None:
        """Create or reconcile the collection once; later calls are no-ops."""
        if self._ready:
            return
        if self.dimension is None:
            raise IndexUnavailableError("Collection dimension must be established before initialization")
        try:
            if self.client.collection_exists(self.collection_name):
                current = self._collection_dim()
                if current is not None and current != self.dimension:
                    self.client.delete_collection(self.collection_name)
                    self._create_collection()
                    logger.info(
                        "Recreated Qdrant collection '%s' with dimension %d (was %d)",
                        self.collection_name,
                        self.dimension,
                        current,
                    )
            else:
                self._create_collection()
                logger.info("Created Qdrant collection '%s'", self.collection_name)
        except (ResponseHandlingException, UnexpectedResponse, OSError) as exc:
            raise IndexUnavailableError(str(exc)) from exc
        self._ready = True

    def close(self) -> None:
        self.client.close()

    def upsert(self, point_id: object, vector: Sequence[float], payload: dict[str, Any]) -> PointId:
        pid = coerce_point_id(point_id)
        self.client.upsert(
            collection_name=self.collection_name,
            points=[PointStruct(id=pid, vector=self._harmonize(vector), payload=dict(payload))],
            wait=True,
        )
        return pid

    def search(self, vector: Sequence[float], k: int = 5) -> list[RetrievedMatch]:
        if k <= 0:
            return []
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=self._harmonize(vector),
            limit=k,
            with_payload=True,
        )
        matches: list[RetrievedMatch] = []
        for point in response.points:
            metadata = dict(point.payload or {})
            text = str(metadata.pop("text", ""))
            matches.append(RetrievedMatch(id=point.id, text=text, score=float(point.score), metadata=metadata))
        return matches

    def count(self) -> int:
        return self.client.count(collection_name=self.collection_name, exact=True).count

    def reset(self) -> None:
        self.client.delete_collection(self.collection_name)
        self._create_collection()

    def _create_collection(self) -> None:
        self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
        )

    def _collection_dim(self) -> int | None:
        info = self.client.get_collection(self.collection_name)
        vectors = info.config.params.vectors
        size = getattr(vectors, "size", None)
        return int(size) if size else None


def create_vector_store(settings: "Settings", embedder: "EmbeddingProvider") -> VectorStore:
    """Pick the storage variant once; an unreachable index degrades to memory for good."""
    if not settings.use_qdrant:
        logger.info("Using in-memory vector storage")
        return InMemoryVectorStore(dimension=embedder.dimension)

    client = QdrantClient(url=settings.qdrant_url, api_key=settings.qdrant_api_key)
    try:
        if embedder.dimension is None:
            embedder.dimension = len(embedder.embed(DIMENSION_PROBE_TEXT))
        store = QdrantVectorStore(client, settings.qdrant_collection, dimension=embedder.dimension)
        store.initialize()
    except IndexUnavailableError as exc:
        logger.warning("Qdrant not available, falling back to memory storage: %s", exc)
        client.close()
        return InMemoryVectorStore(dimension=embedder.dimension)
    logger.info("Using Qdrant vector storage", extra={"ctx_collection": settings.qdrant_collection})
    return store


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = na = nb = 0.0
    for x, y in zip(a, b):
        dot += x * y
        na += x * x
        nb += y * y
    denom = math.sqrt(na) * math.sqrt(nb)
    return dot / denom if denom else 0.0


__all__ = [
    "VectorStore",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "create_vector_store",
    "cosine",
]
