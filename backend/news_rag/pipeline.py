"""Query pipeline orchestration.

A query is ``received`` and its user turn recorded, then it moves through
``embedding -> retrieving -> generating -> (streaming)* -> complete``. A
degradable generation failure takes the ``degraded`` branch (templated
fallback) and still completes; any other error fails the query and is raised
to the caller. Each completed query appends exactly one assistant message to
the session transcript before the result is returned or the ``complete``
event is emitted.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable, Iterator, Sequence

from news_rag.core.errors import EmptyQueryError
from news_rag.core.logging import get_logger
from news_rag.core.metrics import INDEX_SIZE, QUERY_COUNT, QUERY_LATENCY
from news_rag.generation.generator import Generator
from news_rag.history.store import ChatHistoryStore
from news_rag.models.entities import ChatMessage, QueryResult, RetrievedMatch, SourceRef, StreamEvent
from news_rag.retrieval.embeddings import EmbeddingProvider
from news_rag.retrieval.retriever import Retriever
from news_rag.retrieval.vector_store import VectorStore
from news_rag.utils.ids import PointId
from news_rag.utils.time import utc_now_iso

logger = get_logger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    STREAMING = "streaming"
    DEGRADED = "degraded-fallback"
    COMPLETE = "complete"
    FAILED = "failed"


class QueryPipeline:
    """Retriever + Generator + ChatHistoryStore behind one caller-facing surface."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: VectorStore,
        generator: Generator,
        history: ChatHistoryStore,
        top_k: int = 5,
        history_limit: int = 50,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.retriever = Retriever(embedder, store, default_k=top_k)
        self.generator = generator
        self.history = history
        self.top_k = top_k
        self.history_limit = history_limit

    # lifecycle ---------------------------------------------------------

    def initialize(self) -> None:
        self.store.initialize()
        INDEX_SIZE.set(self.get_stats()["total_documents"])
        logger.info("RAG pipeline initialized", extra={"ctx_backend": self.store.backend})

    def close(self) -> None:
        self.store.close()
        self.history.close()
        self.embedder.close()
        close = getattr(self.generator.provider, "close", None)
        if close is not None:
            close()

    # queries -----------------------------------------------------------

    def process_query(self, text: str, session_id: str) -> QueryResult:
        query = _validate(text)
        started = time.perf_counter()
        stage = Stage.RECEIVED
        try:
            self._record_user_turn(session_id, query)
            stage = Stage.EMBEDDING
            vector = self.retriever.embed_query(query)
            stage = Stage.RETRIEVING
            retrieval = self.retriever.search(vector, self.top_k)
            stage = Stage.GENERATING
            answer = self.generator.answer(query, retrieval)
            if answer.degraded:
                stage = Stage.DEGRADED
            result = QueryResult(response=answer.text, sources=_sources(retrieval.matches), degraded=answer.degraded)
            self._record_assistant_turn(session_id, result)
        except Exception:
            logger.exception("Failed to process query", extra={"ctx_session_id": session_id, "ctx_stage": stage.value})
            QUERY_COUNT.labels(mode="sync", outcome=Stage.FAILED.value).inc()
            raise
        QUERY_COUNT.labels(mode="sync", outcome=_outcome(result)).inc()
        QUERY_LATENCY.labels(mode="sync").observe(time.perf_counter() - started)
        return result

    def stream_query(self, text: str, session_id: str) -> Iterator[StreamEvent]:
        """Yield ``fragment`` events in generation order, then one ``complete`` event.

        Validation happens eagerly. Closing the iterator before ``complete``
        stops upstream consumption and leaves no assistant turn in history.
        """
        query = _validate(text)
        return self._stream(query, session_id)

    def process_query_streaming(
        self,
        text: str,
        session_id: str,
        on_fragment: Callable[[str], None],
        on_complete: Callable[[dict[str, Any]], None],
    ) -> None:
        events = self.stream_query(text, session_id)
        try:
            for event in events:
                if event.kind == "fragment":
                    on_fragment(event.text)
                elif event.result is not None:
                    on_complete(event.result.to_dict())
        finally:
            events.close()

    def _stream(self, query: str, session_id: str) -> Iterator[StreamEvent]:
        started = time.perf_counter()
        stage = Stage.RECEIVED
        stream = None
        try:
            self._record_user_turn(session_id, query)
            stage = Stage.EMBEDDING
            vector = self.retriever.embed_query(query)
            stage = Stage.RETRIEVING
            retrieval = self.retriever.search(vector, self.top_k)
            stage = Stage.GENERATING
            stream = self.generator.answer_stream(query, retrieval)
            for fragment in stream:
                stage = Stage.DEGRADED if stream.degraded else Stage.STREAMING
                yield StreamEvent(kind="fragment", text=fragment)
            result = QueryResult(response=stream.text, sources=_sources(retrieval.matches), degraded=stream.degraded)
            self._record_assistant_turn(session_id, result)
        except GeneratorExit:
            logger.info("Stream cancelled by consumer", extra={"ctx_session_id": session_id, "ctx_stage": stage.value})
            QUERY_COUNT.labels(mode="stream", outcome="cancelled").inc()
            raise
        except Exception:
            logger.exception("Failed to process streaming query", extra={"ctx_session_id": session_id, "ctx_stage": stage.value})
            QUERY_COUNT.labels(mode="stream", outcome=Stage.FAILED.value).inc()
            raise
        finally:
            if stream is not None:
                stream.close()
        QUERY_COUNT.labels(mode="stream", outcome=_outcome(result)).inc()
        QUERY_LATENCY.labels(mode="stream").observe(time.perf_counter() - started)
        yield StreamEvent(kind="complete", text=result.response, result=result)

    # corpus ------------------------------------------------------------

    def generate_embedding(self, text: str) -> list[float]:
        return self.embedder.embed(text)

    def store_embedding(
        self,
        point_id: object,
        text: str,
        vector: Sequence[float],
        metadata: dict[str, Any] | None = None,
    ) -> PointId:
        payload = {**(metadata or {}), "text": text}
        try:
            pid = self.store.upsert(point_id, vector, payload)
        except Exception:
            logger.exception("Failed to store embedding")
            raise
        INDEX_SIZE.set(self.store.count())
        return pid

    def search_similar(self, vector: Sequence[float], k: int = 5) -> list[RetrievedMatch]:
        return self.store.search(vector, k)

    def get_stats(self) -> dict[str, Any]:
        try:
            total = self.store.count()
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to get embedding stats: %s", exc)
            total = 0
        return {
            "total_documents": total,
            "vector_dimension": self.store.dimension or self.embedder.target_dim,
            "backend": self.store.backend,
        }

    def get_session_stats(self) -> dict[str, Any]:
        """Session and message totals alongside the corpus statistics."""
        return {
            "sessions": self.history.stats(),
            "embeddings": self.get_stats(),
            "timestamp": utc_now_iso(),
        }

    # history -----------------------------------------------------------

    def get_history(self, session_id: str, limit: int | None = None) -> list[ChatMessage]:
        messages = self.history.read(session_id, limit or self.history_limit)
        self.history.touch(session_id)
        return messages

    def clear_history(self, session_id: str) -> None:
        self.history.clear(session_id)
        self.history.touch(session_id)

    def _record_user_turn(self, session_id: str, query: str) -> None:
        self.history.append(session_id, ChatMessage(role="user", content=query))
        self.history.touch(session_id)

    def _record_assistant_turn(self, session_id: str, result: QueryResult) -> None:
        self.history.append(
            session_id,
            ChatMessage(role="assistant", content=result.response, sources=list(result.sources)),
        )


def _validate(text: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise EmptyQueryError("Message is required")
    return text.strip()


def _sources(matches: Sequence[RetrievedMatch]) -> list[SourceRef]:
    return [match.to_source() for match in matches]


def _outcome(result: QueryResult) -> str:
    return Stage.DEGRADED.value if result.degraded else Stage.COMPLETE.value


__all__ = ["QueryPipeline", "Stage"]
