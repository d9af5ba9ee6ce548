"""Query-to-context retrieval."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from news_rag.models.entities import RetrievedMatch
from news_rag.retrieval.embeddings import EmbeddingProvider
from news_rag.retrieval.vector_store import VectorStore

logger = logging.getLogger(__name__)

NO_CORPUS_CONTEXT = "No specific news articles available."


@dataclass(slots=True)
class Retrieval:
    matches: list[RetrievedMatch] = field(default_factory=list)
    context: str = NO_CORPUS_CONTEXT
    has_corpus: bool = False


class Retriever:
    """Embeds a query and collects the top scoring passages as context."""

    def __init__(self, embedder: EmbeddingProvider, store: VectorStore, default_k: int = 5) -> None:
        self.embedder = embedder
        self.store = store
        self.default_k = default_k

    def retrieve(self, query_text: str, k: int | None = None) -> Retrieval:
        return self.search(self.embed_query(query_text), k)

    def embed_query(self, query_text: str) -> list[float] | None:
        """Embed the query, or return ``None`` when there is nothing to search."""
        if self.store.count() == 0:
            logger.info("Processing query with general knowledge (no documents)")
            return None
        return self.embedder.embed(query_text)

    def search(self, vector: list[float] | None, k: int | None = None) -> Retrieval:
        if vector is None:
            return Retrieval()
        matches = self.store.search(vector, self.default_k if k is None else k)
        context = "\n\n".join(match.text for match in matches)
        return Retrieval(matches=matches, context=context, has_corpus=True)


__all__ = ["Retriever", "Retrieval", "NO_CORPUS_CONTEXT"]
