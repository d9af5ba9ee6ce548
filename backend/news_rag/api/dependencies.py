"""Shared FastAPI dependencies and service wiring."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from news_rag.core.config import Settings, get_settings
from news_rag.generation import GeminiProvider, Generator
from news_rag.history import ChatHistoryStore, create_kv_client
from news_rag.pipeline import QueryPipeline
from news_rag.retrieval import EmbeddingProvider, create_vector_store


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def build_pipeline(settings: Settings) -> QueryPipeline:
    """Construct every collaborator explicitly from ``settings``."""
    embedder = EmbeddingProvider(
        api_key=settings.jina_api_key,
        endpoint=settings.embedding_endpoint,
        model=settings.embedding_model,
        dimension=settings.embedding_dim,
        fallback_dim=settings.fallback_embedding_dim,
        timeout=settings.embedding_timeout,
    )
    store = create_vector_store(settings, embedder)
    generator = Generator(GeminiProvider(api_key=settings.gemini_api_key, model=settings.generation_model))
    history = ChatHistoryStore(create_kv_client(settings), ttl_seconds=settings.session_ttl)
    return QueryPipeline(
        embedder=embedder,
        store=store,
        generator=generator,
        history=history,
        top_k=settings.top_k,
        history_limit=settings.history_limit,
    )


def get_pipeline(request: Request) -> QueryPipeline:
    return request.app.state.pipeline


__all__ = ["get_app_settings", "build_pipeline", "get_pipeline"]
