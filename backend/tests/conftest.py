"""Test fixtures for News RAG."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from news_rag.generation import Generator  # noqa: E402
from news_rag.history import ChatHistoryStore, MemoryKeyValueStore  # noqa: E402
from news_rag.pipeline import QueryPipeline  # noqa: E402
from news_rag.retrieval import EmbeddingProvider, InMemoryVectorStore  # noqa: E402


class FakeProvider:
    """Scripted generation provider.

    ``error`` is raised before the first fragment, or after ``fail_after``
    fragments when that is set.
    """

    def __init__(
        self,
        fragments: tuple[str, ...] = ("Hello", ", ", "world"),
        error: Exception | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.fragments = fragments
        self.error = error
        self.fail_after = fail_after
        self.prompts: list[str] = []
        self.consumed = 0
        self.stream_closed = False

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return "".join(self.fragments)

    def generate_stream(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        try:
            for index, fragment in enumerate(self.fragments):
                if self.error is not None and index == (self.fail_after or 0):
                    raise self.error
                self.consumed += 1
                yield fragment
            if self.error is not None and self.fail_after is not None and self.fail_after >= len(self.fragments):
                raise self.error
        finally:
            self.stream_closed = True


@pytest.fixture(autouse=True)
def reset_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    for key in list(os.environ):
        if key.startswith("NEWSRAG_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NEWSRAG_USE_MEMORY_STORAGE", "true")
    monkeypatch.setenv("NEWSRAG_LOG_JSON", "false")

    from news_rag.api import dependencies as deps
    from news_rag.core import config

    config.get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
    deps.get_app_settings.cache_clear()


@pytest.fixture
def embedder() -> EmbeddingProvider:
    return EmbeddingProvider(api_key=None, fallback_dim=256)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def pipeline(embedder: EmbeddingProvider, provider: FakeProvider, kv: MemoryKeyValueStore) -> QueryPipeline:
    return QueryPipeline(
        embedder=embedder,
        store=InMemoryVectorStore(),
        generator=Generator(provider),
        history=ChatHistoryStore(kv, ttl_seconds=3600),
        top_k=5,
    )


@pytest.fixture
def news_corpus(pipeline: QueryPipeline) -> QueryPipeline:
    articles = [
        (1, "A", "Central bank raises interest rates to fight persistent inflation in the economy"),
        (2, "B", "Astronomers discover a new exoplanet orbiting a distant red dwarf star"),
        (3, "C", "Local football club wins the championship after dramatic penalty shootout"),
    ]
    for point_id, title, text in articles:
        vector = pipeline.generate_embedding(text)
        pipeline.store_embedding(
            point_id,
            text,
            vector,
            {"title": title, "url": f"https://news.example/{title.lower()}", "source": "Example Wire"},
        )
    return pipeline
