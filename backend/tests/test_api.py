"""API integration tests."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider
from news_rag.app import app


@pytest.fixture
def client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seeded(client: TestClient) -> TestClient:
    articles = [
        ("A", "Central bank raises interest rates to fight inflation"),
        ("B", "Astronomers discover a new exoplanet orbiting a red dwarf"),
        ("C", "Football club wins the championship on penalties"),
    ]
    for idx, (title, text) in enumerate(articles, start=1):
        resp = client.post(
            "/documents",
            json={"id": idx, "text": text, "metadata": {"title": title, "url": f"https://news.example/{title}"}},
        )
        assert resp.status_code == 200
    return client


def _events(body: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "vector_backend": "memory"}


def test_empty_corpus_chat(client: TestClient) -> None:
    resp = client.post("/chat/message", json={"message": "Anything new?"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["sources"] == []
    assert payload["session_id"]
    assert payload["response"]


def test_chat_without_credentials_uses_fallback(seeded: TestClient) -> None:
    resp = seeded.post("/chat/message", json={"message": "exoplanet red dwarf", "session_id": "s1"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["sources"][0]["title"] == "B"
    assert "https://news.example/B" in payload["response"]

    history = seeded.get("/session/s1/history").json()
    assert history["count"] == 2
    assert [message["role"] for message in history["messages"]] == ["user", "assistant"]


def test_blank_message_rejected(client: TestClient) -> None:
    assert client.post("/chat/message", json={"message": "  "}).status_code == 400
    assert client.post("/chat/stream", json={"message": ""}).status_code == 400


def test_stream_events(seeded: TestClient) -> None:
    seeded.app.state.pipeline.generator.provider = FakeProvider(fragments=("An ", "exoplanet."))
    resp = seeded.post("/chat/stream", json={"message": "exoplanet", "session_id": "s2"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = _events(resp.text)
    assert events[0] == {"type": "session", "session_id": "s2"}
    chunks = [event["content"] for event in events if event["type"] == "chunk"]
    assert "".join(chunks) == "An exoplanet."
    assert events[-1]["type"] == "complete"
    assert events[-1]["sources"][0]["title"] == "B"


def test_stream_fatal_error_event(client: TestClient) -> None:
    from news_rag.core.errors import FailureKind, GenerationError

    client.app.state.pipeline.generator.provider = FakeProvider(error=GenerationError(FailureKind.FATAL, "bad"))
    events = _events(client.post("/chat/stream", json={"message": "hello", "session_id": "s3"}).text)
    assert events[-1] == {"type": "error", "error": "Failed to process message"}


def test_fatal_error_maps_to_bad_gateway(client: TestClient) -> None:
    from news_rag.core.errors import FailureKind, GenerationError

    client.app.state.pipeline.generator.provider = FakeProvider(error=GenerationError(FailureKind.FATAL, "bad"))
    assert client.post("/chat/message", json={"message": "hello"}).status_code == 502


def test_clear_history(client: TestClient) -> None:
    client.post("/chat/message", json={"message": "hello", "session_id": "s4"})
    resp = client.delete("/session/s4/clear")
    assert resp.status_code == 200
    assert client.get("/session/s4/history").json()["count"] == 0


def test_search_and_stats(seeded: TestClient) -> None:
    resp = seeded.post("/search", json={"query": "interest rates inflation", "k": 2})
    assert resp.status_code == 200
    matches = resp.json()["matches"]
    assert len(matches) == 2
    assert matches[0]["metadata"]["title"] == "A"

    stats = seeded.get("/stats").json()
    assert stats["total_documents"] == 3
    assert stats["backend"] == "memory"


def test_metrics_endpoint(client: TestClient) -> None:
    client.post("/chat/message", json={"message": "hello"})
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert b"newsrag_queries_total" in resp.content


def test_session_stats(seeded: TestClient) -> None:
    seeded.post("/chat/message", json={"message": "hello", "session_id": "s5"})
    seeded.post("/chat/message", json={"message": "again", "session_id": "s5"})
    seeded.post("/chat/message", json={"message": "hello", "session_id": "s6"})
    resp = seeded.get("/session/stats")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["sessions"] == {"total_sessions": 2, "total_messages": 6}
    assert payload["embeddings"]["total_documents"] == 3
    assert payload["embeddings"]["backend"] == "memory"
    assert payload["timestamp"]
