"""Internal dataclasses passed between pipeline components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from news_rag.utils.ids import PointId
from news_rag.utils.time import utc_now_iso

DEFAULT_TITLE = "News Article"

Role = Literal["user", "assistant"]


@dataclass(slots=True, frozen=True)
class Chunk:
    id: PointId
    text: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RetrievedMatch:
    id: PointId | None
    text: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return self.metadata.get("title") or DEFAULT_TITLE

    @property
    def url(self) -> str:
        return self.metadata.get("url") or ""

    def to_source(self) -> "SourceRef":
        return SourceRef(title=self.title, url=self.url, score=self.score)


@dataclass(slots=True)
class SourceRef:
    title: str
    url: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "score": self.score}


@dataclass(slots=True)
class ChatMessage:
    role: Role
    content: str
    timestamp: str = field(default_factory=utc_now_iso)
    sources: list[SourceRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
            "sources": [source.to_dict() for source in self.sources],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        return cls(
            role=data.get("role") or data.get("type") or "assistant",
            content=data.get("content", ""),
            timestamp=data.get("timestamp") or utc_now_iso(),
            sources=[
                SourceRef(title=item.get("title", DEFAULT_TITLE), url=item.get("url", ""), score=float(item.get("score", 0.0)))
                for item in data.get("sources") or []
            ],
        )


@dataclass(slots=True)
class QueryResult:
    response: str
    sources: list[SourceRef]
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass(slots=True)
class StreamEvent:
    """One item of a streamed answer: a ``fragment`` or the final ``complete``."""

    kind: Literal["fragment", "complete"]
    text: str = ""
    result: QueryResult | None = None


__all__ = [
    "DEFAULT_TITLE",
    "Chunk",
    "RetrievedMatch",
    "SourceRef",
    "ChatMessage",
    "QueryResult",
    "StreamEvent",
]
