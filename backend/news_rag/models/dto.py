"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str
    session_id: str | None = Field(default=None, description="Existing session; a new one is issued when omitted")


class SourceItem(BaseModel):
    title: str
    url: str
    score: float


class ChatResponse(BaseModel):
    session_id: str
    response: str
    sources: list[SourceItem]
    timestamp: datetime


class MessageItem(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: str
    sources: list[SourceItem] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    session_id: str
    messages: list[MessageItem]
    count: int


class ClearResponse(BaseModel):
    session_id: str
    message: str


class DocumentRequest(BaseModel):
    id: int | str | None = Field(default=None, description="Non-negative integer or UUID; other ids are replaced")
    text: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentResponse(BaseModel):
    id: int | str
    dimension: int


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    k: int = Field(default=5, ge=1, le=50)


class MatchItem(BaseModel):
    id: int | str | None
    text: str
    score: float
    metadata: dict[str, Any]


class SearchResponse(BaseModel):
    matches: list[MatchItem]


class StatsResponse(BaseModel):
    total_documents: int
    vector_dimension: int
    backend: str


class SessionCounts(BaseModel):
    total_sessions: int
    total_messages: int


class SessionStatsResponse(BaseModel):
    sessions: SessionCounts
    embeddings: StatsResponse
    timestamp: str


__all__ = [
    "ChatRequest",
    "ChatResponse",
    "SourceItem",
    "MessageItem",
    "HistoryResponse",
    "ClearResponse",
    "DocumentRequest",
    "DocumentResponse",
    "SearchRequest",
    "SearchResponse",
    "MatchItem",
    "StatsResponse",
    "SessionCounts",
    "SessionStatsResponse",
]
