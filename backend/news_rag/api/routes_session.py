"""Session history routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from news_rag.api.dependencies import get_pipeline
from news_rag.models.dto import ClearResponse, HistoryResponse, MessageItem, SessionStatsResponse
from news_rag.pipeline import QueryPipeline

router = APIRouter()


@router.get("/stats", response_model=SessionStatsResponse, summary="Session and corpus statistics")
def session_stats(pipeline: QueryPipeline = Depends(get_pipeline)) -> SessionStatsResponse:
    return SessionStatsResponse(**pipeline.get_session_stats())


@router.get("/{session_id}/history", response_model=HistoryResponse, summary="Chat history for a session")
def get_history(
    session_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    pipeline: QueryPipeline = Depends(get_pipeline),
) -> HistoryResponse:
    messages = pipeline.get_history(session_id, limit)
    return HistoryResponse(
        session_id=session_id,
        messages=[MessageItem(**message.to_dict()) for message in messages],
        count=len(messages),
    )


@router.delete("/{session_id}/clear", response_model=ClearResponse, summary="Clear a session's history")
def clear_history(session_id: str, pipeline: QueryPipeline = Depends(get_pipeline)) -> ClearResponse:
    pipeline.clear_history(session_id)
    return ClearResponse(session_id=session_id, message="Chat history cleared successfully")
