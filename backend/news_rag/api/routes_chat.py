"""Chat API routes."""

from __future__ import annotations

import logging
from typing import Iterator

import orjson
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from news_rag.api.dependencies import get_pipeline
from news_rag.models.dto import ChatRequest, ChatResponse, SourceItem
from news_rag.models.entities import StreamEvent
from news_rag.pipeline import QueryPipeline
from news_rag.utils.ids import new_id
from news_rag.utils.time import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/message", response_model=ChatResponse, summary="Answer a chat message")
def send_message(request: ChatRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> ChatResponse:
    session_id = request.session_id or new_id()
    result = pipeline.process_query(request.message, session_id)
    return ChatResponse(
        session_id=session_id,
        response=result.response,
        sources=[SourceItem(**source.to_dict()) for source in result.sources],
        timestamp=utc_now(),
    )


@router.post("/stream", summary="Answer a chat message as server-sent events")
def stream_message(request: ChatRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> StreamingResponse:
    session_id = request.session_id or new_id()
    events = pipeline.stream_query(request.message, session_id)
    return StreamingResponse(
        _sse(events, session_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def _sse(events: Iterator[StreamEvent], session_id: str) -> Iterator[bytes]:
    yield _frame({"type": "session", "session_id": session_id})
    try:
        for event in events:
            if event.kind == "fragment":
                yield _frame({"type": "chunk", "content": event.text})
            elif event.result is not None:
                payload = event.result.to_dict()
                yield _frame({"type": "complete", "sources": payload["sources"]})
    except Exception:  # noqa: BLE001 - reported to the client as an error event
        logger.exception("Chat stream error", extra={"ctx_session_id": session_id})
        yield _frame({"type": "error", "error": "Failed to process message"})
    finally:
        events.close()


def _frame(payload: dict) -> bytes:
    return b"data: " + orjson.dumps(payload) + b"\n\n"
