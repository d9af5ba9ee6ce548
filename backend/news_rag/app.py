"""FastAPI application setup for News RAG."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from news_rag.api.dependencies import build_pipeline, get_app_settings
from news_rag.api.routes_admin import router as admin_router
from news_rag.api.routes_chat import router as chat_router
from news_rag.api.routes_session import router as session_router
from news_rag.core.errors import EmptyQueryError, GenerationError, HistoryWriteError
from news_rag.core.logging import configure_logging

settings = get_app_settings()
configure_logging(settings.log_level, use_json=settings.log_json)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the pipeline once and release it on shutdown."""
    pipeline = build_pipeline(get_app_settings())
    pipeline.initialize()
    app.state.pipeline = pipeline
    try:
        yield
    finally:
        pipeline.close()


app = FastAPI(
    title="News RAG",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/chat", tags=["chat"])
app.include_router(session_router, prefix="/session", tags=["session"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(EmptyQueryError)
async def empty_query_handler(request: Request, exc: EmptyQueryError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(HistoryWriteError)
async def history_write_handler(request: Request, exc: HistoryWriteError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "Failed to store chat history"})


@app.exception_handler(GenerationError)
async def generation_handler(request: Request, exc: GenerationError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"error": "Failed to process message"})


@app.get("/health", tags=["admin"])
def health(request: Request) -> dict[str, object]:
    """Simple liveness check."""
    return {"ok": True, "vector_backend": request.app.state.pipeline.store.backend}
