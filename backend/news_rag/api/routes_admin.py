"""Corpus and operational routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from news_rag.api.dependencies import get_pipeline
from news_rag.core.metrics import metrics_response
from news_rag.models.dto import (
    DocumentRequest,
    DocumentResponse,
    MatchItem,
    SearchRequest,
    SearchResponse,
    StatsResponse,
)
from news_rag.pipeline import QueryPipeline

router = APIRouter()


@router.post("/documents", response_model=DocumentResponse, summary="Embed and store a text chunk")
def store_document(request: DocumentRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> DocumentResponse:
    vector = pipeline.generate_embedding(request.text)
    point_id = pipeline.store_embedding(request.id, request.text, vector, request.metadata)
    return DocumentResponse(id=point_id, dimension=len(vector))


@router.post("/search", response_model=SearchResponse, summary="Similarity search over stored chunks")
def search(request: SearchRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> SearchResponse:
    vector = pipeline.generate_embedding(request.query)
    matches = pipeline.search_similar(vector, request.k)
    return SearchResponse(
        matches=[
            MatchItem(id=match.id, text=match.text, score=match.score, metadata=match.metadata)
            for match in matches
        ]
    )


@router.get("/stats", response_model=StatsResponse, summary="Vector store statistics")
def stats(pipeline: QueryPipeline = Depends(get_pipeline)) -> StatsResponse:
    return StatsResponse(**pipeline.get_stats())


@router.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_response()
