"""Retrieval components."""

from .embeddings import EmbeddingProvider
from .retriever import Retrieval, Retriever
from .vector_store import InMemoryVectorStore, QdrantVectorStore, VectorStore, create_vector_store

__all__ = [
    "EmbeddingProvider",
    "Retrieval",
    "Retriever",
    "VectorStore",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "create_vector_store",
]
