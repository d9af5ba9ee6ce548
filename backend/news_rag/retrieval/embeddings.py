"""Embedding provider with deterministic local fallback."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from typing import Any, Sequence

import requests

from news_rag.core.errors import EmbeddingError
from news_rag.core.metrics import EMBEDDING_FALLBACKS

logger = logging.getLogger(__name__)

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")


class EmbeddingProvider:
    """Remote embedding client that degrades to a hashed bag-of-tokens vector.

    The remote service is called with a bearer token and a bounded timeout.
    Any failure (missing key, transport error, non-2xx, unexpected payload)
    routes to :meth:`fallback_embed`, which is a pure function of the text
    and the current dimension.

    ``dimension`` is the collection's established dimensionality. When it is
    ``None`` the first successful remote call establishes it; the local
    fallback uses ``fallback_dim`` until then without establishing anything.
    """

    def __init__(
        self,
        api_key: str | None,
        endpoint: str = "https://api.jina.ai/v1/embeddings",
        model: str = "jina-embeddings-v2-base-en",
        dimension: int | None = None,
        fallback_dim: int = 1024,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.dimension = dimension
        self.fallback_dim = fallback_dim
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def target_dim(self) -> int:
        return self.dimension or self.fallback_dim

    def embed(self, text: str) -> list[float]:
        try:
            vector = self._remote_embed(text)
        except EmbeddingError as exc:
            logger.warning(
                "Embedding API unavailable, using deterministic fallback embedding: %s",
                exc,
                extra={"ctx_reason": exc.reason},
            )
            EMBEDDING_FALLBACKS.labels(reason=exc.reason).inc()
            return self.fallback_embed(text)
        if self.dimension is None:
            self.dimension = len(vector)
            logger.info("Embedding dimension established at %d", self.dimension)
            return vector
        return fit_dimension(vector, self.dimension)

    def fallback_embed(self, text: str) -> list[float]:
        dim = self.target_dim
        vector = [0.0] * dim
        for token in tokenize(text):
            vector[hash_token(token, dim)] += 1.0
        normalize(vector)
        return vector

    def close(self) -> None:
        self._session.close()

    def _remote_embed(self, text: str) -> list[float]:
        if not self.api_key:
            raise EmbeddingError("missing_credentials", "No embedding API key configured")
        try:
            resp = self._session.post(
                self.endpoint,
                json={"input": [text], "model": self.model},
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise EmbeddingError("timeout", str(exc)) from exc
        except requests.RequestException as exc:
            raise EmbeddingError("unavailable", str(exc)) from exc
        if not resp.ok:
            raise EmbeddingError("http_error", f"Embedding service returned {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise EmbeddingError("malformed_response", "Embedding response is not JSON") from exc
        return _extract_vector(payload)


def _extract_vector(payload: Any) -> list[float]:
    try:
        vector = payload["data"][0]["embedding"]
    except (KeyError, IndexError, TypeError) as exc:
        raise EmbeddingError("malformed_response", "Invalid embedding response") from exc
    if not isinstance(vector, list) or not vector:
        raise EmbeddingError("malformed_response", "Invalid embedding response")
    try:
        return [float(value) for value in vector]
    except (TypeError, ValueError) as exc:
        raise EmbeddingError("malformed_response", "Embedding contains non-numeric values") from exc


def fit_dimension(vector: Sequence[float], dim: int) -> list[float]:
    """Truncate or zero-pad ``vector`` to exactly ``dim`` components."""
    if len(vector) >= dim:
        return list(vector[:dim])
    return list(vector) + [0.0] * (dim - len(vector))


def tokenize(text: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT_RE.split(text.lower()) if token]


def hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["EmbeddingProvider", "fit_dimension", "tokenize", "hash_token", "normalize"]
