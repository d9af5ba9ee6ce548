"""Generative text providers.

Adapters translate provider exceptions into :class:`GenerationError` with a
:class:`FailureKind`, so callers never inspect provider-specific errors or
message strings.
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, runtime_checkable

import httpx
from google import genai
from google.genai import errors as genai_errors

from news_rag.core.errors import FailureKind, GenerationError

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ("quota",)
_RATE_MARKERS = ("resource_exhausted", "rate limit")
_CREDENTIAL_MARKERS = ("api_key_invalid", "api key not valid", "expired", "unauthenticated", "permission_denied")
_OVERLOAD_MARKERS = ("overloaded", "unavailable")


@runtime_checkable
class GenerationProvider(Protocol):
    """Anything that turns a prompt into text, whole or in fragments."""

    def generate(self, prompt: str) -> str: ...

    def generate_stream(self, prompt: str) -> Iterator[str]: ...


def classify_api_error(exc: genai_errors.APIError) -> FailureKind:
    code = getattr(exc, "code", None)
    text = f"{getattr(exc, 'status', '') or ''} {getattr(exc, 'message', '') or ''} {exc}".lower()
    if any(marker in text for marker in _QUOTA_MARKERS):
        return FailureKind.QUOTA_EXCEEDED
    if code == 429 or any(marker in text for marker in _RATE_MARKERS):
        return FailureKind.RATE_LIMITED
    if code in (401, 403) or any(marker in text for marker in _CREDENTIAL_MARKERS):
        return FailureKind.INVALID_CREDENTIAL
    if code in (502, 503, 504) or any(marker in text for marker in _OVERLOAD_MARKERS):
        return FailureKind.OVERLOADED
    return FailureKind.FATAL


class GeminiProvider:
    """Google Gemini via the ``google-genai`` client."""

    def __init__(self, api_key: str | None, model: str = "gemini-2.0-flash", client: genai.Client | None = None) -> None:
        self.model = model
        self._api_key = api_key
        self._client = client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.models.generate_content(model=self.model, contents=prompt)
        except Exception as exc:
            error = self._translate(exc)
            if error is None:
                raise
            raise error from exc
        text = response.text
        if text is None:
            raise GenerationError(FailureKind.MALFORMED_RESPONSE, "Gemini returned no text")
        return text

    def generate_stream(self, prompt: str) -> Iterator[str]:
        client = self._get_client()
        try:
            for chunk in client.models.generate_content_stream(model=self.model, contents=prompt):
                if chunk.text:
                    yield chunk.text
        except Exception as exc:
            error = self._translate(exc)
            if error is None:
                raise
            raise error from exc

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise GenerationError(FailureKind.INVALID_CREDENTIAL, "Gemini API key not configured")
            self._client = genai.Client(api_key=self._api_key)
            logger.info("Gemini client initialized with model: %s", self.model)
        return self._client

    @staticmethod
    def _translate(exc: Exception) -> GenerationError | None:
        if isinstance(exc, genai_errors.APIError):
            return GenerationError(classify_api_error(exc), str(exc))
        if isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError)):
            return GenerationError(FailureKind.UNAVAILABLE, str(exc))
        return None


__all__ = ["GenerationProvider", "GeminiProvider", "classify_api_error"]
