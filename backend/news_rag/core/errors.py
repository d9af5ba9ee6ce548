"""Exception hierarchy shared by the query pipeline."""

from __future__ import annotations

from enum import Enum


class NewsRagError(Exception):
    """Base class for pipeline errors."""


class EmptyQueryError(NewsRagError, ValueError):
    """Raised when a query is blank."""


class HistoryWriteError(NewsRagError):
    """Raised when a chat turn could not be persisted."""


class EmbeddingError(NewsRagError):
    """Remote embedding call failed; callers switch to the local embedding."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class IndexUnavailableError(NewsRagError):
    """The external similarity-search service could not be prepared."""


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_CREDENTIAL = "invalid_credential"
    OVERLOADED = "overloaded"
    UNAVAILABLE = "unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    FATAL = "fatal"


class GenerationError(NewsRagError):
    """Generation provider failure, classified at the adapter boundary."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def degradable(self) -> bool:
        return self.kind is not FailureKind.FATAL

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.args[0]}"


__all__ = [
    "NewsRagError",
    "EmptyQueryError",
    "HistoryWriteError",
    "EmbeddingError",
    "IndexUnavailableError",
    "FailureKind",
    "GenerationError",
]
