"""Context-conditioned answer generation with templated fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from news_rag.core.errors import FailureKind, GenerationError
from news_rag.core.metrics import GENERATION_FALLBACKS
from news_rag.generation.prompts import build_context_prompt, build_fallback_response, build_general_prompt
from news_rag.generation.providers import GenerationProvider
from news_rag.models.entities import RetrievedMatch, SourceRef
from news_rag.retrieval.retriever import Retrieval

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Answer:
    text: str
    degraded: bool = False
    failure: FailureKind | None = None


class AnswerStream:
    """Iterator over answer fragments in emission order.

    ``text`` is always the concatenation of the fragments yielded so far and
    ``completed`` turns true only once the upstream is exhausted (or replaced
    by the fallback). ``close()`` stops consuming the upstream provider.
    """

    def __init__(self, upstream: Iterator[str], matches: list[RetrievedMatch]) -> None:
        self._upstream = upstream
        self._matches = matches
        self._parts: list[str] = []
        self._iter = self._run()
        self.completed = False
        self.degraded = False
        self.failure: FailureKind | None = None

    def __iter__(self) -> "AnswerStream":
        return self

    def __next__(self) -> str:
        return next(self._iter)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def close(self) -> None:
        self._iter.close()

    def _run(self) -> Iterator[str]:
        try:
            for fragment in self._upstream:
                self._parts.append(fragment)
                yield fragment
        except GenerationError as exc:
            if not exc.degradable:
                raise
            self.degraded = True
            self.failure = exc.kind
            _record_fallback(exc, streaming=True)
            fallback = build_fallback_response(self._matches)
            if self._parts:
                fallback = "\n\n" + fallback
            self._parts.append(fallback)
            yield fallback
        finally:
            close = getattr(self._upstream, "close", None)
            if close is not None:
                close()
        self.completed = True


class Generator:
    """Builds prompts and produces answers through a :class:`GenerationProvider`."""

    def __init__(self, provider: GenerationProvider) -> None:
        self.provider = provider

    @staticmethod
    def build_prompt(query: str, retrieval: Retrieval) -> str:
        if retrieval.has_corpus:
            return build_context_prompt(query, retrieval.context)
        return build_general_prompt(query)

    def answer(self, query: str, retrieval: Retrieval) -> Answer:
        prompt = self.build_prompt(query, retrieval)
        try:
            return Answer(text=self.provider.generate(prompt))
        except GenerationError as exc:
            if not exc.degradable:
                raise
            _record_fallback(exc, streaming=False)
            return Answer(text=build_fallback_response(retrieval.matches), degraded=True, failure=exc.kind)

    def answer_stream(self, query: str, retrieval: Retrieval) -> AnswerStream:
        prompt = self.build_prompt(query, retrieval)
        return AnswerStream(self.provider.generate_stream(prompt), retrieval.matches)

    def answer_streaming(
        self,
        query: str,
        retrieval: Retrieval,
        on_fragment: Callable[[str], None],
        on_done: Callable[[str, list[SourceRef]], None],
    ) -> None:
        stream = self.answer_stream(query, retrieval)
        try:
            for fragment in stream:
                on_fragment(fragment)
        finally:
            stream.close()
        on_done(stream.text, [match.to_source() for match in retrieval.matches])


def _record_fallback(exc: GenerationError, streaming: bool) -> None:
    logger.warning(
        "Using fallback response%s due to API issues: %s",
        " for streaming" if streaming else "",
        exc,
        extra={"ctx_failure_kind": exc.kind.value},
    )
    GENERATION_FALLBACKS.labels(kind=exc.kind.value).inc()


__all__ = ["Answer", "AnswerStream", "Generator"]
