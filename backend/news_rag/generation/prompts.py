"""Prompt templates and the templated fallback answer."""

from __future__ import annotations

from typing import Sequence

from news_rag.models.entities import RetrievedMatch
from news_rag.utils.text import normalize, truncate

SNIPPET_CHARS = 200
FALLBACK_MATCHES = 3

CONTEXT_PROMPT = """You are a helpful news assistant. Answer the user's question based on the provided news context.
If the context doesn't contain enough information to answer the question, say so politely.

Context from recent news articles:
{context}

User Question: {query}

Please provide a comprehensive answer based on the news context above. If you reference specific information, try to be specific about which news source or event you're referring to.

Answer:"""

GENERAL_PROMPT = """You are a friendly and knowledgeable AI assistant. The user is asking: "{query}"

Please provide a helpful, informative, and engaging response. Be conversational, clear, and comprehensive. If the question is about recent news or current events, politely explain that you don't have access to real-time news data, but offer to provide general information about the topic or suggest reliable news sources.

Guidelines:
- Be friendly and conversational
- Provide detailed, helpful answers
- Use examples when appropriate
- If unsure, ask clarifying questions
- Keep responses well-structured and easy to read

Answer:"""

FALLBACK_HEADER = (
    "I apologize, but I'm currently experiencing API limitations. However, I can provide you "
    "with some relevant information based on the news articles I have:\n\n"
)

FALLBACK_NO_MATCHES = (
    "Unfortunately, I couldn't find specific articles matching your query at the moment. "
    "Please try rephrasing your question or ask about general news topics like:\n"
    "- Technology developments\n"
    "- Business news\n"
    "- Current events\n"
    "- Breaking news\n"
)


def build_context_prompt(query: str, context: str) -> str:
    return CONTEXT_PROMPT.format(query=query, context=context)


def build_general_prompt(query: str) -> str:
    return GENERAL_PROMPT.format(query=query)


def build_fallback_response(matches: Sequence[RetrievedMatch]) -> str:
    """Deterministic answer listing the best matches; used when generation is unavailable."""
    parts = [FALLBACK_HEADER]
    if not matches:
        parts.append(FALLBACK_NO_MATCHES)
        return "".join(parts)

    parts.append("Here are some relevant news articles I found:\n\n")
    for index, match in enumerate(matches[:FALLBACK_MATCHES], start=1):
        snippet = normalize(str(match.metadata.get("summary") or match.text or ""))
        source = match.metadata.get("source") or ""
        parts.append(f"{index}. **{match.title}**\n")
        if snippet:
            parts.append(f"   {truncate(snippet, SNIPPET_CHARS)}\n")
        if source:
            parts.append(f"   Source: {source}\n")
        if match.url:
            parts.append(f"   Read more: {match.url}\n")
        parts.append(f"   Relevance: {round(match.score * 100)}%\n\n")
    parts.append(
        f"Based on these {len(matches)} relevant articles, I can help answer questions about recent "
        "developments, news trends, and current events. Please try asking more specific questions "
        "about the topics mentioned above."
    )
    return "".join(parts)


__all__ = [
    "build_context_prompt",
    "build_general_prompt",
    "build_fallback_response",
    "FALLBACK_MATCHES",
    "SNIPPET_CHARS",
]
