"""Per-session chat transcripts."""

from __future__ import annotations

import logging
from typing import Any

import orjson
import redis

from news_rag.core.errors import HistoryWriteError
from news_rag.models.entities import ChatMessage
from news_rag.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

CHAT_KEY_PREFIX = "chat:"
SESSION_KEY_PREFIX = "session:"


class ChatHistoryStore:
    """Append-only message log per session, newest first in storage.

    ``client`` is a redis-py client or a
    :class:`~news_rag.history.kv.MemoryKeyValueStore`. Every append refreshes
    the transcript's TTL, so a session expires ``ttl_seconds`` after its last
    turn.
    """

    def __init__(self, client: Any, ttl_seconds: int | None = 3600) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def chat_key(session_id: str) -> str:
        return f"{CHAT_KEY_PREFIX}{session_id}"

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    def append(self, session_id: str, message: ChatMessage) -> None:
        key = self.chat_key(session_id)
        try:
            self.client.lpush(key, orjson.dumps(message.to_dict()).decode("utf-8"))
            if self.ttl_seconds:
                self.client.expire(key, self.ttl_seconds)
        except (redis.RedisError, OSError) as exc:
            logger.error("Failed to append chat message: %s", exc, extra={"ctx_session_id": session_id})
            raise HistoryWriteError(f"Could not store {message.role} message for session {session_id}") from exc

    def read(self, session_id: str, limit: int = 50) -> list[ChatMessage]:
        if limit <= 0:
            return []
        raw = self.client.lrange(self.chat_key(session_id), 0, limit - 1)
        messages = [ChatMessage.from_dict(orjson.loads(item)) for item in raw]
        messages.reverse()
        return messages

    def length(self, session_id: str) -> int:
        return int(self.client.llen(self.chat_key(session_id)))

    def clear(self, session_id: str) -> None:
        self.client.delete(self.chat_key(session_id))
        logger.info("Chat history cleared", extra={"ctx_session_id": session_id})

    def touch(self, session_id: str) -> None:
        """Record activity in the session hash and refresh its expiry.

        ``created`` is written only by the first touch; ``lastActivity`` by every one.
        """
        key = self.session_key(session_id)
        now = utc_now_iso()
        try:
            self.client.hsetnx(key, "created", now)
            self.client.hset(key, mapping={"lastActivity": now})
            if self.ttl_seconds:
                self.client.expire(key, self.ttl_seconds)
        except (redis.RedisError, OSError) as exc:
            logger.error("Failed to record session activity: %s", exc, extra={"ctx_session_id": session_id})
            raise HistoryWriteError(f"Could not record activity for session {session_id}") from exc

    def last_activity(self, session_id: str) -> str | None:
        return self.client.hget(self.session_key(session_id), "lastActivity")

    def created_at(self, session_id: str) -> str | None:
        return self.client.hget(self.session_key(session_id), "created")

    def stats(self) -> dict[str, int]:
        """Count known sessions and the messages held across all transcripts."""
        sessions = sum(1 for _ in self.client.scan_iter(match=f"{SESSION_KEY_PREFIX}*"))
        messages = sum(int(self.client.llen(key)) for key in self.client.scan_iter(match=f"{CHAT_KEY_PREFIX}*"))
        return {"total_sessions": sessions, "total_messages": messages}

    def close(self) -> None:
        self.client.close()


__all__ = ["ChatHistoryStore", "CHAT_KEY_PREFIX", "SESSION_KEY_PREFIX"]
