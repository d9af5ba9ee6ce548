"""Key-value clients for session transcripts.

The in-process store implements the subset of the redis-py surface used by
:class:`~news_rag.history.store.ChatHistoryStore`, so either can be passed in.
"""

from __future__ import annotations

import fnmatch
import heapq
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping

import redis

if TYPE_CHECKING:
    from news_rag.core.config import Settings

logger = logging.getLogger(__name__)


class MemoryKeyValueStore:
    """Process-local lists and hashes with TTL eviction.

    Expired keys are dropped when they are accessed, and every write also
    purges all keys whose deadline has passed, so abandoned sessions do not
    accumulate. Deadlines sit in a heap; entries superseded by a later
    ``expire`` call are skipped when popped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._lists: dict[str, list[str]] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._expires_at: dict[str, float] = {}
        self._deadlines: list[tuple[float, str]] = []
        self._clock = clock
        self._lock = threading.Lock()

    def ping(self) -> bool:
        return True

    def lpush(self, key: str, *values: str) -> int:
        with self._lock:
            self._purge_expired()
            items = self._lists.setdefault(key, [])
            for value in values:
                items.insert(0, value)
            return len(items)

    def lrange(self, key: str, start: int, end: int) -> list[str]:
        with self._lock:
            self._evict(key)
            items = self._lists.get(key, [])
            size = len(items)
            if start < 0:
                start = max(size + start, 0)
            if end < 0:
                end = size + end
            return list(items[start : end + 1])

    def llen(self, key: str) -> int:
        with self._lock:
            self._evict(key)
            return len(self._lists.get(key, []))

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                self._evict(key)
                found = self._lists.pop(key, None) is not None
                found = self._hashes.pop(key, None) is not None or found
                self._expires_at.pop(key, None)
                removed += int(found)
        return removed

    def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            self._purge_expired()
            if key not in self._lists and key not in self._hashes:
                return False
            deadline = self._clock() + seconds
            self._expires_at[key] = deadline
            heapq.heappush(self._deadlines, (deadline, key))
            return True

    def hset(
        self,
        key: str,
        field: str | None = None,
        value: Any = None,
        mapping: Mapping[str, Any] | None = None,
    ) -> int:
        updates: dict[str, str] = {}
        if field is not None:
            updates[field] = str(value)
        if mapping:
            updates.update({name: str(item) for name, item in mapping.items()})
        with self._lock:
            self._purge_expired()
            target = self._hashes.setdefault(key, {})
            added = sum(1 for name in updates if name not in target)
            target.update(updates)
            return added

    def hsetnx(self, key: str, field: str, value: Any) -> bool:
        with self._lock:
            self._purge_expired()
            target = self._hashes.setdefault(key, {})
            if field in target:
                return False
            target[field] = str(value)
            return True

    def hget(self, key: str, field: str) -> str | None:
        with self._lock:
            self._evict(key)
            return self._hashes.get(key, {}).get(field)

    def scan_iter(self, match: str | None = None) -> Iterator[str]:
        with self._lock:
            self._purge_expired()
            keys = list(dict.fromkeys([*self._lists, *self._hashes]))
        for key in keys:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def close(self) -> None:
        with self._lock:
            self._lists.clear()
            self._hashes.clear()
            self._expires_at.clear()
            self._deadlines.clear()

    def _evict(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._drop(key)

    def _purge_expired(self) -> None:
        now = self._clock()
        while self._deadlines and self._deadlines[0][0] <= now:
            deadline, key = heapq.heappop(self._deadlines)
            if self._expires_at.get(key) == deadline:
                self._drop(key)

    def _drop(self, key: str) -> None:
        self._lists.pop(key, None)
        self._hashes.pop(key, None)
        self._expires_at.pop(key, None)


def create_kv_client(settings: "Settings") -> "redis.Redis | MemoryKeyValueStore":
    """Connect to Redis when configured; an unreachable server degrades to memory."""
    if not settings.use_redis:
        logger.info("Using in-memory storage instead of Redis")
        return MemoryKeyValueStore()
    client = redis.Redis.from_url(
        settings.redis_url,
        password=settings.redis_password or None,
        db=settings.redis_db,
        decode_responses=True,
    )
    try:
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Failed to connect to Redis, falling back to in-memory storage: %s", exc)
        client.close()
        return MemoryKeyValueStore()
    logger.info("Redis client ready")
    return client


__all__ = ["MemoryKeyValueStore", "create_kv_client"]
