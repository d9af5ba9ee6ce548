"""Chat history persistence."""

from .kv import MemoryKeyValueStore, create_kv_client
from .store import ChatHistoryStore

__all__ = ["ChatHistoryStore", "MemoryKeyValueStore", "create_kv_client"]
