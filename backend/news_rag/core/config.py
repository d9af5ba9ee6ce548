"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "NEWSRAG_"
DEFAULT_CONFIG_PATH = Path("~/.config/news-rag/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("generation", "api_key"): "gemini_api_key",
    ("generation", "model"): "generation_model",
    ("embeddings", "api_key"): "jina_api_key",
    ("embeddings", "endpoint"): "embedding_endpoint",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "fallback_dim"): "fallback_embedding_dim",
    ("embeddings", "timeout"): "embedding_timeout",
    ("qdrant", "url"): "qdrant_url",
    ("qdrant", "api_key"): "qdrant_api_key",
    ("qdrant", "collection"): "qdrant_collection",
    ("redis", "url"): "redis_url",
    ("redis", "password"): "redis_password",
    ("redis", "db"): "redis_db",
    ("session", "ttl"): "session_ttl",
    ("session", "history_limit"): "history_limit",
    ("retrieval", "top_k"): "top_k",
    ("logging", "level"): "log_level",
    ("logging", "json"): "log_json",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    gemini_api_key: str | None = None
    generation_model: str = "gemini-2.0-flash"
    jina_api_key: str | None = None
    embedding_endpoint: str = "https://api.jina.ai/v1/embeddings"
    embedding_model: str = "jina-embeddings-v2-base-en"
    embedding_dim: int | None = None
    fallback_embedding_dim: int = Field(default=1024, ge=1)
    embedding_timeout: float = 10.0
    use_memory_storage: bool = False
    qdrant_url: str | None = None
    qdrant_api_key: str | None = None
    qdrant_collection: str = "news_embeddings"
    redis_url: str | None = None
    redis_password: str | None = None
    redis_db: int = 0
    session_ttl: int = 3600
    history_limit: int = Field(default=50, ge=1)
    top_k: int = Field(default=5, ge=1)
    log_level: str = "INFO"
    log_json: bool = True
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("embedding_dim", mode="before")
    @classmethod
    def _blank_dim(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def use_qdrant(self) -> bool:
        return bool(self.qdrant_url) and not self.use_memory_storage

    @property
    def use_redis(self) -> bool:
        return bool(self.redis_url) and not self.use_memory_storage

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with NEWSRAG_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
