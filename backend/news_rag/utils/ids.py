"""ID helpers."""

from __future__ import annotations

import random
import re
import time
import uuid

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

PointId = int | str


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = str(uuid.uuid4())
    return f"{prefix}_{base}" if prefix else base


def is_uuid(value: object) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def synthesize_point_id() -> int:
    """Millisecond clock scaled by 1000 plus a random 0-999 suffix. Not collision-proof."""
    return int(time.time() * 1000) * 1000 + random.randrange(1000)


def coerce_point_id(raw: object) -> PointId:
    """Keep non-negative integers and UUID strings; anything else gets a synthesized id."""
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
        return raw
    if is_uuid(raw):
        return raw  # type: ignore[return-value]
    return synthesize_point_id()


__all__ = ["PointId", "new_id", "is_uuid", "synthesize_point_id", "coerce_point_id"]
