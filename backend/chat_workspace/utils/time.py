"""Time helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any


def now_ms() -> int:
    """Return current timestamp in milliseconds."""
    return int(time.time() * 1000)


def to_millis(value: Any) -> int | None:
    """Coerce store timestamps (epoch ms, datetime, ISO string, {"seconds"}) to epoch ms."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return int(text)
        return to_millis(datetime.fromisoformat(text.replace("Z", "+00:00")))
    if isinstance(value, dict) and "seconds" in value:
        nanos = value.get("nanoseconds", 0) or 0
        return int(value["seconds"]) * 1000 + int(nanos) // 1_000_000
    raise ValueError(f"Unsupported timestamp value: {value!r}")
