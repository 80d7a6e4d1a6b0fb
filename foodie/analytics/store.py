from __future__ import annotations

import time
from collections import deque
from typing import Any

_MAX_EVENTS = 10_000

_events: deque[dict[str, Any]] = deque(maxlen=_MAX_EVENTS)


def record_event(event_type: str, data: dict[str, Any]) -> None:
    _events.append({
        "type": event_type,
        "timestamp": time.time(),
        **data,
    })


def get_events(event_type: str | None = None) -> list[dict[str, Any]]:
    """Return recorded events, oldest first, optionally of one type."""
    if event_type is None:
        return list(_events)
    return [e for e in _events if e["type"] == event_type]


def clear_events() -> None:
    _events.clear()
