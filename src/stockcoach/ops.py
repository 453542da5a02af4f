"""Operational utilities for StockCoach."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from .models import utcnow


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"Cannot serialise {type(value)!r}")


class StructuredLogger:
    """Write JSON lines log entries for learner activity."""

    def __init__(self, *, path: Path | None = None, capacity: int = 500) -> None:
        self.path = path
        self.capacity = capacity
        self._entries: list[dict] = []

    def log(self, event_type: str, *, level: str = "info", **fields: object) -> dict:
        entry = {"timestamp": utcnow().isoformat(), "level": level, "event": event_type, **fields}
        self._entries.append(entry)
        if len(self._entries) > self.capacity:
            del self._entries[: len(self._entries) - self.capacity]
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, default=_json_default) + "\n")
        return entry

    def tail(self, limit: int = 50) -> tuple[dict, ...]:
        return tuple(self._entries[-limit:]) if limit > 0 else ()

    def entries(self, event_type: Optional[str] = None) -> tuple[dict, ...]:
        if event_type is None:
            return tuple(self._entries)
        return tuple(entry for entry in self._entries if entry["event"] == event_type)


__all__ = ["StructuredLogger"]
