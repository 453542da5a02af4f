"""StockCoach web API; ``uvicorn stockcoach.webapp:app`` serves the default app."""
from __future__ import annotations

from typing import Any

from .application import create_app, get_learner

_APP: Any = None

__all__ = ["app", "create_app", "get_learner"]


def __getattr__(name: str) -> Any:
    global _APP
    if name == "app":
        if _APP is None:
            _APP = create_app()
        return _APP
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
