"""Custom exception hierarchy for the StockCoach package."""

from __future__ import annotations


class StockCoachError(Exception):
    """Base class for all StockCoach specific errors."""


class SnapshotError(StockCoachError):
    """Raised when a persisted snapshot cannot be decoded."""


class TermNotFoundError(StockCoachError):
    """Raised when a glossary term is not on the learner's study list."""
