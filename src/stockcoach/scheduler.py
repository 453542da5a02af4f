"""SM-2 spaced repetition scheduling for glossary flashcards.

Quality ratings follow the SuperMemo 2 scale:

0. complete blackout
1. incorrect, recognised once the answer was shown
2. incorrect, but the answer felt easy to recall
3. correct with serious difficulty
4. correct after some hesitation
5. perfect, instant recall
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Optional

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MASTERED_EASE_FACTOR = 2.3
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3


class ConfidenceLevel(IntEnum):
    """Display classification of how well a term is known."""

    NEW = 0
    LEARNING = 1
    FAMILIAR = 2
    CONFIDENT = 3
    ALMOST_MASTERED = 4
    MASTERED = 5

    @property
    def label(self) -> str:
        return _CONFIDENCE_LABELS[self]


_CONFIDENCE_LABELS = {
    ConfidenceLevel.NEW: "New",
    ConfidenceLevel.LEARNING: "Learning",
    ConfidenceLevel.FAMILIAR: "Familiar",
    ConfidenceLevel.CONFIDENT: "Confident",
    ConfidenceLevel.ALMOST_MASTERED: "Almost There",
    ConfidenceLevel.MASTERED: "Mastered",
}


@dataclass(frozen=True, slots=True)
class CardState:
    """Scheduling parameters carried between reviews of one card."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """New scheduling parameters plus the absolute time the card is due."""

    ease_factor: float
    interval: int
    repetitions: int
    next_review_at: datetime

    @property
    def card_state(self) -> CardState:
        return CardState(self.ease_factor, self.interval, self.repetitions)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sanitize_quality(quality: float) -> int:
    """Round ``quality`` half-up and clamp it into ``[0, 5]``; NaN becomes 0."""

    value = float(quality)
    if math.isnan(value):
        return MIN_QUALITY
    if math.isinf(value):
        return MAX_QUALITY if value > 0 else MIN_QUALITY
    return max(MIN_QUALITY, min(MAX_QUALITY, _round_half_up(value)))


def updated_ease_factor(ease_factor: float, quality: int) -> float:
    miss = MAX_QUALITY - quality
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))


def next_review(
    quality: float,
    prior: Optional[CardState] = None,
    *,
    at: Optional[datetime] = None,
) -> ReviewOutcome:
    """Compute the card state that follows a review graded ``quality``.

    A failing grade (below 3) sends the card back to a one day interval and
    clears its repetition count; a passing grade walks the 1 day, 6 day,
    ``interval * ease`` progression. The ease factor is updated either way.
    """

    state = prior or CardState()
    grade = sanitize_quality(quality)
    moment = at or datetime.now(timezone.utc)
    ease = updated_ease_factor(state.ease_factor, grade)

    if grade < PASSING_QUALITY:
        interval = FIRST_INTERVAL
        repetitions = 0
    else:
        if state.repetitions == 0:
            interval = FIRST_INTERVAL
        elif state.repetitions == 1:
            interval = SECOND_INTERVAL
        else:
            interval = _round_half_up(state.interval * ease)
        repetitions = state.repetitions + 1

    return ReviewOutcome(
        ease_factor=ease,
        interval=interval,
        repetitions=repetitions,
        next_review_at=moment + timedelta(days=interval),
    )


def quality_from_binary_outcome(correct: bool, confident: bool = False) -> int:
    """Map the "knew it" / "didn't know it" buttons onto the 0-5 scale."""

    if not correct:
        return 1
    return 5 if confident else 4


def confidence_level(ease_factor: float, repetitions: int) -> ConfidenceLevel:
    if repetitions <= 0:
        return ConfidenceLevel.NEW
    if repetitions == 1:
        return ConfidenceLevel.LEARNING
    if repetitions == 2:
        return ConfidenceLevel.FAMILIAR
    if repetitions < 5:
        return ConfidenceLevel.CONFIDENT
    if ease_factor >= MASTERED_EASE_FACTOR:
        return ConfidenceLevel.MASTERED
    return ConfidenceLevel.ALMOST_MASTERED


def confidence_label(level: int) -> str:
    try:
        return ConfidenceLevel(level).label
    except ValueError:
        return ConfidenceLevel.NEW.label


def next_review_label(next_review_at: datetime, *, at: Optional[datetime] = None) -> str:
    """Describe when a card is next due (``Tomorrow``, ``In 2 weeks`` ...)."""

    moment = at or datetime.now(timezone.utc)
    days = _round_half_up((next_review_at - moment) / timedelta(days=1))
    if days <= 0:
        return "Due now"
    if days == 1:
        return "Tomorrow"
    if days < 7:
        return f"In {days} days"
    if days < 30:
        weeks = _round_half_up(days / 7)
        return f"In {weeks} week{'s' if weeks > 1 else ''}"
    months = _round_half_up(days / 30)
    return f"In {months} month{'s' if months > 1 else ''}"


__all__ = [
    "CardState",
    "ConfidenceLevel",
    "DEFAULT_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "ReviewOutcome",
    "confidence_label",
    "confidence_level",
    "next_review",
    "next_review_label",
    "quality_from_binary_outcome",
    "sanitize_quality",
    "updated_ease_factor",
]
