"""Personal glossary word list with spaced repetition progress."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .config import MAX_WORDS
from .exceptions import SnapshotError, TermNotFoundError
from .models import utcnow
from .scheduler import (
    DEFAULT_EASE_FACTOR,
    CardState,
    ConfidenceLevel,
    confidence_level,
    next_review,
    quality_from_binary_outcome,
)
from .snapshot import (
    GLOSSARY_KIND,
    SCHEMA_VERSION,
    check_header,
    date_field,
    from_millis,
    int_field,
    optional_millis,
    require,
    str_field,
    to_millis,
)


@dataclass(frozen=True, slots=True)
class WordProgress:
    """Review history and scheduling parameters for one glossary term."""

    term_id: str
    added_at: datetime
    last_reviewed: Optional[datetime] = None
    review_count: int = 0
    confidence_level: ConfidenceLevel = ConfidenceLevel.NEW
    next_review_at: Optional[datetime] = None
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0

    @classmethod
    def new(cls, term_id: str, *, added_at: datetime) -> "WordProgress":
        return cls(term_id=term_id, added_at=added_at, next_review_at=added_at)

    @property
    def card_state(self) -> CardState:
        return CardState(self.ease_factor, self.interval, self.repetitions)

    def is_due(self, moment: datetime) -> bool:
        return self.next_review_at is None or self.next_review_at <= moment


@dataclass(frozen=True, slots=True)
class GlossaryStats:
    total_words: int
    mastered: int
    learning: int
    due_today: int
    streak: int


@dataclass(frozen=True, slots=True)
class StudyListState:
    """Word map plus the insertion-ordered id index kept in lockstep with it."""

    words: Mapping[str, WordProgress]
    word_ids: Tuple[str, ...]
    review_streak: int = 0
    longest_streak: int = 0
    last_review_date: Optional[date] = None
    total_reviews: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.words, MappingProxyType):
            object.__setattr__(self, "words", MappingProxyType(dict(self.words)))
        if set(self.word_ids) != set(self.words) or len(self.word_ids) != len(self.words):
            raise ValueError("word_ids is out of sync with words.")

    @classmethod
    def empty(cls) -> "StudyListState":
        return cls(words={}, word_ids=())


def _next_streak(state: StudyListState, today: date) -> int:
    if state.last_review_date == today:
        return state.review_streak
    if state.last_review_date == today - timedelta(days=1):
        return state.review_streak + 1
    return 1


class StudyList:
    """The learner's own list of glossary terms to review as flashcards."""

    __slots__ = ("_state", "_lock", "_max_words")

    def __init__(self, state: StudyListState | None = None, *, max_words: int = MAX_WORDS) -> None:
        if max_words <= 0:
            raise ValueError("max_words must be positive")
        self._max_words = max_words
        self._lock = threading.RLock()
        self._state = state or StudyListState.empty()

    @property
    def state(self) -> StudyListState:
        with self._lock:
            return self._state

    @property
    def word_ids(self) -> Tuple[str, ...]:
        return self.state.word_ids

    @property
    def review_streak(self) -> int:
        return self.state.review_streak

    @property
    def longest_streak(self) -> int:
        return self.state.longest_streak

    @property
    def total_reviews(self) -> int:
        return self.state.total_reviews

    def __len__(self) -> int:
        return len(self.state.word_ids)

    def add_word(self, term_id: str, *, at: Optional[datetime] = None) -> bool:
        """Add ``term_id``; ``False`` only when the list is already full."""

        with self._lock:
            state = self._state
            if term_id in state.words:
                return True
            if len(state.word_ids) >= self._max_words:
                return False
            words = dict(state.words)
            words[term_id] = WordProgress.new(term_id, added_at=at or utcnow())
            self._state = replace(state, words=words, word_ids=state.word_ids + (term_id,))
            return True

    def remove_word(self, term_id: str) -> None:
        with self._lock:
            state = self._state
            if term_id not in state.words:
                return
            words = dict(state.words)
            del words[term_id]
            word_ids = tuple(existing for existing in state.word_ids if existing != term_id)
            self._state = replace(state, words=words, word_ids=word_ids)

    def has_word(self, term_id: str) -> bool:
        return term_id in self.state.words

    def word_progress(self, term_id: str) -> Optional[WordProgress]:
        return self.state.words.get(term_id)

    def record_review(
        self,
        term_id: str,
        correct: bool,
        confident: bool = False,
        *,
        at: Optional[datetime] = None,
    ) -> WordProgress:
        """Grade a flashcard swipe and reschedule the term."""

        moment = at or utcnow()
        with self._lock:
            state = self._state
            word = state.words.get(term_id)
            if word is None:
                raise TermNotFoundError(f"Term '{term_id}' is not on the study list.")
            outcome = next_review(
                quality_from_binary_outcome(correct, confident), word.card_state, at=moment
            )
            updated = replace(
                word,
                last_reviewed=moment,
                review_count=word.review_count + 1,
                confidence_level=confidence_level(outcome.ease_factor, outcome.repetitions),
                next_review_at=outcome.next_review_at,
                ease_factor=outcome.ease_factor,
                interval=outcome.interval,
                repetitions=outcome.repetitions,
            )
            today = moment.date()
            streak = _next_streak(state, today)
            words = dict(state.words)
            words[term_id] = updated
            self._state = replace(
                state,
                words=words,
                review_streak=streak,
                longest_streak=max(streak, state.longest_streak),
                last_review_date=today,
                total_reviews=state.total_reviews + 1,
            )
            return updated

    def words_due(self, *, at: Optional[datetime] = None) -> Tuple[str, ...]:
        moment = at or utcnow()
        state = self.state
        return tuple(term_id for term_id in state.word_ids if state.words[term_id].is_due(moment))

    def due_count(self, *, at: Optional[datetime] = None) -> int:
        return len(self.words_due(at=at))

    def reset_progress(self, *, at: Optional[datetime] = None) -> None:
        """Forget every review but keep the words and the longest streak."""

        moment = at or utcnow()
        with self._lock:
            state = self._state
            words = {
                term_id: WordProgress(term_id=term_id, added_at=word.added_at, next_review_at=moment)
                for term_id, word in state.words.items()
            }
            self._state = replace(
                state,
                words=words,
                review_streak=0,
                last_review_date=None,
                total_reviews=0,
            )

    def stats(self, *, at: Optional[datetime] = None) -> GlossaryStats:
        moment = at or utcnow()
        state = self.state
        words = list(state.words.values())
        return GlossaryStats(
            total_words=len(words),
            mastered=sum(1 for word in words if word.confidence_level >= ConfidenceLevel.ALMOST_MASTERED),
            learning=sum(
                1
                for word in words
                if ConfidenceLevel.NEW < word.confidence_level < ConfidenceLevel.ALMOST_MASTERED
            ),
            due_today=sum(1 for word in words if word.is_due(moment)),
            streak=state.review_streak,
        )

    # Snapshots -------------------------------------------------------------
    def to_snapshot(self) -> dict:
        state = self.state
        return {
            "schema_version": SCHEMA_VERSION,
            "kind": GLOSSARY_KIND,
            "words": [_word_to_dict(state.words[term_id]) for term_id in state.word_ids],
            "review_streak": state.review_streak,
            "longest_streak": state.longest_streak,
            "last_review_date": state.last_review_date.isoformat() if state.last_review_date else None,
            "total_reviews": state.total_reviews,
        }

    @classmethod
    def from_snapshot(cls, data: Any, **options: Any) -> "StudyList":
        data = check_header(data, GLOSSARY_KIND)
        entries = data.get("words")
        if not isinstance(entries, list):
            raise SnapshotError("Snapshot field 'words' must be a list.")
        words = [_word_from_dict(entry) for entry in entries]
        try:
            state = StudyListState(
                words={word.term_id: word for word in words},
                word_ids=tuple(word.term_id for word in words),
                review_streak=require(data, "review_streak", int_field),
                longest_streak=require(data, "longest_streak", int_field),
                last_review_date=date_field(data.get("last_review_date")),
                total_reviews=require(data, "total_reviews", int_field),
            )
        except ValueError as exc:
            raise SnapshotError(f"Inconsistent glossary snapshot: {exc}") from exc
        return cls(state, **options)


def _word_to_dict(word: WordProgress) -> dict:
    return {
        "term_id": word.term_id,
        "added_at": to_millis(word.added_at),
        "last_reviewed": to_millis(word.last_reviewed) if word.last_reviewed else None,
        "review_count": word.review_count,
        "confidence_level": int(word.confidence_level),
        "next_review_at": to_millis(word.next_review_at) if word.next_review_at else None,
        "ease_factor": word.ease_factor,
        "interval": word.interval,
        "repetitions": word.repetitions,
    }


def _word_from_dict(data: Any) -> WordProgress:
    if not isinstance(data, Mapping):
        raise SnapshotError("Word entries must be mappings.")
    try:
        level = ConfidenceLevel(require(data, "confidence_level", int_field))
    except ValueError as exc:
        raise SnapshotError(f"Invalid confidence level {data.get('confidence_level')!r}.") from exc
    ease = data.get("ease_factor")
    if isinstance(ease, bool) or not isinstance(ease, (int, float)):
        raise SnapshotError(f"Expected a numeric ease factor, got {ease!r}.")
    return WordProgress(
        term_id=require(data, "term_id", str_field),
        added_at=require(data, "added_at", from_millis),
        last_reviewed=optional_millis(data.get("last_reviewed")),
        review_count=require(data, "review_count", int_field),
        confidence_level=level,
        next_review_at=optional_millis(data.get("next_review_at")),
        ease_factor=float(ease),
        interval=require(data, "interval", int_field),
        repetitions=require(data, "repetitions", int_field),
    )


__all__ = ["GlossaryStats", "StudyList", "StudyListState", "WordProgress"]
