from datetime import datetime, timedelta, timezone

import pytest

from stockcoach.exceptions import SnapshotError, TermNotFoundError
from stockcoach.glossary import StudyList
from stockcoach.scheduler import ConfidenceLevel

NOW = datetime(2026, 3, 2, 8, 15, tzinfo=timezone.utc)


def test_added_words_are_due_immediately() -> None:
    study = StudyList()

    assert study.add_word("pe-ratio", at=NOW)
    assert study.add_word("dividend", at=NOW)

    progress = study.word_progress("pe-ratio")
    assert progress.review_count == 0
    assert progress.confidence_level is ConfidenceLevel.NEW
    assert progress.next_review_at == NOW
    assert study.words_due(at=NOW) == ("pe-ratio", "dividend")


def test_adding_twice_keeps_original_progress() -> None:
    study = StudyList()
    study.add_word("etf", at=NOW)
    study.record_review("etf", True, at=NOW)

    assert study.add_word("etf", at=NOW + timedelta(days=1))
    assert len(study) == 1
    assert study.word_progress("etf").review_count == 1


def test_full_list_rejects_new_words() -> None:
    study = StudyList(max_words=2)
    study.add_word("a")
    study.add_word("b")

    assert study.add_word("c") is False
    assert study.add_word("a") is True
    assert study.word_ids == ("a", "b")


def test_remove_word_keeps_order() -> None:
    study = StudyList()
    for term in ("bond", "stock", "option"):
        study.add_word(term)

    study.remove_word("stock")
    study.remove_word("missing")

    assert study.word_ids == ("bond", "option")
    assert not study.has_word("stock")


def test_review_schedules_next_session() -> None:
    study = StudyList()
    study.add_word("beta", at=NOW)

    first = study.record_review("beta", True, at=NOW)
    assert first.repetitions == 1
    assert first.interval == 1
    assert first.ease_factor == pytest.approx(2.5)
    assert first.confidence_level is ConfidenceLevel.LEARNING
    assert first.next_review_at == NOW + timedelta(days=1)
    assert study.words_due(at=NOW + timedelta(hours=1)) == ()

    second = study.record_review("beta", True, True, at=NOW + timedelta(days=1))
    assert second.interval == 6
    assert second.ease_factor == pytest.approx(2.6)
    assert second.confidence_level is ConfidenceLevel.FAMILIAR
    assert second.review_count == 2


def test_missed_review_starts_over() -> None:
    study = StudyList()
    study.add_word("margin", at=NOW)
    study.record_review("margin", True, at=NOW)
    study.record_review("margin", True, at=NOW + timedelta(days=1))

    missed = study.record_review("margin", False, at=NOW + timedelta(days=7))

    assert missed.repetitions == 0
    assert missed.interval == 1
    assert missed.ease_factor < 2.5
    assert missed.confidence_level is ConfidenceLevel.NEW


def test_review_unknown_term() -> None:
    with pytest.raises(TermNotFoundError):
        StudyList().record_review("ghost", True)


def test_streak_counts_consecutive_days() -> None:
    study = StudyList()
    study.add_word("yield", at=NOW)

    study.record_review("yield", True, at=NOW)
    study.record_review("yield", True, at=NOW + timedelta(hours=2))
    assert study.review_streak == 1

    study.record_review("yield", True, at=NOW + timedelta(days=1))
    study.record_review("yield", True, at=NOW + timedelta(days=2))
    assert study.review_streak == 3

    study.record_review("yield", False, at=NOW + timedelta(days=5))
    assert study.review_streak == 1
    assert study.longest_streak == 3
    assert study.total_reviews == 5


def test_reset_progress_keeps_words_and_longest_streak() -> None:
    study = StudyList()
    study.add_word("roe", at=NOW)
    study.add_word("eps", at=NOW)
    study.record_review("roe", True, at=NOW)
    study.record_review("roe", True, at=NOW + timedelta(days=1))

    later = NOW + timedelta(days=3)
    study.reset_progress(at=later)

    progress = study.word_progress("roe")
    assert progress.added_at == NOW
    assert progress.review_count == 0
    assert progress.repetitions == 0
    assert progress.next_review_at == later
    assert study.word_ids == ("roe", "eps")
    assert study.review_streak == 0
    assert study.longest_streak == 2
    assert study.due_count(at=later) == 2


def test_stats() -> None:
    study = StudyList()
    for term in ("a", "b", "c"):
        study.add_word(term, at=NOW)
    study.record_review("a", True, at=NOW)

    stats = study.stats(at=NOW + timedelta(hours=1))

    assert stats.total_words == 3
    assert stats.learning == 1
    assert stats.mastered == 0
    assert stats.due_today == 2
    assert stats.streak == 1


def test_snapshot_round_trip() -> None:
    study = StudyList()
    study.add_word("pe-ratio", at=NOW)
    study.add_word("dividend", at=NOW + timedelta(minutes=1))
    study.record_review("dividend", True, True, at=NOW + timedelta(minutes=2))

    restored = StudyList.from_snapshot(study.to_snapshot())

    assert restored.state == study.state
    assert restored.word_ids == ("pe-ratio", "dividend")


@pytest.mark.parametrize(
    "mutate",
    [
        lambda data: data.update(kind="trading"),
        lambda data: data.update(schema_version=99),
        lambda data: data.update(words="nope"),
        lambda data: data["words"][0].update(confidence_level=9),
        lambda data: data["words"][0].update(ease_factor="2.5"),
        lambda data: data["words"].append(dict(data["words"][0])),
    ],
)
def test_corrupt_snapshot_is_rejected(mutate) -> None:
    study = StudyList()
    study.add_word("pe-ratio", at=NOW)
    data = study.to_snapshot()
    mutate(data)

    with pytest.raises(SnapshotError):
        StudyList.from_snapshot(data)


@pytest.mark.parametrize(
    "field, value",
    [("term_id", None), ("added_at", 10**30), ("next_review_at", "tomorrow")],
)
def test_snapshot_word_fields_are_not_coerced(field, value) -> None:
    study = StudyList()
    study.add_word("pe-ratio", at=NOW)
    data = study.to_snapshot()
    data["words"][0][field] = value

    with pytest.raises(SnapshotError):
        StudyList.from_snapshot(data)
