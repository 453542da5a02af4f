"""High level service coordinating one learner's ledger and study list."""

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from typing import Callable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import GLOSSARY_SNAPSHOT_KEY, LOG_PATH, PORTFOLIO_SNAPSHOT_KEY
from .glossary import GlossaryStats, StudyList, WordProgress
from .ledger import PaperLedger
from .models import GainLoss, Position, ResetRequest, TradeResult
from .money import AmountLike
from .ops import StructuredLogger
from .persistence import SnapshotStore


class LearnerSession:
    """Own the learner's paper portfolio and glossary, persisting after each change."""

    __slots__ = ("_ledger", "_study_list", "_store", "_logger", "_save_lock")

    def __init__(
        self,
        *,
        ledger: PaperLedger | None = None,
        study_list: StudyList | None = None,
        store: SnapshotStore | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._ledger = ledger if ledger is not None else PaperLedger()
        self._study_list = study_list if study_list is not None else StudyList()
        self._store = store
        self._logger = logger or StructuredLogger(path=LOG_PATH)
        self._save_lock = threading.Lock()

    @classmethod
    def open(cls, store: SnapshotStore, *, logger: StructuredLogger | None = None) -> "LearnerSession":
        """Restore saved state from ``store``; missing snapshots start fresh.

        A malformed snapshot raises :class:`~stockcoach.exceptions.SnapshotError`.
        """

        portfolio = store.load(PORTFOLIO_SNAPSHOT_KEY)
        glossary = store.load(GLOSSARY_SNAPSHOT_KEY)
        session = cls(
            ledger=PaperLedger.from_snapshot(portfolio) if portfolio is not None else None,
            study_list=StudyList.from_snapshot(glossary) if glossary is not None else None,
            store=store,
            logger=logger,
        )
        session._logger.log(
            "session_opened",
            portfolio_restored=portfolio is not None,
            glossary_restored=glossary is not None,
        )
        return session

    @property
    def ledger(self) -> PaperLedger:
        return self._ledger

    @property
    def study_list(self) -> StudyList:
        return self._study_list

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    # ------------------------------------------------------------------
    # Paper trading
    # ------------------------------------------------------------------
    def buy(
        self,
        symbol: str,
        shares: AmountLike,
        price_per_share: AmountLike,
        *,
        at: Optional[datetime] = None,
    ) -> TradeResult:
        return self._after_order(self._ledger.buy(symbol, shares, price_per_share, at=at), "buy", symbol)

    def sell(
        self,
        symbol: str,
        shares: AmountLike,
        price_per_share: AmountLike,
        *,
        at: Optional[datetime] = None,
    ) -> TradeResult:
        return self._after_order(self._ledger.sell(symbol, shares, price_per_share, at=at), "sell", symbol)

    def reset_portfolio(self, *, at: Optional[datetime] = None) -> bool:
        if not self._ledger.reset_portfolio(at=at):
            self._logger.log("reset_denied", level="warning", reset_count=self._ledger.reset_count)
            return False
        self._logger.log(
            "portfolio_reset",
            reset_count=self._ledger.reset_count,
            remaining=self._ledger.remaining_resets(),
        )
        self._save_portfolio()
        return True

    def request_additional_reset(
        self, reason: str | None = None, *, at: Optional[datetime] = None
    ) -> ResetRequest:
        request = self._ledger.request_additional_reset(reason, at=at)
        self._logger.log("reset_requested", request_id=request.id, reason=request.reason)
        self._save_portfolio()
        return request

    def get_position(self, symbol: str) -> Optional[Position]:
        return self._ledger.get_position(symbol)

    def portfolio_value(self, prices: Mapping[str, AmountLike]) -> Decimal:
        return self._ledger.portfolio_value(prices)

    def total_gain_loss(self, prices: Mapping[str, AmountLike]) -> GainLoss:
        return self._ledger.total_gain_loss(prices)

    def portfolio_summary(self, prices: Optional[Mapping[str, AmountLike]] = None) -> str:
        return self._ledger.generate_statement(prices)

    # ------------------------------------------------------------------
    # Glossary review
    # ------------------------------------------------------------------
    def add_word(self, term_id: str, *, at: Optional[datetime] = None) -> bool:
        known = self._study_list.has_word(term_id)
        added = self._study_list.add_word(term_id, at=at)
        if not added:
            self._logger.log("word_rejected", level="warning", term=term_id, reason="list_full")
        elif not known:
            self._logger.log("word_added", term=term_id, total=len(self._study_list))
            self._save_glossary()
        return added

    def remove_word(self, term_id: str) -> None:
        if not self._study_list.has_word(term_id):
            return
        self._study_list.remove_word(term_id)
        self._logger.log("word_removed", term=term_id, total=len(self._study_list))
        self._save_glossary()

    def record_review(
        self,
        term_id: str,
        correct: bool,
        confident: bool = False,
        *,
        at: Optional[datetime] = None,
    ) -> WordProgress:
        progress = self._study_list.record_review(term_id, correct, confident, at=at)
        self._logger.log(
            "word_reviewed",
            term=term_id,
            correct=correct,
            confidence=int(progress.confidence_level),
            interval=progress.interval,
        )
        self._save_glossary()
        return progress

    def reset_glossary_progress(self, *, at: Optional[datetime] = None) -> None:
        self._study_list.reset_progress(at=at)
        self._logger.log("glossary_reset", total=len(self._study_list))
        self._save_glossary()

    def words_due(self, *, at: Optional[datetime] = None) -> tuple[str, ...]:
        return self._study_list.words_due(at=at)

    def glossary_stats(self, *, at: Optional[datetime] = None) -> GlossaryStats:
        return self._study_list.stats(at=at)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self) -> bool:
        """Persist both snapshots; ``False`` when either write failed."""

        portfolio_saved = self._save_portfolio()
        glossary_saved = self._save_glossary()
        return portfolio_saved and glossary_saved

    def _after_order(self, result: TradeResult, side: str, symbol: str) -> TradeResult:
        if not result.ok:
            self._logger.log(
                "trade_rejected",
                level="warning",
                side=side,
                symbol=symbol,
                code=result.code.value if result.code else None,
                error=result.error,
            )
            return result
        trade = result.trade
        assert trade is not None
        self._logger.log(
            "trade_executed",
            trade_id=trade.id,
            side=trade.type.value,
            symbol=trade.symbol,
            shares=str(trade.shares),
            price=str(trade.price_per_share),
            cash=str(self._ledger.cash),
        )
        self._save_portfolio()
        return result

    def _save_portfolio(self) -> bool:
        return self._save(PORTFOLIO_SNAPSHOT_KEY, self._ledger.to_snapshot)

    def _save_glossary(self) -> bool:
        return self._save(GLOSSARY_SNAPSHOT_KEY, self._study_list.to_snapshot)

    def _save(self, key: str, snapshot: Callable[[], dict]) -> bool:
        if self._store is None:
            return True
        try:
            # The last write always carries the newest state.
            with self._save_lock:
                self._store.save(key, snapshot())
        except SQLAlchemyError as exc:
            # The in-memory state stays committed; the next save retries.
            self._logger.log("snapshot_save_failed", level="error", key=key, error=str(exc))
            return False
        self._logger.log("snapshot_saved", key=key)
        return True


__all__ = ["LearnerSession"]
