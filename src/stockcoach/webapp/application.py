"""FastAPI JSON frontend for StockCoach.

Endpoints are thin wrappers over :class:`~stockcoach.service.LearnerSession`;
the session instance lives on ``app.state`` so tests and embedders can inject
their own.
"""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import Body, Depends, FastAPI, Form, Request
from fastapi.responses import JSONResponse

from ..config import DATABASE_URL
from ..exceptions import TermNotFoundError
from ..glossary import WordProgress
from ..models import GainLoss, TradeResult
from ..persistence import SnapshotStore
from ..scheduler import next_review_label
from ..service import LearnerSession
from ..snapshot import to_millis


def get_learner(request: Request) -> LearnerSession:
    return request.app.state.learner


def _trade_response(result: TradeResult, learner: LearnerSession) -> JSONResponse:
    if not result.ok:
        return JSONResponse(
            {"error": result.error, "code": result.code.value if result.code else None},
            status_code=400,
        )
    trade = result.trade
    assert trade is not None
    return JSONResponse(
        {
            "trade": {
                "id": trade.id,
                "symbol": trade.symbol,
                "type": trade.type.value,
                "shares": str(trade.shares),
                "price_per_share": str(trade.price_per_share),
                "total_value": str(trade.total_value),
                "timestamp": to_millis(trade.timestamp),
            },
            "cash": str(learner.ledger.cash),
        }
    )


def _word_payload(word: WordProgress) -> dict:
    return {
        "term_id": word.term_id,
        "review_count": word.review_count,
        "confidence_level": int(word.confidence_level),
        "confidence_label": word.confidence_level.label,
        "next_review_at": to_millis(word.next_review_at) if word.next_review_at else None,
        "next_review_label": next_review_label(word.next_review_at) if word.next_review_at else None,
        "ease_factor": word.ease_factor,
        "interval": word.interval,
        "repetitions": word.repetitions,
    }


def _gain_payload(gain: GainLoss) -> dict:
    return {"amount": str(gain.amount), "percent": str(gain.percent)}


def create_app(session: Optional[LearnerSession] = None) -> FastAPI:
    """Build the API around ``session`` or one backed by ``DATABASE_URL``."""

    app = FastAPI(title="StockCoach")
    app.state.learner = session or LearnerSession.open(SnapshotStore.from_url(DATABASE_URL))

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    # Paper trading ---------------------------------------------------------
    @app.get("/portfolio")
    def portfolio(learner: LearnerSession = Depends(get_learner)) -> dict:
        snapshot = learner.ledger.to_snapshot()
        snapshot["remaining_resets"] = learner.ledger.remaining_resets()
        snapshot["can_reset"] = learner.ledger.can_reset()
        return snapshot

    @app.post("/portfolio/buy")
    def buy(
        symbol: str = Form(...),
        shares: str = Form(...),
        price: str = Form(...),
        learner: LearnerSession = Depends(get_learner),
    ) -> JSONResponse:
        return _trade_response(learner.buy(symbol, shares, price), learner)

    @app.post("/portfolio/sell")
    def sell(
        symbol: str = Form(...),
        shares: str = Form(...),
        price: str = Form(...),
        learner: LearnerSession = Depends(get_learner),
    ) -> JSONResponse:
        return _trade_response(learner.sell(symbol, shares, price), learner)

    @app.post("/portfolio/reset")
    def reset(learner: LearnerSession = Depends(get_learner)) -> JSONResponse:
        if not learner.reset_portfolio():
            return JSONResponse(
                {"error": "No resets remaining", "remaining_resets": 0},
                status_code=409,
            )
        return JSONResponse(
            {
                "cash": str(learner.ledger.cash),
                "remaining_resets": learner.ledger.remaining_resets(),
            }
        )

    @app.post("/portfolio/reset-requests")
    def request_reset(
        reason: str = Form(""),
        learner: LearnerSession = Depends(get_learner),
    ) -> dict:
        request = learner.request_additional_reset(reason)
        return {
            "id": request.id,
            "status": request.status.value,
            "reason": request.reason,
            "requested_at": to_millis(request.requested_at),
        }

    @app.post("/portfolio/valuation")
    def valuation(
        prices: Dict[str, float] = Body(...),
        learner: LearnerSession = Depends(get_learner),
    ) -> dict:
        return {
            "value": str(learner.portfolio_value(prices)),
            "gain_loss": _gain_payload(learner.total_gain_loss(prices)),
        }

    # Glossary --------------------------------------------------------------
    @app.get("/glossary")
    def glossary(learner: LearnerSession = Depends(get_learner)) -> dict:
        study_list = learner.study_list
        state = study_list.state
        stats = learner.glossary_stats()
        return {
            "words": [_word_payload(state.words[term_id]) for term_id in state.word_ids],
            "stats": {
                "total_words": stats.total_words,
                "mastered": stats.mastered,
                "learning": stats.learning,
                "due_today": stats.due_today,
                "streak": stats.streak,
                "longest_streak": state.longest_streak,
            },
        }

    @app.get("/glossary/due")
    def glossary_due(learner: LearnerSession = Depends(get_learner)) -> dict:
        due = learner.words_due()
        return {"due": list(due), "count": len(due)}

    @app.post("/glossary/words")
    def add_word(
        term_id: str = Form(...),
        learner: LearnerSession = Depends(get_learner),
    ) -> JSONResponse:
        if not learner.add_word(term_id):
            return JSONResponse({"error": "Study list is full"}, status_code=409)
        return JSONResponse({"term_id": term_id, "total": len(learner.study_list)})

    @app.post("/glossary/words/{term_id}/delete")
    def remove_word(term_id: str, learner: LearnerSession = Depends(get_learner)) -> dict:
        learner.remove_word(term_id)
        return {"term_id": term_id, "total": len(learner.study_list)}

    @app.post("/glossary/review")
    def review(
        term_id: str = Form(...),
        correct: bool = Form(...),
        confident: bool = Form(False),
        learner: LearnerSession = Depends(get_learner),
    ) -> JSONResponse:
        try:
            progress = learner.record_review(term_id, correct, confident)
        except TermNotFoundError as exc:
            return JSONResponse({"error": str(exc)}, status_code=404)
        return JSONResponse(_word_payload(progress))

    return app


__all__ = ["create_app", "get_learner"]
