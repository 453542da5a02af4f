from decimal import Decimal

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from stockcoach.glossary import StudyList
from stockcoach.ledger import PaperLedger
from stockcoach.ops import StructuredLogger
from stockcoach.service import LearnerSession
from stockcoach.webapp import create_app


@pytest.fixture
def client() -> TestClient:
    session = LearnerSession(
        ledger=PaperLedger(max_resets=1),
        study_list=StudyList(max_words=2),
        logger=StructuredLogger(),
    )
    return TestClient(create_app(session))


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_buy_and_sell(client: TestClient) -> None:
    bought = client.post("/portfolio/buy", data={"symbol": "aapl", "shares": "10", "price": "150"})
    assert bought.status_code == 200
    assert bought.json()["trade"]["symbol"] == "AAPL"
    assert bought.json()["cash"] == "98500"

    sold = client.post("/portfolio/sell", data={"symbol": "AAPL", "shares": "4", "price": "160"})
    assert sold.status_code == 200
    assert sold.json()["trade"]["type"] == "sell"

    portfolio = client.get("/portfolio").json()
    assert portfolio["positions"]["AAPL"]["shares"] == "6"
    assert portfolio["remaining_resets"] == 1


def test_rejected_trade_returns_400(client: TestClient) -> None:
    response = client.post("/portfolio/sell", data={"symbol": "TSLA", "shares": "1", "price": "10"})

    assert response.status_code == 400
    assert response.json() == {"error": "You don't own any shares of TSLA", "code": "no_position"}

    response = client.post("/portfolio/buy", data={"symbol": "TSLA", "shares": "lots", "price": "10"})
    assert response.json()["code"] == "invalid_shares"


def test_reset_limit_returns_409(client: TestClient) -> None:
    assert client.post("/portfolio/reset").json()["remaining_resets"] == 0

    denied = client.post("/portfolio/reset")
    assert denied.status_code == 409

    request = client.post("/portfolio/reset-requests", data={"reason": "Learned my lesson"})
    assert request.json()["status"] == "pending"
    assert request.json()["id"].startswith("reset-req-")


def test_valuation(client: TestClient) -> None:
    client.post("/portfolio/buy", data={"symbol": "AAPL", "shares": "10", "price": "150"})

    body = client.post("/portfolio/valuation", json={"AAPL": 165.0}).json()

    assert Decimal(body["value"]) == Decimal("100150")
    assert Decimal(body["gain_loss"]["amount"]) == Decimal("150")
    assert Decimal(body["gain_loss"]["percent"]) == Decimal("10")


def test_glossary_flow(client: TestClient) -> None:
    assert client.post("/glossary/words", data={"term_id": "pe-ratio"}).status_code == 200
    assert client.post("/glossary/words", data={"term_id": "dividend"}).json()["total"] == 2
    assert client.post("/glossary/words", data={"term_id": "beta"}).status_code == 409

    due = client.get("/glossary/due").json()
    assert due == {"due": ["pe-ratio", "dividend"], "count": 2}

    reviewed = client.post(
        "/glossary/review", data={"term_id": "pe-ratio", "correct": "true", "confident": "true"}
    ).json()
    assert reviewed["repetitions"] == 1
    assert reviewed["confidence_label"] == "Learning"
    assert reviewed["next_review_label"] == "Tomorrow"

    assert client.get("/glossary/due").json()["due"] == ["dividend"]

    removed = client.post("/glossary/words/dividend/delete").json()
    assert removed == {"term_id": "dividend", "total": 1}

    stats = client.get("/glossary").json()["stats"]
    assert stats["total_words"] == 1
    assert stats["streak"] == 1


def test_review_unknown_term_returns_404(client: TestClient) -> None:
    response = client.post("/glossary/review", data={"term_id": "ghost", "correct": "false"})

    assert response.status_code == 404


def test_huge_order_returns_400(client: TestClient) -> None:
    response = client.post("/portfolio/buy", data={"symbol": "AAPL", "shares": "1e999999", "price": "10"})

    assert response.status_code == 400
    assert response.json()["code"] == "insufficient_funds"


def test_glossary_listing_reads_one_state(client: TestClient, monkeypatch) -> None:
    client.post("/glossary/words", data={"term_id": "pe-ratio"})

    def lookup_per_word(self, term_id):
        raise AssertionError("listing must not look words up one at a time")

    monkeypatch.setattr(StudyList, "word_progress", lookup_per_word)

    words = client.get("/glossary").json()["words"]
    assert [word["term_id"] for word in words] == ["pe-ratio"]
