"""StockCoach package: paper trading and spaced repetition for learning to invest."""

from .calculators import (
    CompoundInterest,
    DividendFrequency,
    DividendIncome,
    DollarCostAverage,
    DoublingTime,
    FutureValue,
    PositionSize,
    ProfitLoss,
    RiskReward,
    compare_dca_vs_lump_sum,
    compound_interest,
    dividend_income,
    dollar_cost_average,
    future_value,
    position_size,
    profit_loss,
    required_contribution,
    required_return,
    risk_reward,
    rule_of_72,
    shares_for_income,
    stop_loss,
)
from .exceptions import SnapshotError, StockCoachError, TermNotFoundError
from .glossary import GlossaryStats, StudyList, StudyListState, WordProgress
from .ledger import PaperLedger
from .models import (
    GainLoss,
    PortfolioState,
    Position,
    ResetRequest,
    ResetRequestStatus,
    Trade,
    TradeErrorCode,
    TradeResult,
    TradeType,
)
from .ops import StructuredLogger
from .persistence import SnapshotStore
from .scheduler import (
    CardState,
    ConfidenceLevel,
    ReviewOutcome,
    confidence_label,
    confidence_level,
    next_review,
    next_review_label,
    quality_from_binary_outcome,
)
from .service import LearnerSession

__all__ = [
    "CardState",
    "CompoundInterest",
    "ConfidenceLevel",
    "DividendFrequency",
    "DividendIncome",
    "DollarCostAverage",
    "DoublingTime",
    "FutureValue",
    "GainLoss",
    "GlossaryStats",
    "LearnerSession",
    "PaperLedger",
    "PortfolioState",
    "Position",
    "PositionSize",
    "ProfitLoss",
    "ResetRequest",
    "ResetRequestStatus",
    "ReviewOutcome",
    "RiskReward",
    "SnapshotError",
    "SnapshotStore",
    "StockCoachError",
    "StructuredLogger",
    "StudyList",
    "StudyListState",
    "TermNotFoundError",
    "Trade",
    "TradeErrorCode",
    "TradeResult",
    "TradeType",
    "WordProgress",
    "compare_dca_vs_lump_sum",
    "compound_interest",
    "confidence_label",
    "confidence_level",
    "dividend_income",
    "dollar_cost_average",
    "future_value",
    "next_review",
    "next_review_label",
    "position_size",
    "profit_loss",
    "quality_from_binary_outcome",
    "required_contribution",
    "required_return",
    "risk_reward",
    "rule_of_72",
    "shares_for_income",
    "stop_loss",
]
