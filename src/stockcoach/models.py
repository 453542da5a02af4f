"""Domain models used by the paper trading ledger."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple
from uuid import uuid4

from .config import INITIAL_CASH, MAX_RESETS
from .money import require_positive


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradeType(str, Enum):
    """Direction of a simulated order."""

    BUY = "buy"
    SELL = "sell"


class ResetRequestStatus(str, Enum):
    """Lifecycle of a request for an extra portfolio reset."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class TradeErrorCode(str, Enum):
    """Machine readable reasons an order was refused."""

    INVALID_SYMBOL = "invalid_symbol"
    INVALID_SHARES = "invalid_shares"
    INVALID_PRICE = "invalid_price"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NO_POSITION = "no_position"
    INSUFFICIENT_SHARES = "insufficient_shares"


@dataclass(frozen=True, slots=True)
class Position:
    """Aggregated holding of one symbol with a weighted-average cost basis."""

    symbol: str
    shares: Decimal
    average_cost: Decimal
    total_cost: Decimal

    def __post_init__(self) -> None:
        require_positive(self.shares)
        require_positive(self.average_cost)
        require_positive(self.total_cost)


@dataclass(frozen=True, slots=True)
class Trade:
    """Represents a single executed order in the trade log."""

    symbol: str
    type: TradeType
    shares: Decimal
    price_per_share: Decimal
    total_value: Decimal
    timestamp: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=lambda: str(uuid4()))


@dataclass(frozen=True, slots=True)
class ResetRequest:
    """A learner's request for a reset beyond the allowed count."""

    requested_at: datetime = field(default_factory=utcnow)
    reason: Optional[str] = None
    status: ResetRequestStatus = ResetRequestStatus.PENDING
    id: str = field(default_factory=lambda: f"reset-req-{uuid4()}")


@dataclass(frozen=True, slots=True)
class TradeResult:
    """Outcome of a buy or sell; carries the trade or a displayable error."""

    trade: Optional[Trade] = None
    error: Optional[str] = None
    code: Optional[TradeErrorCode] = None

    @classmethod
    def succeeded(cls, trade: Trade) -> "TradeResult":
        return cls(trade=trade)

    @classmethod
    def failed(cls, code: TradeErrorCode, message: str) -> "TradeResult":
        return cls(error=message, code=code)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True, slots=True)
class GainLoss:
    """Unrealised gain or loss across priced positions."""

    amount: Decimal
    percent: Decimal


@dataclass(frozen=True, slots=True)
class PortfolioState:
    """Complete state of one learner's simulated brokerage account.

    ``positions_list`` is a secondary index over ``positions``; construction
    fails if the two disagree, so only :meth:`with_positions` should build a
    state with changed holdings.
    """

    cash: Decimal
    positions: Mapping[str, Position]
    positions_list: Tuple[Position, ...]
    trades: Tuple[Trade, ...]
    last_updated: datetime
    reset_count: int = 0
    max_resets: int = MAX_RESETS
    last_reset_at: Optional[datetime] = None
    reset_requests: Tuple[ResetRequest, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.positions, MappingProxyType):
            object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))
        if tuple(self.positions.values()) != tuple(self.positions_list):
            raise ValueError("positions_list is out of sync with positions.")
        for symbol, position in self.positions.items():
            if symbol != position.symbol:
                raise ValueError(f"Position for {position.symbol} stored under {symbol}.")
        if self.reset_count < 0 or self.max_resets < 0:
            raise ValueError("Reset counters cannot be negative.")

    @classmethod
    def initial(
        cls,
        *,
        cash: Decimal = INITIAL_CASH,
        max_resets: int = MAX_RESETS,
        at: Optional[datetime] = None,
    ) -> "PortfolioState":
        return cls(
            cash=cash,
            positions={},
            positions_list=(),
            trades=(),
            last_updated=at or utcnow(),
            max_resets=max_resets,
        )

    def with_positions(self, positions: Mapping[str, Position], **changes: object) -> "PortfolioState":
        """Return a copy holding ``positions`` with the list index rebuilt."""

        frozen = MappingProxyType(dict(positions))
        return replace(self, positions=frozen, positions_list=tuple(frozen.values()), **changes)

    def with_changes(self, **changes: object) -> "PortfolioState":
        return replace(self, **changes)


__all__ = [
    "GainLoss",
    "PortfolioState",
    "Position",
    "ResetRequest",
    "ResetRequestStatus",
    "Trade",
    "TradeErrorCode",
    "TradeResult",
    "TradeType",
    "utcnow",
]
