"""Paper trading ledger encapsulating the simulated brokerage account."""

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal, DecimalException
from typing import Any, Mapping, Optional, Tuple

from .config import INITIAL_CASH, MAX_RESET_REQUESTS, MAX_RESETS, MAX_TRADES
from .models import (
    GainLoss,
    PortfolioState,
    Position,
    ResetRequest,
    Trade,
    TradeErrorCode,
    TradeResult,
    TradeType,
    utcnow,
)
from .money import AmountLike, format_currency, format_quantity, to_decimal
from .snapshot import portfolio_from_snapshot, portfolio_to_snapshot

ZERO = Decimal("0")


class _Rejected(Exception):
    def __init__(self, code: TradeErrorCode, message: str) -> None:
        super().__init__(message)
        self.result = TradeResult.failed(code, message)


def _out_of_range_error() -> _Rejected:
    return _Rejected(TradeErrorCode.INVALID_SHARES, "Order size is out of range")


def _out_of_range() -> TradeResult:
    return _out_of_range_error().result


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def _positive(value: AmountLike, code: TradeErrorCode, message: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise _Rejected(code, message) from exc
    if amount <= ZERO:
        raise _Rejected(code, message)
    return amount


def _parse_order(symbol: str, shares: AmountLike, price_per_share: AmountLike) -> Tuple[str, Decimal, Decimal]:
    normalized = normalize_symbol(symbol or "")
    if not normalized:
        raise _Rejected(TradeErrorCode.INVALID_SYMBOL, "Symbol is required")
    quantity = _positive(shares, TradeErrorCode.INVALID_SHARES, "Number of shares must be positive")
    price = _positive(price_per_share, TradeErrorCode.INVALID_PRICE, "Price must be positive")
    return normalized, quantity, price


def _order_value(quantity: Decimal, price: Decimal, overflow: _Rejected) -> Decimal:
    """``quantity * price``, rejecting products outside the decimal range."""

    try:
        value = quantity * price
    except DecimalException as exc:
        raise overflow from exc
    if value <= ZERO:
        # Underflowed to zero.
        raise _out_of_range_error()
    return value


def _prepend_trade(trades: Tuple[Trade, ...], trade: Trade, limit: int) -> Tuple[Trade, ...]:
    # Newest first; the oldest entries fall off the tail.
    return ((trade,) + trades)[:limit]


def _append_request(
    requests: Tuple[ResetRequest, ...], request: ResetRequest, limit: int
) -> Tuple[ResetRequest, ...]:
    # Oldest first; overflow is evicted from the head.
    combined = requests + (request,)
    return combined[len(combined) - limit :] if len(combined) > limit else combined


def _apply_buy(state: PortfolioState, trade: Trade, max_trades: int) -> PortfolioState:
    positions = dict(state.positions)
    existing = positions.get(trade.symbol)
    if existing is None:
        positions[trade.symbol] = Position(
            symbol=trade.symbol,
            shares=trade.shares,
            average_cost=trade.price_per_share,
            total_cost=trade.total_value,
        )
    else:
        shares = existing.shares + trade.shares
        total_cost = existing.total_cost + trade.total_value
        positions[trade.symbol] = Position(
            symbol=trade.symbol,
            shares=shares,
            average_cost=total_cost / shares,
            total_cost=total_cost,
        )
    return state.with_positions(
        positions,
        cash=state.cash - trade.total_value,
        trades=_prepend_trade(state.trades, trade, max_trades),
        last_updated=trade.timestamp,
    )


def _apply_sell(state: PortfolioState, trade: Trade, max_trades: int) -> PortfolioState:
    positions = dict(state.positions)
    existing = positions[trade.symbol]
    remaining = existing.shares - trade.shares
    if remaining == ZERO:
        del positions[trade.symbol]
    else:
        positions[trade.symbol] = Position(
            symbol=trade.symbol,
            shares=remaining,
            average_cost=existing.average_cost,
            total_cost=existing.average_cost * remaining,
        )
    return state.with_positions(
        positions,
        cash=state.cash + trade.total_value,
        trades=_prepend_trade(state.trades, trade, max_trades),
        last_updated=trade.timestamp,
    )


def _apply_reset(state: PortfolioState, initial_cash: Decimal, moment: datetime) -> PortfolioState:
    return state.with_positions(
        {},
        cash=initial_cash,
        trades=(),
        last_updated=moment,
        reset_count=state.reset_count + 1,
        last_reset_at=moment,
    )


class PaperLedger:
    """A single learner's simulated brokerage account.

    Every command builds the next :class:`PortfolioState` in one step and swaps
    it in under the instance lock, so readers never see a half-applied order.
    Business-rule failures come back as :class:`TradeResult` values.
    """

    __slots__ = ("_state", "_lock", "_initial_cash", "_max_trades", "_max_reset_requests")

    def __init__(
        self,
        state: PortfolioState | None = None,
        *,
        initial_cash: AmountLike = INITIAL_CASH,
        max_resets: int = MAX_RESETS,
        max_trades: int = MAX_TRADES,
        max_reset_requests: int = MAX_RESET_REQUESTS,
    ) -> None:
        if max_trades <= 0 or max_reset_requests <= 0:
            raise ValueError("History limits must be positive.")
        self._initial_cash = to_decimal(initial_cash)
        if self._initial_cash < ZERO:
            raise ValueError("Initial cash cannot be negative.")
        self._max_trades = max_trades
        self._max_reset_requests = max_reset_requests
        self._lock = threading.RLock()
        self._state = state or PortfolioState.initial(cash=self._initial_cash, max_resets=max_resets)

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any], **options: Any) -> "PaperLedger":
        """Rebuild a ledger from :meth:`to_snapshot` output; raises ``SnapshotError``."""

        return cls(portfolio_from_snapshot(data), **options)

    def to_snapshot(self) -> dict:
        return portfolio_to_snapshot(self.state)

    # Read-only views -------------------------------------------------------
    @property
    def state(self) -> PortfolioState:
        with self._lock:
            return self._state

    @property
    def cash(self) -> Decimal:
        return self.state.cash

    @property
    def positions(self) -> Mapping[str, Position]:
        return self.state.positions

    @property
    def positions_list(self) -> Tuple[Position, ...]:
        return self.state.positions_list

    @property
    def trades(self) -> Tuple[Trade, ...]:
        return self.state.trades

    @property
    def reset_requests(self) -> Tuple[ResetRequest, ...]:
        return self.state.reset_requests

    @property
    def reset_count(self) -> int:
        return self.state.reset_count

    @property
    def max_resets(self) -> int:
        return self.state.max_resets

    @property
    def last_reset_at(self) -> Optional[datetime]:
        return self.state.last_reset_at

    @property
    def last_updated(self) -> datetime:
        return self.state.last_updated

    # Orders ----------------------------------------------------------------
    def buy(
        self,
        symbol: str,
        shares: AmountLike,
        price_per_share: AmountLike,
        *,
        at: Optional[datetime] = None,
    ) -> TradeResult:
        """Buy ``shares`` of ``symbol`` at ``price_per_share`` using available cash."""

        with self._lock:
            try:
                normalized, quantity, price = _parse_order(symbol, shares, price_per_share)
                cost = _order_value(
                    quantity,
                    price,
                    _Rejected(TradeErrorCode.INSUFFICIENT_FUNDS, "Insufficient funds"),
                )
            except _Rejected as rejected:
                return rejected.result
            if cost > self._state.cash:
                return TradeResult.failed(TradeErrorCode.INSUFFICIENT_FUNDS, "Insufficient funds")
            trade = Trade(
                symbol=normalized,
                type=TradeType.BUY,
                shares=quantity,
                price_per_share=price,
                total_value=cost,
                timestamp=at or utcnow(),
            )
            try:
                state = _apply_buy(self._state, trade, self._max_trades)
            except (DecimalException, ValueError):
                return _out_of_range()
            self._state = state
            return TradeResult.succeeded(trade)

    def sell(
        self,
        symbol: str,
        shares: AmountLike,
        price_per_share: AmountLike,
        *,
        at: Optional[datetime] = None,
    ) -> TradeResult:
        """Sell ``shares`` of an existing position, keeping its average cost."""

        with self._lock:
            try:
                normalized, quantity, price = _parse_order(symbol, shares, price_per_share)
            except _Rejected as rejected:
                return rejected.result
            position = self._state.positions.get(normalized)
            if position is None:
                return TradeResult.failed(
                    TradeErrorCode.NO_POSITION, f"You don't own any shares of {normalized}"
                )
            if quantity > position.shares:
                return TradeResult.failed(
                    TradeErrorCode.INSUFFICIENT_SHARES,
                    f"You don't own enough shares (have {format_quantity(position.shares)})",
                )
            try:
                proceeds = _order_value(quantity, price, _out_of_range_error())
            except _Rejected as rejected:
                return rejected.result
            trade = Trade(
                symbol=normalized,
                type=TradeType.SELL,
                shares=quantity,
                price_per_share=price,
                total_value=proceeds,
                timestamp=at or utcnow(),
            )
            try:
                state = _apply_sell(self._state, trade, self._max_trades)
            except (DecimalException, ValueError):
                return _out_of_range()
            self._state = state
            return TradeResult.succeeded(trade)

    # Resets ----------------------------------------------------------------
    def reset_portfolio(self, *, at: Optional[datetime] = None) -> bool:
        """Restore the starting cash and clear holdings while resets remain."""

        with self._lock:
            if self._state.reset_count >= self._state.max_resets:
                return False
            self._state = _apply_reset(self._state, self._initial_cash, at or utcnow())
            return True

    def can_reset(self) -> bool:
        state = self.state
        return state.reset_count < state.max_resets

    def remaining_resets(self) -> int:
        state = self.state
        return max(0, state.max_resets - state.reset_count)

    def request_additional_reset(
        self, reason: str | None = None, *, at: Optional[datetime] = None
    ) -> ResetRequest:
        """Queue a pending request for an administrator to grant another reset."""

        request = ResetRequest(
            requested_at=at or utcnow(),
            reason=(reason or "").strip() or None,
        )
        with self._lock:
            self._state = self._state.with_changes(
                reset_requests=_append_request(
                    self._state.reset_requests, request, self._max_reset_requests
                )
            )
        return request

    # Queries ---------------------------------------------------------------
    def get_position(self, symbol: str) -> Optional[Position]:
        return self.state.positions.get(normalize_symbol(symbol))

    def recent_trades(self, count: int = 5) -> Tuple[Trade, ...]:
        """Return the newest ``count`` trades, newest first."""

        if count < 0:
            raise ValueError("count must not be negative")
        return self.state.trades[:count]

    def portfolio_value(self, prices: Mapping[str, AmountLike]) -> Decimal:
        """Cash plus market value of every position with a known price.

        Positions without a usable quote count as zero even though their cost
        already left the cash balance.
        """

        state = self.state
        quotes = _normalize_prices(prices)
        market_value = ZERO
        for position in state.positions_list:
            price = quotes.get(position.symbol)
            if price is not None:
                market_value += position.shares * price
        return state.cash + market_value

    def total_gain_loss(self, prices: Mapping[str, AmountLike]) -> GainLoss:
        """Unrealised gain across priced positions; unpriced ones are skipped."""

        quotes = _normalize_prices(prices)
        cost_basis = ZERO
        market_value = ZERO
        for position in self.state.positions_list:
            price = quotes.get(position.symbol)
            if price is None:
                continue
            cost_basis += position.total_cost
            market_value += position.shares * price
        amount = market_value - cost_basis
        percent = (amount / cost_basis * 100) if cost_basis > ZERO else ZERO
        return GainLoss(amount=amount, percent=percent)

    def generate_statement(
        self, prices: Optional[Mapping[str, AmountLike]] = None, *, max_trades: int = 10
    ) -> str:
        """Create a human-readable summary of the account state."""

        state = self.state
        quotes = prices or {}
        lines = [
            f"Cash: {format_currency(state.cash)}",
            f"Portfolio value: {format_currency(self.portfolio_value(quotes))}",
            f"Resets remaining: {self.remaining_resets()} of {state.max_resets}",
            "",
            "Positions:",
        ]
        if not state.positions_list:
            lines.append("  (no positions yet)")
        for position in state.positions_list:
            lines.append(
                "  "
                f"{position.symbol}: {format_quantity(position.shares)} sh "
                f"@ avg {format_currency(position.average_cost)} "
                f"(cost {format_currency(position.total_cost)})"
            )
        if quotes and state.positions_list:
            gain = self.total_gain_loss(quotes)
            lines.append(f"  Unrealised: {format_currency(gain.amount)} ({gain.percent:.2f}%)")
        lines.append("")
        lines.append("Recent trades:")
        trades = self.recent_trades(max_trades)
        if not trades:
            lines.append("  (no trades yet)")
        for trade in trades:
            lines.append(
                "  "
                f"[{trade.timestamp:%Y-%m-%d}] {trade.type.value.title()} "
                f"{format_quantity(trade.shares)} {trade.symbol} "
                f"@ {format_currency(trade.price_per_share)} = {format_currency(trade.total_value)}"
            )
        return "\n".join(lines)


def _normalize_prices(prices: Mapping[str, AmountLike]) -> dict[str, Decimal]:
    quotes: dict[str, Decimal] = {}
    for symbol, raw in prices.items():
        if raw is None:
            continue
        try:
            price = to_decimal(raw)
        except (TypeError, ValueError):
            continue
        if price > ZERO:
            quotes[normalize_symbol(symbol)] = price
    return quotes


__all__ = ["PaperLedger", "normalize_symbol"]
