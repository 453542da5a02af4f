"""Versioned snapshot schema for persisting learner state.

Snapshots are plain JSON-compatible dictionaries tagged with a ``kind`` and a
``schema_version``. Decimals are stored as strings, datetimes as epoch
milliseconds and calendar dates as ISO strings. Decoding never repairs a
malformed payload; it raises :class:`~stockcoach.exceptions.SnapshotError`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, TypeVar

from .exceptions import SnapshotError
from .models import PortfolioState, Position, ResetRequest, ResetRequestStatus, Trade, TradeType
from .money import to_decimal

SCHEMA_VERSION = 1
PORTFOLIO_KIND = "portfolio"
GLOSSARY_KIND = "glossary"

T = TypeVar("T")


def to_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


def from_millis(value: Any) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotError(f"Expected epoch milliseconds, got {value!r}.")
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise SnapshotError(f"Timestamp {value!r} is out of range.") from exc


def optional_millis(value: Any) -> Optional[datetime]:
    return None if value is None else from_millis(value)


def str_field(value: Any) -> str:
    if not isinstance(value, str):
        raise SnapshotError(f"Expected a string, got {value!r}.")
    return value


def optional_str(value: Any) -> Optional[str]:
    return None if value is None else str_field(value)


def decimal_field(value: Any) -> Decimal:
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Expected a decimal amount, got {value!r}.") from exc


def int_field(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotError(f"Expected an integer, got {value!r}.")
    return value


def date_field(value: Any) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Expected an ISO date, got {value!r}.") from exc


def require(data: Mapping[str, Any], key: str, convert: Callable[[Any], T]) -> T:
    if key not in data:
        raise SnapshotError(f"Snapshot is missing '{key}'.")
    return convert(data[key])


def check_header(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise SnapshotError("Snapshot must be a mapping.")
    if data.get("kind") != kind:
        raise SnapshotError(f"Expected a {kind} snapshot, got {data.get('kind')!r}.")
    if data.get("schema_version") != SCHEMA_VERSION:
        raise SnapshotError(f"Unsupported schema version {data.get('schema_version')!r}.")
    return data


# Portfolio ---------------------------------------------------------------
def _position_to_dict(position: Position) -> dict:
    return {
        "symbol": position.symbol,
        "shares": str(position.shares),
        "average_cost": str(position.average_cost),
        "total_cost": str(position.total_cost),
    }


def _position_from_dict(data: Any) -> Position:
    if not isinstance(data, Mapping):
        raise SnapshotError("Position entries must be mappings.")
    try:
        return Position(
            symbol=require(data, "symbol", str_field),
            shares=require(data, "shares", decimal_field),
            average_cost=require(data, "average_cost", decimal_field),
            total_cost=require(data, "total_cost", decimal_field),
        )
    except ValueError as exc:
        raise SnapshotError(f"Invalid position: {exc}") from exc


def _trade_to_dict(trade: Trade) -> dict:
    return {
        "id": trade.id,
        "symbol": trade.symbol,
        "type": trade.type.value,
        "shares": str(trade.shares),
        "price_per_share": str(trade.price_per_share),
        "total_value": str(trade.total_value),
        "timestamp": to_millis(trade.timestamp),
    }


def _trade_from_dict(data: Any) -> Trade:
    if not isinstance(data, Mapping):
        raise SnapshotError("Trade entries must be mappings.")
    try:
        trade_type = TradeType(data.get("type"))
    except ValueError as exc:
        raise SnapshotError(f"Unknown trade type {data.get('type')!r}.") from exc
    return Trade(
        id=require(data, "id", str_field),
        symbol=require(data, "symbol", str_field),
        type=trade_type,
        shares=require(data, "shares", decimal_field),
        price_per_share=require(data, "price_per_share", decimal_field),
        total_value=require(data, "total_value", decimal_field),
        timestamp=require(data, "timestamp", from_millis),
    )


def _request_to_dict(request: ResetRequest) -> dict:
    return {
        "id": request.id,
        "requested_at": to_millis(request.requested_at),
        "reason": request.reason,
        "status": request.status.value,
    }


def _request_from_dict(data: Any) -> ResetRequest:
    if not isinstance(data, Mapping):
        raise SnapshotError("Reset request entries must be mappings.")
    try:
        status = ResetRequestStatus(data.get("status"))
    except ValueError as exc:
        raise SnapshotError(f"Unknown reset request status {data.get('status')!r}.") from exc
    return ResetRequest(
        id=require(data, "id", str_field),
        requested_at=require(data, "requested_at", from_millis),
        reason=optional_str(data.get("reason")),
        status=status,
    )


def _list_field(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise SnapshotError(f"Snapshot field '{key}' must be a list.")
    return value


def portfolio_to_snapshot(state: PortfolioState) -> dict:
    return {
        "schema_version": SCHEMA_VERSION,
        "kind": PORTFOLIO_KIND,
        "cash": str(state.cash),
        "positions": {symbol: _position_to_dict(p) for symbol, p in state.positions.items()},
        "positions_list": [_position_to_dict(p) for p in state.positions_list],
        "trades": [_trade_to_dict(trade) for trade in state.trades],
        "last_updated": to_millis(state.last_updated),
        "reset_count": state.reset_count,
        "max_resets": state.max_resets,
        "last_reset_at": to_millis(state.last_reset_at) if state.last_reset_at else None,
        "reset_requests": [_request_to_dict(request) for request in state.reset_requests],
    }


def portfolio_from_snapshot(data: Any) -> PortfolioState:
    data = check_header(data, PORTFOLIO_KIND)
    raw_positions = data.get("positions")
    if not isinstance(raw_positions, Mapping):
        raise SnapshotError("Snapshot field 'positions' must be a mapping.")
    positions = {symbol: _position_from_dict(entry) for symbol, entry in raw_positions.items()}
    positions_list = tuple(_position_from_dict(entry) for entry in _list_field(data, "positions_list"))
    try:
        return PortfolioState(
            cash=require(data, "cash", decimal_field),
            positions=positions,
            positions_list=positions_list,
            trades=tuple(_trade_from_dict(entry) for entry in _list_field(data, "trades")),
            last_updated=require(data, "last_updated", from_millis),
            reset_count=require(data, "reset_count", int_field),
            max_resets=require(data, "max_resets", int_field),
            last_reset_at=optional_millis(data.get("last_reset_at")),
            reset_requests=tuple(
                _request_from_dict(entry) for entry in _list_field(data, "reset_requests")
            ),
        )
    except ValueError as exc:
        raise SnapshotError(f"Inconsistent portfolio snapshot: {exc}") from exc


__all__ = [
    "GLOSSARY_KIND",
    "PORTFOLIO_KIND",
    "SCHEMA_VERSION",
    "check_header",
    "date_field",
    "decimal_field",
    "from_millis",
    "int_field",
    "optional_millis",
    "optional_str",
    "portfolio_from_snapshot",
    "portfolio_to_snapshot",
    "require",
    "str_field",
    "to_millis",
]
