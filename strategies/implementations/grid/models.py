"""
Grid Engine Data Models

Runtime state of a grid order and the position legs it owns.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from .utils import decimal_to_str, to_decimal

_ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def decode_id_list(raw: Any) -> List[str]:
    """Decode a persisted id list; anything malformed decodes to an empty list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    if not isinstance(raw, (list, tuple)):
        return []
    return [str(item) for item in raw if isinstance(item, (str, int))]


class PositionType(Enum):
    """BUY legs are bought first and sold later; SELL legs the reverse."""
    BUY = "BUY"
    SELL = "SELL"


class PositionStatus(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


@dataclass
class Position:
    """One leg of the grid.

    BUY legs carry their entry in ``buy_*`` and exit in ``sell_*``;
    SELL legs carry their entry in ``sell_*`` and exit in ``buy_*``.
    """

    wallet_address: str
    order_id: str
    type: PositionType
    amount: Decimal
    trend_at_buy: int = 0
    id: Optional[str] = None
    buy_price: Optional[Decimal] = None
    buy_value: Optional[Decimal] = None
    sell_price: Optional[Decimal] = None
    sell_value: Optional[Decimal] = None
    target_sell_price: Optional[Decimal] = None
    target_buyback_price: Optional[Decimal] = None
    status: PositionStatus = PositionStatus.OPEN
    profit: Optional[Decimal] = None
    created_at: datetime = field(default_factory=utc_now)
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN

    @property
    def entry_value(self) -> Decimal:
        value = self.buy_value if self.type == PositionType.BUY else self.sell_value
        return value if value is not None else _ZERO

    @property
    def target_price(self) -> Optional[Decimal]:
        if self.type == PositionType.BUY:
            return self.target_sell_price
        return self.target_buyback_price

    def profit_at(self, exit_value: Decimal) -> Decimal:
        """Profit realised if the leg were closed for ``exit_value``."""
        if self.type == PositionType.BUY:
            return exit_value - self.entry_value
        return self.entry_value - exit_value

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'wallet_address': self.wallet_address,
            'order_id': self.order_id,
            'type': self.type.value,
            'amount': decimal_to_str(self.amount),
            'trend_at_buy': self.trend_at_buy,
            'buy_price': decimal_to_str(self.buy_price),
            'buy_value': decimal_to_str(self.buy_value),
            'sell_price': decimal_to_str(self.sell_price),
            'sell_value': decimal_to_str(self.sell_value),
            'target_sell_price': decimal_to_str(self.target_sell_price),
            'target_buyback_price': decimal_to_str(self.target_buyback_price),
            'status': self.status.value,
            'profit': decimal_to_str(self.profit),
            'created_at': _format_datetime(self.created_at),
            'closed_at': _format_datetime(self.closed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Position':
        return cls(
            id=str(data['id']) if data.get('id') is not None else None,
            wallet_address=data['wallet_address'],
            order_id=str(data['order_id']),
            type=PositionType(data.get('type', 'BUY')),
            amount=to_decimal(data.get('amount'), _ZERO),
            trend_at_buy=int(data.get('trend_at_buy') or 0),
            buy_price=to_decimal(data.get('buy_price')),
            buy_value=to_decimal(data.get('buy_value')),
            sell_price=to_decimal(data.get('sell_price')),
            sell_value=to_decimal(data.get('sell_value')),
            target_sell_price=to_decimal(data.get('target_sell_price')),
            target_buyback_price=to_decimal(data.get('target_buyback_price')),
            status=PositionStatus(data.get('status', 'OPEN')),
            profit=to_decimal(data.get('profit')),
            created_at=_parse_datetime(data.get('created_at')) or utc_now(),
            closed_at=_parse_datetime(data.get('closed_at')),
        )


@dataclass
class GridState:
    """Runtime state for one (wallet, order) pair."""

    wallet_address: str
    order_id: str
    current_focus_price: Decimal
    focus_last_updated: datetime = field(default_factory=utc_now)
    buy_trend_counter: int = 0
    sell_trend_counter: int = 0
    next_buy_target: Optional[Decimal] = None
    next_sell_target: Optional[Decimal] = None
    open_position_ids: List[str] = field(default_factory=list)
    open_sell_position_ids: List[str] = field(default_factory=list)
    total_profit: Decimal = _ZERO
    total_buy_transactions: int = 0
    total_sell_transactions: int = 0
    total_bought_value: Decimal = _ZERO
    total_sold_value: Decimal = _ZERO
    is_active: bool = True
    last_known_price: Optional[Decimal] = None
    last_price_update: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def key(self) -> tuple:
        return (self.wallet_address, self.order_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for persistence."""
        return {
            'wallet_address': self.wallet_address,
            'order_id': self.order_id,
            'current_focus_price': decimal_to_str(self.current_focus_price),
            'focus_last_updated': _format_datetime(self.focus_last_updated),
            'buy_trend_counter': self.buy_trend_counter,
            'sell_trend_counter': self.sell_trend_counter,
            'next_buy_target': decimal_to_str(self.next_buy_target),
            'next_sell_target': decimal_to_str(self.next_sell_target),
            'open_position_ids': list(self.open_position_ids),
            'open_sell_position_ids': list(self.open_sell_position_ids),
            'total_profit': decimal_to_str(self.total_profit),
            'total_buy_transactions': self.total_buy_transactions,
            'total_sell_transactions': self.total_sell_transactions,
            'total_bought_value': decimal_to_str(self.total_bought_value),
            'total_sold_value': decimal_to_str(self.total_sold_value),
            'is_active': self.is_active,
            'last_known_price': decimal_to_str(self.last_known_price),
            'last_price_update': _format_datetime(self.last_price_update),
            'created_at': _format_datetime(self.created_at),
            'last_updated': _format_datetime(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GridState':
        """Create from dictionary (or a database row mapping)."""
        return cls(
            wallet_address=data['wallet_address'],
            order_id=str(data['order_id']),
            current_focus_price=to_decimal(data.get('current_focus_price'), _ZERO),
            focus_last_updated=_parse_datetime(data.get('focus_last_updated')) or utc_now(),
            buy_trend_counter=max(0, int(data.get('buy_trend_counter') or 0)),
            sell_trend_counter=max(0, int(data.get('sell_trend_counter') or 0)),
            next_buy_target=to_decimal(data.get('next_buy_target')),
            next_sell_target=to_decimal(data.get('next_sell_target')),
            open_position_ids=decode_id_list(data.get('open_position_ids')),
            open_sell_position_ids=decode_id_list(data.get('open_sell_position_ids')),
            total_profit=to_decimal(data.get('total_profit'), _ZERO),
            total_buy_transactions=int(data.get('total_buy_transactions') or 0),
            total_sell_transactions=int(data.get('total_sell_transactions') or 0),
            total_bought_value=to_decimal(data.get('total_bought_value'), _ZERO),
            total_sold_value=to_decimal(data.get('total_sold_value'), _ZERO),
            is_active=bool(data.get('is_active', True)),
            last_known_price=to_decimal(data.get('last_known_price')),
            last_price_update=_parse_datetime(data.get('last_price_update')),
            created_at=_parse_datetime(data.get('created_at')) or utc_now(),
            last_updated=_parse_datetime(data.get('last_updated')) or utc_now(),
        )
