"""
Threshold and bracket resolution for the grid engine.

Pure functions of ``OrderSettings``: trend percent selection, bracket lookups,
minimum swing, target prices and per-transaction value.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from .config import (
    DEFAULT_MIN_VALUE_PER_1_PERCENT,
    DEFAULT_PROFIT_PERCENT,
    OrderSettings,
    PriceBracket,
)
from .utils import PRICE_SCALE, percent_of, round_down, round_half_up, round_up

BUY = "buy"
SELL = "sell"

DEFAULT_MAX_PER_TRANSACTION = Decimal("10000")
SWING_RATIO_SCALE = 6

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


class GridThresholdResolver:
    """Resolve trend percents, bracket values and targets for one order."""

    def __init__(self, settings: OrderSettings) -> None:
        self.settings = settings

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #
    def trend_percent(self, trend: int, side: str) -> Decimal:
        """Percent step for the given trend counter.

        Uses the entry with the greatest ``trend`` not above the counter,
        falling back to the first entry when every entry is above it.
        """
        fallback = self.settings.min_profit_percent or DEFAULT_PROFIT_PERCENT
        entries = self.settings.trend_percents
        if not entries:
            return fallback

        chosen = None
        for entry in entries:
            if entry.trend <= trend and (chosen is None or entry.trend > chosen.trend):
                chosen = entry
        if chosen is None:
            chosen = entries[0]

        percent = chosen.buy_percent if side == BUY else chosen.sell_percent
        return percent if percent is not None else fallback

    @staticmethod
    def find_bracket(price: Decimal, table: Sequence[PriceBracket]) -> Optional[PriceBracket]:
        """First bracket in list order that matches ``price``."""
        for bracket in table or ():
            if bracket.matches(price):
                return bracket
        return None

    def bracket_value(
        self,
        price: Decimal,
        table: Sequence[PriceBracket],
        default: Optional[Decimal] = None,
    ) -> Optional[Decimal]:
        """Value of the first matching bracket; ``None`` when nothing matches.

        A matching bracket without a value yields ``default``.
        """
        bracket = self.find_bracket(price, table)
        if bracket is None:
            return None
        return bracket.value if bracket.value is not None else default

    def min_swing(self, price: Decimal, side: str) -> Decimal:
        table = self.settings.buy_swing_percent if side == BUY else self.settings.sell_swing_percent
        value = self.bracket_value(price, table, default=_ZERO)
        return value if value is not None else _ZERO

    # ------------------------------------------------------------------ #
    # Derived prices and values
    # ------------------------------------------------------------------ #
    def next_buy_target(self, focus: Decimal, trend: int) -> Decimal:
        percent = self.trend_percent(trend, BUY)
        return round_down(focus * (_ONE - percent / _HUNDRED), PRICE_SCALE)

    def next_sell_target(self, focus: Decimal, trend: int) -> Decimal:
        percent = self.trend_percent(trend, SELL)
        return round_up(focus * (_ONE + percent / _HUNDRED), PRICE_SCALE)

    def target_sell_price(self, buy_price: Decimal) -> Decimal:
        """Exit price of a BUY leg opened at ``buy_price``."""
        return round_up(buy_price * (_ONE + self.settings.profit_percent / _HUNDRED), PRICE_SCALE)

    def target_buyback_price(self, sell_price: Decimal) -> Decimal:
        """Exit price of a SELL leg opened at ``sell_price``."""
        return round_down(sell_price * (_ONE - self.settings.profit_percent / _HUNDRED), PRICE_SCALE)

    def transaction_value(self, price: Decimal, trend: int, side: str) -> Decimal:
        """Quote value to trade: base + additive bracket, clamped by the cap bracket."""
        percent = self.trend_percent(trend, side)
        if side == BUY:
            conditions = self.settings.buy_conditions
            additive = self.settings.additional_buy_values
            caps = self.settings.max_buy_per_transaction
        else:
            conditions = self.settings.sell_conditions
            additive = self.settings.additional_sell_values
            caps = self.settings.max_sell_per_transaction

        per_percent = conditions.min_value_per_1_percent if conditions else DEFAULT_MIN_VALUE_PER_1_PERCENT
        value = per_percent * percent

        extra = self.bracket_value(price, additive, default=_ZERO)
        if extra is not None:
            value += extra * percent

        cap = self.bracket_value(price, caps, default=DEFAULT_MAX_PER_TRANSACTION)
        if cap is not None and value > cap:
            value = cap

        return round_down(value, PRICE_SCALE)

    def swing_percent(self, focus: Decimal, price: Decimal) -> Decimal:
        """Distance of ``price`` from ``focus`` in percent."""
        if focus <= 0:
            return _ZERO
        ratio = round_half_up(abs(focus - price) / focus, SWING_RATIO_SCALE)
        return ratio * _HUNDRED

    def meets_min_swing(self, focus: Decimal, price: Decimal, side: str) -> bool:
        required = self.min_swing(price, side)
        if required == 0:
            return True
        if focus <= 0:
            return False
        return self.swing_percent(focus, price) >= required

    def fee_for(self, value: Decimal) -> Decimal:
        """Round-trip fee (entry + exit) on ``value``."""
        return round_up(percent_of(value, self.settings.platform.fee_percent * 2), PRICE_SCALE)
