"""
Entry logic for the grid engine: BUY legs below focus, SELL legs above it.
"""

from __future__ import annotations

from typing import Callable

from ..models import Position, PositionType
from ..risk_controller import GridCapacityGuard
from ..thresholds import BUY, SELL
from ..utils import AMOUNT_SCALE, round_down
from .context import GridTickContext, call_exchange, threshold_gate

LogEventFn = Callable[..., None]


class GridOpenPositionOperator:
    """Decide whether to open a new leg and execute it through the exchange client."""

    def __init__(
        self,
        exchange_client,
        capacity_guard: GridCapacityGuard,
        logger,
        log_event: LogEventFn,
    ) -> None:
        self.exchange_client = exchange_client
        self.capacity_guard = capacity_guard
        self.logger = logger
        self._log_event = log_event

    # ------------------------------------------------------------------ #
    # BUY side
    # ------------------------------------------------------------------ #
    def should_buy(self, ctx: GridTickContext) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        conditions = settings.buy_conditions
        if conditions is None:
            return False

        beyond = conditions.price_threshold is not None and price > conditions.price_threshold
        allowed, reason = threshold_gate(conditions, state, beyond)
        if not allowed:
            self._skip(ctx, "buy", reason)
            return False

        if state.next_buy_target is None:
            state.next_buy_target = ctx.resolver.next_buy_target(
                state.current_focus_price, state.buy_trend_counter
            )
        if price > state.next_buy_target:
            return False

        if not ctx.resolver.meets_min_swing(state.current_focus_price, price, BUY):
            self._skip(ctx, "buy", "swing from focus below minimum")
            return False
        return True

    async def execute_buy(self, ctx: GridTickContext) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        trend = state.buy_trend_counter
        value = ctx.resolver.transaction_value(price, trend, BUY)

        if not self._passes(ctx, "buy", self.capacity_guard.meets_min_transaction_value(value, settings)):
            return False
        if not self._passes(ctx, "buy", await self.capacity_guard.can_buy(value, state, settings)):
            return False

        amount = round_down(value / price, AMOUNT_SCALE)
        if amount <= 0:
            self._skip(ctx, "buy", f"amount rounds to zero for value {value}")
            return False

        target_sell = ctx.resolver.target_sell_price(price)
        expected_profit = (target_sell - price) * amount
        if not self._passes(
            ctx, "buy", self.capacity_guard.fee_does_not_eat_profit(value, expected_profit, settings)
        ):
            return False

        executed = await call_exchange(
            self._log_event,
            ctx,
            "buy entry",
            self.exchange_client.execute_buy,
            state.wallet_address,
            settings.buy_currency,
            settings.sell_currency,
            value,
            amount,
        )
        if not executed:
            return False

        position = Position(
            wallet_address=state.wallet_address,
            order_id=state.order_id,
            type=PositionType.BUY,
            buy_price=price,
            buy_value=value,
            amount=amount,
            trend_at_buy=trend,
            target_sell_price=target_sell,
            created_at=ctx.now,
        )
        position_id = ctx.ledger.open(position)

        state.buy_trend_counter += 1
        state.total_buy_transactions += 1
        state.total_bought_value += value
        state.current_focus_price = price
        state.focus_last_updated = ctx.now
        state.next_buy_target = ctx.resolver.next_buy_target(price, state.buy_trend_counter)

        self._log_event(
            "buy_executed",
            f"[GRID] BUY {amount} @ {price} for {value} {settings.buy_currency} "
            f"(trend {state.buy_trend_counter}, target {target_sell})",
            order_id=state.order_id,
            wallet=state.wallet_address,
            position_id=position_id,
            price=price,
            value=value,
            amount=amount,
            target_sell_price=target_sell,
            next_buy_target=state.next_buy_target,
        )
        return True

    # ------------------------------------------------------------------ #
    # SELL side
    # ------------------------------------------------------------------ #
    def should_sell_short(self, ctx: GridTickContext) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        conditions = settings.sell_conditions
        if conditions is None:
            return False

        beyond = conditions.price_threshold is not None and price < conditions.price_threshold
        allowed, reason = threshold_gate(conditions, state, beyond)
        if not allowed:
            self._skip(ctx, "sell", reason)
            return False

        if state.next_sell_target is None:
            state.next_sell_target = ctx.resolver.next_sell_target(
                state.current_focus_price, state.sell_trend_counter
            )
        if price < state.next_sell_target:
            return False

        if not ctx.resolver.meets_min_swing(state.current_focus_price, price, SELL):
            self._skip(ctx, "sell", "swing from focus below minimum")
            return False
        return True

    async def execute_sell_short(self, ctx: GridTickContext) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        trend = state.sell_trend_counter
        value = ctx.resolver.transaction_value(price, trend, SELL)

        if not self._passes(ctx, "sell", self.capacity_guard.meets_min_transaction_value(value, settings)):
            return False

        amount = round_down(value / price, AMOUNT_SCALE)
        if amount <= 0:
            self._skip(ctx, "sell", f"amount rounds to zero for value {value}")
            return False
        if not self._passes(ctx, "sell", await self.capacity_guard.can_sell(amount, state, settings)):
            return False

        target_buyback = ctx.resolver.target_buyback_price(price)
        expected_profit = (price - target_buyback) * amount
        if not self._passes(
            ctx, "sell", self.capacity_guard.fee_does_not_eat_profit(value, expected_profit, settings)
        ):
            return False

        executed = await call_exchange(
            self._log_event,
            ctx,
            "sell entry",
            self.exchange_client.execute_sell,
            state.wallet_address,
            settings.sell_currency,
            settings.buy_currency,
            amount,
            value,
        )
        if not executed:
            return False

        position = Position(
            wallet_address=state.wallet_address,
            order_id=state.order_id,
            type=PositionType.SELL,
            sell_price=price,
            sell_value=value,
            amount=amount,
            trend_at_buy=trend,
            target_buyback_price=target_buyback,
            created_at=ctx.now,
        )
        position_id = ctx.ledger.open(position)

        state.sell_trend_counter += 1
        state.total_sell_transactions += 1
        state.total_sold_value += value
        state.current_focus_price = price
        state.focus_last_updated = ctx.now
        state.next_sell_target = ctx.resolver.next_sell_target(price, state.sell_trend_counter)

        self._log_event(
            "short_opened",
            f"[GRID] SELL {amount} @ {price} for {value} {settings.buy_currency} "
            f"(trend {state.sell_trend_counter}, buyback {target_buyback})",
            order_id=state.order_id,
            wallet=state.wallet_address,
            position_id=position_id,
            price=price,
            value=value,
            amount=amount,
            target_buyback_price=target_buyback,
            next_sell_target=state.next_sell_target,
        )
        return True

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _passes(self, ctx: GridTickContext, side: str, result) -> bool:
        ok, reason = result
        if not ok:
            self._skip(ctx, side, reason)
        return ok

    def _skip(self, ctx: GridTickContext, side: str, reason: str) -> None:
        self.logger.log(f"[GRID] {ctx.order_label} {side} skipped: {reason}", "DEBUG")
