"""
Close sweeps for the grid engine.

BUY legs are sold once price reaches their ``target_sell_price``; SELL legs are
bought back once price falls to their ``target_buyback_price``. A leg is never
closed at a loss.
"""

from __future__ import annotations

from typing import Callable

from ..models import Position, PositionType
from .context import GridTickContext, call_exchange, threshold_gate

LogEventFn = Callable[..., None]


class GridOrderCloser:
    """Walk the open legs of one side and close those whose target was reached."""

    def __init__(self, exchange_client, logger, log_event: LogEventFn) -> None:
        self.exchange_client = exchange_client
        self.logger = logger
        self._log_event = log_event

    async def close_buy_positions(self, ctx: GridTickContext) -> int:
        """Sell BUY legs whose target was reached. Returns the number closed."""
        state, price = ctx.state, ctx.price
        if not state.open_position_ids:
            return 0

        conditions = ctx.settings.sell_conditions
        beyond = (
            conditions is not None
            and conditions.price_threshold is not None
            and price < conditions.price_threshold
        )
        allowed, reason = threshold_gate(conditions, state, beyond)
        if not allowed:
            self.logger.log(f"[GRID] {ctx.order_label} close sweep skipped: {reason}", "DEBUG")
            return 0

        closed = 0
        for position in ctx.ledger.close_candidates(PositionType.BUY):
            if position.target_sell_price is None or price < position.target_sell_price:
                continue
            if await self._close_buy(ctx, position):
                closed += 1
        return closed

    async def close_sell_positions(self, ctx: GridTickContext) -> int:
        """Buy back SELL legs whose target was reached. Returns the number closed."""
        if not ctx.state.open_sell_position_ids:
            return 0

        closed = 0
        for position in ctx.ledger.close_candidates(PositionType.SELL):
            if position.target_buyback_price is None or ctx.price > position.target_buyback_price:
                continue
            if await self._close_sell(ctx, position):
                closed += 1
        return closed

    # ------------------------------------------------------------------ #
    # Single-leg closes
    # ------------------------------------------------------------------ #
    async def _close_buy(self, ctx: GridTickContext, position: Position) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        sell_value = position.amount * price
        profit = position.profit_at(sell_value)
        if profit < 0:
            self.logger.log(
                f"[GRID] {ctx.order_label} keeping {position.id}: close would lose {profit}",
                "DEBUG",
            )
            return False

        executed = await call_exchange(
            self._log_event,
            ctx,
            "buy close",
            self.exchange_client.execute_sell,
            state.wallet_address,
            settings.sell_currency,
            settings.buy_currency,
            position.amount,
            sell_value,
        )
        if not executed:
            return False

        profit = ctx.ledger.close(position.id, price, sell_value)

        state.buy_trend_counter = max(0, state.buy_trend_counter - 1)
        state.total_sell_transactions += 1
        state.total_sold_value += sell_value
        state.total_profit += profit
        state.current_focus_price = price
        state.focus_last_updated = ctx.now
        state.next_buy_target = ctx.resolver.next_buy_target(price, state.buy_trend_counter)

        self._log_event(
            "position_closed",
            f"[GRID] SOLD {position.amount} @ {price} (bought @ {position.buy_price}) profit {profit}",
            order_id=state.order_id,
            wallet=state.wallet_address,
            position_id=position.id,
            price=price,
            value=sell_value,
            profit=profit,
            total_profit=state.total_profit,
        )
        return True

    async def _close_sell(self, ctx: GridTickContext, position: Position) -> bool:
        settings, state, price = ctx.settings, ctx.state, ctx.price
        buyback_value = position.amount * price
        profit = position.profit_at(buyback_value)
        if profit < 0:
            self.logger.log(
                f"[GRID] {ctx.order_label} keeping {position.id}: buyback would lose {profit}",
                "DEBUG",
            )
            return False

        executed = await call_exchange(
            self._log_event,
            ctx,
            "sell buyback",
            self.exchange_client.execute_buy,
            state.wallet_address,
            settings.buy_currency,
            settings.sell_currency,
            buyback_value,
            position.amount,
        )
        if not executed:
            return False

        profit = ctx.ledger.close(position.id, price, buyback_value)

        state.sell_trend_counter = max(0, state.sell_trend_counter - 1)
        state.total_buy_transactions += 1
        state.total_bought_value += buyback_value
        state.total_profit += profit
        state.current_focus_price = price
        state.focus_last_updated = ctx.now
        state.next_sell_target = ctx.resolver.next_sell_target(price, state.sell_trend_counter)

        self._log_event(
            "buyback_executed",
            f"[GRID] BOUGHT BACK {position.amount} @ {price} (sold @ {position.sell_price}) profit {profit}",
            order_id=state.order_id,
            wallet=state.wallet_address,
            position_id=position.id,
            price=price,
            value=buyback_value,
            profit=profit,
            total_profit=state.total_profit,
        )
        return True
