"""
Capacity checks for the grid engine.

Every check returns ``(ok, reason)``. A rejection reason names the matching
``GridError`` subclass. Wallet balances are read through the exchange client
on each call so that trades made by other orders on the same wallet are taken
into account; a failing balance read rejects the action instead of aborting
the tick.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from .config import OrderSettings, WalletMode
from .exceptions import (
    CapacityExceededError,
    ExchangeCallError,
    FeeExceedsProfitError,
    GridError,
    InsufficientFundsError,
)
from .models import GridState
from .thresholds import GridThresholdResolver

GuardResult = Tuple[bool, str]

_ZERO = Decimal("0")
_OK: GuardResult = (True, "ok")


def reject(error: GridError) -> GuardResult:
    return False, f"{error.__class__.__name__}: {error}"


class GridCapacityGuard:
    """Wallet, policy, minimum-value and fee checks used by ``GridDecisionEngine``."""

    def __init__(self, exchange_client, logger) -> None:
        self.exchange_client = exchange_client
        self.logger = logger

    # ------------------------------------------------------------------ #
    # Wallet checks
    # ------------------------------------------------------------------ #
    async def can_buy(self, value: Decimal, state: GridState, settings: OrderSettings) -> GuardResult:
        """Check the buy-side wallet and policy for spending ``value``."""
        policy = settings.buy
        if policy is None:
            return True, "no buy wallet policy"

        balance, error = await self._read_balance(state, settings.buy_currency)
        if error is not None:
            return reject(error)

        available = balance - policy.wallet_protection
        if available < value:
            return reject(InsufficientFundsError(
                f"insufficient {settings.buy_currency}: available {available} "
                f"(balance {balance}, protected {policy.wallet_protection}) < {value}"
            ))

        profit_bonus = state.total_profit if policy.add_profit else _ZERO

        if policy.mode == WalletMode.ONLY_SOLD:
            allowed = state.total_sold_value - state.total_bought_value + profit_bonus
            if value > allowed:
                return reject(CapacityExceededError(f"onlySold cap: {value} > allowed {allowed}"))
        elif policy.mode == WalletMode.MAX_DEFINED:
            limit = (policy.max_value or _ZERO) + profit_bonus
            if state.total_bought_value + value > limit:
                return reject(CapacityExceededError(
                    f"maxDefined cap: bought {state.total_bought_value} + {value} > {limit}"
                ))

        return _OK

    async def can_sell(self, amount: Decimal, state: GridState, settings: OrderSettings) -> GuardResult:
        """Check the sell-side wallet holds ``amount`` above its protection."""
        policy = settings.sell
        if policy is None:
            return True, "no sell wallet policy"

        balance, error = await self._read_balance(state, settings.sell_currency)
        if error is not None:
            return reject(error)

        available = balance - policy.wallet_protection
        if available < amount:
            return reject(InsufficientFundsError(
                f"insufficient {settings.sell_currency}: available {available} "
                f"(balance {balance}, protected {policy.wallet_protection}) < {amount}"
            ))
        return _OK

    async def _read_balance(
        self, state: GridState, currency: str
    ) -> Tuple[Decimal, Optional[ExchangeCallError]]:
        try:
            balance = await self.exchange_client.get_balance(state.wallet_address, currency)
        except Exception as exc:
            error = ExchangeCallError(f"{currency} balance read", str(exc) or exc.__class__.__name__)
            self.logger.log(
                f"[GRID] {state.order_id}@{state.wallet_address} balance unavailable: {error}",
                "WARNING",
            )
            return _ZERO, error
        return Decimal(str(balance)), None

    # ------------------------------------------------------------------ #
    # Value checks
    # ------------------------------------------------------------------ #
    @staticmethod
    def meets_min_transaction_value(value: Decimal, settings: OrderSettings) -> GuardResult:
        minimum = settings.platform.min_transaction_value
        if minimum is None or value >= minimum:
            return _OK
        return reject(CapacityExceededError(f"value {value} below platform minimum {minimum}"))

    @staticmethod
    def fee_does_not_eat_profit(
        value: Decimal,
        expected_profit: Decimal,
        settings: OrderSettings,
    ) -> GuardResult:
        if not settings.platform.check_fee_profit:
            return True, "fee check disabled"
        fee = GridThresholdResolver(settings).fee_for(value)
        if fee < expected_profit:
            return _OK
        return reject(FeeExceedsProfitError(f"fee {fee} >= expected profit {expected_profit}"))
