"""
Per-tick working set shared by the grid operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Tuple

from ..config import OrderSettings, TransactionConditions
from ..exceptions import ExchangeCallError
from ..models import GridState
from ..position_manager import GridPositionLedger
from ..thresholds import GridThresholdResolver


@dataclass
class GridTickContext:
    """Everything one evaluation of one order works on."""

    state: GridState
    settings: OrderSettings
    ledger: GridPositionLedger
    resolver: GridThresholdResolver
    price: Decimal
    now: datetime

    @property
    def order_label(self) -> str:
        return f"{self.state.order_id}@{self.state.wallet_address}"


async def call_exchange(log_event, ctx: GridTickContext, action: str, call, *args: Any) -> bool:
    """Run one exchange call; a ``False`` result or an exception aborts the action."""
    try:
        if not await call(*args):
            raise ExchangeCallError(action, "exchange rejected the trade")
    except ExchangeCallError as exc:
        error = exc
    except Exception as exc:
        error = ExchangeCallError(action, str(exc) or exc.__class__.__name__)
    else:
        return True

    log_event(
        "exchange_call_failed",
        f"[GRID] {ctx.order_label} {error}",
        level="ERROR",
        order_id=ctx.state.order_id,
        wallet=ctx.state.wallet_address,
        action=action,
        price=ctx.price,
        error=error.reason,
    )
    return False


def threshold_gate(
    conditions: Optional[TransactionConditions],
    state: GridState,
    beyond_threshold: bool,
) -> Tuple[bool, str]:
    """Decide whether a price past the configured threshold may still trade.

    Past the threshold, trading continues only when the profitability override
    is off (``check_threshold_if_profitable`` false) and the order has made a
    profit so far.
    """
    if conditions is None or conditions.price_threshold is None or not beyond_threshold:
        return True, "ok"
    if conditions.check_threshold_if_profitable:
        return False, f"price beyond threshold {conditions.price_threshold}"
    if state.total_profit <= 0:
        return False, f"price beyond threshold {conditions.price_threshold} and no profit yet"
    return True, "beyond threshold, allowed by profit"
