"""
Decimal helpers for the grid engine.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, Decimal
from typing import Any, Optional

PRICE_SCALE = 2
AMOUNT_SCALE = 8

_HUNDRED = Decimal("100")


def _quantum(scale: int) -> Decimal:
    return Decimal(1).scaleb(-scale)


def round_down(value: Decimal, scale: int = PRICE_SCALE) -> Decimal:
    """Truncate ``value`` toward zero at ``scale`` decimal places."""
    return value.quantize(_quantum(scale), rounding=ROUND_DOWN)


def round_up(value: Decimal, scale: int = PRICE_SCALE) -> Decimal:
    """Round ``value`` away from zero at ``scale`` decimal places."""
    return value.quantize(_quantum(scale), rounding=ROUND_UP)


def round_half_up(value: Decimal, scale: int) -> Decimal:
    return value.quantize(_quantum(scale), rounding=ROUND_HALF_UP)


def percent_of(value: Decimal, percent: Decimal) -> Decimal:
    return value * percent / _HUNDRED


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Coerce persisted numbers (str, int, float, Decimal) to ``Decimal``."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def decimal_to_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None
