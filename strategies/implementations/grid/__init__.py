"""
Grid Trading Engine

Evaluates a live price against per-order grid settings:
- Buys below the focus price and sells those legs at a profit target
- Sells above the focus price and buys those legs back at a profit target
- Moves the focus and trend counters after every executed action
- Sizes each trade from trend percents and price brackets
"""

from .strategy import GridDecisionEngine
from .config import OrderSettings, RangeBracket, SingleSidedBracket
from .models import GridState, Position, PositionStatus, PositionType
from .position_manager import GridPositionLedger
from .risk_controller import GridCapacityGuard
from .thresholds import GridThresholdResolver

__all__ = [
    'GridDecisionEngine',
    'OrderSettings',
    'RangeBracket',
    'SingleSidedBracket',
    'GridState',
    'Position',
    'PositionStatus',
    'PositionType',
    'GridPositionLedger',
    'GridCapacityGuard',
    'GridThresholdResolver',
]
