"""
Helper operations for the grid engine.
"""

from .context import GridTickContext
from .open_position import GridOpenPositionOperator
from .close_position import GridOrderCloser

__all__ = [
    "GridTickContext",
    "GridOpenPositionOperator",
    "GridOrderCloser",
]
