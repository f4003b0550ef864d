"""
Market data helpers.
"""

from .price_feed import PriceFeed, PriceQuote

__all__ = [
    "PriceFeed",
    "PriceQuote",
]
