"""
Exchange adapters for the grid engine.

Modules:
    - base_client: Trading execution interface (BaseExchangeClient)
    - paper: In-memory paper wallet adapter (PaperExchangeClient)
    - market_data: Price feed used by the scheduler (PriceFeed)
"""

from .base_client import BaseExchangeClient

__all__ = [
    "BaseExchangeClient",
]
