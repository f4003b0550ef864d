"""
Paper-trading exchange adapter with in-memory wallets.
"""

from .client import DEFAULT_BALANCES, PaperExchangeClient

__all__ = ["DEFAULT_BALANCES", "PaperExchangeClient"]
