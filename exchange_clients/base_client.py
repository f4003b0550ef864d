"""
Base Exchange Client Interface

The grid engine only needs three things from an exchange: spend quote for
base, spend base for quote, and report a wallet balance. Wallet storage
belongs to the adapter; the engine never keeps balances of its own.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional


class BaseExchangeClient(ABC):
    """
    Base class for exchange adapters used by the grid engine.

    Implementations return ``False`` (or raise) when a trade cannot be
    executed; the engine then aborts that single action and moves on.

    Example:
        class PaperExchangeClient(BaseExchangeClient):
            async def execute_buy(self, wallet_address, quote_currency, base_currency,
                                  quote_value, base_amount) -> bool:
                ...
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

    async def connect(self) -> None:
        """Open connections to the venue (no-op by default)."""

    async def disconnect(self) -> None:
        """Release connections to the venue (no-op by default)."""

    @abstractmethod
    def get_exchange_name(self) -> str:
        """Short venue name used in logs and events."""
        pass

    @abstractmethod
    async def execute_buy(
        self,
        wallet_address: str,
        quote_currency: str,
        base_currency: str,
        quote_value: Decimal,
        base_amount: Decimal,
    ) -> bool:
        """
        Spend ``quote_value`` of ``quote_currency`` to receive ``base_amount`` of ``base_currency``.

        Returns:
            True if the trade was executed
        """
        pass

    @abstractmethod
    async def execute_sell(
        self,
        wallet_address: str,
        base_currency: str,
        quote_currency: str,
        base_amount: Decimal,
        quote_value: Decimal,
    ) -> bool:
        """
        Spend ``base_amount`` of ``base_currency`` to receive ``quote_value`` of ``quote_currency``.

        Returns:
            True if the trade was executed
        """
        pass

    @abstractmethod
    async def get_balance(self, wallet_address: str, currency: str) -> Decimal:
        """Current balance of ``currency`` in the wallet (0 when unknown)."""
        pass
