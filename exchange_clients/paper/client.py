"""
Paper exchange client.

Keeps per-wallet balances in memory and settles trades instantly at the
values the engine passes in. Wallet addresses are matched case-insensitively
and currencies are stored upper-case. A wallet seen for the first time starts
from ``DEFAULT_BALANCES``.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from exchange_clients.base_client import BaseExchangeClient
from helpers.unified_logger import get_exchange_logger

DEFAULT_BALANCES: Dict[str, Decimal] = {
    "USDC": Decimal("10000"),
    "USDT": Decimal("10000"),
    "BTC": Decimal("1"),
    "ETH": Decimal("10"),
    "DOGE": Decimal("10000"),
    "SOL": Decimal("50"),
}

_ZERO = Decimal("0")


class PaperExchangeClient(BaseExchangeClient):
    """In-memory wallet adapter for simulations and tests."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        default_balances: Optional[Mapping[str, Decimal]] = None,
    ):
        super().__init__(config)
        seed = DEFAULT_BALANCES if default_balances is None else default_balances
        self._default_balances = {
            currency.upper(): Decimal(str(amount)) for currency, amount in seed.items()
        }
        self._wallets: Dict[str, Dict[str, Decimal]] = {}
        self._lock = asyncio.Lock()
        self.logger = get_exchange_logger("paper")

    def get_exchange_name(self) -> str:
        return "paper"

    # ------------------------------------------------------------------ #
    # Balances
    # ------------------------------------------------------------------ #
    def _wallet(self, wallet_address: str) -> Dict[str, Decimal]:
        key = wallet_address.lower()
        if key not in self._wallets:
            self._wallets[key] = dict(self._default_balances)
        return self._wallets[key]

    async def get_balance(self, wallet_address: str, currency: str) -> Decimal:
        return self._wallet(wallet_address).get(currency.upper(), _ZERO)

    def set_balance(self, wallet_address: str, currency: str, balance: Decimal) -> None:
        self._wallet(wallet_address)[currency.upper()] = Decimal(str(balance))

    def get_all_balances(self, wallet_address: str) -> Dict[str, Decimal]:
        return dict(self._wallet(wallet_address))

    def sync_balances(self, wallet_address: str, balances: Mapping[str, Any]) -> None:
        """Replace the wallet's balances with an external snapshot."""
        self._wallets[wallet_address.lower()] = {
            currency.upper(): Decimal(str(amount)) for currency, amount in balances.items()
        }
        self.logger.log(f"Synced {len(balances)} balances for {wallet_address}", "INFO")

    # ------------------------------------------------------------------ #
    # Trades
    # ------------------------------------------------------------------ #
    async def execute_buy(
        self,
        wallet_address: str,
        quote_currency: str,
        base_currency: str,
        quote_value: Decimal,
        base_amount: Decimal,
    ) -> bool:
        return await self._transfer(
            wallet_address,
            spend_currency=quote_currency,
            spend_amount=quote_value,
            receive_currency=base_currency,
            receive_amount=base_amount,
            label="BUY",
        )

    async def execute_sell(
        self,
        wallet_address: str,
        base_currency: str,
        quote_currency: str,
        base_amount: Decimal,
        quote_value: Decimal,
    ) -> bool:
        return await self._transfer(
            wallet_address,
            spend_currency=base_currency,
            spend_amount=base_amount,
            receive_currency=quote_currency,
            receive_amount=quote_value,
            label="SELL",
        )

    async def _transfer(
        self,
        wallet_address: str,
        *,
        spend_currency: str,
        spend_amount: Decimal,
        receive_currency: str,
        receive_amount: Decimal,
        label: str,
    ) -> bool:
        spend_currency = spend_currency.upper()
        receive_currency = receive_currency.upper()
        async with self._lock:
            wallet = self._wallet(wallet_address)
            available = wallet.get(spend_currency, _ZERO)
            if available < spend_amount:
                self.logger.log(
                    f"{label} rejected for {wallet_address}: insufficient {spend_currency} "
                    f"(have {available}, need {spend_amount})",
                    "WARNING",
                )
                return False

            wallet[spend_currency] = available - spend_amount
            wallet[receive_currency] = wallet.get(receive_currency, _ZERO) + receive_amount

        self.logger.log(
            f"{label} executed for {wallet_address}: -{spend_amount} {spend_currency} "
            f"-> +{receive_amount} {receive_currency}",
            "INFO",
        )
        return True
