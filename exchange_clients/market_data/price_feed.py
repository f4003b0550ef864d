"""
Last-price cache used by the grid scheduler.

Prices are pushed in with ``set_price`` (by a market-data bridge, a test or
the built-in random-walk simulation) and read back with ``get_price``. A
price older than ``max_staleness`` seconds is reported as stale so the
scheduler can skip that symbol instead of trading on it.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional

from helpers.unified_logger import get_service_logger

SIMULATED_PRICES: Dict[str, Decimal] = {
    "BTCUSDT": Decimal("94000"),
    "ETHUSDT": Decimal("3200"),
    "DOGEUSDT": Decimal("0.35"),
    "SOLUSDT": Decimal("180"),
}

# Max relative move per simulation step (+/- half of this)
SIMULATION_STEP_RANGE = 0.01

_ZERO = Decimal("0")


@dataclass
class PriceQuote:
    symbol: str
    price: Decimal
    timestamp: float


class PriceFeed:
    """In-memory price oracle keyed by symbol (``BTCUSDT``)."""

    def __init__(
        self,
        max_staleness: float = 30.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.max_staleness = max_staleness
        self._clock = clock or time.time
        self._quotes: Dict[str, PriceQuote] = {}
        self._simulation_task: Optional[asyncio.Task] = None
        self._rng = random.Random()
        self.logger = get_service_logger("price_feed")

    # ------------------------------------------------------------------ #
    # Oracle interface
    # ------------------------------------------------------------------ #
    def set_price(self, symbol: str, price: Decimal, timestamp: Optional[float] = None) -> None:
        symbol = symbol.upper()
        self._quotes[symbol] = PriceQuote(
            symbol=symbol,
            price=Decimal(str(price)),
            timestamp=self._clock() if timestamp is None else timestamp,
        )

    async def get_price(self, symbol: str) -> Decimal:
        """Last known price, or 0 when the symbol has never been priced."""
        quote = self._quotes.get(symbol.upper())
        return quote.price if quote else _ZERO

    def get_quote(self, symbol: str) -> Optional[PriceQuote]:
        return self._quotes.get(symbol.upper())

    def is_stale(self, symbol: str) -> bool:
        quote = self._quotes.get(symbol.upper())
        if quote is None:
            return True
        return self._clock() - quote.timestamp > self.max_staleness

    def get_all_prices(self) -> Dict[str, Decimal]:
        return {symbol: quote.price for symbol, quote in self._quotes.items()}

    # ------------------------------------------------------------------ #
    # Simulation
    # ------------------------------------------------------------------ #
    def seed(self, prices: Optional[Mapping[str, Decimal]] = None) -> None:
        for symbol, price in (prices or SIMULATED_PRICES).items():
            self.set_price(symbol, price)

    def simulate_step(self) -> None:
        """Move every known price by a random step of at most +/-0.5%."""
        for symbol, quote in list(self._quotes.items()):
            change = Decimal(str((self._rng.random() - 0.5) * SIMULATION_STEP_RANGE))
            places = Decimal("0.00001") if "DOGE" in symbol else Decimal("0.01")
            self.set_price(symbol, (quote.price * (1 + change)).quantize(places))

    async def start_simulation(self, interval: float = 2.0, seed_prices: bool = True) -> None:
        if self._simulation_task and not self._simulation_task.done():
            return
        if seed_prices and not self._quotes:
            self.seed()
        self.logger.log(
            f"Price feed running in SIMULATION mode for {', '.join(sorted(self._quotes))}",
            "INFO",
        )
        self._simulation_task = asyncio.create_task(self._simulate(interval))

    async def stop_simulation(self) -> None:
        task, self._simulation_task = self._simulation_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _simulate(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.simulate_step()
