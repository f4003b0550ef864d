"""
Grid Controller

Control surface over the grid engine: initialize an order, start/stop it,
evaluate a single price on demand and list its open positions. Calls for the
same (wallet, order) are serialized so a manual tick never interleaves with a
scheduled one.
"""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from helpers.unified_logger import get_service_logger
from strategies.components.base_components import BaseGridStore
from strategies.implementations.grid.config import OrderSettings
from strategies.implementations.grid.exceptions import (
    ConfigurationMissingError,
    PriceUnavailableError,
)
from strategies.implementations.grid.models import GridState, Position
from strategies.implementations.grid.position_manager import GridPositionLedger
from strategies.implementations.grid.strategy import GridDecisionEngine
from strategies.implementations.grid.thresholds import GridThresholdResolver
from trading_config.order_settings import BaseOrderSettingsProvider


class GridController:
    """Entry point used by the runner, the scheduler and embedding hosts."""

    def __init__(
        self,
        engine: GridDecisionEngine,
        store: BaseGridStore,
        settings_provider: Optional[BaseOrderSettingsProvider] = None,
        logger=None,
    ):
        """
        Initialize grid controller.

        Args:
            engine: Decision engine evaluating ticks
            store: Store holding states and positions
            settings_provider: Source of order settings when a call does not pass them
        """
        self.engine = engine
        self.store = store
        self.settings_provider = settings_provider
        self.logger = logger or get_service_logger("grid_controller")
        self._order_locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def order_lock(self, wallet_address: str, order_id: str) -> asyncio.Lock:
        key = (wallet_address, str(order_id))
        if key not in self._order_locks:
            self._order_locks[key] = asyncio.Lock()
        return self._order_locks[key]

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    async def initialize(self, wallet_address: str, settings: OrderSettings) -> GridState:
        """Create (or reset) the runtime state of an order from its settings."""
        async with self.order_lock(wallet_address, settings.id):
            existing = await self.store.load_state(wallet_address, settings.id)
            if existing and (existing.open_position_ids or existing.open_sell_position_ids):
                self.logger.log(
                    f"Re-initializing order {settings.id} (wallet {wallet_address}) with "
                    f"{len(existing.open_position_ids)} BUY / {len(existing.open_sell_position_ids)} SELL "
                    "legs still open; they are no longer tracked by the grid",
                    "WARNING",
                )

            state = self.engine.build_initial_state(wallet_address, settings)
            await self.store.save_state(state)

        self.logger.log(
            f"Initialized order {settings.id} (wallet {wallet_address}): focus {state.current_focus_price}, "
            f"buy target {state.next_buy_target}, sell target {state.next_sell_target}",
            "INFO",
        )
        return state

    async def start(self, wallet_address: str, order_id: str) -> GridState:
        return await self._set_active(wallet_address, order_id, True)

    async def stop(self, wallet_address: str, order_id: str) -> GridState:
        return await self._set_active(wallet_address, order_id, False)

    async def _set_active(self, wallet_address: str, order_id: str, is_active: bool) -> GridState:
        async with self.order_lock(wallet_address, order_id):
            state = await self._require_state(wallet_address, order_id)
            state.is_active = is_active
            state.last_updated = self.engine.now()
            await self.store.save_state(state)

        self.logger.log(
            f"Order {order_id} (wallet {wallet_address}) {'started' if is_active else 'stopped'}",
            "INFO",
        )
        return state

    # ------------------------------------------------------------------ #
    # Ticks
    # ------------------------------------------------------------------ #
    async def process_one_tick(
        self,
        wallet_address: str,
        order_id: str,
        price: Decimal,
        settings: Optional[OrderSettings] = None,
    ) -> GridState:
        """
        Evaluate one price for one order.

        Raises:
            ConfigurationMissingError: No settings or no state for the order
            PriceUnavailableError: ``price`` is missing or not positive
        """
        if settings is None:
            settings = self.resolve_settings(wallet_address, order_id)
        if price is None or Decimal(str(price)) <= 0:
            raise PriceUnavailableError(settings.symbol, f"invalid price {price}")

        async with self.order_lock(wallet_address, order_id):
            state = await self._require_state(wallet_address, order_id)
            if not state.is_active:
                return state
            return await self.engine.evaluate(state, settings, Decimal(str(price)))

    def resolve_settings(self, wallet_address: str, order_id: str) -> OrderSettings:
        settings = None
        if self.settings_provider is not None:
            settings = self.settings_provider.get_order_settings(wallet_address, order_id)
        if settings is None:
            raise ConfigurationMissingError(wallet_address, order_id, "settings")
        return settings

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    async def open_positions(self, wallet_address: str, order_id: str) -> List[Position]:
        """Open legs of an order: BUY legs by nearest exit, then SELL legs."""
        state = await self._require_state(wallet_address, order_id)
        ids = state.open_position_ids + state.open_sell_position_ids
        positions = await self.store.get_positions_by_ids(ids)
        return GridPositionLedger(state, positions).open_positions()

    async def get_state(self, wallet_address: str, order_id: str) -> Optional[GridState]:
        return await self.store.load_state(wallet_address, order_id)

    async def list_states(self, wallet_address: str) -> List[GridState]:
        return await self.store.find_states(wallet_address)

    @staticmethod
    def preview_targets(settings: OrderSettings, focus: Decimal, trend: int = 0) -> Dict[str, Decimal]:
        """Buy/sell targets the grid would use for ``focus`` at ``trend``."""
        resolver = GridThresholdResolver(settings)
        return {
            "next_buy_target": resolver.next_buy_target(focus, trend),
            "next_sell_target": resolver.next_sell_target(focus, trend),
        }

    async def _require_state(self, wallet_address: str, order_id: str) -> GridState:
        state = await self.store.load_state(wallet_address, order_id)
        if state is None:
            raise ConfigurationMissingError(wallet_address, order_id, "grid state")
        return state
