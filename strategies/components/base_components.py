"""
Base Component Interfaces

Abstract persistence interface for the grid engine plus an in-memory
implementation used by tests and by the runner's ``--in-memory`` mode.
Pattern: Composition over inheritance for functionality.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from strategies.implementations.grid.models import GridState, Position, PositionStatus


# ============================================================================
# Store Interface
# ============================================================================

class BaseGridStore(ABC):
    """
    Interface for grid state and position persistence.

    Supports multiple backends:
    - PostgreSQL / SQLite through ``databases`` (see ``database.grid_store``)
    - In-memory (for unit tests)

    The engine reads positions at the start of a tick and writes the state
    together with every touched position through ``commit_tick``.
    """

    @abstractmethod
    async def load_state(self, wallet_address: str, order_id: str) -> Optional[GridState]:
        """Return the state of one order, or None if it was never initialized."""
        pass

    @abstractmethod
    async def save_state(self, state: GridState) -> None:
        """Insert or replace the state of one order."""
        pass

    @abstractmethod
    async def find_active_states(self) -> List[GridState]:
        """All states with ``is_active`` set, across wallets."""
        pass

    @abstractmethod
    async def find_states(self, wallet_address: str) -> List[GridState]:
        """All states of one wallet."""
        pass

    @abstractmethod
    async def get_positions_by_ids(self, position_ids: Iterable[str]) -> List[Position]:
        """Position records for the given ids; unknown ids are ignored."""
        pass

    @abstractmethod
    async def find_open_positions(self, wallet_address: str, order_id: str) -> List[Position]:
        """OPEN positions of one order."""
        pass

    @abstractmethod
    async def commit_tick(self, state: GridState, positions: Iterable[Position]) -> None:
        """
        Persist the outcome of one tick atomically.

        Args:
            state: Order state after the tick
            positions: Positions created or closed during the tick
        """
        pass


# ============================================================================
# Concrete Implementations (Simple Versions)
# ============================================================================

class InMemoryGridStore(BaseGridStore):
    """
    Simple in-memory grid store.

    Records are copied on the way in and out so callers never share
    mutable objects with the store.
    """

    def __init__(self):
        self._states: Dict[Tuple[str, str], dict] = {}
        self._positions: Dict[str, dict] = {}

    async def load_state(self, wallet_address: str, order_id: str) -> Optional[GridState]:
        data = self._states.get((wallet_address, str(order_id)))
        return GridState.from_dict(data) if data else None

    async def save_state(self, state: GridState) -> None:
        self._states[state.key] = state.to_dict()

    async def find_active_states(self) -> List[GridState]:
        return [GridState.from_dict(data) for data in self._states.values() if data.get('is_active')]

    async def find_states(self, wallet_address: str) -> List[GridState]:
        return [
            GridState.from_dict(data)
            for (wallet, _), data in self._states.items()
            if wallet == wallet_address
        ]

    async def get_positions_by_ids(self, position_ids: Iterable[str]) -> List[Position]:
        return [
            Position.from_dict(self._positions[position_id])
            for position_id in position_ids
            if position_id in self._positions
        ]

    async def find_open_positions(self, wallet_address: str, order_id: str) -> List[Position]:
        return [
            Position.from_dict(data)
            for data in self._positions.values()
            if data['wallet_address'] == wallet_address
            and data['order_id'] == str(order_id)
            and data['status'] == PositionStatus.OPEN.value
        ]

    async def save_position(self, position: Position) -> None:
        self._positions[position.id] = position.to_dict()

    async def commit_tick(self, state: GridState, positions: Iterable[Position]) -> None:
        for position in positions:
            await self.save_position(position)
        await self.save_state(state)
