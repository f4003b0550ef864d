"""
Grid Position Ledger.

Position records live in an id-keyed arena; ``GridState`` only keeps the
ordered id lists of open BUY and SELL legs. The ledger is built per tick from
the records the store returned and remembers which records it touched so the
engine can persist them together with the state.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .models import GridState, Position, PositionStatus, PositionType, utc_now

_NO_TARGET = Decimal("Infinity")


def _exit_sort_key(position: Position) -> Decimal:
    return position.target_sell_price if position.target_sell_price is not None else _NO_TARGET


class GridPositionLedger:
    """Open/close grid legs and keep ``GridState`` id lists in sync."""

    def __init__(self, grid_state: GridState, positions: Iterable[Position] = ()) -> None:
        self._state = grid_state
        self._positions: Dict[str, Position] = {}
        self._dirty: Dict[str, Position] = {}
        for position in positions:
            if position.id:
                self._positions[position.id] = position

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def open(self, position: Position) -> str:
        """Register a new OPEN leg and append its id to the side's list."""
        if not position.id:
            position.id = self.next_position_id()
        position.status = PositionStatus.OPEN
        self._positions[position.id] = position
        self._ids_for(position.type).append(position.id)
        self._dirty[position.id] = position
        return position.id

    def close(self, position_id: str, exit_price: Decimal, exit_value: Decimal) -> Decimal:
        """Mark a leg CLOSED at ``exit_price`` and return its realised profit."""
        position = self._positions.get(position_id)
        if position is None or not position.is_open:
            raise KeyError(f"No open position {position_id}")

        profit = position.profit_at(exit_value)
        if position.type == PositionType.BUY:
            position.sell_price = exit_price
            position.sell_value = exit_value
        else:
            position.buy_price = exit_price
            position.buy_value = exit_value
        position.profit = profit
        position.status = PositionStatus.CLOSED
        position.closed_at = utc_now()

        ids = self._ids_for(position.type)
        if position_id in ids:
            ids.remove(position_id)
        self._dirty[position_id] = position
        return profit

    @staticmethod
    def next_position_id() -> str:
        return str(uuid.uuid4())

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def open_positions(self, side: Optional[PositionType] = None) -> List[Position]:
        """Open legs; BUY legs by nearest exit target, SELL legs in entry order."""
        result: List[Position] = []
        if side in (None, PositionType.BUY):
            result.extend(self.close_candidates(PositionType.BUY))
        if side in (None, PositionType.SELL):
            result.extend(self.close_candidates(PositionType.SELL))
        return result

    def close_candidates(self, side: PositionType) -> List[Position]:
        """Open legs of ``side`` in the order the close sweep visits them.

        Ids without a record (or whose record is no longer open) are skipped.
        """
        candidates = [
            self._positions[position_id]
            for position_id in self._ids_for(side)
            if position_id in self._positions and self._positions[position_id].is_open
        ]
        if side == PositionType.BUY:
            candidates.sort(key=_exit_sort_key)
        return candidates

    def dirty_positions(self) -> List[Position]:
        return list(self._dirty.values())

    def _ids_for(self, side: PositionType) -> List[str]:
        if side == PositionType.BUY:
            return self._state.open_position_ids
        return self._state.open_sell_position_ids
