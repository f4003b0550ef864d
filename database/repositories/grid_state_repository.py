"""
Grid State Repository - handles grid order runtime state
"""

import json
from typing import List, Optional

from databases import Database

from strategies.implementations.grid.models import GridState

_COLUMNS = (
    "wallet_address",
    "order_id",
    "current_focus_price",
    "focus_last_updated",
    "buy_trend_counter",
    "sell_trend_counter",
    "next_buy_target",
    "next_sell_target",
    "open_position_ids",
    "open_sell_position_ids",
    "total_profit",
    "total_buy_transactions",
    "total_sell_transactions",
    "total_bought_value",
    "total_sold_value",
    "is_active",
    "last_known_price",
    "last_price_update",
    "created_at",
    "last_updated",
)
_KEY_COLUMNS = ("wallet_address", "order_id")


class GridStateRepository:
    """Repository for GridState data access"""

    def __init__(self, db: Database):
        self.db = db

    async def get(self, wallet_address: str, order_id: str) -> Optional[GridState]:
        """Get the state of one order."""
        row = await self.db.fetch_one(f"""
            SELECT {', '.join(_COLUMNS)}
            FROM grid_states
            WHERE wallet_address = :wallet_address AND order_id = :order_id
        """, {"wallet_address": wallet_address, "order_id": str(order_id)})

        if not row:
            return None
        return GridState.from_dict(dict(row))

    async def list_active(self) -> List[GridState]:
        """All active states, oldest first."""
        rows = await self.db.fetch_all(f"""
            SELECT {', '.join(_COLUMNS)}
            FROM grid_states
            WHERE is_active = :is_active
            ORDER BY created_at
        """, {"is_active": True})
        return [GridState.from_dict(dict(row)) for row in rows]

    async def list_by_wallet(self, wallet_address: str) -> List[GridState]:
        rows = await self.db.fetch_all(f"""
            SELECT {', '.join(_COLUMNS)}
            FROM grid_states
            WHERE wallet_address = :wallet_address
            ORDER BY created_at
        """, {"wallet_address": wallet_address})
        return [GridState.from_dict(dict(row)) for row in rows]

    async def upsert(self, state: GridState) -> None:
        """Insert or replace the state of one order."""
        values = state.to_dict()
        values["open_position_ids"] = json.dumps(values["open_position_ids"])
        values["open_sell_position_ids"] = json.dumps(values["open_sell_position_ids"])

        updates = ", ".join(
            f"{column} = excluded.{column}"
            for column in _COLUMNS
            if column not in _KEY_COLUMNS and column != "created_at"
        )
        await self.db.execute(f"""
            INSERT INTO grid_states ({', '.join(_COLUMNS)})
            VALUES ({', '.join(':' + column for column in _COLUMNS)})
            ON CONFLICT (wallet_address, order_id) DO UPDATE SET {updates}
        """, {column: values[column] for column in _COLUMNS})
