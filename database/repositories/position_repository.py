"""
Position Repository - handles grid position legs
"""

from typing import Iterable, List

from databases import Database

from strategies.implementations.grid.models import Position, PositionStatus

_COLUMNS = (
    "id",
    "wallet_address",
    "order_id",
    "type",
    "amount",
    "trend_at_buy",
    "buy_price",
    "buy_value",
    "sell_price",
    "sell_value",
    "target_sell_price",
    "target_buyback_price",
    "status",
    "profit",
    "created_at",
    "closed_at",
)


class PositionRepository:
    """Repository for grid Position data access"""

    def __init__(self, db: Database):
        self.db = db

    async def get_by_ids(self, position_ids: Iterable[str]) -> List[Position]:
        """
        Fetch positions by id.

        Unknown ids are ignored; the result follows the order of ``position_ids``.
        """
        ids = [str(position_id) for position_id in position_ids]
        if not ids:
            return []

        params = {f"id_{idx}": position_id for idx, position_id in enumerate(ids)}
        placeholders = ", ".join(f":{name}" for name in params)
        rows = await self.db.fetch_all(f"""
            SELECT {', '.join(_COLUMNS)}
            FROM grid_positions
            WHERE id IN ({placeholders})
        """, params)

        by_id = {row["id"]: Position.from_dict(dict(row)) for row in rows}
        return [by_id[position_id] for position_id in ids if position_id in by_id]

    async def list_open(self, wallet_address: str, order_id: str) -> List[Position]:
        rows = await self.db.fetch_all(f"""
            SELECT {', '.join(_COLUMNS)}
            FROM grid_positions
            WHERE wallet_address = :wallet_address
              AND order_id = :order_id
              AND status = :status
            ORDER BY created_at
        """, {
            "wallet_address": wallet_address,
            "order_id": str(order_id),
            "status": PositionStatus.OPEN.value,
        })
        return [Position.from_dict(dict(row)) for row in rows]

    async def upsert(self, position: Position) -> None:
        """Insert a new leg or overwrite an existing one."""
        values = position.to_dict()
        updates = ", ".join(f"{column} = excluded.{column}" for column in _COLUMNS if column != "id")
        await self.db.execute(f"""
            INSERT INTO grid_positions ({', '.join(_COLUMNS)})
            VALUES ({', '.join(':' + column for column in _COLUMNS)})
            ON CONFLICT (id) DO UPDATE SET {updates}
        """, {column: values[column] for column in _COLUMNS})
