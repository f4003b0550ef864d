"""
SQL-backed grid store.

Wraps the state and position repositories behind ``BaseGridStore`` and
writes each tick inside one transaction.
"""

from pathlib import Path
from typing import Iterable, List, Optional

from databases import Database

from database.repositories import GridStateRepository, PositionRepository
from helpers.unified_logger import get_core_logger
from strategies.components.base_components import BaseGridStore
from strategies.implementations.grid.models import GridState, Position

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def schema_statements(schema_path: Path = SCHEMA_PATH) -> List[str]:
    """Split the schema file into executable statements (comments dropped)."""
    lines = [
        line for line in schema_path.read_text().splitlines()
        if not line.strip().startswith("--")
    ]
    return [statement.strip() for statement in "\n".join(lines).split(";") if statement.strip()]


class DatabaseGridStore(BaseGridStore):
    """Grid store on top of ``databases`` (SQLite or PostgreSQL)."""

    def __init__(self, db: Database):
        self.db = db
        self.states = GridStateRepository(db)
        self.positions = PositionRepository(db)
        self.logger = get_core_logger("grid_store")

    async def create_schema(self) -> None:
        for statement in schema_statements():
            await self.db.execute(statement)
        self.logger.log("Grid schema ready", "DEBUG")

    async def load_state(self, wallet_address: str, order_id: str) -> Optional[GridState]:
        return await self.states.get(wallet_address, order_id)

    async def save_state(self, state: GridState) -> None:
        await self.states.upsert(state)

    async def find_active_states(self) -> List[GridState]:
        return await self.states.list_active()

    async def find_states(self, wallet_address: str) -> List[GridState]:
        return await self.states.list_by_wallet(wallet_address)

    async def get_positions_by_ids(self, position_ids: Iterable[str]) -> List[Position]:
        return await self.positions.get_by_ids(position_ids)

    async def find_open_positions(self, wallet_address: str, order_id: str) -> List[Position]:
        return await self.positions.list_open(wallet_address, order_id)

    async def commit_tick(self, state: GridState, positions: Iterable[Position]) -> None:
        async with self.db.transaction():
            for position in positions:
                await self.positions.upsert(position)
            await self.states.upsert(state)
