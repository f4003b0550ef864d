#!/usr/bin/env python3
"""
Initialize the grid engine database schema

Usage:
    python database/scripts/init_db.py [--database-url sqlite:///./gridbot.db]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from database.connection import create_database
from database.grid_store import SCHEMA_PATH, DatabaseGridStore
from helpers.unified_logger import get_core_logger
from trading_config.settings import GridBotSettings

logger = get_core_logger("init_db")


async def init_database(settings: GridBotSettings) -> bool:
    """Create the grid tables if they do not exist yet."""
    url = settings.database_url
    logger.log(f"Initializing database at {url.split('@')[-1]}", "INFO")
    logger.log(f"Reading schema from: {SCHEMA_PATH}", "INFO")

    db = create_database(settings)
    await db.connect()
    try:
        await DatabaseGridStore(db).create_schema()
    except Exception as exc:
        logger.log(f"Error initializing database: {exc}", "ERROR")
        return False
    finally:
        await db.disconnect()

    logger.log("Database schema initialized", "INFO")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the grid engine tables.")
    parser.add_argument("--database-url", type=str, default=None, help="Override DATABASE_URL.")
    args = parser.parse_args()

    settings = GridBotSettings()
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})
    return 0 if asyncio.run(init_database(settings)) else 1


if __name__ == "__main__":
    sys.exit(main())
