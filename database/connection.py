"""
Database connection management
"""

from databases import Database

from trading_config.settings import GridBotSettings


def create_database(settings: GridBotSettings) -> Database:
    """Build a ``databases.Database`` for the configured URL."""
    if settings.database_url.startswith("sqlite"):
        # SQLite backends do not take pool sizes
        return Database(settings.database_url)
    return Database(
        settings.database_url,
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
    )
