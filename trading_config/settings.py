"""
Configuration management for the grid engine runner
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class GridBotSettings(BaseSettings):
    """Runtime settings loaded from environment variables / .env"""

    # Database
    database_url: str = "sqlite:///./gridbot.db"
    database_pool_min_size: int = 1
    database_pool_max_size: int = 5

    # Scheduler
    scheduler_interval_seconds: float = Field(
        1.0,
        gt=0,
        validation_alias=AliasChoices("GRID_SCHEDULER_INTERVAL_SEC", "SCHEDULER_INTERVAL_SECONDS"),
    )

    # Price feed
    price_stale_seconds: float = Field(30.0, gt=0)
    simulation_mode: bool = False
    simulation_tick_seconds: float = Field(2.0, gt=0)

    # Files
    orders_file: Optional[str] = None
    events_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True
