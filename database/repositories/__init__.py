"""
Database repositories
"""

from database.repositories.grid_state_repository import GridStateRepository
from database.repositories.position_repository import PositionRepository

__all__ = [
    "GridStateRepository",
    "PositionRepository",
]
