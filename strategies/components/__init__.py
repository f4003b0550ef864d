"""
Shared components for the grid engine.
"""

from .base_components import (
    BaseGridStore,
    InMemoryGridStore,
)

__all__ = [
    # Base interfaces
    'BaseGridStore',

    # Implementations
    'InMemoryGridStore',
]
