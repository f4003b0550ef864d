"""
Helper modules for the grid engine.
"""

from .unified_logger import get_logger, get_exchange_logger, get_strategy_logger, get_service_logger, get_core_logger

__all__ = [
    'get_logger',
    'get_exchange_logger',
    'get_strategy_logger',
    'get_service_logger',
    'get_core_logger',
]
