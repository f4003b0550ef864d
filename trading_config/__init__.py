"""
Trading Configuration Module

Main Components:
- settings: runner settings from environment / .env (pydantic-settings)
- config_yaml: orders YAML loading, saving and validation
- order_settings: order settings providers used by the scheduler and controller
"""

from .config_yaml import (
    save_orders_to_yaml,
    load_orders_from_yaml,
    validate_orders_file,
)
from .order_settings import (
    BaseOrderSettingsProvider,
    InMemoryOrderSettingsProvider,
    YamlOrderSettingsProvider,
)
from .settings import GridBotSettings

__all__ = [
    'GridBotSettings',
    'save_orders_to_yaml',
    'load_orders_from_yaml',
    'validate_orders_file',
    'BaseOrderSettingsProvider',
    'InMemoryOrderSettingsProvider',
    'YamlOrderSettingsProvider',
]
