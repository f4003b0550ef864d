"""
Order settings providers.

The grid engine reads settings, it never writes them. Providers answer
"what are the settings of order X in wallet W" and return ``None`` when the
order is unknown.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from strategies.implementations.grid.config import OrderSettings

from .config_yaml import load_orders_from_yaml, parse_orders


class BaseOrderSettingsProvider(ABC):
    """Read-only source of per-order grid settings."""

    @abstractmethod
    def get_order_settings(self, wallet_address: str, order_id: str) -> Optional[OrderSettings]:
        pass

    @abstractmethod
    def list_orders(self) -> List[Tuple[str, OrderSettings]]:
        """Every known ``(wallet_address, settings)`` pair."""
        pass


class InMemoryOrderSettingsProvider(BaseOrderSettingsProvider):
    """Settings registered programmatically (tests, embedding hosts)."""

    def __init__(self, orders: Optional[Iterable[Tuple[str, OrderSettings]]] = None):
        self._orders: Dict[Tuple[str, str], OrderSettings] = {}
        for wallet_address, settings in orders or ():
            self.register(wallet_address, settings)

    def register(self, wallet_address: str, settings: OrderSettings) -> None:
        self._orders[(wallet_address.lower(), settings.id)] = settings

    def remove(self, wallet_address: str, order_id: str) -> None:
        self._orders.pop((wallet_address.lower(), str(order_id)), None)

    def get_order_settings(self, wallet_address: str, order_id: str) -> Optional[OrderSettings]:
        return self._orders.get((wallet_address.lower(), str(order_id)))

    def list_orders(self) -> List[Tuple[str, OrderSettings]]:
        return [(wallet, settings) for (wallet, _), settings in self._orders.items()]


class YamlOrderSettingsProvider(InMemoryOrderSettingsProvider):
    """Settings loaded from an orders YAML file; ``reload()`` re-reads it."""

    def __init__(self, file_path: Path):
        super().__init__()
        self.file_path = Path(file_path)
        self.reload()

    def reload(self) -> int:
        """Replace all settings with the file's content. Returns the order count."""
        parsed = parse_orders(load_orders_from_yaml(self.file_path))
        self._orders.clear()
        for wallet_address, orders in parsed.items():
            for settings in orders:
                self.register(wallet_address, settings)
        return len(self._orders)
