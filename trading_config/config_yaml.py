"""
YAML Order Settings Files

Handles loading and saving grid order settings to/from YAML files.

File layout::

    strategy: grid
    version: "1.0"
    wallets:
      "0xabc...":
        - id: btc-grid
          focusPrice: 94000
          minProfitPercent: 0.5
          ...

Features:
- Floats are loaded as Decimal so prices keep their exact value
- Decimal values are written back as plain numbers
- Validation of every order against ``OrderSettings``
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from strategies.implementations.grid.config import OrderSettings

CONFIG_VERSION = "1.0"


# ============================================================================
# YAML Loader/Dumper with Decimal support
# ============================================================================

class DecimalSafeLoader(yaml.SafeLoader):
    """Safe loader that reads floats as Decimal."""


class DecimalSafeDumper(yaml.SafeDumper):
    """Safe dumper that writes Decimal as a plain number."""


def decimal_constructor(loader, node):
    return Decimal(loader.construct_scalar(node))


def decimal_representer(dumper, data):
    return dumper.represent_scalar('tag:yaml.org,2002:float', str(data))


DecimalSafeLoader.add_constructor('tag:yaml.org,2002:float', decimal_constructor)
DecimalSafeDumper.add_representer(Decimal, decimal_representer)


# ============================================================================
# Order Settings Files
# ============================================================================

def save_orders_to_yaml(orders: Dict[str, List[Dict[str, Any]]], file_path: Path) -> None:
    """
    Save order settings grouped by wallet.

    Args:
        orders: ``{wallet_address: [order settings dict, ...]}``
        file_path: Path to save to
    """
    full_config = {
        "strategy": "grid",
        "created_at": datetime.now().isoformat(),
        "version": CONFIG_VERSION,
        "wallets": orders,
    }

    with open(file_path, 'w') as f:
        yaml.dump(
            full_config,
            f,
            Dumper=DecimalSafeDumper,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2
        )


def load_orders_from_yaml(file_path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load raw order settings grouped by wallet.

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the file structure is invalid
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Orders file not found: {file_path}")

    with open(file_path, 'r') as f:
        full_config = yaml.load(f, Loader=DecimalSafeLoader)

    if not isinstance(full_config, dict):
        raise ValueError("Invalid orders file: must be a YAML dictionary")

    strategy = full_config.get("strategy", "grid")
    if strategy != "grid":
        raise ValueError(f"Invalid orders file: unsupported strategy '{strategy}'")

    wallets = full_config.get("wallets")
    if not isinstance(wallets, dict):
        raise ValueError("Invalid orders file: missing 'wallets' mapping")

    result: Dict[str, List[Dict[str, Any]]] = {}
    for wallet, orders in wallets.items():
        if not isinstance(orders, list):
            raise ValueError(f"Invalid orders file: orders of wallet {wallet} must be a list")
        result[str(wallet)] = orders
    return result


def parse_orders(raw: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[OrderSettings]]:
    """Validate raw order dicts; raises ``pydantic.ValidationError`` on the first bad order."""
    return {
        wallet: [OrderSettings.model_validate(order) for order in orders]
        for wallet, orders in raw.items()
    }


def validate_orders_file(file_path: Path) -> Tuple[bool, Optional[str]]:
    """
    Validate an orders file.

    Returns:
        (is_valid, error_message)
    """
    try:
        parse_orders(load_orders_from_yaml(file_path))
    except (OSError, ValueError, yaml.YAMLError, ValidationError) as exc:
        return False, str(exc)
    return True, None
