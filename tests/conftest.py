"""Pytest configuration for grid engine tests."""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Console output only while testing
os.environ.setdefault("GRIDBOT_LOG_TO_FILE", "false")

pytest_plugins = ["pytest_asyncio"]

WALLET = "0x00000000000000000000000000000000000000a1"


def _order_payload(**overrides):
    """camelCase order settings matching the reference BTC grid."""
    payload = {
        "id": "btc-grid",
        "name": "BTC grid",
        "isActive": True,
        "refreshInterval": 5,
        "focusPrice": "94000",
        "minProfitPercent": "0.5",
        "timeToNewFocus": 0,
        "buy": {"currency": "USDT", "walletProtection": "0", "mode": None},
        "sell": {"currency": "BTC", "walletProtection": "0", "mode": None},
        "platform": {"minTransactionValue": "0", "checkFeeProfit": False, "feePercent": "0.1"},
        "buyConditions": {
            "minValuePer1Percent": "200",
            "priceThreshold": "100000",
            "checkThresholdIfProfitable": True,
        },
        "sellConditions": {
            "minValuePer1Percent": "200",
            "priceThreshold": "89000",
            "checkThresholdIfProfitable": True,
        },
        "trendPercents": [
            {"trend": 0, "buyPercent": "0.5", "sellPercent": "0.5"},
            {"trend": 1, "buyPercent": "1", "sellPercent": "1"},
            {"trend": 2, "buyPercent": "0.6", "sellPercent": "0.3"},
            {"trend": 5, "buyPercent": "0.5", "sellPercent": "0.5"},
            {"trend": 10, "buyPercent": "0.1", "sellPercent": "1"},
        ],
        "additionalBuyValues": [
            {"minPrice": "0", "maxPrice": "89000", "value": "250"},
            {"minPrice": "89000", "maxPrice": "100000", "value": "70"},
            {"minPrice": "100000", "value": "50"},
        ],
        "maxBuyPerTransaction": [
            {"minPrice": "0", "maxPrice": "89000", "value": "2000"},
            {"minPrice": "89000", "maxPrice": "100000", "value": "700"},
            {"minPrice": "100000", "value": "500"},
        ],
        "buySwingPercent": [
            {"minPrice": "0", "maxPrice": "90000", "value": "0.1"},
            {"minPrice": "90000", "maxPrice": "95000", "value": "0.2"},
            {"minPrice": "95000", "maxPrice": "100000", "value": "0.5"},
            {"minPrice": "100000", "value": "1"},
        ],
        "sellSwingPercent": [
            {"minPrice": "0", "maxPrice": "90000", "value": "0.1"},
            {"minPrice": "90000", "maxPrice": "95000", "value": "0.2"},
            {"minPrice": "95000", "maxPrice": "100000", "value": "0.5"},
            {"minPrice": "100000", "value": "1"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def wallet():
    return WALLET


@pytest.fixture
def order_payload():
    """Builder for raw (camelCase) order settings dicts."""
    return _order_payload


@pytest.fixture
def make_settings():
    """Builder for validated ``OrderSettings``."""
    from strategies.implementations.grid.config import OrderSettings

    def _make(**overrides):
        return OrderSettings.model_validate(_order_payload(**overrides))

    return _make


@pytest.fixture
def grid_events(monkeypatch):
    """
    Replace the real notifier with an in-memory stub.

    Avoids file IO and external network calls while allowing assertions on emitted events.
    """
    from strategies.implementations.grid import strategy as grid_strategy_module

    events = []

    class StubNotifier:
        def __init__(self, *args, **kwargs):
            self.events = events

        def notify(self, **payload):
            events.append(payload)

    monkeypatch.setattr(grid_strategy_module, "GridEventNotifier", StubNotifier)
    return events
