"""
End-to-end grid cycle: orders file -> controller -> engine -> SQLite store,
with the real JSONL event notifier.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from databases import Database

from database.grid_store import DatabaseGridStore
from exchange_clients.market_data import PriceFeed
from exchange_clients.paper import PaperExchangeClient
from helpers.event_notifier import GridEventNotifier
from strategies.control.grid_controller import GridController
from strategies.implementations.grid.models import PositionStatus
from strategies.implementations.grid.strategy import GridDecisionEngine
from tasks.scheduler import GridScheduler
from trading_config import YamlOrderSettingsProvider, save_orders_to_yaml

WALLET = "0x00000000000000000000000000000000000000a1"


class Clock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'grid.db'}")
    await database.connect()
    yield database
    await database.disconnect()


@pytest_asyncio.fixture
async def harness(tmp_path, db, order_payload):
    orders_path = tmp_path / "orders.yml"
    save_orders_to_yaml({WALLET: [order_payload()]}, orders_path)
    provider = YamlOrderSettingsProvider(orders_path)

    store = DatabaseGridStore(db)
    await store.create_schema()

    clock = Clock()
    exchange = PaperExchangeClient()
    notifier = GridEventNotifier(
        strategy="grid",
        exchange=exchange.get_exchange_name(),
        history_path=tmp_path / "events.jsonl",
    )
    engine = GridDecisionEngine(exchange, store, event_notifier=notifier, clock=clock)
    controller = GridController(engine, store, settings_provider=provider)
    for wallet, settings in provider.list_orders():
        await controller.initialize(wallet, settings)

    return {
        "controller": controller,
        "store": store,
        "exchange": exchange,
        "provider": provider,
        "clock": clock,
        "events_path": tmp_path / "events.jsonl",
    }


def read_events(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


@pytest.mark.asyncio
async def test_buy_then_close_cycle(harness):
    controller = harness["controller"]
    exchange = harness["exchange"]

    state = await controller.get_state(WALLET, "btc-grid")
    assert state.next_buy_target == Decimal("93530.00")

    state = await controller.process_one_tick(WALLET, "btc-grid", Decimal("93500"))

    assert state.buy_trend_counter == 1
    assert state.current_focus_price == Decimal("93500")
    assert state.next_buy_target == Decimal("92565.00")
    [position] = await controller.open_positions(WALLET, "btc-grid")
    assert position.buy_value == Decimal("135.00")
    assert position.amount == Decimal("0.00144385")
    assert position.target_sell_price == Decimal("93967.50")

    state = await controller.process_one_tick(WALLET, "btc-grid", Decimal("93980"))

    assert state.open_position_ids == []
    assert state.buy_trend_counter == 0
    assert state.total_buy_transactions == 1
    assert state.total_sell_transactions == 1
    assert state.total_profit == Decimal("0.00144385") * Decimal("93980") - Decimal("135.00")
    assert state.total_profit.quantize(Decimal("0.001")) == Decimal("0.693")
    assert state.next_sell_target == Decimal("94470.00")
    assert state.next_buy_target == Decimal("93510.10")
    assert await controller.open_positions(WALLET, "btc-grid") == []

    [closed] = await harness["store"].get_positions_by_ids([position.id])
    assert closed.status == PositionStatus.CLOSED
    assert closed.sell_price == Decimal("93980")

    persisted = await controller.get_state(WALLET, "btc-grid")
    assert persisted.total_profit == state.total_profit

    assert await exchange.get_balance(WALLET, "BTC") == Decimal("1")
    assert await exchange.get_balance(WALLET, "USDT") == Decimal("10000") + state.total_profit

    events = read_events(harness["events_path"])
    assert [event["event_type"] for event in events] == ["buy_executed", "position_closed"]
    assert events[1]["payload"]["order_id"] == "btc-grid"


@pytest.mark.asyncio
async def test_scheduler_drives_the_same_cycle(harness):
    controller = harness["controller"]
    clock = harness["clock"]
    feed = PriceFeed()
    scheduler = GridScheduler(
        controller,
        harness["store"],
        feed,
        harness["provider"],
        interval_seconds=1,
        clock=clock,
    )

    feed.set_price("BTCUSDT", Decimal("93500"))
    clock.advance(10)
    assert (await scheduler.run_once()).evaluated == 1

    feed.set_price("BTCUSDT", Decimal("93980"))
    clock.advance(1)
    assert (await scheduler.run_once()).not_due == 1

    clock.advance(10)
    assert (await scheduler.run_once()).evaluated == 1

    state = await controller.get_state(WALLET, "btc-grid")
    assert state.total_buy_transactions == 1
    assert state.total_sell_transactions == 1
    assert state.total_profit > 0
