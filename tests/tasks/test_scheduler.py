import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from exchange_clients.market_data import PriceFeed
from exchange_clients.paper import PaperExchangeClient
from strategies.components.base_components import InMemoryGridStore
from strategies.control.grid_controller import GridController
from strategies.implementations.grid.strategy import GridDecisionEngine
from tasks.scheduler import SWEEP_JOB_ID, GridScheduler
from trading_config import InMemoryOrderSettingsProvider

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = START

    def __call__(self):
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FeedClock:
    def __init__(self):
        self.now = 1_000.0

    def __call__(self):
        return self.now


class FailingController(GridController):
    """Raises for one order id, delegates for the others."""

    def __init__(self, *args, failing_order: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing_order = failing_order

    async def process_one_tick(self, wallet_address, order_id, price, settings=None):
        if order_id == self.failing_order:
            raise RuntimeError("boom")
        return await super().process_one_tick(wallet_address, order_id, price, settings)


class BlockingController(GridController):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def process_one_tick(self, wallet_address, order_id, price, settings=None):
        self.entered.set()
        await self.release.wait()
        return await super().process_one_tick(wallet_address, order_id, price, settings)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def feed_clock():
    return FeedClock()


@pytest.fixture
def store():
    return InMemoryGridStore()


@pytest.fixture
def provider(wallet, make_settings):
    return InMemoryOrderSettingsProvider([(wallet, make_settings())])


@pytest.fixture
def price_feed(feed_clock):
    return PriceFeed(max_staleness=30, clock=feed_clock)


@pytest.fixture
def engine(grid_events, store, clock):
    return GridDecisionEngine(PaperExchangeClient(), store, clock=clock)


def make_scheduler(controller, store, price_feed, provider, clock):
    return GridScheduler(controller, store, price_feed, provider, interval_seconds=1, clock=clock)


@pytest.mark.asyncio
async def test_due_order_is_evaluated_with_feed_price(engine, store, provider, price_feed, clock, wallet, make_settings):
    controller = GridController(engine, store, settings_provider=provider)
    await controller.initialize(wallet, make_settings())
    price_feed.set_price("BTCUSDT", Decimal("93500"))
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)

    clock.advance(10)
    stats = await scheduler.run_once()

    assert stats.evaluated == 1
    state = await store.load_state(wallet, "btc-grid")
    assert len(state.open_position_ids) == 1
    assert state.last_updated == clock.now


@pytest.mark.asyncio
async def test_order_is_not_evaluated_before_refresh_interval(
    engine, store, provider, price_feed, clock, wallet, make_settings
):
    controller = GridController(engine, store, settings_provider=provider)
    await controller.initialize(wallet, make_settings())
    price_feed.set_price("BTCUSDT", Decimal("93500"))
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)

    clock.advance(2)
    stats = await scheduler.run_once()

    assert stats.not_due == 1
    assert stats.evaluated == 0


@pytest.mark.asyncio
async def test_missing_or_stale_price_skips_order(
    engine, store, provider, price_feed, feed_clock, clock, wallet, make_settings
):
    controller = GridController(engine, store, settings_provider=provider)
    await controller.initialize(wallet, make_settings())
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)

    clock.advance(10)
    stats = await scheduler.run_once()
    assert stats.missing_price == 1

    price_feed.set_price("BTCUSDT", Decimal("93500"))
    feed_clock.now += 60
    stats = await scheduler.run_once()
    assert stats.missing_price == 1
    assert (await store.load_state(wallet, "btc-grid")).open_position_ids == []


@pytest.mark.asyncio
async def test_active_order_without_settings_is_skipped(
    engine, store, price_feed, clock, wallet, make_settings
):
    empty_provider = InMemoryOrderSettingsProvider()
    controller = GridController(engine, store, settings_provider=empty_provider)
    await controller.initialize(wallet, make_settings())
    scheduler = make_scheduler(controller, store, price_feed, empty_provider, clock)

    clock.advance(10)
    stats = await scheduler.run_once()

    assert stats.missing_settings == 1
    assert stats.evaluated == 0


@pytest.mark.asyncio
async def test_failure_of_one_order_does_not_stop_the_sweep(
    engine, store, price_feed, clock, wallet, make_settings
):
    good = make_settings(id="good")
    bad = make_settings(id="bad")
    provider = InMemoryOrderSettingsProvider([(wallet, bad), (wallet, good)])
    controller = FailingController(engine, store, settings_provider=provider, failing_order="bad")
    await controller.initialize(wallet, bad)
    await controller.initialize(wallet, good)
    price_feed.set_price("BTCUSDT", Decimal("93500"))
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)

    clock.advance(10)
    stats = await scheduler.run_once()

    assert stats.failed == 1
    assert stats.evaluated == 1
    assert len((await store.load_state(wallet, "good")).open_position_ids) == 1


@pytest.mark.asyncio
async def test_overlapping_trigger_is_skipped(engine, store, provider, price_feed, clock, wallet, make_settings):
    controller = BlockingController(engine, store, settings_provider=provider)
    await controller.initialize(wallet, make_settings())
    price_feed.set_price("BTCUSDT", Decimal("93500"))
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)
    clock.advance(10)

    running = asyncio.create_task(scheduler.run_sweep())
    await controller.entered.wait()

    assert await scheduler.run_sweep() is None
    assert scheduler.metrics.skipped_runs == 1

    controller.release.set()
    stats = await running
    assert stats.evaluated == 1
    assert scheduler.metrics.total_runs == 1


@pytest.mark.asyncio
async def test_start_registers_interval_job_and_shutdown_stops(engine, store, provider, price_feed, clock):
    controller = GridController(engine, store, settings_provider=provider)
    scheduler = make_scheduler(controller, store, price_feed, provider, clock)

    await scheduler.start()
    try:
        assert scheduler.is_running
        status = scheduler.get_scheduler_status()
        assert [job["id"] for job in status["jobs"]] == [SWEEP_JOB_ID]
    finally:
        await scheduler.shutdown()

    assert not scheduler.is_running


class RecordingLogger:
    def __init__(self):
        self.records = []

    def _record(level):
        def method(self, message, **kwargs):
            self.records.append((level, message))
        return method

    debug = _record("DEBUG")
    info = _record("INFO")
    warning = _record("WARNING")
    error = _record("ERROR")

    def levels_for(self, text):
        return [level for level, message in self.records if text in message]


@pytest.mark.asyncio
async def test_missing_price_warns_once_per_symbol(engine, store, provider, price_feed, clock, wallet, make_settings):
    controller = GridController(engine, store, settings_provider=provider)
    await controller.initialize(wallet, make_settings())
    logger = RecordingLogger()
    scheduler = GridScheduler(controller, store, price_feed, provider, interval_seconds=1, clock=clock, logger=logger)

    clock.advance(10)
    await scheduler.run_once()
    await scheduler.run_once()
    assert logger.levels_for("No fresh price for BTCUSDT") == ["WARNING", "DEBUG"]

    price_feed.set_price("BTCUSDT", Decimal("94000"))
    assert (await scheduler.run_once()).evaluated == 1
    assert logger.levels_for("available again") == ["INFO"]
