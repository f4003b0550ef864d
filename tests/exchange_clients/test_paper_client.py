from decimal import Decimal

import pytest

from exchange_clients.market_data import PriceFeed
from exchange_clients.paper import DEFAULT_BALANCES, PaperExchangeClient


@pytest.mark.asyncio
async def test_new_wallet_starts_from_default_balances():
    client = PaperExchangeClient()

    assert await client.get_balance("0xABC", "usdt") == DEFAULT_BALANCES["USDT"]
    assert await client.get_balance("0xabc", "XRP") == Decimal("0")
    assert client.get_exchange_name() == "paper"


@pytest.mark.asyncio
async def test_buy_and_sell_move_both_currencies():
    client = PaperExchangeClient(default_balances={"USDT": Decimal("1000"), "BTC": Decimal("0")})

    assert await client.execute_buy("0xabc", "USDT", "BTC", Decimal("135"), Decimal("0.00144385"))
    assert await client.get_balance("0xabc", "USDT") == Decimal("865")
    assert await client.get_balance("0xabc", "BTC") == Decimal("0.00144385")

    assert await client.execute_sell("0xABC", "BTC", "USDT", Decimal("0.00144385"), Decimal("135.69"))
    assert await client.get_balance("0xabc", "BTC") == Decimal("0")
    assert await client.get_balance("0xabc", "USDT") == Decimal("1000.69")


@pytest.mark.asyncio
async def test_insufficient_funds_rejects_without_side_effects():
    client = PaperExchangeClient(default_balances={"USDT": Decimal("100")})

    assert not await client.execute_buy("0xabc", "USDT", "BTC", Decimal("135"), Decimal("0.001"))
    assert client.get_all_balances("0xabc") == {"USDT": Decimal("100")}


@pytest.mark.asyncio
async def test_wallets_are_isolated_and_can_be_synced():
    client = PaperExchangeClient()
    client.set_balance("0xa", "USDT", Decimal("5"))
    client.sync_balances("0xb", {"usdc": "42"})

    assert await client.get_balance("0xa", "USDT") == Decimal("5")
    assert await client.get_balance("0xb", "USDT") == Decimal("0")
    assert await client.get_balance("0xb", "USDC") == Decimal("42")


@pytest.mark.asyncio
async def test_price_feed_reports_unknown_and_stale_prices():
    now = [1000.0]
    feed = PriceFeed(max_staleness=30, clock=lambda: now[0])

    assert await feed.get_price("BTCUSDT") == Decimal("0")
    assert feed.is_stale("BTCUSDT")

    feed.set_price("btcusdt", Decimal("94000"))
    assert await feed.get_price("BTCUSDT") == Decimal("94000")
    assert not feed.is_stale("BTCUSDT")

    now[0] += 31
    assert feed.is_stale("BTCUSDT")


def test_price_feed_simulation_step_stays_within_range():
    feed = PriceFeed()
    feed.seed({"BTCUSDT": Decimal("94000")})

    for _ in range(20):
        before = feed.get_quote("BTCUSDT").price
        feed.simulate_step()
        after = feed.get_quote("BTCUSDT").price
        assert abs(after - before) <= before * Decimal("0.005") + Decimal("0.01")
