from decimal import Decimal

import pytest

from exchange_clients.paper import PaperExchangeClient
from strategies.implementations.grid.models import GridState
from strategies.implementations.grid.risk_controller import GridCapacityGuard


class SilentLogger:
    def log(self, *args, **kwargs):
        pass


@pytest.fixture
def exchange():
    return PaperExchangeClient()


@pytest.fixture
def guard(exchange):
    return GridCapacityGuard(exchange, SilentLogger())


@pytest.fixture
def state(wallet):
    return GridState(wallet_address=wallet, order_id="btc-grid", current_focus_price=Decimal("94000"))


@pytest.mark.asyncio
async def test_can_buy_checks_balance_above_protection(guard, exchange, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "walletProtection": "100"})

    exchange.set_balance(state.wallet_address, "USDT", Decimal("200"))
    ok, reason = await guard.can_buy(Decimal("135"), state, settings)
    assert not ok
    assert "insufficient USDT" in reason

    exchange.set_balance(state.wallet_address, "USDT", Decimal("235"))
    ok, _ = await guard.can_buy(Decimal("135"), state, settings)
    assert ok


@pytest.mark.asyncio
async def test_only_sold_mode_limits_to_sold_value(guard, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "mode": "onlySold"})

    ok, reason = await guard.can_buy(Decimal("135"), state, settings)
    assert not ok
    assert "onlySold" in reason

    state.total_sold_value = Decimal("300")
    state.total_bought_value = Decimal("100")
    ok, _ = await guard.can_buy(Decimal("135"), state, settings)
    assert ok


@pytest.mark.asyncio
async def test_only_sold_mode_adds_profit_when_enabled(guard, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "mode": "onlySold", "addProfit": True})
    state.total_profit = Decimal("200")

    ok, _ = await guard.can_buy(Decimal("135"), state, settings)
    assert ok


@pytest.mark.asyncio
async def test_max_defined_mode(guard, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "mode": "maxDefined", "maxValue": "1000"})
    state.total_bought_value = Decimal("900")

    ok, reason = await guard.can_buy(Decimal("135"), state, settings)
    assert not ok
    assert "maxDefined" in reason

    with_profit = make_settings(
        buy={"currency": "USDT", "mode": "maxDefined", "maxValue": "1000", "addProfit": True}
    )
    state.total_profit = Decimal("50")
    ok, _ = await guard.can_buy(Decimal("135"), state, with_profit)
    assert ok


@pytest.mark.asyncio
async def test_max_defined_without_max_value_blocks(guard, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "mode": "maxDefined"})
    ok, _ = await guard.can_buy(Decimal("135"), state, settings)
    assert not ok


@pytest.mark.asyncio
async def test_wallet_limit_mode_only_checks_balance(guard, state, make_settings):
    settings = make_settings(buy={"currency": "USDT", "mode": "walletLimit"})
    state.total_bought_value = Decimal("1000000")
    ok, _ = await guard.can_buy(Decimal("135"), state, settings)
    assert ok


@pytest.mark.asyncio
async def test_can_sell_checks_base_balance(guard, exchange, state, make_settings):
    settings = make_settings(sell={"currency": "BTC", "walletProtection": "0.999"})

    ok, reason = await guard.can_sell(Decimal("0.01"), state, settings)
    assert not ok
    assert "insufficient BTC" in reason

    exchange.set_balance(state.wallet_address, "BTC", Decimal("2"))
    ok, _ = await guard.can_sell(Decimal("0.01"), state, settings)
    assert ok


@pytest.mark.asyncio
async def test_missing_policies_pass(guard, state, make_settings):
    settings = make_settings(buy=None, sell=None)
    assert (await guard.can_buy(Decimal("135"), state, settings))[0]
    assert (await guard.can_sell(Decimal("1"), state, settings))[0]


def test_min_transaction_value(make_settings):
    settings = make_settings(platform={"minTransactionValue": "10"})
    assert GridCapacityGuard.meets_min_transaction_value(Decimal("10"), settings)[0]
    assert not GridCapacityGuard.meets_min_transaction_value(Decimal("9.99"), settings)[0]


def test_fee_must_stay_below_expected_profit(make_settings):
    settings = make_settings(platform={"checkFeeProfit": True, "feePercent": "0.1"})

    assert not GridCapacityGuard.fee_does_not_eat_profit(Decimal("135"), Decimal("0.27"), settings)[0]
    assert GridCapacityGuard.fee_does_not_eat_profit(Decimal("135"), Decimal("0.5"), settings)[0]

    disabled = make_settings(platform={"checkFeeProfit": False})
    assert GridCapacityGuard.fee_does_not_eat_profit(Decimal("135"), Decimal("0"), disabled)[0]


class UnreachableExchange:
    async def get_balance(self, wallet_address, currency):
        raise ConnectionError("rpc down")


@pytest.mark.asyncio
async def test_failed_balance_read_rejects_instead_of_raising(state, make_settings):
    guard = GridCapacityGuard(UnreachableExchange(), SilentLogger())
    settings = make_settings()

    ok, reason = await guard.can_buy(Decimal("135"), state, settings)
    assert not ok
    assert reason.startswith("ExchangeCallError")
    assert "USDT balance read failed: rpc down" in reason

    ok, reason = await guard.can_sell(Decimal("0.001"), state, settings)
    assert not ok
    assert "BTC balance read failed" in reason


@pytest.mark.asyncio
async def test_rejection_reasons_name_the_error(guard, exchange, state, make_settings):
    exchange.set_balance(state.wallet_address, "USDT", Decimal("1"))
    _, reason = await guard.can_buy(Decimal("135"), state, make_settings())
    assert reason.startswith("InsufficientFundsError")

    _, reason = await guard.can_buy(Decimal("1"), state, make_settings(buy={"currency": "USDT", "mode": "maxDefined"}))
    assert reason.startswith("CapacityExceededError")

    fee_settings = make_settings(platform={"checkFeeProfit": True, "feePercent": "0.1"})
    _, reason = GridCapacityGuard.fee_does_not_eat_profit(Decimal("135"), Decimal("0.1"), fee_settings)
    assert reason.startswith("FeeExceedsProfitError")
