from decimal import Decimal

import pytest

from strategies.implementations.grid.config import (
    OrderSettings,
    RangeBracket,
    SingleSidedBracket,
    tag_bracket,
)
from strategies.implementations.grid.thresholds import BUY, SELL, GridThresholdResolver
from strategies.implementations.grid.utils import round_down, round_up


@pytest.fixture
def resolver(make_settings):
    return GridThresholdResolver(make_settings())


def test_trend_percent_uses_greatest_entry_not_above_counter(resolver):
    assert resolver.trend_percent(0, BUY) == Decimal("0.5")
    assert resolver.trend_percent(1, BUY) == Decimal("1")
    assert resolver.trend_percent(3, BUY) == Decimal("0.6")
    assert resolver.trend_percent(3, SELL) == Decimal("0.3")
    assert resolver.trend_percent(12, BUY) == Decimal("0.1")
    assert resolver.trend_percent(12, SELL) == Decimal("1")


def test_trend_percent_falls_back_to_first_entry(make_settings):
    settings = make_settings(trendPercents=[
        {"trend": 2, "buyPercent": "0.8", "sellPercent": "0.9"},
        {"trend": 4, "buyPercent": "1.2", "sellPercent": "1.3"},
    ])
    resolver = GridThresholdResolver(settings)

    assert resolver.trend_percent(0, BUY) == Decimal("0.8")
    assert resolver.trend_percent(1, SELL) == Decimal("0.9")


def test_trend_percent_without_table_uses_min_profit(make_settings):
    resolver = GridThresholdResolver(make_settings(trendPercents=[], minProfitPercent="0.7"))
    assert resolver.trend_percent(5, BUY) == Decimal("0.7")


def test_next_targets_from_focus(resolver):
    assert resolver.next_buy_target(Decimal("94000"), 0) == Decimal("93530.00")
    assert resolver.next_sell_target(Decimal("94000"), 0) == Decimal("94470.00")
    assert resolver.next_buy_target(Decimal("93500"), 1) == Decimal("92565.00")
    assert resolver.next_buy_target(Decimal("93980"), 0) == Decimal("93510.10")


def test_targets_round_away_from_the_trade(resolver):
    # Buy targets truncate, sell targets round up
    assert resolver.next_buy_target(Decimal("100.01"), 0) == Decimal("99.50")
    assert resolver.next_sell_target(Decimal("100.01"), 0) == Decimal("100.52")


def test_exit_targets_of_positions(resolver):
    assert resolver.target_sell_price(Decimal("93500")) == Decimal("93967.50")
    assert resolver.target_buyback_price(Decimal("94470")) == Decimal("93997.65")


def test_transaction_value_adds_bracket_bonus(resolver):
    # 200 * 0.5 + 70 * 0.5
    assert resolver.transaction_value(Decimal("93500"), 0, BUY) == Decimal("135.00")
    assert resolver.transaction_value(Decimal("93500"), 1, BUY) == Decimal("270.00")
    assert resolver.transaction_value(Decimal("80000"), 5, BUY) == Decimal("225.00")


def test_transaction_value_is_capped(make_settings):
    settings = make_settings(buyConditions={"minValuePer1Percent": "2000"})
    resolver = GridThresholdResolver(settings)

    assert resolver.transaction_value(Decimal("93500"), 1, BUY) == Decimal("700.00")
    assert resolver.transaction_value(Decimal("120000"), 1, BUY) == Decimal("500.00")


def test_transaction_value_without_tables(resolver):
    assert resolver.transaction_value(Decimal("94470"), 0, SELL) == Decimal("100.00")


def test_transaction_value_defaults_min_value_per_percent(make_settings):
    settings = make_settings(sellConditions={"minValuePer1Percent": None})
    resolver = GridThresholdResolver(settings)
    assert resolver.transaction_value(Decimal("94470"), 1, SELL) == Decimal("200.00")


def test_single_sided_and_range_brackets_are_equivalent(make_settings):
    single = make_settings(buySwingPercent=[
        {"condition": "less", "price": "90000", "value": "0.1"},
        {"condition": "greaterEqual", "price": "90000", "value": "1"},
    ])
    ranged = make_settings(buySwingPercent=[
        {"maxPrice": "90000", "value": "0.1"},
        {"minPrice": "90000", "value": "1"},
    ])
    single_resolver = GridThresholdResolver(single)
    range_resolver = GridThresholdResolver(ranged)

    for price in ("50000", "89999.99", "90000", "120000"):
        assert single_resolver.min_swing(Decimal(price), BUY) == range_resolver.min_swing(Decimal(price), BUY)
    assert range_resolver.min_swing(Decimal("90000"), BUY) == Decimal("1")


def test_bracket_tagging_and_first_match_wins():
    assert tag_bracket({"minPrice": 1, "value": 2})["kind"] == "range"
    assert tag_bracket({"condition": "less", "price": 1})["kind"] == "single"
    assert tag_bracket({"kind": "single", "minPrice": 5})["kind"] == "single"

    table = [
        RangeBracket(min_price=Decimal("0"), max_price=Decimal("100"), value=Decimal("1")),
        RangeBracket(min_price=Decimal("50"), value=Decimal("2")),
    ]
    assert GridThresholdResolver.find_bracket(Decimal("75"), table).value == Decimal("1")
    assert GridThresholdResolver.find_bracket(Decimal("100"), table).value == Decimal("2")


def test_unknown_condition_never_matches():
    bracket = SingleSidedBracket(condition="between", price=Decimal("10"), value=Decimal("1"))
    assert bracket.matches(Decimal("5")) is False


def test_swing_percent_and_minimum(resolver):
    assert resolver.swing_percent(Decimal("94000"), Decimal("93500")) == Decimal("0.5319")
    assert resolver.meets_min_swing(Decimal("94000"), Decimal("93500"), BUY) is True
    assert resolver.meets_min_swing(Decimal("94000"), Decimal("93900"), BUY) is False


def test_swing_with_non_positive_focus(resolver, make_settings):
    assert resolver.meets_min_swing(Decimal("0"), Decimal("93500"), BUY) is False

    no_swing = GridThresholdResolver(make_settings(buySwingPercent=[]))
    assert no_swing.meets_min_swing(Decimal("0"), Decimal("93500"), BUY) is True


def test_round_trip_fee(resolver):
    assert resolver.fee_for(Decimal("135")) == Decimal("0.27")
    assert resolver.fee_for(Decimal("100.01")) == Decimal("0.21")


def test_rounding_helpers():
    assert round_down(Decimal("1.239")) == Decimal("1.23")
    assert round_up(Decimal("1.231")) == Decimal("1.24")
    assert round_down(Decimal("0.001443850267"), 8) == Decimal("0.00144385")


def test_settings_accept_snake_case(order_payload):
    payload = order_payload()
    payload["focus_price"] = payload.pop("focusPrice")
    payload["min_profit_percent"] = payload.pop("minProfitPercent")
    settings = OrderSettings.model_validate(payload)

    assert settings.focus_price == Decimal("94000")
    assert settings.profit_percent == Decimal("0.5")
    assert settings.symbol == "BTCUSDT"
