"""
Grid Order Settings

Pydantic models for the per-order grid configuration and its bracket tables.
Settings written by the web UI use camelCase keys; both camelCase and
snake_case are accepted.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

DEFAULT_BUY_CURRENCY = "USDT"
DEFAULT_SELL_CURRENCY = "BTC"
DEFAULT_MIN_VALUE_PER_1_PERCENT = Decimal("200")
DEFAULT_FEE_PERCENT = Decimal("0.1")
DEFAULT_PROFIT_PERCENT = Decimal("0.5")


class _SettingsModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


class ThresholdCondition(str, Enum):
    LESS = "less"
    LESS_EQUAL = "lessEqual"
    GREATER = "greater"
    GREATER_EQUAL = "greaterEqual"


class SingleSidedBracket(_SettingsModel):
    """Bracket that matches on one side of a price (``price < 90000``)."""

    kind: Literal["single"] = "single"
    condition: Optional[str] = None
    price: Optional[Decimal] = None
    value: Optional[Decimal] = None

    def matches(self, price: Decimal) -> bool:
        if self.condition is None or self.price is None:
            return False
        if self.condition == ThresholdCondition.LESS.value:
            return price < self.price
        if self.condition == ThresholdCondition.LESS_EQUAL.value:
            return price <= self.price
        if self.condition == ThresholdCondition.GREATER.value:
            return price > self.price
        if self.condition == ThresholdCondition.GREATER_EQUAL.value:
            return price >= self.price
        return False


class RangeBracket(_SettingsModel):
    """Half-open price band ``min_price <= price < max_price``; a missing bound is open."""

    kind: Literal["range"] = "range"
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    value: Optional[Decimal] = None

    def matches(self, price: Decimal) -> bool:
        if self.min_price is not None and price < self.min_price:
            return False
        if self.max_price is not None and price >= self.max_price:
            return False
        return True


PriceBracket = Annotated[
    Union[SingleSidedBracket, RangeBracket],
    Field(discriminator="kind"),
]

_RANGE_KEYS = ("minPrice", "maxPrice", "min_price", "max_price")


def tag_bracket(raw: Any) -> Any:
    """Attach the ``kind`` tag to untagged bracket dicts based on their keys."""
    if not isinstance(raw, dict) or "kind" in raw:
        return raw
    is_range = any(raw.get(key) is not None for key in _RANGE_KEYS)
    return {**raw, "kind": "range" if is_range else "single"}


class TrendPercent(_SettingsModel):
    """Percent step to apply while the side's trend counter is at least ``trend``."""

    trend: int = Field(..., ge=0)
    buy_percent: Optional[Decimal] = Field(None, ge=0)
    sell_percent: Optional[Decimal] = Field(None, ge=0)


class WalletMode(str, Enum):
    ONLY_SOLD = "onlySold"
    MAX_DEFINED = "maxDefined"
    WALLET_LIMIT = "walletLimit"


class WalletPolicy(_SettingsModel):
    """Which currency a side spends and how much of the wallet it may use."""

    currency: Optional[str] = None
    wallet_protection: Decimal = Field(Decimal("0"), ge=0)
    mode: Optional[WalletMode] = None
    max_value: Optional[Decimal] = Field(None, ge=0)
    add_profit: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def _blank_mode(cls, value):
        return value or None


class PlatformSettings(_SettingsModel):
    min_transaction_value: Optional[Decimal] = Field(None, ge=0)
    check_fee_profit: bool = False
    fee_percent: Decimal = Field(DEFAULT_FEE_PERCENT, ge=0)


class TransactionConditions(_SettingsModel):
    min_value_per_1_percent: Decimal = Field(DEFAULT_MIN_VALUE_PER_1_PERCENT, ge=0)
    price_threshold: Optional[Decimal] = Field(None, gt=0)
    check_threshold_if_profitable: bool = False

    @field_validator("min_value_per_1_percent", mode="before")
    @classmethod
    def _default_when_null(cls, value):
        return DEFAULT_MIN_VALUE_PER_1_PERCENT if value is None else value


class OrderSettings(_SettingsModel):
    """Configuration of one grid order."""

    id: str = Field(..., min_length=1, description="Order identifier")
    name: Optional[str] = None
    is_active: bool = True

    base_asset: Optional[str] = None
    quote_asset: Optional[str] = None
    refresh_interval: float = Field(
        5,
        ge=0,
        description="Minimum seconds between two scheduled evaluations",
    )

    min_profit_percent: Optional[Decimal] = Field(
        None,
        description="Profit margin per position; also the fallback trend percent",
        gt=0,
    )
    focus_price: Decimal = Field(..., description="Initial reference price", gt=0)
    time_to_new_focus: int = Field(
        0,
        ge=0,
        description="Seconds without trades before the focus re-centers (0 disables)",
    )

    buy: Optional[WalletPolicy] = None
    sell: Optional[WalletPolicy] = None
    platform: PlatformSettings = Field(default_factory=PlatformSettings)
    buy_conditions: Optional[TransactionConditions] = None
    sell_conditions: Optional[TransactionConditions] = None

    trend_percents: List[TrendPercent] = Field(default_factory=list)
    additional_buy_values: List[PriceBracket] = Field(default_factory=list)
    additional_sell_values: List[PriceBracket] = Field(default_factory=list)
    max_buy_per_transaction: List[PriceBracket] = Field(default_factory=list)
    max_sell_per_transaction: List[PriceBracket] = Field(default_factory=list)
    buy_swing_percent: List[PriceBracket] = Field(default_factory=list)
    sell_swing_percent: List[PriceBracket] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if value is not None else value

    @field_validator(
        "trend_percents",
        "additional_buy_values",
        "additional_sell_values",
        "max_buy_per_transaction",
        "max_sell_per_transaction",
        "buy_swing_percent",
        "sell_swing_percent",
        mode="before",
    )
    @classmethod
    def _tag_brackets(cls, value, info):
        if value is None:
            return []
        if info.field_name == "trend_percents":
            return value
        return [tag_bracket(item) for item in value]

    @property
    def buy_currency(self) -> str:
        if self.buy and self.buy.currency:
            return self.buy.currency.upper()
        return DEFAULT_BUY_CURRENCY

    @property
    def sell_currency(self) -> str:
        if self.sell and self.sell.currency:
            return self.sell.currency.upper()
        return DEFAULT_SELL_CURRENCY

    @property
    def symbol(self) -> str:
        base = (self.base_asset or self.sell_currency).upper()
        quote = (self.quote_asset or self.buy_currency).upper()
        return f"{base}{quote}"

    @property
    def profit_percent(self) -> Decimal:
        """Margin used for position targets."""
        return self.min_profit_percent or DEFAULT_PROFIT_PERCENT
