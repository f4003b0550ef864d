"""
Grid engine error taxonomy.

Inside a tick, guard rejections and exchange failures are built as these
errors and reported as the reason of a skipped action. The control surface
raises ``ConfigurationMissingError`` and ``PriceUnavailableError`` to callers.
"""


class GridError(Exception):
    """Base class for grid engine errors."""


class ConfigurationMissingError(GridError):
    """No settings or runtime state exists for the requested order."""

    def __init__(self, wallet_address: str, order_id: str, what: str = "settings") -> None:
        self.wallet_address = wallet_address
        self.order_id = order_id
        self.what = what
        super().__init__(f"No {what} found for order {order_id} (wallet {wallet_address})")


class PriceUnavailableError(GridError):
    """The price oracle returned no usable price for a symbol."""

    def __init__(self, symbol: str, reason: str = "no price") -> None:
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Price unavailable for {symbol}: {reason}")


class InsufficientFundsError(GridError):
    """Available wallet balance does not cover the requested amount."""


class CapacityExceededError(GridError):
    """The transaction falls outside a wallet policy cap or the platform minimum."""


class FeeExceedsProfitError(GridError):
    """Round-trip fees would consume the expected profit."""


class ExchangeCallError(GridError):
    """The exchange adapter rejected or failed a call."""

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"{action} failed: {reason}")
