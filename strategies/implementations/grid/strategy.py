"""
Grid Decision Engine

Evaluates one price sample against one grid order and executes whatever the
grid calls for:

1. Re-center the focus after a quiet period (both trend counters at zero)
2. Open a BUY leg when price falls to the next buy target
3. Sell BUY legs whose exit target was reached
4. Open a SELL leg when price rises to the next sell target
5. Buy back SELL legs whose exit target was reached

State and the legs touched during the tick are persisted together at the end.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from helpers.event_notifier import GridEventNotifier
from helpers.unified_logger import get_strategy_logger

from .config import OrderSettings
from .exceptions import PriceUnavailableError
from .models import GridState, Position, utc_now
from .operations import GridOpenPositionOperator, GridOrderCloser, GridTickContext
from .position_manager import GridPositionLedger
from .risk_controller import GridCapacityGuard
from .thresholds import GridThresholdResolver

if TYPE_CHECKING:
    from strategies.components.base_components import BaseGridStore


class GridDecisionEngine:
    """
    Grid decision engine shared by the scheduler and the control surface.

    The engine holds no per-order state of its own: everything an evaluation
    needs is loaded from the store at the start of the tick.
    """

    def __init__(
        self,
        exchange_client,
        store: "BaseGridStore",
        *,
        event_notifier: Optional[GridEventNotifier] = None,
        logger=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the decision engine.

        Args:
            exchange_client: Exchange adapter executing trades and reporting balances
            store: Persistence store for grid states and positions
            event_notifier: Structured event sink (defaults to the JSONL notifier)
            logger: Logger override, mainly for tests
            clock: Returns the current UTC time, mainly for tests
        """
        self.exchange_client = exchange_client
        self.store = store
        self.logger = logger or get_strategy_logger("grid_engine")
        self._clock = clock or utc_now

        exchange_name = "unknown"
        if hasattr(exchange_client, "get_exchange_name"):
            try:
                exchange_name = exchange_client.get_exchange_name()
            except Exception:
                exchange_name = "unknown"
        self.event_notifier = event_notifier or GridEventNotifier(
            strategy="grid",
            exchange=str(exchange_name),
        )

        # Compose helper components
        self.capacity_guard = GridCapacityGuard(exchange_client, self.logger)
        self.open_operator = GridOpenPositionOperator(
            exchange_client=exchange_client,
            capacity_guard=self.capacity_guard,
            logger=self.logger,
            log_event=self._log_event,
        )
        self.order_closer = GridOrderCloser(
            exchange_client=exchange_client,
            logger=self.logger,
            log_event=self._log_event,
        )

    # ------------------------------------------------------------------ #
    # Structured events
    # ------------------------------------------------------------------ #
    def _serialize_value(self, value: Any) -> Any:
        """Serialize payload values for structured logging."""
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(item) for item in value]
        if isinstance(value, dict):
            return {key: self._serialize_value(val) for key, val in value.items()}
        return value

    def _log_event(self, event_type: str, message: str, level: str = "INFO", **context: Any) -> None:
        """Emit structured grid event."""
        payload = {"event_type": event_type, **context}
        serialized_payload = {key: self._serialize_value(val) for key, val in payload.items()}
        self.logger.log(message, level.upper(), **serialized_payload)

        if self.event_notifier:
            self.event_notifier.notify(
                event_type=event_type,
                level=level.upper(),
                message=message,
                payload=serialized_payload,
            )

    # ------------------------------------------------------------------ #
    # Tick evaluation
    # ------------------------------------------------------------------ #
    async def process_price(
        self,
        wallet_address: str,
        order_id: str,
        price: Decimal,
        settings: OrderSettings,
    ) -> Optional[GridState]:
        """Load the order's state and evaluate ``price`` against it.

        Returns ``None`` when the order was never initialized.
        """
        state = await self.store.load_state(wallet_address, order_id)
        if state is None:
            self.logger.log(
                f"[GRID] No grid state for order {order_id} (wallet {wallet_address}); skipping",
                "WARNING",
            )
            return None
        if not state.is_active:
            return state
        return await self.evaluate(state, settings, price)

    async def evaluate(self, state: GridState, settings: OrderSettings, price: Decimal) -> GridState:
        """Run the five decision steps for one price sample and persist the result."""
        if price is None or price <= 0:
            raise PriceUnavailableError(settings.symbol, f"non-positive price {price}")
        if not state.is_active:
            return state

        now = self._clock()
        open_ids = list(state.open_position_ids) + list(state.open_sell_position_ids)
        positions: List[Position] = await self.store.get_positions_by_ids(open_ids) if open_ids else []

        ctx = GridTickContext(
            state=state,
            settings=settings,
            ledger=GridPositionLedger(state, positions),
            resolver=GridThresholdResolver(settings),
            price=price,
            now=now,
        )

        state.last_known_price = price
        state.last_price_update = now

        # Trades already executed this tick are committed even if a later step raises
        try:
            self._recenter_focus_if_idle(ctx)

            if self.open_operator.should_buy(ctx):
                await self.open_operator.execute_buy(ctx)

            await self.order_closer.close_buy_positions(ctx)

            if self.open_operator.should_sell_short(ctx):
                await self.open_operator.execute_sell_short(ctx)

            await self.order_closer.close_sell_positions(ctx)
        finally:
            state.last_updated = now
            await self.store.commit_tick(state, ctx.ledger.dirty_positions())
        return state

    def _recenter_focus_if_idle(self, ctx: GridTickContext) -> None:
        state, settings = ctx.state, ctx.settings
        if settings.time_to_new_focus <= 0:
            return
        if state.buy_trend_counter != 0 or state.sell_trend_counter != 0:
            return

        elapsed = (ctx.now - state.focus_last_updated).total_seconds()
        if elapsed < settings.time_to_new_focus:
            return

        previous = state.current_focus_price
        state.current_focus_price = ctx.price
        state.focus_last_updated = ctx.now
        state.next_buy_target = ctx.resolver.next_buy_target(ctx.price, 0)
        state.next_sell_target = ctx.resolver.next_sell_target(ctx.price, 0)

        self._log_event(
            "focus_recentered",
            f"[GRID] {ctx.order_label} focus {previous} -> {ctx.price} after {int(elapsed)}s idle",
            order_id=state.order_id,
            wallet=state.wallet_address,
            previous_focus=previous,
            focus=ctx.price,
            next_buy_target=state.next_buy_target,
            next_sell_target=state.next_sell_target,
        )

    # ------------------------------------------------------------------ #
    # State construction
    # ------------------------------------------------------------------ #
    def now(self) -> datetime:
        return self._clock()

    def build_initial_state(self, wallet_address: str, settings: OrderSettings) -> GridState:
        """Fresh runtime state seeded from the order's focus price."""
        resolver = GridThresholdResolver(settings)
        now = self._clock()
        focus = settings.focus_price
        return GridState(
            wallet_address=wallet_address,
            order_id=settings.id,
            current_focus_price=focus,
            focus_last_updated=now,
            next_buy_target=resolver.next_buy_target(focus, 0),
            next_sell_target=resolver.next_sell_target(focus, 0),
            is_active=settings.is_active,
            created_at=now,
            last_updated=now,
        )
