"""
Grid Scheduler

Periodically sweeps every active grid order and evaluates the current price
against it, using APScheduler. A sweep never overlaps the previous one: when a
trigger fires while a sweep is still running, the new run is skipped.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Set

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from helpers.unified_logger import get_service_logger
from strategies.components.base_components import BaseGridStore
from strategies.control.grid_controller import GridController
from strategies.implementations.grid.models import GridState, utc_now
from trading_config.order_settings import BaseOrderSettingsProvider

SWEEP_JOB_ID = "grid_sweep_job"


@dataclass
class SweepStats:
    """Counters for one sweep."""

    evaluated: int = 0
    not_due: int = 0
    missing_settings: int = 0
    missing_price: int = 0
    failed: int = 0
    started_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "not_due": self.not_due,
            "missing_settings": self.missing_settings,
            "missing_price": self.missing_price,
            "failed": self.failed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class SchedulerMetrics:
    total_runs: int = 0
    skipped_runs: int = 0
    failed_runs: int = 0
    missed_runs: int = 0
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None
    last_sweep: SweepStats = field(default_factory=SweepStats)


class GridScheduler:
    """
    Periodic trigger for the grid engine.

    Each sweep:
    - loads all active grid states
    - skips orders whose ``refresh_interval`` has not elapsed since their last update
    - skips orders without settings or without a fresh price
    - evaluates the rest through the controller, one order at a time

    A failure on one order is logged and the sweep moves on to the next.
    """

    def __init__(
        self,
        controller: GridController,
        store: BaseGridStore,
        price_feed,
        settings_provider: BaseOrderSettingsProvider,
        interval_seconds: float = 1.0,
        clock: Optional[Callable[[], datetime]] = None,
        logger=None,
    ):
        """
        Initialize grid scheduler.

        Args:
            controller: Control surface used to evaluate each order
            store: Store listing the active grid states
            price_feed: Object exposing ``get_price(symbol)`` and ``is_stale(symbol)``
            settings_provider: Source of order settings
            interval_seconds: Sweep period
            clock: Returns the current UTC time, mainly for tests
        """
        self.controller = controller
        self.store = store
        self.price_feed = price_feed
        self.settings_provider = settings_provider
        self.interval_seconds = interval_seconds
        self._clock = clock or utc_now
        self.logger = logger or get_service_logger("grid_scheduler")

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 30,
            },
        )
        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)

        self.metrics = SchedulerMetrics()
        self._sweep_lock = asyncio.Lock()
        self._symbols_without_price: Set[str] = set()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    async def start(self) -> None:
        self.scheduler.add_job(
            func=self.run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=SWEEP_JOB_ID,
            name="Grid Sweep",
            replace_existing=True,
        )
        self.scheduler.start()
        self.logger.info(f"Grid scheduler started: sweeping every {self.interval_seconds}s")

    async def shutdown(self) -> None:
        """Stop triggering sweeps and wait for a running one to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        async with self._sweep_lock:
            pass
        self.logger.info("Grid scheduler shutdown complete")

    @property
    def is_running(self) -> bool:
        return self.scheduler.running

    # ------------------------------------------------------------------ #
    # Sweeps
    # ------------------------------------------------------------------ #
    async def run_once(self) -> Optional[SweepStats]:
        """Run one sweep immediately (manual trigger)."""
        return await self.run_sweep()

    async def run_sweep(self) -> Optional[SweepStats]:
        """
        Evaluate every active order once.

        Returns:
            Sweep statistics, or None when the sweep was skipped because the
            previous one is still running
        """
        if self._sweep_lock.locked():
            self.metrics.skipped_runs += 1
            self.logger.debug("Previous grid sweep still running; skipping this trigger")
            return None

        async with self._sweep_lock:
            stats = SweepStats(started_at=self._clock())
            self.metrics.total_runs += 1

            states = await self.store.find_active_states()
            for state in states:
                try:
                    await self._evaluate_order(state, stats)
                except Exception as exc:
                    stats.failed += 1
                    self.logger.error(
                        f"Grid tick failed for order {state.order_id} "
                        f"(wallet {state.wallet_address}): {exc}"
                    )

            stats.duration_seconds = (self._clock() - stats.started_at).total_seconds()
            self.metrics.last_sweep = stats
            self.metrics.last_run = stats.started_at
            if states:
                self.logger.debug(
                    f"Grid sweep done: {stats.evaluated}/{len(states)} evaluated, "
                    f"{stats.not_due} not due, {stats.failed} failed"
                )
            return stats

    async def _evaluate_order(self, state: GridState, stats: SweepStats) -> None:
        settings = self.settings_provider.get_order_settings(state.wallet_address, state.order_id)
        if settings is None:
            stats.missing_settings += 1
            self.logger.warning(
                f"No settings for active order {state.order_id} (wallet {state.wallet_address}); skipping"
            )
            return

        elapsed = (self._clock() - state.last_updated).total_seconds()
        if elapsed < settings.refresh_interval:
            stats.not_due += 1
            return

        symbol = settings.symbol
        price = await self.price_feed.get_price(symbol)
        if price is None or Decimal(str(price)) <= 0 or self.price_feed.is_stale(symbol):
            stats.missing_price += 1
            self._report_missing_price(symbol, state.order_id)
            return
        if symbol in self._symbols_without_price:
            self._symbols_without_price.discard(symbol)
            self.logger.info(f"Fresh price for {symbol} available again")

        await self.controller.process_one_tick(state.wallet_address, state.order_id, price, settings)
        stats.evaluated += 1

    def _report_missing_price(self, symbol: str, order_id: str) -> None:
        """Warn once per symbol until a fresh price shows up again."""
        message = f"No fresh price for {symbol}; skipping order {order_id}"
        if symbol in self._symbols_without_price:
            self.logger.debug(message)
            return
        self._symbols_without_price.add(symbol)
        self.logger.warning(message)

    # ------------------------------------------------------------------ #
    # APScheduler listeners
    # ------------------------------------------------------------------ #
    def _job_executed(self, event) -> None:
        self.logger.debug(f"Job {event.job_id} executed")

    def _job_error(self, event) -> None:
        self.metrics.failed_runs += 1
        self.metrics.last_error = str(event.exception)
        self.logger.error(f"Job {event.job_id} failed: {event.exception}")

    def _job_missed(self, event) -> None:
        self.metrics.missed_runs += 1
        self.logger.warning(f"Job {event.job_id} missed execution at {event.scheduled_run_time}")

    def get_scheduler_status(self) -> Dict[str, Any]:
        jobs = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self.scheduler.get_jobs()
        ]
        return {
            "running": self.scheduler.running,
            "jobs": jobs,
            "total_runs": self.metrics.total_runs,
            "skipped_runs": self.metrics.skipped_runs,
            "failed_runs": self.metrics.failed_runs,
            "missed_runs": self.metrics.missed_runs,
            "last_run": self.metrics.last_run.isoformat() if self.metrics.last_run else None,
            "last_error": self.metrics.last_error,
            "last_sweep": self.metrics.last_sweep.to_dict(),
        }
