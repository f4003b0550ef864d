#!/usr/bin/env python3
"""
Grid Bot - Orders-file driven launcher.

Usage:
    python runbot.py --orders configs/grid_orders.yml [--env-file .env] [--simulate]

The orders file lists grid orders per wallet (see configs/grid_orders.example.yml).
Orders that have no stored state yet are initialized on start-up, then the
scheduler sweeps all active orders until the process is interrupted.
"""

import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path

import dotenv


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run the grid trading engine for the orders listed in a YAML file."
    )

    parser.add_argument(
        "--orders",
        "-o",
        type=str,
        default=None,
        help="Path to the orders YAML file (default: ORDERS_FILE from the environment).",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to the environment file (default: .env).",
    )

    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL from the environment, else INFO).",
    )

    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Drive prices with the built-in random walk instead of an external feed.",
    )

    parser.add_argument(
        "--in-memory",
        action="store_true",
        help="Keep grid state in memory instead of the configured database.",
    )

    return parser.parse_args()


async def main():
    """Main entry point."""
    args = parse_arguments()

    env_path = Path(args.env_file)
    if env_path.exists():
        dotenv.load_dotenv(env_path)
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    # Imported after the environment is loaded so loggers pick up LOG_LEVEL
    from database.connection import create_database
    from database.grid_store import DatabaseGridStore
    from exchange_clients.market_data import PriceFeed
    from exchange_clients.paper import PaperExchangeClient
    from helpers.event_notifier import GridEventNotifier
    from helpers.unified_logger import get_core_logger
    from strategies.components.base_components import InMemoryGridStore
    from strategies.control.grid_controller import GridController
    from strategies.implementations.grid.strategy import GridDecisionEngine
    from tasks.scheduler import GridScheduler
    from trading_config import GridBotSettings, YamlOrderSettingsProvider, validate_orders_file

    settings = GridBotSettings()
    logger = get_core_logger("runbot")

    orders_path = args.orders or settings.orders_file
    if not orders_path:
        print("Error: no orders file given (use --orders or set ORDERS_FILE)")
        sys.exit(1)

    is_valid, error = validate_orders_file(Path(orders_path))
    if not is_valid:
        print(f"Error: Invalid orders file: {error}")
        sys.exit(1)

    provider = YamlOrderSettingsProvider(Path(orders_path))

    db = None
    if args.in_memory:
        store = InMemoryGridStore()
    else:
        db = create_database(settings)
        await db.connect()
        store = DatabaseGridStore(db)
        await store.create_schema()

    price_feed = PriceFeed(max_staleness=settings.price_stale_seconds)
    exchange_client = PaperExchangeClient()
    notifier = GridEventNotifier(
        strategy="grid",
        exchange=exchange_client.get_exchange_name(),
        history_path=Path(settings.events_path) if settings.events_path else None,
    )
    engine = GridDecisionEngine(exchange_client, store, event_notifier=notifier)
    controller = GridController(engine, store, settings_provider=provider)
    scheduler = GridScheduler(
        controller,
        store,
        price_feed,
        provider,
        interval_seconds=settings.scheduler_interval_seconds,
    )

    orders = provider.list_orders()
    for wallet_address, order in orders:
        if await controller.get_state(wallet_address, order.id) is None:
            await controller.initialize(wallet_address, order)

    print("\n" + "=" * 70)
    print("  Starting Grid Bot")
    print("=" * 70)
    print(f"  Orders:    {len(orders)} ({orders_path})")
    print(f"  Store:     {'memory' if args.in_memory else settings.database_url}")
    print(f"  Prices:    {'simulation' if args.simulate or settings.simulation_mode else 'external feed'}")
    print(f"  Interval:  {settings.scheduler_interval_seconds}s")
    print("=" * 70 + "\n")

    if args.simulate or settings.simulation_mode:
        await price_feed.start_simulation(interval=settings.simulation_tick_seconds)
    else:
        logger.warning(
            "No price source attached: orders are skipped until prices are pushed "
            "through PriceFeed.set_price (or run with --simulate)"
        )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C raises instead
            pass

    await scheduler.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down grid bot...")
        await scheduler.shutdown()
        await price_feed.stop_simulation()
        if db is not None:
            await db.disconnect()
        logger.info("Grid bot stopped")


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
