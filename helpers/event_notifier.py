"""
Grid engine event notifier.

Records structured events emitted by the grid engine (trades, failed
exchange calls, focus moves) as JSONL for post-trade analysis and forwards
high-severity events to Telegram when credentials are configured.
"""

from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from helpers.telegram_bot import TelegramBot
from helpers.unified_logger import get_core_logger

ALERT_LEVELS = {"WARNING", "ERROR", "CRITICAL"}


class GridEventNotifier:
    """
    Light-weight event sink for the grid engine.

    Responsibilities:
    - Persist every event as JSONL (``logs/grid_events.jsonl`` by default)
    - Forward WARNING and above to Telegram if credentials are provided
    """

    def __init__(
        self,
        strategy: str,
        exchange: str,
        *,
        history_path: Optional[Path] = None,
        telegram_bot: Optional[TelegramBot] = None,
    ) -> None:
        self.strategy = strategy
        self.exchange = exchange
        self.logger = get_core_logger("grid_events")

        if history_path is None:
            configured = os.getenv("GRID_EVENTS_PATH")
            history_path = Path(configured) if configured else Path("logs") / "grid_events.jsonl"
        self.history_path = Path(history_path)
        self.history_path.parent.mkdir(parents=True, exist_ok=True)

        self._telegram_bot = telegram_bot
        if self._telegram_bot is None:
            token = os.getenv("GRID_ALERT_TELEGRAM_TOKEN")
            chat_id = os.getenv("GRID_ALERT_TELEGRAM_CHAT_ID")
            if token and chat_id:
                self._telegram_bot = TelegramBot(token=token, chat_id=chat_id)

    def notify(
        self,
        *,
        event_type: str,
        level: str,
        message: str,
        payload: Dict[str, Any],
    ) -> None:
        """Persist and optionally forward an event."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "strategy": self.strategy,
            "exchange": self.exchange,
            "level": level,
            "event_type": event_type,
            "message": message,
            "payload": payload,
        }

        self._write_history(record)

        if self._telegram_bot and level in ALERT_LEVELS:
            self._send_telegram(record)

    def _write_history(self, record: Dict[str, Any]) -> None:
        try:
            with self.history_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(record, ensure_ascii=False, default=str))
                handle.write("\n")
        except OSError as exc:
            # Never raise inside a tick because the event log is unwritable
            self.logger.log(f"Failed to write grid event history: {exc}", "WARNING")

    def _send_telegram(self, record: Dict[str, Any]) -> None:
        text = TelegramBot.format_event(record)

        def _send() -> None:
            try:
                self._telegram_bot.send_text(text)
            except Exception as exc:
                self.logger.log(f"Telegram alert failed: {exc}", "WARNING")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            loop.run_in_executor(None, _send)
        else:
            _send()
