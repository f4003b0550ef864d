"""
Telegram alert sender used by the grid event notifier.
"""

from __future__ import annotations

from typing import Any, Dict

import requests

TELEGRAM_API = "https://api.telegram.org"


class TelegramBot:
    """Send plain-text alerts to one Telegram chat through the Bot API."""

    def __init__(self, token: str, chat_id: str, timeout: float = 10) -> None:
        self.chat_id = chat_id
        self.timeout = timeout
        self.api_url = f"{TELEGRAM_API}/bot{token}"

    def send_text(self, text: str) -> None:
        """Post ``text`` to the chat; raises ``requests.HTTPError`` on failure."""
        response = requests.post(
            f"{self.api_url}/sendMessage",
            json={"chat_id": self.chat_id, "text": text},
            timeout=self.timeout,
        )
        response.raise_for_status()

    @staticmethod
    def format_event(record: Dict[str, Any]) -> str:
        """Render a grid event record as an alert message."""
        payload = record.get("payload") or {}
        lines = [
            f"[GRID {record['level']}] {record['event_type']}",
            f"Exchange: {record.get('exchange', 'unknown')}",
            f"Order: {payload.get('order_id', '-')} ({payload.get('wallet', '-')})",
            f"Message: {record['message']}",
            "",
        ]
        lines.extend(
            f"{key}: {value}"
            for key, value in sorted(payload.items())
            if key not in ("order_id", "wallet")
        )
        return "\n".join(lines).strip()
