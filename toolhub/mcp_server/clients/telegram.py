"""Minimal Telegram Bot API client: send a message to the configured chat."""

from __future__ import annotations

from typing import Any

import httpx


class TelegramError(RuntimeError):
    """Raised when the Bot API rejects a request."""


class TelegramNotConfiguredError(RuntimeError):
    """Raised when the bot token or chat id is missing."""


class TelegramClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str | None,
        chat_id: str | None,
        base_url: str = "https://api.telegram.org",
    ) -> None:
        if not token:
            msg = "TELEGRAM_BOT_TOKEN is not configured. Add it to the environment or .env file."
            raise TelegramNotConfiguredError(msg)
        if not chat_id:
            msg = "TELEGRAM_CHAT_ID is not configured. Add it to the environment or .env file."
            raise TelegramNotConfiguredError(msg)
        self._http = http
        self._url = f"{base_url.rstrip('/')}/bot{token}"
        self._chat_id = chat_id

    async def send_message(self, text: str, *, parse_mode: str | None = "HTML") -> dict[str, Any]:
        """Send *text* to the configured chat and return the Bot API response body."""
        payload: dict[str, Any] = {"chat_id": self._chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        response = await self._http.post(f"{self._url}/sendMessage", json=payload)
        if response.is_error:
            try:
                description = response.json().get("description")
            except ValueError:
                description = None
            msg = f"Failed to send Telegram message: {description or response.reason_phrase}"
            raise TelegramError(msg)
        return response.json()
