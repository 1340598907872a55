"""Telegram notification tool."""

from __future__ import annotations

from typing import Any

from toolhub.mcp_server.clients.telegram import TelegramClient, TelegramNotConfiguredError
from toolhub.mcp_server.models.tools import TelegramMessageInput
from toolhub.mcp_server.tools.base import ToolContext, ToolError, ToolSpec


async def send_telegram_message(ctx: ToolContext, params: TelegramMessageInput) -> dict[str, Any]:
    settings = ctx.settings
    token = settings.telegram_bot_token.get_secret_value() if settings.telegram_bot_token else None
    try:
        client = TelegramClient(ctx.http, token, settings.telegram_chat_id, base_url=settings.telegram_api_url)
    except TelegramNotConfiguredError as exc:
        raise ToolError(str(exc)) from exc
    return await client.send_message(params.text)


TELEGRAM_TOOLS = [
    ToolSpec(
        name="sendTelegramMessage",
        description="Send a message to the configured Telegram chat. HTML formatting is supported.",
        input_model=TelegramMessageInput,
        handler=send_telegram_message,
    ),
]
