"""MCP server built on the SDK's low-level ``Server``.

The SDK owns the protocol: version negotiation, capabilities, request
validation and JSON-RPC framing.  This module only feeds it the static tool
list and builds the ``ToolContext`` each call runs with.

Where a call's ambient ids come from depends on the routing mode.  In
explicit mode each server task serves exactly one session and reads the
context captured when that session was opened.  In fallback mode routing has
just promoted the target session to current, so the ids are read through the
store's ambient accessors, once, when the call starts.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import anyio
from loguru import logger
from mcp import types
from mcp.server.lowlevel import Server

from toolhub.mcp_server.context import SERVED_SESSION
from toolhub.mcp_server.models.enums import RoutingMode
from toolhub.mcp_server.tools import TOOLS, ToolContext, ToolSpec, error_result

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from toolhub.mcp_server.context import SessionContextStore
    from toolhub.mcp_server.settings import ToolhubSettings

LOGGER_NAME = "toolhub"


def create_server(
    contexts: SessionContextStore,
    settings: ToolhubSettings,
    http: httpx.AsyncClient,
    db_session_factory: async_sessionmaker[AsyncSession] | None = None,
    *,
    routing_mode: RoutingMode = RoutingMode.EXPLICIT,
    tools: Sequence[ToolSpec] = TOOLS,
) -> Server:
    """Build the MCP server that every session's task runs.

    Shares the app-wide ``httpx.AsyncClient`` and DB session factory with the
    tool handlers; owns neither.
    """
    server: Server = Server(settings.server_name, version=settings.server_version)
    by_name = {tool.name: tool for tool in tools}
    routing_mode = RoutingMode(routing_mode)

    def tool_context() -> ToolContext:
        shared: dict[str, Any] = {"settings": settings, "http": http, "db_session_factory": db_session_factory}
        if routing_mode is RoutingMode.FALLBACK:
            return ToolContext.from_ambient(contexts, **shared)
        return ToolContext.for_session(SERVED_SESSION.get(), **shared)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [tool.definition() for tool in tools]

    # Arguments are validated by each tool's input model, not by the SDK.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        tool = by_name.get(name)
        if tool is None:
            return error_result(f"Unknown tool: {name}")

        ctx = tool_context()
        result = await tool.invoke(ctx, arguments)

        await _notify(
            server,
            level="error" if result.isError else "info",
            data=f"Tool {name} {'failed' if result.isError else 'completed'}",
        )
        return result

    @server.set_logging_level()
    async def set_logging_level(level: types.LoggingLevel) -> None:
        logger.debug("Client log level set to {}", level)

    return server


async def _notify(server: Server, *, level: types.LoggingLevel, data: Any) -> None:
    """Send a ``notifications/message`` on the session's standalone stream.

    The transport drops it when no ``GET`` listener is attached; a closed
    session only loses the notification.
    """
    session = server.request_context.session
    try:
        await session.send_log_message(level=level, data=data, logger=LOGGER_NAME)
    except (anyio.ClosedResourceError, anyio.BrokenResourceError):
        logger.warning("Dropped {} notification: session stream is closed", level)
