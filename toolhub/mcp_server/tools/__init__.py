"""Static tool registry.

``TOOLS`` is the complete, ordered list advertised by ``tools/list``.  Adding
a tool means writing a handler and appending its ``ToolSpec`` here.
"""

from __future__ import annotations

from toolhub.mcp_server.tools.base import ToolContext, ToolError, ToolSpec, error_result, text_result
from toolhub.mcp_server.tools.calculator import CALCULATOR_TOOLS
from toolhub.mcp_server.tools.github import GITHUB_TOOLS
from toolhub.mcp_server.tools.http import HTTP_TOOLS
from toolhub.mcp_server.tools.sql import SQL_TOOLS
from toolhub.mcp_server.tools.telegram import TELEGRAM_TOOLS
from toolhub.mcp_server.tools.todos import TODO_TOOLS

TOOLS: list[ToolSpec] = [
    *TODO_TOOLS,
    *GITHUB_TOOLS,
    *TELEGRAM_TOOLS,
    *CALCULATOR_TOOLS,
    *SQL_TOOLS,
    *HTTP_TOOLS,
]

_BY_NAME = {tool.name: tool for tool in TOOLS}


def get_tool(name: str) -> ToolSpec | None:
    return _BY_NAME.get(name)


__all__ = ["TOOLS", "ToolContext", "ToolError", "ToolSpec", "error_result", "get_tool", "text_result"]
