"""Data models for the MCP server."""

from toolhub.mcp_server.models.enums import (
    BlockType,
    HttpMethod,
    ItemState,
    RouteOutcome,
    RoutingMode,
    TodoPriority,
    WorkflowRunStatus,
)
from toolhub.mcp_server.models.session import AmbientIds, ConnectionParams, SessionInfo, SessionListResponse
from toolhub.mcp_server.models.todo import TodoContent, TodoItem

__all__ = [
    "AmbientIds",
    # Enums
    "BlockType",
    # Session
    "ConnectionParams",
    "HttpMethod",
    "ItemState",
    "RouteOutcome",
    "RoutingMode",
    "SessionInfo",
    "SessionListResponse",
    # Todos
    "TodoContent",
    "TodoItem",
    "TodoPriority",
    "WorkflowRunStatus",
]
