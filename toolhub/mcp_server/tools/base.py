"""Tool registry primitives.

A tool is a ``ToolSpec``: a name, a description, a pydantic input model and an
async handler ``(ToolContext, input) -> str | JSON-able | CallToolResult``.
The JSON Schema advertised in ``tools/list`` is generated from the input model
so validation and advertisement never drift apart.

Handlers never produce protocol errors.  Anything a handler raises becomes a
tool result with ``isError: true``.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger
from mcp import types
from pydantic import BaseModel, ValidationError

from toolhub.mcp_server.models.tools import ToolInput

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from toolhub.mcp_server.context import SessionContext, SessionContextStore
    from toolhub.mcp_server.settings import ToolhubSettings


class ToolError(Exception):
    """Raised by handlers for an expected, user-facing failure.

    The message is returned to the caller verbatim; no traceback is logged.
    """


def text_result(text: str, *, is_error: bool = False) -> types.CallToolResult:
    return types.CallToolResult(content=[types.TextContent(type="text", text=text)], isError=is_error)


def error_result(message: str) -> types.CallToolResult:
    return text_result(message, is_error=True)


def render(output: Any) -> str:
    """Render a handler's return value as tool text."""
    if isinstance(output, str):
        return output
    if isinstance(output, BaseModel):
        output = output.model_dump(mode="json", by_alias=True)
    return json.dumps(output, indent=2, ensure_ascii=False, default=str)


@dataclass
class ToolContext:
    """Everything a handler may touch besides its arguments.

    The ambient ids are read once when the context is built, so a handler
    never mixes fields from two sessions even if another session becomes
    current while it awaits.
    """

    settings: ToolhubSettings
    http: httpx.AsyncClient
    db_session_factory: async_sessionmaker[AsyncSession] | None = None
    session_id: str | None = None
    list_id: str | None = None
    agent_id: str | None = None
    session_user_id: str | None = None

    @classmethod
    def for_session(cls, session: SessionContext | None, **kwargs: Any) -> ToolContext:
        """Context bound to the session that carries the call."""
        if session is None:
            return cls(**kwargs)
        return cls(
            session_id=session.session_id,
            list_id=session.list_id or None,
            agent_id=session.agent_id or None,
            session_user_id=session.user_id or None,
            **kwargs,
        )

    @classmethod
    def from_ambient(cls, contexts: SessionContextStore, **kwargs: Any) -> ToolContext:
        """Context resolved through the current-session pointer."""
        return cls(
            session_id=contexts.current_session_id,
            list_id=contexts.current_list_id(),
            agent_id=contexts.current_agent_id(),
            session_user_id=contexts.current_user_id(),
            **kwargs,
        )

    @property
    def user_id(self) -> str | None:
        """Session user, falling back to the configured default owner."""
        return self.session_user_id or self.settings.default_user_id or None


Handler = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[ToolInput]
    handler: Handler
    title: str | None = None

    def definition(self) -> types.Tool:
        """The ``tools/list`` entry for this tool."""
        schema = self.input_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        return types.Tool(name=self.name, title=self.title, description=self.description, inputSchema=schema)

    async def invoke(self, ctx: ToolContext, arguments: dict[str, Any] | None) -> types.CallToolResult:
        """Validate *arguments*, run the handler and wrap its output."""
        try:
            params = self.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in exc.errors()
            )
            return error_result(f"Invalid arguments for {self.name}: {errors}")

        logger.debug("Calling tool {} (session={})", self.name, ctx.session_id or "none")
        try:
            output = await self.handler(ctx, params)
        except ToolError as exc:
            return error_result(f"Error: {exc}")
        except Exception as exc:
            logger.exception("Tool {} failed", self.name)
            return error_result(f"Error: {exc}")

        if isinstance(output, types.CallToolResult):
            return output
        return text_result(render(output))
