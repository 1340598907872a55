"""Streamable HTTP endpoint for MCP.

- ``POST /mcp``   -- client-to-server JSON-RPC message
- ``GET /mcp``    -- server-to-client SSE stream for one session
- ``DELETE /mcp`` -- explicit session teardown

The endpoint is a raw ASGI app: the lifecycle controller picks the session,
then the request is handed, unchanged, to that session's SDK transport.  The
session is named by the ``Mcp-Session-Id`` header.  An ``initialize`` request
without one opens a new session; its connection parameters are read from the
query string.  When fallback routing picks the session, the header is added
before the transport sees the request.  Routing failures are answered with a
JSON-RPC error envelope (code ``-32000``) and a matching HTTP status.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import anyio
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from loguru import logger
from mcp import types
from starlette.requests import Request
from starlette.responses import Response

from toolhub.mcp_server.lifecycle import (
    MissingSessionError,
    NoActiveConnectionError,
    SessionLifecycle,
    UnknownSessionError,
)
from toolhub.mcp_server.models.enums import RouteOutcome
from toolhub.mcp_server.models.session import ConnectionParams
from toolhub.mcp_server.registry import ShuttingDownError

if TYPE_CHECKING:
    from starlette.types import Message, Receive, Scope, Send

SESSION_HEADER = "Mcp-Session-Id"
SERVER_ERROR = -32000

_ROUTING_ERRORS = (UnknownSessionError, MissingSessionError, NoActiveConnectionError, ShuttingDownError)


def rpc_error(status_code: int, message: str, *, code: int = SERVER_ERROR) -> JSONResponse:
    error = types.JSONRPCError(jsonrpc="2.0", id="server-error", error=types.ErrorData(code=code, message=message))
    return JSONResponse(error.model_dump(by_alias=True, exclude_none=True), status_code=status_code)


def _routing_error(exc: Exception) -> JSONResponse:
    if isinstance(exc, UnknownSessionError):
        return rpc_error(status.HTTP_404_NOT_FOUND, "Session not found")
    if isinstance(exc, ShuttingDownError):
        return rpc_error(status.HTTP_503_SERVICE_UNAVAILABLE, "Server is shutting down")
    # MissingSessionError, NoActiveConnectionError
    return rpc_error(status.HTTP_400_BAD_REQUEST, str(exc))


def _with_session(scope: Scope, session_id: str) -> Scope:
    header = SESSION_HEADER.lower().encode()
    headers = [(key, value) for key, value in scope["headers"] if key.lower() != header]
    headers.append((header, session_id.encode()))
    return {**scope, "headers": headers}


def _replay(body: bytes, receive: Receive) -> Receive:
    """Hand the already-read body to the transport, then defer to *receive*."""
    pending = True

    async def replay() -> Message:
        nonlocal pending
        if pending:
            pending = False
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class _ResponseTracker:
    """Wraps ``send`` to remember the status the transport answered with."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int | None = None

    async def send(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
        await self._send(message)

    @property
    def refused(self) -> bool:
        return self.status is not None and self.status >= 400


class McpEndpoint:
    """ASGI app serving ``/mcp``."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        state = request.app.state
        if not getattr(state, "ready", False):
            response: Response | None = rpc_error(status.HTTP_503_SERVICE_UNAVAILABLE, "Server not ready")
        else:
            handlers = {"POST": self._post, "GET": self._stream, "DELETE": self._delete}
            handler = handlers.get(request.method)
            if handler is None:
                response = Response(status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
            else:
                response = await handler(request, state.lifecycle, send)
        if response is not None:
            await response(scope, receive, send)

    async def _post(self, request: Request, lifecycle: SessionLifecycle, send: Send) -> Response | None:
        session_id = request.headers.get(SESSION_HEADER)
        body = await request.body()
        try:
            payload: Any = json.loads(body)
        except ValueError:
            return rpc_error(status.HTTP_400_BAD_REQUEST, "Parse error", code=types.PARSE_ERROR)

        params = ConnectionParams.model_validate(dict(request.query_params))
        try:
            route = await lifecycle.route_inbound(session_id, payload, params)
        except _ROUTING_ERRORS as exc:
            logger.debug("Rejected POST (session={}): {!r}", session_id, exc)
            return _routing_error(exc)

        scope = request.scope
        if not session_id and route.outcome is RouteOutcome.ROUTED:
            scope = _with_session(scope, route.session_id)

        tracker = _ResponseTracker(send)
        try:
            await route.transport.handle_request(scope, _replay(body, request.receive), tracker.send)
        finally:
            # A session whose initialize was never answered cannot be used.
            if route.outcome is RouteOutcome.CREATED and (tracker.status is None or tracker.refused):
                with anyio.CancelScope(shield=True):
                    await lifecycle.close_session(route.session_id)
        return None

    async def _stream(self, request: Request, lifecycle: SessionLifecycle, send: Send) -> Response | None:
        session_id = request.headers.get(SESSION_HEADER)
        try:
            transport = lifecycle.resolve_stream(session_id)
        except _ROUTING_ERRORS as exc:
            return _routing_error(exc)

        stream_session = transport.mcp_session_id
        scope = request.scope if session_id else _with_session(request.scope, stream_session)

        tracker = _ResponseTracker(send)
        try:
            await transport.handle_request(scope, request.receive, tracker.send)
        finally:
            # The listener is the session's lifeline: once it goes, so does the
            # session.  A refused attach (second listener, bad headers) leaves
            # the session alone.
            if not tracker.refused:
                logger.info("Stream detached: {}", stream_session)
                with anyio.CancelScope(shield=True):
                    await lifecycle.close_session(stream_session)
        return None

    async def _delete(self, request: Request, lifecycle: SessionLifecycle, send: Send) -> Response:
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id:
            return rpc_error(status.HTTP_400_BAD_REQUEST, "Bad Request: missing session ID")
        if not await lifecycle.close_session(session_id):
            return rpc_error(status.HTTP_404_NOT_FOUND, "Session not found")
        return JSONResponse({"session_id": session_id, "closed": True})


router = APIRouter(tags=["mcp"])
router.add_route("/mcp", McpEndpoint(), methods=["GET", "POST", "DELETE"], include_in_schema=False)
