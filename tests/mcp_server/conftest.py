"""Shared fixtures for MCP server tests."""

from __future__ import annotations

import json
import math
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import anyio
import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from toolhub.mcp_server.app import app
from toolhub.mcp_server.context import SessionContext, SessionContextStore
from toolhub.mcp_server.lifecycle import SessionLifecycle
from toolhub.mcp_server.models.enums import RoutingMode
from toolhub.mcp_server.protocol import create_server
from toolhub.mcp_server.registry import TransportRegistry
from toolhub.mcp_server.settings import ToolhubSettings
from toolhub.mcp_server.tools import ToolContext


class UpstreamStub:
    """Canned responses for ``httpx.MockTransport``, keyed by method and path."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: dict[tuple[str, str], tuple[int, dict[str, Any]]] = {}

    def respond(self, method: str, path: str, status_code: int = 200, **kwargs: Any) -> None:
        self._responses[(method.upper(), path)] = (status_code, kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        found = self._responses.get((request.method, request.url.path))
        if found is None:
            return httpx.Response(404, json={"message": "Not Found"})
        status_code, kwargs = found
        return httpx.Response(status_code, **kwargs)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def settings() -> ToolhubSettings:
    """Settings isolated from the developer's environment and ``.env``."""
    return ToolhubSettings(
        _env_file=None,
        database_url=None,
        default_user_id=None,
        github_token="gh-test-token",
        github_api_url="https://api.github.test",
        telegram_bot_token="tg-test-token",
        telegram_chat_id="4242",
        telegram_api_url="https://telegram.test",
    )


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
async def http_client(upstream: UpstreamStub) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture
def contexts() -> SessionContextStore:
    return SessionContextStore()


@pytest.fixture
def transports() -> TransportRegistry:
    return TransportRegistry()


@pytest.fixture
def routing_mode() -> RoutingMode:
    """Override per test with ``@pytest.mark.parametrize("routing_mode", [...])``."""
    return RoutingMode.EXPLICIT


@pytest.fixture
def lifecycle(
    contexts: SessionContextStore,
    transports: TransportRegistry,
    settings: ToolhubSettings,
    http_client: httpx.AsyncClient,
    routing_mode: RoutingMode,
) -> SessionLifecycle:
    """Lifecycle over a real MCP server.

    Sessions can only be opened inside ``async with lifecycle.run():``, which
    tests enter themselves: the task group has to live in the test's own task.
    """
    server = create_server(contexts, settings, http_client, routing_mode=routing_mode)
    return SessionLifecycle(contexts, transports, server, routing_mode=routing_mode, json_response=True)


@pytest.fixture
def make_ctx(settings: ToolhubSettings, http_client: httpx.AsyncClient) -> Callable[..., ToolContext]:
    """Build a ``ToolContext`` for calling tool handlers directly."""

    def _make(
        *,
        list_id: str | None = None,
        agent_id: str | None = None,
        user_id: str | None = None,
        db_session_factory: Any = None,
        session: bool = True,
    ) -> ToolContext:
        context = (
            SessionContext(session_id="test-session", list_id=list_id, agent_id=agent_id, user_id=user_id)
            if session
            else None
        )
        return ToolContext.for_session(
            context,
            settings=settings,
            http=http_client,
            db_session_factory=db_session_factory,
        )

    return _make


@pytest.fixture
async def client(
    settings: ToolhubSettings,
    lifecycle: SessionLifecycle,
    http_client: httpx.AsyncClient,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with an isolated session layer.

    The app lifespan does NOT run under ``ASGITransport``, so the state it
    would populate is pre-set here.
    """
    app.state.settings = settings
    app.state.db_engine = None
    app.state.db_session_factory = None
    app.state.http = http_client
    app.state.lifecycle = lifecycle
    app.state.ready = True

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", headers={"Accept": MCP_ACCEPT}) as ac:
        yield ac

    app.state.ready = False
    app.state.lifecycle = None


# ---------------------------------------------------------------------------
# MCP over HTTP
# ---------------------------------------------------------------------------

SESSION_HEADER = "Mcp-Session-Id"
MCP_ACCEPT = "application/json, text/event-stream"
PROTOCOL_VERSION = "2025-03-26"


class McpHttp:
    """A minimal MCP client speaking JSON-RPC over ``POST /mcp``."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client
        self._next_id = 0

    async def post(self, message: Any, session_id: str | None = None, *, query: str = "") -> httpx.Response:
        headers = {SESSION_HEADER: session_id} if session_id else {}
        return await self.client.post(f"/mcp{query}", json=message, headers=headers)

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> httpx.Response:
        self._next_id += 1
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": self._next_id, "method": method}
        if params is not None:
            message["params"] = params
        return await self.post(message, session_id)

    async def notify(self, method: str, session_id: str | None = None) -> httpx.Response:
        return await self.post({"jsonrpc": "2.0", "method": method}, session_id)

    async def open(self, query: str = "", *, protocol_version: str = PROTOCOL_VERSION) -> httpx.Response:
        """Send ``initialize`` without a session id."""
        params = {
            "protocolVersion": protocol_version,
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "0.0.0"},
        }
        return await self.post({"jsonrpc": "2.0", "id": 0, "method": "initialize", "params": params}, query=query)

    async def initialize(self, query: str = "") -> str:
        """Open a session and complete the handshake.  Returns the session id."""
        response = await self.open(query)
        assert response.status_code == 200, response.text
        session_id = response.headers[SESSION_HEADER]

        ack = await self.notify("notifications/initialized", session_id)
        assert ack.status_code == 202, ack.text
        return session_id

    async def call_tool(self, name: str, arguments: dict[str, Any], session_id: str | None = None) -> dict[str, Any]:
        response = await self.request("tools/call", {"name": name, "arguments": arguments}, session_id)
        assert response.status_code == 200, response.text
        return response.json()["result"]


@pytest.fixture
def rpc(client: AsyncClient) -> McpHttp:
    return McpHttp(client)


class SseListener:
    """Drives ``GET /mcp`` through the ASGI app directly.

    ``ASGITransport`` buffers whole responses, so an open stream is read
    here instead: body chunks are queued as they are sent, and ``hang_up``
    plays the client disconnecting.
    """

    def __init__(self, session_id: str | None = None) -> None:
        headers = [(b"accept", b"text/event-stream")]
        if session_id:
            headers.append((SESSION_HEADER.lower().encode(), session_id.encode()))
        self.scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/mcp",
            "raw_path": b"/mcp",
            "root_path": "",
            "query_string": b"",
            "headers": headers,
            "client": ("127.0.0.1", 50000),
            "server": ("test", 80),
        }
        self.status: int | None = None
        self.started = anyio.Event()
        self.finished = anyio.Event()
        self._disconnected = anyio.Event()
        self._chunks_in, self._chunks_out = anyio.create_memory_object_stream[bytes](max_buffer_size=math.inf)
        self._pending: list[dict[str, Any]] = []

    def hang_up(self) -> None:
        self._disconnected.set()

    async def _receive(self) -> dict[str, Any]:
        await self._disconnected.wait()
        return {"type": "http.disconnect"}

    async def _send(self, message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.started.set()
        elif message["type"] == "http.response.body" and message.get("body"):
            self._chunks_in.send_nowait(message["body"])

    async def run(self) -> None:
        try:
            await app(self.scope, self._receive, self._send)
        finally:
            self.started.set()
            self.finished.set()

    async def next_message(self) -> dict[str, Any]:
        """The next JSON-RPC message carried on a ``data:`` line."""
        while not self._pending:
            chunk = await self._chunks_out.receive()
            for line in chunk.decode().splitlines():
                if line.startswith("data:"):
                    self._pending.append(json.loads(line.removeprefix("data:").strip()))
        return self._pending.pop(0)


@pytest.fixture
def attach_stream() -> Callable[..., Any]:
    """``async with attach_stream(session_id) as listener:`` keeps a GET stream open.

    Leaving the block hangs up and waits for the request to finish.
    """

    @asynccontextmanager
    async def _attach(session_id: str | None = None) -> AsyncIterator[SseListener]:
        listener = SseListener(session_id)
        async with anyio.create_task_group() as tg:
            tg.start_soon(listener.run)
            with anyio.fail_after(5):
                await listener.started.wait()
            # The stream registers its writer just after the headers go out.
            await anyio.sleep(0.05)
            try:
                yield listener
            finally:
                listener.hang_up()

    return _attach


@pytest.fixture
def make_listener() -> Callable[..., SseListener]:
    """Build an ``SseListener`` the test drives by hand."""
    return SseListener
