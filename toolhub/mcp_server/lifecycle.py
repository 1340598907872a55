"""Session lifecycle controller -- creation, routing and teardown.

Coordinates the two halves of the session layer:

- **SessionContextStore**: ambient ids (list / agent / user) per session
- **TransportRegistry**: one ``StreamableHTTPServerTransport`` per session

Per session the states are ``Absent -> Active -> Closed``.  A session becomes
active when an ``initialize`` request arrives without a session id: a
transport is created, its context stored, and an MCP server task started on
it.  It is closed when its stream goes away, on explicit ``DELETE``, or at
shutdown.  Closing removes the transport and the context in one call and
terminates the transport, which ends the server task; every reader tolerates
one of the two halves being missing.

Routing of messages that carry no session id depends on ``RoutingMode``:
``explicit`` rejects them, ``fallback`` delivers them to the most recently
registered transport.  Only in fallback mode does routing move the
current-session pointer, so that the ambient accessors the tool handlers read
agree with the transport that carries the call.  Fallback is single-tenant
best effort; with two concurrent sessions that both omit the id there is no
way to tell them apart.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anyio
from loguru import logger
from mcp import types
from mcp.server.streamable_http import StreamableHTTPServerTransport
from pydantic import ValidationError

from toolhub.mcp_server.context import SERVED_SESSION
from toolhub.mcp_server.models.enums import RouteOutcome, RoutingMode
from toolhub.mcp_server.models.session import ConnectionParams, SessionInfo

if TYPE_CHECKING:
    from anyio.abc import TaskGroup, TaskStatus
    from mcp.server.lowlevel import Server

    from toolhub.mcp_server.context import SessionContext, SessionContextStore
    from toolhub.mcp_server.registry import TransportRegistry


class UnknownSessionError(LookupError):
    """Raised when a message names a session id that has no live transport."""


class MissingSessionError(ValueError):
    """Raised when a non-initialize message carries no session id in explicit mode."""


class NoActiveConnectionError(LookupError):
    """Raised when fallback routing finds no transport at all."""


def is_initialize_request(message: Any) -> bool:
    """Whether *message* is a single JSON-RPC ``initialize`` request."""
    try:
        parsed = types.JSONRPCMessage.model_validate(message)
    except ValidationError:
        return False
    return isinstance(parsed.root, types.JSONRPCRequest) and parsed.root.method == "initialize"


@dataclass(frozen=True)
class RouteResult:
    """Where an inbound message goes, and the context captured for it."""

    outcome: RouteOutcome
    session_id: str
    transport: StreamableHTTPServerTransport
    context: SessionContext | None


class SessionLifecycle:
    """Owns the policy that ties contexts, transports and server tasks together.

    Instantiated once during app lifespan; holds references, not copies, of
    the context store and the transport registry.  ``run()`` must be entered
    before the first session is opened.
    """

    def __init__(
        self,
        contexts: SessionContextStore,
        transports: TransportRegistry,
        server: Server,
        *,
        routing_mode: RoutingMode = RoutingMode.EXPLICIT,
        json_response: bool = False,
    ) -> None:
        self.contexts = contexts
        self.transports = transports
        self.server = server
        self.routing_mode = RoutingMode(routing_mode)
        self.json_response = json_response
        self._task_group: TaskGroup | None = None

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Run the task group that hosts one MCP server task per session.

        Leaving the block closes every session.
        """
        if self._task_group is not None:
            msg = "Session lifecycle is already running"
            raise RuntimeError(msg)

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            try:
                yield
            finally:
                await self.shutdown()
                tg.cancel_scope.cancel()
                self._task_group = None

    # -- Absent -> Active ------------------------------------------------------

    async def open_session(self, params: ConnectionParams | None = None) -> StreamableHTTPServerTransport:
        """Mint a session id, register its transport, create its context and serve it.

        Raises ``ShuttingDownError`` if the registry refuses new sessions.
        """
        if self._task_group is None:
            msg = "Session lifecycle is not running"
            raise RuntimeError(msg)

        params = params or ConnectionParams()
        session_id = uuid.uuid4().hex

        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )
        self.transports.register(transport)
        context = self.contexts.create(session_id, params.list_id, params.agent_id, params.user_id)
        await self._task_group.start(self._serve, transport, context)

        logger.info("Session opened: {} (active={})", session_id, self.transports.active_count)
        return transport

    async def _serve(
        self,
        transport: StreamableHTTPServerTransport,
        context: SessionContext,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        session_id = context.session_id
        SERVED_SESSION.set(context)
        try:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                try:
                    await self.server.run(
                        read_stream,
                        write_stream,
                        self.server.create_initialization_options(),
                        stateless=False,
                    )
                except Exception:
                    logger.exception("MCP server task failed (session={})", session_id)
        finally:
            # The server only stops once its transport is gone.
            await self.close_session(session_id)

    # -- Routing ---------------------------------------------------------------

    async def route_inbound(
        self,
        session_id: str | None,
        message: Any,
        params: ConnectionParams | None = None,
    ) -> RouteResult:
        """Decide which session handles *message*.

        Returns ``RouteOutcome.ROUTED`` for an existing session and
        ``RouteOutcome.CREATED`` when an ``initialize`` request opened a new
        one.  Rejections raise ``UnknownSessionError``,
        ``MissingSessionError`` or ``NoActiveConnectionError``.
        """
        if session_id:
            transport = self._resolve_explicit(session_id)
            return self._routed(RouteOutcome.ROUTED, transport)

        if is_initialize_request(message):
            transport = await self.open_session(params)
            return self._routed(RouteOutcome.CREATED, transport)

        transport = self._resolve_missing()
        return self._routed(RouteOutcome.ROUTED, transport)

    def resolve_stream(self, session_id: str | None) -> StreamableHTTPServerTransport:
        """Find the transport for a ``GET`` stream request.  Never creates sessions."""
        transport = self._resolve_explicit(session_id) if session_id else self._resolve_missing()
        self._promote(transport.mcp_session_id)
        return transport

    def _resolve_explicit(self, session_id: str) -> StreamableHTTPServerTransport:
        transport = self.transports.get(session_id)
        if transport is None or transport.is_terminated:
            raise UnknownSessionError(session_id)
        return transport

    def _resolve_missing(self) -> StreamableHTTPServerTransport:
        if self.routing_mode is not RoutingMode.FALLBACK:
            msg = "Bad Request: missing session ID or invalid method"
            raise MissingSessionError(msg)

        found = self.transports.resolve_fallback()
        if found is None:
            msg = "No active connection"
            raise NoActiveConnectionError(msg)
        return found[1]

    def _promote(self, session_id: str) -> None:
        if self.routing_mode is RoutingMode.FALLBACK:
            self.contexts.set_current(session_id)

    def _routed(self, outcome: RouteOutcome, transport: StreamableHTTPServerTransport) -> RouteResult:
        session_id = transport.mcp_session_id
        self._promote(session_id)
        return RouteResult(
            outcome=outcome,
            session_id=session_id,
            transport=transport,
            context=self.contexts.get(session_id),
        )

    # -- Active -> Closed ------------------------------------------------------

    async def close_session(self, session_id: str) -> bool:
        """Tear a session down.  Idempotent.

        Returns ``True`` if anything (transport or context) was removed.
        """
        transport = self.transports.unregister(session_id)
        had_context = session_id in self.contexts
        self.contexts.remove(session_id)

        if transport is not None and not transport.is_terminated:
            await transport.terminate()

        removed = transport is not None or had_context
        if removed:
            logger.info("Session closed: {} (active={})", session_id, self.transports.active_count)
        return removed

    async def shutdown(self, timeout: float | None = None) -> None:
        """Refuse new sessions and close every live one."""
        self.transports.begin_shutdown()
        for transport in self.transports.all_transports():
            await self.close_session(transport.mcp_session_id)
        for session_id in self.contexts.session_ids():
            await self.close_session(session_id)
        await self.transports.wait_until_drained(timeout=timeout)

    # -- Introspection ---------------------------------------------------------

    def is_active(self, session_id: str) -> bool:
        """Active means both a context and a transport are present."""
        return session_id in self.contexts and session_id in self.transports

    def describe(self, session_id: str) -> SessionInfo | None:
        context = self.contexts.get(session_id)
        transport = self.transports.get(session_id)
        if context is None and transport is None:
            return None
        return SessionInfo(
            session_id=session_id,
            list_id=context.list_id if context else None,
            agent_id=context.agent_id if context else None,
            user_id=context.user_id if context else None,
            created_at=context.created_at if context else None,
            has_context=context is not None,
            has_transport=transport is not None,
            terminated=transport.is_terminated if transport else False,
            current=self.contexts.current_session_id == session_id,
        )

    def describe_all(self) -> list[SessionInfo]:
        """Every known session, including half-torn-down ones."""
        ids = dict.fromkeys(self.contexts.session_ids())
        ids.update(dict.fromkeys(t.mcp_session_id for t in self.transports.all_transports()))
        return [info for sid in ids if (info := self.describe(sid)) is not None]
