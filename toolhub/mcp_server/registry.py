"""In-process transport registry.

Maps session ids to live ``StreamableHTTPServerTransport`` handles, one per
session.  Ephemeral -- empty on process restart; nothing here is persisted.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from mcp.server.streamable_http import StreamableHTTPServerTransport


class ShuttingDownError(RuntimeError):
    """Raised when attempting to register a transport during shutdown."""


class TransportRegistry:
    """Registry of live transports, keyed by session id.

    Insertion order is kept: re-registering an id moves it to the end, so the
    last entry is always the most recently registered transport.  That order
    backs the fallback routing policy.

    The registry also provides a drain mechanism for graceful shutdown:
    ``wait_until_drained`` blocks until all transports have been unregistered.
    """

    def __init__(self) -> None:
        self._transports: dict[str, StreamableHTTPServerTransport] = {}
        self._drain_event = asyncio.Event()
        self._drain_event.set()  # Starts "drained" (no transports).
        self._shutting_down = False

    # -- Mutation --------------------------------------------------------------

    def register(self, transport: StreamableHTTPServerTransport) -> None:
        """Register (or replace) the transport for its session id."""
        if self._shutting_down:
            raise ShuttingDownError
        logger.debug("Registry: register transport for session {}", transport.mcp_session_id)
        self._transports.pop(transport.mcp_session_id, None)
        self._transports[transport.mcp_session_id] = transport
        self._drain_event.clear()

    def unregister(self, session_id: str) -> StreamableHTTPServerTransport | None:
        transport = self._transports.pop(session_id, None)
        if transport:
            logger.debug("Registry: unregister transport for session {}", session_id)
        if not self._transports:
            self._drain_event.set()
        return transport

    # -- Query -----------------------------------------------------------------

    def get(self, session_id: str) -> StreamableHTTPServerTransport | None:
        return self._transports.get(session_id)

    def resolve_fallback(self) -> tuple[str, StreamableHTTPServerTransport] | None:
        """Pick a transport for a message that names no session.

        Policy: the most recently registered transport wins.  With several
        concurrent sessions this is a guess, not a guarantee.
        """
        if not self._transports:
            return None
        session_id = next(reversed(self._transports))
        if len(self._transports) > 1:
            logger.debug(
                "Registry: fallback picked {} out of {} transports",
                session_id,
                len(self._transports),
            )
        return session_id, self._transports[session_id]

    def all_transports(self) -> list[StreamableHTTPServerTransport]:
        """Return a snapshot of all live transports, oldest first."""
        return list(self._transports.values())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._transports

    @property
    def active_count(self) -> int:
        return len(self._transports)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Mark the registry as shutting down.  New registrations are refused."""
        self._shutting_down = True
        logger.info("Registry: shutdown initiated, refusing new sessions")
        if not self._transports:
            self._drain_event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until all transports have been unregistered.

        Returns ``True`` if the registry is empty, ``False`` if *timeout*
        expired with transports still registered.
        """
        if not self._transports:
            return True
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Registry: drain timed out after {}s with {} transports still registered",
                timeout,
                len(self._transports),
            )
            return False
        else:
            return True
