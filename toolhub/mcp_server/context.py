"""Per-session ambient identifiers.

Each MCP session may carry a todo-list id, an agent id and a user id, supplied
once as query parameters when the session is opened.  Tool handlers use them
to scope record-store queries without the caller passing them on every call.

The store also tracks a *current* session: the one ambient lookups resolve
against when a message does not name its session explicitly.  The pointer is
validated when read, not maintained as an invariant, so a dangling pointer
simply reads as "no active session".
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime

from loguru import logger


@dataclass(frozen=True)
class SessionContext:
    """Connection metadata for one session.  Immutable after creation."""

    session_id: str
    list_id: str | None = None
    agent_id: str | None = None
    user_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


SERVED_SESSION: ContextVar[SessionContext | None] = ContextVar("toolhub_served_session", default=None)
"""Context of the session whose MCP server task is running.

Set once at the top of each per-session server task; every request handler
spawned by that task inherits it.
"""


class SessionContextStore:
    """Process-local table of session contexts plus the current-session pointer.

    Instantiated once by the app lifespan and shared by reference; tests build
    their own isolated instances.
    """

    def __init__(self) -> None:
        self._contexts: dict[str, SessionContext] = {}
        self._current_id: str | None = None

    # -- Mutation --------------------------------------------------------------

    def create(
        self,
        session_id: str,
        list_id: str | None = None,
        agent_id: str | None = None,
        user_id: str | None = None,
    ) -> SessionContext:
        """Store a new context and make it current.

        An existing entry for the same id is replaced (last write wins) and
        moves to the end of the insertion order.
        """
        context = SessionContext(session_id=session_id, list_id=list_id, agent_id=agent_id, user_id=user_id)
        self._contexts.pop(session_id, None)
        self._contexts[session_id] = context
        self._current_id = session_id

        logger.debug(
            "Session context created {} (list_id={}, agent_id={}, user_id={})",
            session_id,
            list_id or "not set",
            agent_id or "not set",
            user_id or "not set",
        )
        return context

    def remove(self, session_id: str) -> None:
        """Delete a context.  Unknown ids are ignored.

        If the removed session was current, the pointer moves to the most
        recently inserted remaining session (not necessarily the most recently
        active one), or to ``None`` when the store is empty.
        """
        if self._contexts.pop(session_id, None) is None:
            return

        if self._current_id == session_id:
            self._current_id = next(reversed(self._contexts), None)
        logger.debug("Session context removed {} (current={})", session_id, self._current_id)

    def set_current(self, session_id: str) -> None:
        """Point ambient lookups at *session_id*; silently ignored if unknown."""
        if session_id in self._contexts:
            self._current_id = session_id

    # -- Query -----------------------------------------------------------------

    def get(self, session_id: str) -> SessionContext | None:
        return self._contexts.get(session_id)

    def get_current(self) -> SessionContext | None:
        """Return the current context, or ``None`` if there is no active session."""
        if self._current_id is None:
            logger.warning("No active session")
            return None

        context = self._contexts.get(self._current_id)
        if context is None:
            logger.warning("Session context {} not found", self._current_id)
        return context

    @property
    def current_session_id(self) -> str | None:
        return self._current_id

    def session_ids(self) -> list[str]:
        """Session ids in insertion order (oldest first)."""
        return list(self._contexts)

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._contexts

    # -- Ambient accessors -----------------------------------------------------

    def current_list_id(self) -> str | None:
        context = self.get_current()
        return (context.list_id or None) if context else None

    def current_agent_id(self) -> str | None:
        context = self.get_current()
        return (context.agent_id or None) if context else None

    def current_user_id(self) -> str | None:
        context = self.get_current()
        return (context.user_id or None) if context else None
