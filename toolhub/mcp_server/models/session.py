"""Session-layer models: connection parameters and introspection responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ConnectionParams(BaseModel):
    """Query parameters supplied when a session is opened.

    All values are free-form opaque strings.  Unknown keys are ignored and
    missing keys default to ``None``.  Both snake_case and the camelCase names
    used by existing clients are accepted.
    """

    model_config = ConfigDict(extra="ignore")

    list_id: str | None = Field(default=None, validation_alias=AliasChoices("list_id", "listId", "todoListId"))
    agent_id: str | None = Field(default=None, validation_alias=AliasChoices("agent_id", "agentId"))
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))


class SessionInfo(BaseModel):
    """Snapshot of one session as seen by the session layer."""

    session_id: str
    list_id: str | None = None
    agent_id: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None
    has_context: bool
    has_transport: bool
    terminated: bool = False
    current: bool = False


class SessionListResponse(BaseModel):
    routing_mode: str
    current_session_id: str | None
    sessions: list[SessionInfo]


class AmbientIds(BaseModel):
    """Ids the ambient accessors resolve to through the current-session pointer."""

    session_id: str | None
    list_id: str | None
    agent_id: str | None
    user_id: str | None
