"""Session introspection endpoints (RPC-style).

Thin HTTP adapter over the session lifecycle controller.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from toolhub.mcp_server.deps import Lifecycle
from toolhub.mcp_server.models.session import AmbientIds, SessionInfo, SessionListResponse

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/list", response_model=SessionListResponse)
async def list_sessions(lifecycle: Lifecycle) -> SessionListResponse:
    return SessionListResponse(
        routing_mode=lifecycle.routing_mode.value,
        current_session_id=lifecycle.contexts.current_session_id,
        sessions=lifecycle.describe_all(),
    )


@router.get("/current", response_model=AmbientIds)
async def current_session(lifecycle: Lifecycle) -> AmbientIds:
    """What a tool call without an explicit session would see right now."""
    contexts = lifecycle.contexts
    return AmbientIds(
        session_id=contexts.current_session_id,
        list_id=contexts.current_list_id(),
        agent_id=contexts.current_agent_id(),
        user_id=contexts.current_user_id(),
    )


@router.get("/{session_id}/get", response_model=SessionInfo)
async def get_session(session_id: str, lifecycle: Lifecycle) -> SessionInfo:
    info = lifecycle.describe(session_id)
    if info is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found.")
    return info


@router.post("/{session_id}/close")
async def close_session(session_id: str, lifecycle: Lifecycle) -> dict:
    if not await lifecycle.close_session(session_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found.")
    return {"session_id": session_id, "closed": True}
