"""FastAPI dependency injection for the session layer.

Usage in route handlers::

    @router.get("/things")
    async def list_things(lifecycle: Lifecycle) -> SessionListResponse:
        ...

Dependencies read from ``app.state``, populated by the lifespan, and raise
HTTP 503 while the server is still starting up.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from toolhub.mcp_server.lifecycle import SessionLifecycle


def get_lifecycle(request: Request) -> SessionLifecycle:
    """Return the session lifecycle controller."""
    lifecycle: SessionLifecycle | None = getattr(request.app.state, "lifecycle", None)
    if lifecycle is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server not ready.",
        )
    return lifecycle


# -- Annotated type aliases for concise route signatures ---------------------

Lifecycle = Annotated[SessionLifecycle, Depends(get_lifecycle)]
"""Annotated dependency: session lifecycle controller."""
