from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from toolhub.mcp_server.context import SessionContextStore
from toolhub.mcp_server.db.engine import create_engine, create_session_factory
from toolhub.mcp_server.lifecycle import SessionLifecycle
from toolhub.mcp_server.log import setup_logging
from toolhub.mcp_server.protocol import create_server
from toolhub.mcp_server.registry import TransportRegistry
from toolhub.mcp_server.routers.mcp import SESSION_HEADER
from toolhub.mcp_server.settings import get_settings
from toolhub.mcp_server.tools import TOOLS


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("{} starting (host={}, port={})", settings.server_name, settings.host, settings.port)
    logger.info("Routing mode: {}", settings.routing_mode)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.ready = False
    _app.state.settings = settings
    _app.state.db_engine = None
    _app.state.db_session_factory = None

    # -- Database --------------------------------------------------------------
    if settings.database_url:
        engine = create_engine(settings.database_url)
        _app.state.db_engine = engine
        _app.state.db_session_factory = create_session_factory(engine)
        logger.info("PostgreSQL: connected (pool_size=10, max_overflow=0)")
    else:
        logger.warning("TOOLHUB_DATABASE_URL not set -- todo tools disabled")

    # -- Upstream HTTP ---------------------------------------------------------
    http = httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
    _app.state.http = http

    # -- SSE -------------------------------------------------------------------
    # Session streams end when the lifecycle closes their sessions, not on the
    # first shutdown signal.
    AppStatus.disable_automatic_graceful_drain()

    # -- Session layer ---------------------------------------------------------
    contexts = SessionContextStore()
    transports = TransportRegistry()
    server = create_server(
        contexts,
        settings,
        http,
        db_session_factory=_app.state.db_session_factory,
        routing_mode=settings.routing_mode,
    )
    lifecycle = SessionLifecycle(
        contexts,
        transports,
        server,
        routing_mode=settings.routing_mode,
        json_response=settings.json_response,
    )
    _app.state.lifecycle = lifecycle

    async with lifecycle.run():
        _app.state.ready = True
        logger.info("MCP server ready ({} tools)", len(TOOLS))

        yield

        # -- Shutdown ----------------------------------------------------------
        _app.state.ready = False
        logger.info("Shutting down (active_sessions={})", transports.active_count)

        # Closing every session ends its SSE stream, so uvicorn can finish draining.
        await lifecycle.shutdown(timeout=settings.graceful_shutdown_timeout)
        AppStatus.should_exit = True

    await http.aclose()
    logger.info("HTTP client: closed")

    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("PostgreSQL: disposed")


app = FastAPI(title="Toolhub MCP Server", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", SESSION_HEADER, "Mcp-Protocol-Version"],
    expose_headers=[SESSION_HEADER],
)


@app.get("/")
async def server_info(request: Request) -> dict:
    settings = get_settings()
    return {
        "name": settings.server_name,
        "version": settings.server_version,
        "status": "ready" if getattr(request.app.state, "ready", False) else "initializing",
        "endpoints": {
            "mcp": "/mcp",
            "health": "/api/health",
            "sessions": "/api/sessions/list",
            "current_session": "/api/sessions/current",
        },
    }


# ---------------------------------------------------------------------------
# API router -- operational endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from toolhub.mcp_server.routers.mcp import router as mcp_router  # noqa: E402
from toolhub.mcp_server.routers.sessions import router as sessions_router  # noqa: E402

api.include_router(sessions_router)

app.include_router(mcp_router)
app.include_router(api)
