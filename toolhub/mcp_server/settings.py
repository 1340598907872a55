"""Service configuration loaded from TOOLHUB_* environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolhubSettings(BaseSettings):
    """Toolhub MCP server settings.

    All fields are read from environment variables with the ``TOOLHUB_`` prefix.
    For example, ``TOOLHUB_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Third-party credentials also accept their conventional unprefixed names
    (``GITHUB_TOKEN``, ``TELEGRAM_BOT_TOKEN``, ``TELEGRAM_CHAT_ID``) so an
    existing ``.env`` keeps working.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Infrastructure --------------------------------------------------------
    database_url: str | None = None
    """PostgreSQL connection string (psycopg).  Required for the todo tools."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    server_name: str = "Universal MCP Server"
    server_version: str = "1.0.0"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    graceful_shutdown_timeout: int = 30
    """Seconds uvicorn waits for open streams before forcing shutdown."""

    # -- Sessions --------------------------------------------------------------
    routing_mode: Literal["explicit", "fallback"] = "explicit"
    """How messages without an ``Mcp-Session-Id`` header are routed.

    ``explicit`` rejects them (unless they are ``initialize`` requests), which
    is the only mode that is safe with several concurrent sessions.
    ``fallback`` routes them to the most recently registered transport and
    promotes that session to current: single-tenant best effort.
    """

    json_response: bool = False
    """Answer POST requests with a single JSON body instead of an SSE stream."""

    # -- Todo tools ------------------------------------------------------------
    default_user_id: str | None = None
    """Owner used for todo records when the session carries no ``user_id``."""

    # -- Upstream APIs ---------------------------------------------------------
    http_timeout: float = 30.0

    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("TOOLHUB_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    github_api_url: str = "https://api.github.com"

    telegram_bot_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("TOOLHUB_TELEGRAM_BOT_TOKEN", "TELEGRAM_BOT_TOKEN"),
    )
    telegram_chat_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TOOLHUB_TELEGRAM_CHAT_ID", "TELEGRAM_CHAT_ID"),
    )
    telegram_api_url: str = "https://api.telegram.org"


def get_settings() -> ToolhubSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> ToolhubSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return ToolhubSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
