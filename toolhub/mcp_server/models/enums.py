"""Shared enumerations used across the MCP server."""

from __future__ import annotations

from enum import StrEnum

# -- Sessions ----------------------------------------------------------------


class RoutingMode(StrEnum):
    """How inbound messages without a session id are routed."""

    EXPLICIT = "explicit"
    FALLBACK = "fallback"


class RouteOutcome(StrEnum):
    """Result of routing an accepted inbound message.

    Rejected messages never produce an outcome; routing raises instead.
    """

    ROUTED = "routed"
    CREATED = "created"


# -- Record store --------------------------------------------------------------


class BlockType(StrEnum):
    """Values of the host application's ``block_type`` PostgreSQL enum."""

    ROOT = "root"
    TEXT = "text"
    TODO = "todo"
    HEADING = "heading"
    LIST = "list"
    CYCLE = "cycle"
    FINAL = "final"
    CONTAINER = "container"
    IMAGE = "image"
    MEDIA = "media"
    LINK = "link"
    UNIT_REF = "unit_ref"
    CALENDAR = "calendar"
    GOAL = "goal"
    CONTEXT = "context"
    EXCALIDRAW = "excalidraw"
    START_POINT = "startPoint"
    END_POINT = "endPoint"
    COMPANY = "company"
    DEPARTMENT = "department"
    POSITION = "position"
    PAGE = "page"
    DATABASE = "database"
    COLUMN = "column"
    COLUMN_LIST = "column_list"
    RULE = "rule"
    EVENT = "event"


class TodoPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# -- GitHub ------------------------------------------------------------------


class ItemState(StrEnum):
    """State filter / target for issues and pull requests."""

    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"


class WorkflowRunStatus(StrEnum):
    COMPLETED = "completed"
    ACTION_REQUIRED = "action_required"
    CANCELLED = "cancelled"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    SKIPPED = "skipped"
    STALE = "stale"
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    IN_PROGRESS = "in_progress"
    QUEUED = "queued"
    REQUESTED = "requested"
    WAITING = "waiting"
    PENDING = "pending"


# -- HTTP --------------------------------------------------------------------


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
