"""Todo CRUD operations on the ``block`` table.

Every query is scoped to the owning ``user_id`` and to non-deleted rows of
type ``todo``, so a caller can never see or modify another user's blocks.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from toolhub.mcp_server.db.tables import Block
from toolhub.mcp_server.models.enums import BlockType, TodoPriority
from toolhub.mcp_server.models.todo import TodoContent

POSITION_STEP = 1024


class TodoNotFoundError(LookupError):
    """Raised when a todo does not exist, is deleted, or belongs to another user."""


def parse_block_id(value: str, field: str = "id") -> uuid.UUID:
    """Parse a block id.  Raises ``ValueError`` with a readable message."""
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        msg = f"Invalid {field}: {value!r} is not a UUID"
        raise ValueError(msg) from None


def _todo_filter(user_id: str) -> tuple:
    return (
        Block.user_id == user_id,
        Block.type == BlockType.TODO,
        Block.deleted_at.is_(None),
    )


async def create_todo(
    db: AsyncSession,
    *,
    user_id: str,
    parent_id: uuid.UUID,
    title: str,
    description: str | None = None,
    priority: TodoPriority | None = None,
    tags: list[str] | None = None,
) -> Block:
    """Insert a new, not-completed todo at the end of its parent."""
    last_position = await db.scalar(select(func.max(Block.position)).where(Block.parent_id == parent_id))
    content = TodoContent(description=description or "", completed=False, priority=priority or TodoPriority.LOW)

    todo = Block(
        user_id=user_id,
        type=BlockType.TODO,
        title=title,
        content=content.model_dump(mode="json", exclude={"due_date", "project_id"}),
        tags=tags or [],
        parent_id=parent_id,
        position=(last_position or 0) + POSITION_STEP,
        has_children=False,
        archived=False,
    )
    db.add(todo)
    await db.commit()
    await db.refresh(todo)
    return todo


async def list_todos(
    db: AsyncSession,
    *,
    user_id: str,
    parent_id: uuid.UUID,
    limit: int | None = None,
) -> list[Block]:
    """List todos under a parent.

    With *limit*: the newest N by creation time.  Without: all of them in
    position order, ties broken newest first.
    """
    stmt = select(Block).where(*_todo_filter(user_id), Block.parent_id == parent_id)
    if limit:
        stmt = stmt.order_by(Block.created_at.desc()).limit(limit)
    else:
        stmt = stmt.order_by(Block.position.asc(), Block.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_todo(db: AsyncSession, *, user_id: str, todo_id: uuid.UUID) -> Block:
    """Get a live todo.  Raises ``TodoNotFoundError`` if missing or not owned."""
    stmt = select(Block).where(Block.id == todo_id, *_todo_filter(user_id)).limit(1)
    todo = await db.scalar(stmt)
    if todo is None:
        raise TodoNotFoundError(str(todo_id))
    return todo


async def update_todo(
    db: AsyncSession,
    *,
    user_id: str,
    todo_id: uuid.UUID,
    changes: dict[str, Any],
) -> Block:
    """Apply a partial update.

    *changes* holds only the fields the caller set; ``title`` and ``tags`` are
    columns, everything else is merged into ``content``.  Raises
    ``TodoNotFoundError`` if the todo is missing or not owned.
    """
    todo = await get_todo(db, user_id=user_id, todo_id=todo_id)

    changes = dict(changes)
    if "title" in changes:
        todo.title = changes.pop("title")
    if "tags" in changes:
        todo.tags = changes.pop("tags") or []

    content = TodoContent.from_row(todo.content).model_copy(update=changes)
    todo.content = content.to_row()
    todo.updated_at = datetime.now(UTC)

    await db.commit()
    await db.refresh(todo)
    return todo


async def delete_todo(
    db: AsyncSession,
    *,
    user_id: str,
    todo_id: uuid.UUID,
    permanent: bool = False,
) -> Block:
    """Soft-delete (set ``deleted_at``) or permanently delete a todo.

    Returns the row as it was before a permanent delete, or the updated row
    after a soft delete.  Raises ``TodoNotFoundError`` if missing or not owned.
    """
    todo = await get_todo(db, user_id=user_id, todo_id=todo_id)

    if permanent:
        # Detach first so the returned row stays readable after the commit.
        db.expunge(todo)
        await db.execute(delete(Block).where(Block.id == todo.id, Block.user_id == user_id))
        await db.commit()
        return todo

    now = datetime.now(UTC)
    todo.deleted_at = now
    todo.updated_at = now
    await db.commit()
    await db.refresh(todo)
    return todo
