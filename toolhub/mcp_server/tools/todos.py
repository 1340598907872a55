"""Todo tools backed by the ``block`` table.

The owner and the default parent list come from the calling session, so an
agent only passes what it actually wants to change.  Results use the
``{success, operation, data, message}`` envelope; failures are returned as
``{success: false, operation, error}`` with ``isError`` set.
"""

from __future__ import annotations

import uuid
from typing import Any

from loguru import logger
from mcp import types
from sqlalchemy.exc import SQLAlchemyError

from toolhub.mcp_server.managers import todos as todo_mgr
from toolhub.mcp_server.models.todo import TodoItem
from toolhub.mcp_server.models.tools import CreateTodoInput, DeleteTodoInput, ReadTodosInput, UpdateTodoInput
from toolhub.mcp_server.tools.base import ToolContext, ToolSpec, error_result, render


class TodoScopeError(ValueError):
    """Raised when the owner or parent list cannot be resolved."""


def _success(operation: str, data: dict[str, Any], message: str) -> dict[str, Any]:
    return {"success": True, "operation": operation, "data": data, "message": message}


def _failure(operation: str, error: Exception | str) -> types.CallToolResult:
    return error_result(render({"success": False, "operation": operation, "error": str(error)}))


def _require_user(ctx: ToolContext) -> str:
    user_id = ctx.user_id
    if not user_id:
        msg = "User not authenticated. Session user_id is required."
        raise TodoScopeError(msg)
    return user_id


def _resolve_parent(ctx: ToolContext, parent_id: str | None) -> uuid.UUID:
    value = parent_id or ctx.list_id
    if not value:
        msg = "Todo list is not configured: pass parentId or connect with list_id."
        raise TodoScopeError(msg)
    return todo_mgr.parse_block_id(value, "parentId")


def _require_db(ctx: ToolContext):
    if ctx.db_session_factory is None:
        msg = "Database is not configured. Set TOOLHUB_DATABASE_URL."
        raise TodoScopeError(msg)
    return ctx.db_session_factory


async def create_todo(ctx: ToolContext, params: CreateTodoInput) -> dict[str, Any] | types.CallToolResult:
    try:
        user_id = _require_user(ctx)
        parent_id = _resolve_parent(ctx, params.parent_id)
        factory = _require_db(ctx)
        logger.info("createTodo: parent={} user={} agent={}", parent_id, user_id, ctx.agent_id or "not set")

        async with factory() as db:
            todo = await todo_mgr.create_todo(
                db,
                user_id=user_id,
                parent_id=parent_id,
                title=params.title,
                description=params.description,
                priority=params.priority,
                tags=params.tags,
            )
    except (ValueError, SQLAlchemyError) as exc:
        return _failure("create", exc)

    item = TodoItem.from_block(todo).model_dump(mode="json", by_alias=True, exclude={"deleted_at"})
    return _success("create", {"todo": item}, f'Todo "{params.title}" created')


async def read_todos(ctx: ToolContext, params: ReadTodosInput) -> dict[str, Any] | types.CallToolResult:
    try:
        user_id = _require_user(ctx)
        parent_id = _resolve_parent(ctx, params.parent_id)
        factory = _require_db(ctx)
        logger.info("readTodos: parent={} user={} agent={}", parent_id, user_id, ctx.agent_id or "not set")

        async with factory() as db:
            rows = await todo_mgr.list_todos(db, user_id=user_id, parent_id=parent_id, limit=params.limit)
    except (ValueError, SQLAlchemyError) as exc:
        return _failure("read", exc)

    todos = [
        TodoItem.from_block(row, position=index).model_dump(mode="json", by_alias=True, exclude={"deleted_at"})
        for index, row in enumerate(rows, start=1)
    ]
    message = f"Found {len(todos)} latest todos" if params.limit else f"Found {len(todos)} todos"
    return _success("read", {"todos": todos, "count": len(todos)}, message)


async def update_todo(ctx: ToolContext, params: UpdateTodoInput) -> dict[str, Any] | types.CallToolResult:
    changes = params.model_dump(exclude_unset=True, exclude={"todo_id"})
    try:
        user_id = _require_user(ctx)
        todo_id = todo_mgr.parse_block_id(params.todo_id, "todoId")
        factory = _require_db(ctx)
        logger.info("updateTodo: todo={} user={} agent={}", todo_id, user_id, ctx.agent_id or "not set")

        async with factory() as db:
            todo = await todo_mgr.update_todo(db, user_id=user_id, todo_id=todo_id, changes=changes)
    except todo_mgr.TodoNotFoundError:
        return _failure("update", "Todo not found or you do not have permission to modify it")
    except (ValueError, SQLAlchemyError) as exc:
        return _failure("update", exc)

    item = TodoItem.from_block(todo).model_dump(mode="json", by_alias=True, exclude={"deleted_at"})
    changed = sorted(params.model_dump(exclude_unset=True, exclude={"todo_id"}, by_alias=True))
    return _success("update", {"todo": item, "changes": changed}, f'Todo "{todo.title}" updated')


async def delete_todo(ctx: ToolContext, params: DeleteTodoInput) -> dict[str, Any] | types.CallToolResult:
    try:
        user_id = _require_user(ctx)
        todo_id = todo_mgr.parse_block_id(params.todo_id, "todoId")
        factory = _require_db(ctx)
        logger.info(
            "deleteTodo: todo={} permanent={} user={} agent={}",
            todo_id,
            params.permanent,
            user_id,
            ctx.agent_id or "not set",
        )

        async with factory() as db:
            todo = await todo_mgr.delete_todo(db, user_id=user_id, todo_id=todo_id, permanent=params.permanent)
    except todo_mgr.TodoNotFoundError:
        return _failure("delete", "Todo not found or you do not have permission to delete it")
    except (ValueError, SQLAlchemyError) as exc:
        return _failure("delete", exc)

    if params.permanent:
        return _success(
            "delete",
            {"todoId": str(todo.id), "permanent": True},
            f'Todo "{todo.title}" permanently deleted',
        )
    return _success(
        "delete",
        {"todoId": str(todo.id), "deletedAt": todo.deleted_at.isoformat(), "permanent": False},
        f'Todo "{todo.title}" moved to trash (can be restored)',
    )


TODO_TOOLS = [
    ToolSpec(
        name="createTodo",
        description=(
            "Creates a new todo item in a parent block, with completed=false. "
            "Required: title. Optional: parentId (defaults to the session's todo list), "
            "description, priority (low/medium/high), tags."
        ),
        input_model=CreateTodoInput,
        handler=create_todo,
    ),
    ToolSpec(
        name="readTodos",
        description=(
            "Lists the todos of a parent block, excluding deleted ones. Without limit: all todos "
            "in list order. With limit (1-100): the most recently created ones."
        ),
        input_model=ReadTodosInput,
        handler=read_todos,
    ),
    ToolSpec(
        name="updateTodo",
        description=(
            "Updates an existing todo. Required: todoId. Optional: title, description, completed, "
            "priority, dueDate, tags, projectId. Only the given fields change."
        ),
        input_model=UpdateTodoInput,
        handler=update_todo,
    ),
    ToolSpec(
        name="deleteTodo",
        description="Deletes a todo. By default it is moved to trash; permanent=true removes it for good.",
        input_model=DeleteTodoInput,
        handler=delete_todo,
    ),
]
