"""Todo view model.

Todos are stored as generic ``block`` rows; this module flattens a row and
its JSONB ``content`` into the shape returned to tool callers.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from toolhub.mcp_server.models.enums import TodoPriority

if TYPE_CHECKING:
    from toolhub.mcp_server.db.tables import Block


class TodoContent(BaseModel):
    """Shape of ``block.content`` for todo rows.  Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    description: str = ""
    completed: bool = False
    priority: TodoPriority = TodoPriority.LOW
    due_date: str | None = Field(default=None, alias="dueDate")
    project_id: str | None = Field(default=None, alias="projectId")

    @classmethod
    def from_row(cls, content: dict[str, Any] | None) -> TodoContent:
        data = dict(content or {})
        # Rows written by other clients may hold nulls or falsy placeholders.
        for key in ("description", "completed", "priority"):
            if not data.get(key):
                data.pop(key, None)
        return cls.model_validate(data)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TodoItem(BaseModel):
    """A todo as returned by the todo tools."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    title: str | None
    description: str
    completed: bool
    priority: TodoPriority
    due_date: str | None = Field(default=None, alias="dueDate")
    project_id: str | None = Field(default=None, alias="projectId")
    tags: list[str] = Field(default_factory=list)
    parent_id: uuid.UUID | None = Field(default=None, alias="parentId")
    position: int | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")

    @classmethod
    def from_block(cls, block: Block, *, position: int | None = None) -> TodoItem:
        """Build from a row; *position* overrides the stored sort key (1-based rank)."""
        content = TodoContent.from_row(block.content)
        return cls(
            id=block.id,
            title=block.title,
            description=content.description,
            completed=content.completed,
            priority=content.priority,
            due_date=content.due_date,
            project_id=content.project_id,
            tags=list(block.tags or []),
            parent_id=block.parent_id,
            position=position if position is not None else block.position,
            created_at=block.created_at,
            updated_at=block.updated_at,
            deleted_at=block.deleted_at,
        )
