"""Tool input schemas.

Each tool validates its ``arguments`` against one of these models, and the
JSON Schema advertised in ``tools/list`` is generated from the same model
(``by_alias=True`` so clients see the camelCase names).
"""

from __future__ import annotations

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from toolhub.mcp_server.models.enums import HttpMethod, ItemState, TodoPriority, WorkflowRunStatus


class ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


class CreateTodoInput(ToolInput):
    title: str = Field(min_length=1, description="Todo title (required).")
    parent_id: str | None = Field(
        default=None,
        alias="parentId",
        description="Parent block id. Defaults to the session's todo list.",
    )
    description: str | None = Field(default=None, description="Todo description.")
    priority: TodoPriority | None = Field(default=None, description="Priority: low, medium or high.")
    tags: list[str] | None = Field(default=None, description="Tags for the todo.")


class ReadTodosInput(ToolInput):
    parent_id: str | None = Field(
        default=None,
        alias="parentId",
        description="Parent block id. Defaults to the session's todo list.",
    )
    limit: int | None = Field(default=None, ge=1, le=100, description="Return only the N most recent todos (1-100).")


class UpdateTodoInput(ToolInput):
    todo_id: str = Field(alias="todoId", min_length=1, description="Id of the todo to update (required).")
    title: str | None = Field(default=None, description="New title.")
    description: str | None = Field(default=None, description="New description.")
    completed: bool | None = Field(default=None, description="Completion status.")
    priority: TodoPriority | None = Field(default=None, description="New priority.")
    due_date: str | None = Field(default=None, alias="dueDate", description="New due date (ISO string) or null.")
    tags: list[str] | None = Field(default=None, description="New tags.")
    project_id: str | None = Field(default=None, alias="projectId", description="New project id or null.")


class DeleteTodoInput(ToolInput):
    todo_id: str = Field(alias="todoId", min_length=1, description="Id of the todo to delete (required).")
    permanent: bool = Field(
        default=False,
        description="Delete permanently (true) or move to trash (false, default).",
    )


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


class RepositoryInput(ToolInput):
    owner: str = Field(min_length=1, description="Repository owner (user or organisation).")
    repo: str = Field(min_length=1, description="Repository name.")


class IssueInput(RepositoryInput):
    issue_number: int = Field(alias="issueNumber", ge=1, description="Issue number.")


class UpdateIssueInput(IssueInput):
    title: str | None = Field(default=None, description="New title.")
    body: str | None = Field(default=None, description="New body.")
    state: ItemState | None = Field(default=None, description="open or closed.")


class ListItemsInput(RepositoryInput):
    state: ItemState = Field(default=ItemState.OPEN, description="open, closed or all.")
    per_page: int = Field(default=30, alias="perPage", ge=1, le=100, description="Results per page.")


class PullRequestInput(RepositoryInput):
    pull_number: int = Field(alias="pullNumber", ge=1, description="Pull request number.")


class UpdatePullRequestInput(PullRequestInput):
    title: str | None = Field(default=None, description="New title.")
    body: str | None = Field(default=None, description="New body.")
    state: ItemState | None = Field(default=None, description="open or closed.")


class IssueCommentInput(IssueInput):
    body: str = Field(min_length=1, description="Comment text (Markdown).")


class PullRequestCommentInput(PullRequestInput):
    body: str = Field(min_length=1, description="Comment text (Markdown).")


class ListWorkflowRunsInput(RepositoryInput):
    status: WorkflowRunStatus | None = Field(default=None, description="Only runs with this status.")
    per_page: int = Field(default=30, alias="perPage", ge=1, le=100, description="Results per page.")
    page: int = Field(default=1, ge=1, description="Page number.")


class WorkflowRunInput(RepositoryInput):
    run_id: int = Field(alias="runId", ge=1, description="Workflow run id.")


class WorkflowRunDetailsInput(WorkflowRunInput):
    per_page: int = Field(default=30, alias="perPage", ge=1, le=100, description="Jobs per page.")
    page: int = Field(default=1, ge=1, description="Jobs page number.")


# ---------------------------------------------------------------------------
# Messaging and utilities
# ---------------------------------------------------------------------------


class TelegramMessageInput(ToolInput):
    text: str = Field(min_length=1, description="Message text (HTML formatting allowed).")


class CalculatorInput(ToolInput):
    expression: str = Field(description='Expression to evaluate, e.g. "2 + 2", "sqrt(16)", "sin(pi/2)".')


class ExecuteSqlInput(ToolInput):
    query: str = Field(description="SQL query to execute.")
    database: str = Field(default="main", description="Database name (default main).")


class HttpRequestInput(ToolInput):
    url: AnyHttpUrl = Field(description="Request URL.")
    method: HttpMethod = Field(default=HttpMethod.GET, description="HTTP method.")
    headers: dict[str, str] | None = Field(default=None, description="Extra request headers.")
    body: str | None = Field(default=None, description="Request body (POST/PUT only).")
