"""GitHub tools: issues, pull requests, comments and Actions workflow runs.

Each handler is a one-line call into ``GitHubClient``; the response body is
returned as pretty-printed JSON.
"""

from __future__ import annotations

from toolhub.mcp_server.clients.github import GitHubClient, GitHubNotConfiguredError
from toolhub.mcp_server.models.tools import (
    IssueCommentInput,
    IssueInput,
    ListItemsInput,
    ListWorkflowRunsInput,
    PullRequestCommentInput,
    PullRequestInput,
    UpdateIssueInput,
    UpdatePullRequestInput,
    WorkflowRunDetailsInput,
    WorkflowRunInput,
)
from toolhub.mcp_server.tools.base import ToolContext, ToolError, ToolSpec


def _client(ctx: ToolContext) -> GitHubClient:
    token = ctx.settings.github_token.get_secret_value() if ctx.settings.github_token else None
    try:
        return GitHubClient(ctx.http, token, base_url=ctx.settings.github_api_url)
    except GitHubNotConfiguredError as exc:
        raise ToolError(str(exc)) from exc


# -- Issues --------------------------------------------------------------------


async def get_issue(ctx: ToolContext, params: IssueInput) -> dict:
    return await _client(ctx).get_issue(params.owner, params.repo, params.issue_number)


async def update_issue(ctx: ToolContext, params: UpdateIssueInput) -> dict:
    return await _client(ctx).update_issue(
        params.owner,
        params.repo,
        params.issue_number,
        title=params.title,
        body=params.body,
        state=params.state,
    )


async def list_issues(ctx: ToolContext, params: ListItemsInput) -> list[dict]:
    return await _client(ctx).list_issues(
        params.owner,
        params.repo,
        state=params.state,
        per_page=params.per_page,
    )


async def create_issue_comment(ctx: ToolContext, params: IssueCommentInput) -> dict:
    return await _client(ctx).create_issue_comment(params.owner, params.repo, params.issue_number, params.body)


# -- Pull requests -------------------------------------------------------------


async def get_pull_request(ctx: ToolContext, params: PullRequestInput) -> dict:
    return await _client(ctx).get_pull_request(params.owner, params.repo, params.pull_number)


async def update_pull_request(ctx: ToolContext, params: UpdatePullRequestInput) -> dict:
    return await _client(ctx).update_pull_request(
        params.owner,
        params.repo,
        params.pull_number,
        title=params.title,
        body=params.body,
        state=params.state,
    )


async def list_pull_requests(ctx: ToolContext, params: ListItemsInput) -> list[dict]:
    return await _client(ctx).list_pull_requests(
        params.owner,
        params.repo,
        state=params.state,
        per_page=params.per_page,
    )


async def create_pull_request_comment(ctx: ToolContext, params: PullRequestCommentInput) -> dict:
    return await _client(ctx).create_pull_request_comment(params.owner, params.repo, params.pull_number, params.body)


# -- Actions -------------------------------------------------------------------


async def list_workflow_runs(ctx: ToolContext, params: ListWorkflowRunsInput) -> dict:
    return await _client(ctx).list_workflow_runs(
        params.owner,
        params.repo,
        status=params.status,
        per_page=params.per_page,
        page=params.page,
    )


async def get_workflow_run(ctx: ToolContext, params: WorkflowRunInput) -> dict:
    return await _client(ctx).get_workflow_run(params.owner, params.repo, params.run_id)


async def get_workflow_run_details(ctx: ToolContext, params: WorkflowRunDetailsInput) -> dict:
    return await _client(ctx).get_workflow_run_details(
        params.owner,
        params.repo,
        params.run_id,
        per_page=params.per_page,
        page=params.page,
    )


async def cancel_workflow_run(ctx: ToolContext, params: WorkflowRunInput) -> str:
    await _client(ctx).cancel_workflow_run(params.owner, params.repo, params.run_id)
    return f"Cancellation requested for workflow run {params.run_id} in {params.owner}/{params.repo}"


async def rerun_workflow_run(ctx: ToolContext, params: WorkflowRunInput) -> str:
    await _client(ctx).rerun_workflow_run(params.owner, params.repo, params.run_id)
    return f"Re-run requested for workflow run {params.run_id} in {params.owner}/{params.repo}"


async def rerun_failed_jobs(ctx: ToolContext, params: WorkflowRunInput) -> str:
    await _client(ctx).rerun_failed_jobs(params.owner, params.repo, params.run_id)
    return f"Re-run of failed jobs requested for workflow run {params.run_id} in {params.owner}/{params.repo}"


GITHUB_TOOLS = [
    ToolSpec("getIssue", "Get a GitHub issue by number.", IssueInput, get_issue),
    ToolSpec("updateIssue", "Update the title, body or state of a GitHub issue.", UpdateIssueInput, update_issue),
    ToolSpec("listIssues", "List issues of a GitHub repository.", ListItemsInput, list_issues),
    ToolSpec("getPullRequest", "Get a GitHub pull request by number.", PullRequestInput, get_pull_request),
    ToolSpec(
        "updatePullRequest",
        "Update the title, body or state of a GitHub pull request.",
        UpdatePullRequestInput,
        update_pull_request,
    ),
    ToolSpec("listPullRequests", "List pull requests of a GitHub repository.", ListItemsInput, list_pull_requests),
    ToolSpec("createIssueComment", "Add a comment to a GitHub issue.", IssueCommentInput, create_issue_comment),
    ToolSpec(
        "createPullRequestComment",
        "Add a conversation comment to a GitHub pull request.",
        PullRequestCommentInput,
        create_pull_request_comment,
    ),
    ToolSpec(
        "listWorkflowRuns",
        "List GitHub Actions workflow runs of a repository, optionally filtered by status.",
        ListWorkflowRunsInput,
        list_workflow_runs,
    ),
    ToolSpec("getWorkflowRun", "Get a GitHub Actions workflow run.", WorkflowRunInput, get_workflow_run),
    ToolSpec(
        "getWorkflowRunDetails",
        "Get a GitHub Actions workflow run together with its jobs.",
        WorkflowRunDetailsInput,
        get_workflow_run_details,
    ),
    ToolSpec("cancelWorkflowRun", "Cancel a GitHub Actions workflow run.", WorkflowRunInput, cancel_workflow_run),
    ToolSpec("rerunWorkflowRun", "Re-run a GitHub Actions workflow run.", WorkflowRunInput, rerun_workflow_run),
    ToolSpec(
        "rerunFailedJobs",
        "Re-run only the failed jobs of a GitHub Actions workflow run.",
        WorkflowRunInput,
        rerun_failed_jobs,
    ),
]
