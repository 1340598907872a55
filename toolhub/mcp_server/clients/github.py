"""Thin async client for the GitHub REST API.

Each method is one REST call (two for workflow run details) and returns the
decoded JSON body unchanged.  Failures raise ``GitHubError`` carrying the
status code and GitHub's own message.
"""

from __future__ import annotations

from typing import Any

import httpx

API_VERSION = "2022-11-28"


class GitHubError(RuntimeError):
    """Raised for non-2xx responses from the GitHub API."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code


class GitHubNotConfiguredError(RuntimeError):
    """Raised when no GitHub token is configured."""


class GitHubClient:
    """GitHub REST client bound to one token.

    The ``httpx.AsyncClient`` is shared and owned by the caller (the app
    lifespan); this class never closes it.
    """

    def __init__(self, http: httpx.AsyncClient, token: str | None, base_url: str = "https://api.github.com") -> None:
        if not token:
            msg = "GITHUB_TOKEN is not configured. Add it to the environment or .env file."
            raise GitHubNotConfiguredError(msg)
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        response = await self._http.request(
            method,
            f"{self._base_url}{path}",
            params=params,
            json=json,
            headers=self._headers,
        )
        if response.is_error:
            raise GitHubError(response.status_code, _error_message(response))
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return {}
        return response.json()

    # -- Issues ----------------------------------------------------------------

    async def get_issue(self, owner: str, repo: str, issue_number: int) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}/issues/{issue_number}")

    async def update_issue(self, owner: str, repo: str, issue_number: int, **updates: Any) -> dict:
        """Update title / body / state; ``None`` values are left unchanged."""
        body = {k: v for k, v in updates.items() if v is not None}
        return await self._request("PATCH", f"/repos/{owner}/{repo}/issues/{issue_number}", json=body)

    async def list_issues(self, owner: str, repo: str, *, state: str = "open", per_page: int = 30) -> list[dict]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/issues",
            params={"state": state, "per_page": per_page},
        )

    async def create_issue_comment(self, owner: str, repo: str, issue_number: int, body: str) -> dict:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )

    # -- Pull requests ---------------------------------------------------------

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pull_number}")

    async def update_pull_request(self, owner: str, repo: str, pull_number: int, **updates: Any) -> dict:
        body = {k: v for k, v in updates.items() if v is not None}
        return await self._request("PATCH", f"/repos/{owner}/{repo}/pulls/{pull_number}", json=body)

    async def list_pull_requests(self, owner: str, repo: str, *, state: str = "open", per_page: int = 30) -> list[dict]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls",
            params={"state": state, "per_page": per_page},
        )

    async def create_pull_request_comment(self, owner: str, repo: str, pull_number: int, body: str) -> dict:
        # Conversation comments on a PR go through the issues endpoint.
        return await self.create_issue_comment(owner, repo, pull_number, body)

    # -- Actions ---------------------------------------------------------------

    async def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        *,
        status: str | None = None,
        per_page: int = 30,
        page: int = 1,
    ) -> dict:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/runs",
            params={"status": status, "per_page": per_page, "page": page},
        )

    async def get_workflow_run(self, owner: str, repo: str, run_id: int) -> dict:
        return await self._request("GET", f"/repos/{owner}/{repo}/actions/runs/{run_id}")

    async def get_workflow_run_details(
        self,
        owner: str,
        repo: str,
        run_id: int,
        *,
        per_page: int = 30,
        page: int = 1,
    ) -> dict:
        """Return ``{"run": ..., "jobs": ...}`` for a workflow run."""
        run = await self.get_workflow_run(owner, repo, run_id)
        jobs = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs",
            params={"per_page": per_page, "page": page},
        )
        return {"run": run, "jobs": jobs}

    async def cancel_workflow_run(self, owner: str, repo: str, run_id: int) -> dict:
        return await self._request("POST", f"/repos/{owner}/{repo}/actions/runs/{run_id}/cancel")

    async def rerun_workflow_run(self, owner: str, repo: str, run_id: int) -> dict:
        return await self._request("POST", f"/repos/{owner}/{repo}/actions/runs/{run_id}/rerun")

    async def rerun_failed_jobs(self, owner: str, repo: str, run_id: int) -> dict:
        return await self._request("POST", f"/repos/{owner}/{repo}/actions/runs/{run_id}/rerun-failed-jobs")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
