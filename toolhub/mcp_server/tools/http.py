"""Outbound HTTP request tool."""

from __future__ import annotations

import httpx

from toolhub.mcp_server.models.enums import HttpMethod
from toolhub.mcp_server.models.tools import HttpRequestInput
from toolhub.mcp_server.tools.base import ToolContext, ToolError, ToolSpec

_BODY_METHODS = {HttpMethod.POST, HttpMethod.PUT}


async def http_request(ctx: ToolContext, params: HttpRequestInput) -> str:
    url = str(params.url)
    headers = {"Content-Type": "application/json", **(params.headers or {})}
    content = params.body if params.body and params.method in _BODY_METHODS else None

    try:
        response = await ctx.http.request(params.method.value, url, headers=headers, content=content)
    except httpx.HTTPError as exc:
        msg = f"HTTP request failed: {exc}"
        raise ToolError(msg) from exc

    return (
        f"HTTP {params.method.value} {url}\n"
        f"Status: {response.status_code} {response.reason_phrase}\n\n"
        f"Response:\n{response.text}"
    )


HTTP_TOOLS = [
    ToolSpec(
        name="httpRequest",
        description="Send an HTTP request to an external API and return the status and response body.",
        input_model=HttpRequestInput,
        handler=http_request,
    ),
]
