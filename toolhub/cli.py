import click


@click.group()
def main() -> None:
    """Toolhub - MCP tool server for agents: todos, GitHub, Telegram and utilities."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from TOOLHUB_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from TOOLHUB_PORT or 8080).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the MCP server."""
    import uvicorn

    from toolhub.mcp_server.settings import ToolhubSettings

    settings = ToolhubSettings()

    uvicorn.run(
        "toolhub.mcp_server.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout + 5,
    )


@main.command()
@click.option("--schema", is_flag=True, default=False, help="Print each tool's input JSON Schema.")
def tools(schema: bool) -> None:
    """List the tools the server advertises."""
    import json

    from toolhub.mcp_server.tools import TOOLS

    for tool in TOOLS:
        click.echo(f"{tool.name}: {tool.description}")
        if schema:
            click.echo(json.dumps(tool.definition().inputSchema, indent=2))


if __name__ == "__main__":
    main()
