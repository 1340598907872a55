"""Mock SQL executor tool.

No query is ever run: the tool echoes the query with an empty result set.
"""

from __future__ import annotations

import json
import time

from toolhub.mcp_server.models.tools import ExecuteSqlInput
from toolhub.mcp_server.tools.base import ToolContext, ToolSpec


async def execute_sql(ctx: ToolContext, params: ExecuteSqlInput) -> str:
    database = params.database or "main"
    result = {
        "database": database,
        "query": params.query,
        "rows": [],
        "affected": 0,
        "time": int(time.time() * 1000),
    }
    return f"Database: {database}\nQuery executed:\n{params.query}\n\nResult: {json.dumps(result, indent=2)}"


SQL_TOOLS = [
    ToolSpec(
        name="executeSQL",
        title="SQL Database Executor",
        description="Execute a SQL query against a database (mock executor, returns no rows).",
        input_model=ExecuteSqlInput,
        handler=execute_sql,
    ),
]
