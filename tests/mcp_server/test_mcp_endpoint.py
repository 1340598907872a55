"""HTTP-level tests for the /mcp endpoint and session introspection API."""

from __future__ import annotations

import anyio
import pytest
from httpx import AsyncClient

from toolhub.mcp_server.app import app
from toolhub.mcp_server.lifecycle import SessionLifecycle
from toolhub.mcp_server.models.enums import RoutingMode

HEADER = "Mcp-Session-Id"

fallback = pytest.mark.parametrize("routing_mode", [RoutingMode.FALLBACK])


# ---------------------------------------------------------------------------
# POST /mcp
# ---------------------------------------------------------------------------


async def test_initialize_opens_session(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        response = await rpc.open("?listId=L1&agentId=A1&userId=U1&unknown=1")

        assert response.status_code == 200
        session_id = response.headers[HEADER]
        assert response.json()["result"]["serverInfo"]["name"] == "Universal MCP Server"

        ctx = lifecycle.contexts.get(session_id)
        assert (ctx.list_id, ctx.agent_id, ctx.user_id) == ("L1", "A1", "U1")
        assert lifecycle.is_active(session_id)


async def test_notification_returns_202(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        response = await rpc.open()
        ack = await rpc.notify("notifications/initialized", response.headers[HEADER])

    assert ack.status_code == 202


async def test_rejected_initialize_does_not_leak_session(client: AsyncClient, lifecycle: SessionLifecycle) -> None:
    initialize = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}

    async with lifecycle.run():
        # The transport refuses a POST that does not accept both content types.
        response = await client.post("/mcp", json=initialize, headers={"Accept": "text/plain"})

        assert response.status_code >= 400
        assert lifecycle.transports.active_count == 0
        assert len(lifecycle.contexts) == 0


async def test_unknown_session_is_404(rpc, lifecycle: SessionLifecycle) -> None:
    response = await rpc.request("ping", session_id="missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == -32000
    assert response.json()["error"]["message"] == "Session not found"


async def test_missing_session_is_400_in_explicit_mode(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        await rpc.initialize()
        response = await rpc.request("ping")

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == -32000
    assert "missing session ID" in body["error"]["message"]


@fallback
async def test_missing_session_uses_fallback_when_enabled(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        await rpc.initialize()
        latest = await rpc.initialize()

        response = await rpc.request("ping")

        assert response.status_code == 200
        assert response.headers[HEADER] == latest


@fallback
async def test_fallback_tool_call_uses_ambient_ids(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        first = await rpc.initialize("?listId=00000000-0000-0000-0000-000000000001&userId=U1")
        await rpc.initialize("?listId=L2")

        # Naming a session promotes it, so the call reads its ids.  The other
        # session has no user and would fail authentication instead.
        result = await rpc.call_tool("readTodos", {}, first)

        assert lifecycle.contexts.current_session_id == first
        assert result["isError"] is True
        assert "Database is not configured" in result["content"][0]["text"]


@fallback
async def test_fallback_without_sessions_is_400(rpc, lifecycle: SessionLifecycle) -> None:
    response = await rpc.request("ping")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "No active connection"


async def test_invalid_json_is_parse_error(client: AsyncClient) -> None:
    response = await client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700


async def test_shutting_down_is_503(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        lifecycle.transports.begin_shutdown()
        response = await rpc.open()

    assert response.status_code == 503


async def test_not_ready_is_503(rpc) -> None:
    app.state.ready = False
    response = await rpc.open()
    assert response.status_code == 503


async def test_tool_call_over_http(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()
        result = await rpc.call_tool("executeSQL", {"query": "SELECT 1"}, session_id)

    assert result["isError"] is False
    assert "SELECT 1" in result["content"][0]["text"]


# ---------------------------------------------------------------------------
# GET /mcp
# ---------------------------------------------------------------------------


async def test_stream_unknown_session_is_404(client: AsyncClient) -> None:
    response = await client.get("/mcp", headers={HEADER: "missing"})
    assert response.status_code == 404


async def test_stream_without_session_is_400(client: AsyncClient) -> None:
    response = await client.get("/mcp")
    assert response.status_code == 400


async def test_stream_carries_tool_notifications(rpc, lifecycle: SessionLifecycle, attach_stream) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()

        async with attach_stream(session_id) as listener:
            assert listener.status == 200

            result = await rpc.call_tool("calculator", {"expression": "1 + 1"}, session_id)
            assert result["isError"] is False

            with anyio.fail_after(5):
                message = await listener.next_message()
            assert message["method"] == "notifications/message"
            assert message["params"]["level"] == "info"
            assert message["params"]["data"] == "Tool calculator completed"

        # Hanging up the listener closes the session.
        assert listener.finished.is_set()
        assert not lifecycle.is_active(session_id)
        reattach = await rpc.client.get("/mcp", headers={HEADER: session_id})
        assert reattach.status_code == 404


async def test_stream_dropped_before_first_event_closes_session(
    rpc, lifecycle: SessionLifecycle, make_listener
) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()

        # The client is gone before the stream produces anything.
        listener = make_listener(session_id)
        listener.hang_up()
        with anyio.fail_after(5):
            await listener.run()

        assert not lifecycle.is_active(session_id)
        assert lifecycle.describe(session_id) is None
        reattach = await rpc.client.get("/mcp", headers={HEADER: session_id})
        assert reattach.status_code == 404


async def test_second_stream_is_409_and_keeps_session(rpc, lifecycle: SessionLifecycle, attach_stream) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()

        async with attach_stream(session_id):
            async with attach_stream(session_id) as second:
                with anyio.fail_after(5):
                    await second.finished.wait()
                assert second.status == 409
            assert lifecycle.is_active(session_id)


@fallback
async def test_fallback_stream_without_header(rpc, lifecycle: SessionLifecycle, attach_stream) -> None:
    async with lifecycle.run():
        first = await rpc.initialize()
        latest = await rpc.initialize()
        lifecycle.contexts.set_current(first)

        async with attach_stream() as listener:
            assert listener.status == 200
            assert lifecycle.contexts.current_session_id == latest

            await rpc.call_tool("calculator", {"expression": "2 * 3"})
            with anyio.fail_after(5):
                message = await listener.next_message()
            assert message["method"] == "notifications/message"

        assert not lifecycle.is_active(latest)
        assert lifecycle.is_active(first)


# ---------------------------------------------------------------------------
# DELETE /mcp
# ---------------------------------------------------------------------------


async def test_delete_closes_session(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()

        response = await rpc.client.delete("/mcp", headers={HEADER: session_id})
        assert response.status_code == 200
        assert not lifecycle.is_active(session_id)

        again = await rpc.client.delete("/mcp", headers={HEADER: session_id})
        assert again.status_code == 404

        routed = await rpc.request("ping", session_id=session_id)
        assert routed.status_code == 404


async def test_delete_without_session_is_400(client: AsyncClient) -> None:
    response = await client.delete("/mcp")
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# /api/sessions
# ---------------------------------------------------------------------------


async def test_sessions_list_and_get(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        first = await rpc.initialize("?list_id=L1")
        second = await rpc.initialize("?todoListId=L2")

        response = await rpc.client.get("/api/sessions/list")
        assert response.status_code == 200
        body = response.json()
        assert body["routing_mode"] == "explicit"
        assert body["current_session_id"] == second
        assert [s["session_id"] for s in body["sessions"]] == [first, second]

        detail = await rpc.client.get(f"/api/sessions/{first}/get")
        assert detail.status_code == 200
        assert detail.json()["list_id"] == "L1"
        assert detail.json()["has_transport"] is True
        assert detail.json()["terminated"] is False


async def test_sessions_get_unknown_is_404(client: AsyncClient) -> None:
    response = await client.get("/api/sessions/nope/get")
    assert response.status_code == 404


async def test_sessions_current(rpc, lifecycle: SessionLifecycle) -> None:
    empty = await rpc.client.get("/api/sessions/current")
    assert empty.json() == {"session_id": None, "list_id": None, "agent_id": None, "user_id": None}

    async with lifecycle.run():
        session_id = await rpc.initialize("?listId=L1&agentId=A1&userId=U1")
        response = await rpc.client.get("/api/sessions/current")

    assert response.json() == {"session_id": session_id, "list_id": "L1", "agent_id": "A1", "user_id": "U1"}


async def test_sessions_close(rpc, lifecycle: SessionLifecycle) -> None:
    async with lifecycle.run():
        session_id = await rpc.initialize()

        response = await rpc.client.post(f"/api/sessions/{session_id}/close")
        assert response.status_code == 200
        assert lifecycle.describe(session_id) is None

        response = await rpc.client.post(f"/api/sessions/{session_id}/close")
        assert response.status_code == 404


async def test_root_reports_status(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["endpoints"]["mcp"] == "/mcp"
