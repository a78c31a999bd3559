from __future__ import annotations

import asyncio
import json

import msgpack
import pytest
from websockets.asyncio.server import serve

from ticli.adapters.daemon_client import WebSocketDaemonClient
from ticli.domain.errors import DaemonConnectionError, DaemonError


def _run_against(handler, scenario):
    async def main():
        async with serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            return await scenario(port)

    return asyncio.run(main())


def test_request_yields_messages_for_its_id_until_fin() -> None:
    seen: list[dict] = []
    agents: list[str] = []

    async def handler(ws):
        agents.append(ws.request.headers["User-Agent"])
        request = json.loads(await ws.recv())
        seen.append(request)
        await ws.send("not json")
        await ws.send(json.dumps({"id": "someone-else", "message": "ignored"}))
        await ws.send(json.dumps({"id": request["id"], "status": 200, "message": "hello"}))
        await ws.send(msgpack.packb({"id": request["id"], "status": 200, "message": {"done": True}, "fin": True}))
        await ws.send(json.dumps({"id": request["id"], "message": "after fin"}))

    async def scenario(port):
        client = WebSocketDaemonClient(port=port, user_agent="titanium-cli/test")
        await client.connect()
        messages = [msg async for msg in client.request("/titanium/1.8.2/cli/schema", {"a": 1})]
        await client.disconnect()
        await client.disconnect()
        return messages

    messages = _run_against(handler, scenario)

    assert [msg.message for msg in messages] == ["hello", {"done": True}]
    assert messages[-1].fin is True
    assert agents == ["titanium-cli/test"]
    request = seen[0]
    assert request["version"] == "1.0"
    assert request["path"] == "/titanium/1.8.2/cli/schema"
    assert request["type"] == "request"
    assert request["data"] == {"a": 1}


def test_error_status_raises_daemon_error() -> None:
    async def handler(ws):
        request = json.loads(await ws.recv())
        await ws.send(json.dumps({"id": request["id"], "statusCode": "404", "message": "Not Found", "code": "ENOTFOUND"}))

    async def scenario(port):
        client = WebSocketDaemonClient(port=port)
        await client.connect()
        try:
            async for _ in client.request("/missing"):
                pass
        finally:
            await client.disconnect()

    with pytest.raises(DaemonError) as excinfo:
        _run_against(handler, scenario)
    assert excinfo.value.status == 404
    assert excinfo.value.code == "ENOTFOUND"
    assert str(excinfo.value) == "Not Found (404)"


def test_stream_ends_when_daemon_closes_connection() -> None:
    async def handler(ws):
        request = json.loads(await ws.recv())
        await ws.send(json.dumps({"id": request["id"], "message": "partial"}))

    async def scenario(port):
        client = WebSocketDaemonClient(port=port)
        await client.connect()
        messages = [msg.message async for msg in client.request("/x")]
        await client.disconnect()
        return messages

    assert _run_against(handler, scenario) == ["partial"]


def _closed_port() -> int:
    async def grab():
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()
        return port

    return asyncio.run(grab())


def test_connect_without_autostart_fails_fast() -> None:
    client = WebSocketDaemonClient(port=_closed_port())
    with pytest.raises(DaemonConnectionError, match="Unable to connect to the daemon at ws://127.0.0.1"):
        asyncio.run(client.connect())


def test_connect_requires_start_command_to_autostart() -> None:
    client = WebSocketDaemonClient(port=_closed_port(), start_command=())
    with pytest.raises(DaemonConnectionError, match="no start command"):
        asyncio.run(client.connect(start_daemon=True))


def test_autostart_times_out_when_daemon_never_listens(monkeypatch: pytest.MonkeyPatch) -> None:
    spawned: list[list[str]] = []
    monkeypatch.setattr("ticli.adapters.daemon_client.subprocess.Popen", lambda cmd, **_: spawned.append(cmd))
    client = WebSocketDaemonClient(port=_closed_port(), start_timeout=0.05, poll_interval=0.01)

    with pytest.raises(DaemonConnectionError, match="Timed out"):
        asyncio.run(client.connect(start_daemon=True))
    assert spawned == [["appcd", "start"]]


def test_request_before_connect_is_rejected() -> None:
    client = WebSocketDaemonClient()

    async def scenario():
        async for _ in client.request("/x"):
            pass

    with pytest.raises(DaemonConnectionError, match="Not connected"):
        asyncio.run(scenario())
