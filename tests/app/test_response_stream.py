from __future__ import annotations

import asyncio

from ticli.app.bridge import ResponseStream
from ticli.domain.bridge import ResponseMessage


async def _messages(*items):
    for item in items:
        yield item


def test_aclose_disconnects_once(fake_daemon) -> None:
    client = fake_daemon.factory()

    async def scenario():
        stream = ResponseStream(client, _messages(ResponseMessage(message="x")))
        await stream.write(ResponseMessage(message="first"))
        await stream.aclose()
        await stream.aclose()
        return stream, [chunk async for chunk in stream]

    stream, leftover = asyncio.run(scenario())
    assert leftover == []
    assert stream.closed
    assert client.disconnects == 1


def test_exhausted_messages_close_connection(fake_daemon) -> None:
    client = fake_daemon.factory()

    async def scenario():
        stream = ResponseStream(client, _messages(ResponseMessage(message="a"), ResponseMessage(message="b")))
        return [chunk async for chunk in stream]

    assert asyncio.run(scenario()) == ["a", "b"]
    assert client.disconnects == 1


def test_pending_messages_survive_fin(fake_daemon) -> None:
    client = fake_daemon.factory()

    async def scenario():
        stream = ResponseStream(client, _messages())
        await stream.write(ResponseMessage(message="a"))
        await stream.write(ResponseMessage(message="b", fin=True))
        return [chunk async for chunk in stream]

    assert asyncio.run(scenario()) == ["a", "b"]
    assert client.disconnects == 1
