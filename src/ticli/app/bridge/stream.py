"""Output stream adapting daemon response messages for callers."""

from __future__ import annotations

from collections import deque
from typing import Any, AsyncIterator

from ticli.domain.bridge import ResponseMessage
from ticli.ports.daemon import DaemonClient


class ResponseStream:
    """Async iterator over the payloads of one daemon response.

    The stream owns the client for the lifetime of the request. A message
    flagged ``fin`` disconnects the client; the stream ends once the
    connection is closed.
    """

    def __init__(self, client: DaemonClient, messages: AsyncIterator[ResponseMessage]) -> None:
        self._client = client
        self._messages = messages
        self._pending: deque[ResponseMessage] = deque()
        self._connection_closed = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, message: ResponseMessage) -> None:
        self._pending.append(message)
        if message.fin:
            await self._close_connection()

    def __aiter__(self) -> "ResponseStream":
        return self

    async def __anext__(self) -> Any:
        if self._pending:
            return self._pending.popleft().message
        if self._connection_closed:
            self._closed = True
            raise StopAsyncIteration
        try:
            message = await self._messages.__anext__()
        except StopAsyncIteration:
            await self._close_connection()
            self._closed = True
            raise
        except BaseException:
            await self.aclose()
            raise
        await self.write(message)
        return self._pending.popleft().message

    async def aclose(self) -> None:
        self._pending.clear()
        await self._close_connection()
        self._closed = True

    async def _close_connection(self) -> None:
        if self._connection_closed:
            return
        self._connection_closed = True
        await self._client.disconnect()
