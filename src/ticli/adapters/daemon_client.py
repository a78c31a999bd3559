"""WebSocket client for the appcd daemon."""

from __future__ import annotations

import asyncio
import json
import logging
import subprocess
import uuid
from typing import Any, AsyncIterator, Mapping, Sequence

import msgpack
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from ticli.domain.bridge import ResponseMessage
from ticli.domain.errors import DaemonConnectionError, DaemonError
from ticli.ports.daemon import DaemonClient

LOG = logging.getLogger("ti.daemon.client")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 1732
DEFAULT_START_COMMAND = ("appcd", "start")
PROTOCOL_VERSION = "1.0"


class WebSocketDaemonClient(DaemonClient):
    """Talks to appcd over ``ws://<host>:<port>``.

    Requests go out as JSON text frames. Responses arrive as JSON text or
    MessagePack binary frames; frames for another request id are ignored and a
    response with ``status >= 400`` raises ``DaemonError``.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        user_agent: str = "titanium-cli",
        start_command: Sequence[str] = DEFAULT_START_COMMAND,
        start_timeout: float = 10.0,
        poll_interval: float = 0.25,
    ) -> None:
        self.host = host
        self.port = port
        self.user_agent = user_agent
        self.start_command = tuple(start_command)
        self.start_timeout = start_timeout
        self.poll_interval = poll_interval
        self._connection: ClientConnection | None = None

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def connect(self, *, start_daemon: bool = False) -> None:
        try:
            await self._open()
            return
        except (OSError, InvalidHandshake, asyncio.TimeoutError) as exc:
            if not start_daemon:
                raise DaemonConnectionError(f"Unable to connect to the daemon at {self.url}: {exc}") from exc
            LOG.debug("Daemon not reachable at %s (%s)", self.url, exc)

        self._spawn_daemon()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.start_timeout
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self._open()
                return
            except (OSError, InvalidHandshake, asyncio.TimeoutError) as exc:
                if loop.time() >= deadline:
                    raise DaemonConnectionError(
                        f"Timed out after {self.start_timeout:g}s waiting for the daemon to start: {exc}"
                    ) from exc

    async def request(self, path: str, data: Mapping[str, Any] | None = None) -> AsyncIterator[ResponseMessage]:
        connection = self._connection
        if connection is None:
            raise DaemonConnectionError("Not connected to the daemon")
        request_id = uuid.uuid4().hex
        envelope: dict[str, Any] = {
            "version": PROTOCOL_VERSION,
            "id": request_id,
            "path": path,
            "type": "request",
        }
        if data is not None:
            envelope["data"] = dict(data)
        try:
            await connection.send(json.dumps(envelope, ensure_ascii=False))
        except ConnectionClosed as exc:
            raise DaemonConnectionError(f"Connection to the daemon closed: {exc}") from exc

        while True:
            try:
                frame = await connection.recv()
            except ConnectionClosed:
                return
            try:
                payload = _decode(frame)
            except ValueError:
                LOG.warning("Ignoring malformed daemon message: %r", frame[:200])
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("id") not in (None, request_id):
                continue
            message = ResponseMessage.from_wire(payload)
            if not message.ok:
                raise DaemonError(_error_text(message), message.status, code=payload.get("code"))
            yield message
            if message.fin:
                return

    async def disconnect(self) -> None:
        connection = self._connection
        self._connection = None
        if connection is not None:
            await connection.close()

    async def _open(self) -> None:
        self._connection = await connect(
            self.url,
            user_agent_header=self.user_agent,
            max_size=None,
            open_timeout=self.start_timeout,
        )
        LOG.debug("Connected to daemon at %s", self.url)

    def _spawn_daemon(self) -> None:
        if not self.start_command:
            raise DaemonConnectionError("Daemon is not running and no start command is configured")
        LOG.info("Starting daemon: %s", " ".join(self.start_command))
        try:
            subprocess.Popen(
                list(self.start_command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise DaemonConnectionError(f"Unable to start the daemon ({self.start_command[0]}): {exc}") from exc


def _decode(frame: str | bytes) -> Any:
    if isinstance(frame, bytes):
        return msgpack.unpackb(frame, raw=False)
    return json.loads(frame)


def _error_text(message: ResponseMessage) -> str:
    body = message.message
    if isinstance(body, Mapping):
        body = body.get("message") or body.get("error") or json.dumps(body)
    return str(body) if body else "Request failed"
