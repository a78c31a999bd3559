"""Bridge between the command line and the Titanium daemon plugin."""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Sequence

from ticli.app.bridge.stream import ResponseStream
from ticli.domain.bridge import (
    REGISTER_PATH,
    PluginDescriptor,
    Request,
    ResponseMessage,
    status_path,
)
from ticli.domain.errors import DaemonError, PluginBrokenError, PluginRegistrationError, TiError
from ticli.ports.daemon import DaemonClient
from ticli.settings import RuntimeSettings
from ticli.utils import telemetry

LOG = logging.getLogger("ti.cli.bridge")

NOT_FOUND = 404
SECRET_FLAG = re.compile(r"^--?[\w-]*password$", re.IGNORECASE)
MASK = "********"

Sink = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class BridgeContext:
    """Everything a bridge needs, built once at process start."""

    plugin: PluginDescriptor
    client_factory: Callable[[BridgeContext], DaemonClient]
    settings: RuntimeSettings | None = None

    @property
    def user_agent(self) -> str:
        version = self.settings.cli_version if self.settings else "unknown"
        return f"titanium-cli/{version}"


class Bridge:
    """Dispatches CLI requests to the daemon, registering the plugin when needed."""

    def __init__(self, context: BridgeContext) -> None:
        self._context = context

    @property
    def plugin(self) -> PluginDescriptor:
        return self._context.plugin

    async def request(self, path: Any = None, data: Any = None) -> ResponseStream:
        """Request ``path`` under the plugin's CLI namespace and return its output stream.

        Raises ``TypeError`` for a malformed ``path`` or ``data`` before any
        connection is attempted.
        """

        request = Request.build(self._context.plugin, path, data)
        started = time.perf_counter()
        try:
            stream = await self._connect(request)
        except Exception as exc:
            self._record("bridge.request", request, "error", started, error=str(exc))
            raise
        self._record("bridge.request", request, "success", started)
        return stream

    async def exec(
        self,
        argv: Sequence[str],
        sink: Sink,
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Run a daemon-side command and forward every output chunk to ``sink``."""

        data: dict[str, Any] = {"argv": list(argv)}
        if cwd is not None:
            data["cwd"] = str(cwd)
        if env is not None:
            data["env"] = dict(env)
        LOG.debug("Executing: %s", " ".join(_quote(arg) for arg in _redact(argv)))
        stream = await self.request("/", data)
        try:
            async for chunk in stream:
                result = sink(chunk)
                if result is not None:
                    await result
        finally:
            await stream.aclose()

    async def schema(self) -> dict[str, Any]:
        """Fetch the command schema published by the daemon plugin."""

        stream = await self.request("/schema")
        schema = None
        async for chunk in stream:
            schema = chunk
            break
        await stream.aclose()
        if not schema:
            raise TiError("Failed to get Titanium CLI schema")
        return schema

    async def _connect(self, request: Request, *, register: bool = True) -> ResponseStream:
        client = self._context.client_factory(self._context)
        LOG.debug("Requesting %s", request.path)
        await client.connect(start_daemon=True)
        messages = client.request(request.path, request.data)
        try:
            first = await messages.__anext__()
        except StopAsyncIteration:
            first = None
        except DaemonError as err:
            if err.status != NOT_FOUND or not register:
                await client.disconnect()
                raise
            try:
                await self.check_titanium_plugin(client)
            finally:
                await client.disconnect()
            return await self._connect(request, register=False)
        except BaseException:
            await client.disconnect()
            raise

        stream = ResponseStream(client, messages)
        if first is None:
            await stream.aclose()
        else:
            await stream.write(first)
        return stream

    async def check_titanium_plugin(self, client: DaemonClient) -> None:
        """Register the plugin after its CLI service answered 404.

        Raises ``PluginBrokenError`` when the daemon already knows the plugin
        and ``PluginRegistrationError`` when registration is not possible.
        """

        plugin = self._context.plugin
        LOG.info("Titanium CLI service not found, checking if the Titanium appcd plugin is registered...")
        try:
            info = await _first_message(client.request(status_path(plugin.name, plugin.version)))
        except DaemonError as err:
            if err.status != NOT_FOUND:
                raise PluginRegistrationError(f"Failed to register the Titanium appcd plugin: {err.message}") from err
        else:
            payload = info.message if info is not None and isinstance(info.message, Mapping) else {}
            if payload.get("error"):
                message = (
                    "Titanium appcd plugin has crashed and possibly needs to be reinstalled: "
                    f"{payload['error']}"
                )
            else:
                message = (
                    "Titanium appcd plugin's CLI service is not working and possibly needs "
                    "to be reinstalled (404)"
                )
            raise PluginBrokenError(message, info=payload)

        LOG.info("Registering Titanium appcd plugin: %s", plugin.path)
        started = time.perf_counter()
        try:
            await _first_message(client.request(REGISTER_PATH, {"path": str(plugin.path)}))
        except DaemonError as err:
            self._record_register("error", started, error=str(err))
            raise PluginRegistrationError(f"Failed to register the Titanium appcd plugin: {err.message}") from err
        self._record_register("success", started)

    def _record(self, event: str, request: Request, status: str, started: float, **extra: Any) -> None:
        settings = self._context.settings
        if settings is None:
            return
        telemetry.record(
            settings,
            event,
            status=status,
            level="error" if status == "error" else "info",
            component="bridge",
            duration_ms=(time.perf_counter() - started) * 1000,
            payload={"path": request.path, **extra},
        )

    def _record_register(self, status: str, started: float, **extra: Any) -> None:
        settings = self._context.settings
        if settings is None:
            return
        plugin = self._context.plugin
        telemetry.record(
            settings,
            "bridge.register",
            status=status,
            level="error" if status == "error" else "info",
            component="bridge",
            duration_ms=(time.perf_counter() - started) * 1000,
            payload={"plugin": plugin.name, "version": plugin.version, **extra},
        )


async def _first_message(messages) -> ResponseMessage | None:
    try:
        async for message in messages:
            return message
        return None
    finally:
        aclose = getattr(messages, "aclose", None)
        if aclose is not None:
            await aclose()


def _redact(argv: Sequence[str]) -> list[str]:
    """Mask the values of password flags, in both ``--password x`` and ``--password=x`` form."""

    shown: list[str] = []
    masking = False
    for arg in argv:
        if masking:
            shown.append(MASK)
            masking = False
            continue
        flag, sep, _ = arg.partition("=")
        if SECRET_FLAG.match(flag):
            if sep:
                arg = f"{flag}={MASK}"
            else:
                masking = True
        shown.append(arg)
    return shown


def _quote(arg: str) -> str:
    if not arg:
        return '""'
    if any(ch.isspace() for ch in arg):
        escaped = arg.replace('"', '\\"')
        return f'"{escaped}"'
    return arg


def default_plugin_dir() -> Path:
    return Path(str(resources.files("ticli.resources") / "daemon-plugin"))


def load_plugin_descriptor(config_path: str | None = None) -> PluginDescriptor:
    """Locate the daemon plugin: explicit path, ``TI_DAEMON_PLUGIN_PATH``, bundled copy."""

    candidate = config_path or os.environ.get("TI_DAEMON_PLUGIN_PATH")
    directory = Path(candidate).expanduser() if candidate else default_plugin_dir()
    return PluginDescriptor.from_directory(directory)
