from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = ROOT / ".test_place" / "global-home"
os.environ.setdefault("TI_CLI_HOME", str(SANDBOX_HOME))
SANDBOX_HOME.mkdir(parents=True, exist_ok=True)
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ticli.domain.bridge import PluginDescriptor, ResponseMessage  # noqa: E402
from ticli.domain.errors import DaemonError  # noqa: E402
from ticli.ports.daemon import DaemonClient  # noqa: E402
from ticli.settings import RuntimeSettings, load_settings  # noqa: E402

Script = Iterable[Any] | Callable[[int, Mapping[str, Any] | None], Iterable[Any]]


class FakeDaemon:
    """Scripted daemon: each path maps to the messages (or errors) it answers with.

    A script may be a callable receiving the call index and request data, so a
    path can answer differently once the plugin has been registered.
    """

    def __init__(self, routes: dict[str, Script] | None = None) -> None:
        self.routes: dict[str, Script] = dict(routes or {})
        self.requests: list[tuple[str, Mapping[str, Any] | None]] = []
        self.clients: list[FakeClient] = []
        self._calls: dict[str, int] = {}

    def factory(self, context: Any = None) -> "FakeClient":
        client = FakeClient(self)
        self.clients.append(client)
        return client

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    def script_for(self, path: str, data: Mapping[str, Any] | None) -> list[Any]:
        index = self._calls.get(path, 0)
        self._calls[path] = index + 1
        script = self.routes.get(path)
        if script is None:
            return [DaemonError("Not Found", 404)]
        if callable(script):
            return list(script(index, data))
        return list(script)


class FakeClient(DaemonClient):
    def __init__(self, daemon: FakeDaemon) -> None:
        self.daemon = daemon
        self.connected = False
        self.start_daemon: bool | None = None
        self.disconnects = 0
        self.messages_read = 0

    async def connect(self, *, start_daemon: bool = False) -> None:
        self.connected = True
        self.start_daemon = start_daemon

    async def request(self, path, data=None):
        self.daemon.requests.append((path, data))
        for item in self.daemon.script_for(path, data):
            if isinstance(item, BaseException):
                raise item
            self.messages_read += 1
            yield item if isinstance(item, ResponseMessage) else ResponseMessage(message=item)

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnects += 1


@pytest.fixture()
def plugin(tmp_path: Path) -> PluginDescriptor:
    return PluginDescriptor(name="@appcd/plugin-titanium", version="1.8.2", path=tmp_path / "plugin")


@pytest.fixture()
def fake_daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    settings = load_settings(tmp_path / "home")
    for directory in (settings.home_dir, settings.log_dir):
        directory.mkdir(parents=True, exist_ok=True)
    return settings


@pytest.fixture(autouse=True)
def _restore_ti_logger():
    logger = logging.getLogger("ti")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
