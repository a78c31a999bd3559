"""`ti login` / `ti logout`: forwarded to the daemon, remembered in the user config."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, List

from ticli.adapters.config_file import save_config
from ticli.app.bridge.service import Bridge, Sink
from ticli.domain.config import TiConfig
from ticli.domain.errors import TiError

CREDENTIAL_RE = re.compile(r"\S+")


def validate_credential(value: str | None, label: str) -> str:
    if value is None or not CREDENTIAL_RE.search(value):
        raise TiError(f"Invalid {label}")
    return value.strip()


class AuthService:
    def __init__(self, bridge: Bridge, config: TiConfig, *, save: Callable[[TiConfig], Path] = save_config) -> None:
        self._bridge = bridge
        self._config = config
        self._save = save

    async def login(self, username: str | None, password: str | None, sink: Sink) -> List[Any]:
        username = validate_credential(username, "username")
        password = validate_credential(password, "password")
        received: List[Any] = []

        async def collect(payload: Any) -> None:
            received.append(payload)
            result = sink(payload)
            if result is not None:
                await result

        await self._bridge.exec(["login", username, "--password", password], collect)
        self._config.set("user.email", username)
        self._save(self._config)
        return received

    async def logout(self, sink: Sink) -> None:
        await self._bridge.exec(["logout"], sink)
        self._config.data["user"] = {}
        self._save(self._config)
