"""Value objects exchanged between the CLI and the daemon."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

PLUGIN_NAME = "@appcd/plugin-titanium"
PLUGIN_MANIFEST = "package.json"

REGISTER_PATH = "/appcd/plugin/register"


def status_path(name: str, version: str) -> str:
    return f"/appcd/plugin/status/{name}/{version}"


@dataclass(frozen=True)
class PluginDescriptor:
    """The daemon plugin that exposes the CLI service."""

    name: str
    version: str
    path: Path

    @property
    def namespace(self) -> str:
        # scoped package names are served under their bare name
        return self.name.rsplit("/", 1)[-1].removeprefix("plugin-")

    @property
    def cli_root(self) -> str:
        return f"/{self.namespace}/{self.version}/cli"

    @classmethod
    def from_directory(cls, directory: Path) -> "PluginDescriptor":
        manifest = directory / PLUGIN_MANIFEST
        if not manifest.exists():
            raise FileNotFoundError(manifest)
        payload = json.loads(manifest.read_text(encoding="utf-8"))
        name = payload.get("name") or PLUGIN_NAME
        version = payload.get("version")
        if not isinstance(version, str) or not version:
            raise ValueError(f"Plugin manifest {manifest} has no version")
        return cls(name=name, version=version, path=directory.resolve())


@dataclass(frozen=True)
class Request:
    """A single call against the plugin's CLI service."""

    path: str
    data: Mapping[str, Any] | None = None

    @classmethod
    def build(cls, plugin: PluginDescriptor, path: Any = None, data: Any = None) -> "Request":
        if not isinstance(path, str) or not path:
            raise TypeError("Expected path to be a non-empty string")
        if data is not None and not isinstance(data, Mapping):
            raise TypeError("Expected data to be an object")
        relative = path.lstrip("/")
        return cls(path=f"{plugin.cli_root}/{relative}", data=dict(data) if data is not None else None)


@dataclass(frozen=True)
class ResponseMessage:
    """One message of a daemon response stream."""

    message: Any = None
    status: int = 200
    fin: bool = False
    type: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "ResponseMessage":
        known = {"message", "status", "statusCode", "fin", "type", "id"}
        status = payload.get("status", payload.get("statusCode", 200))
        try:
            status = int(status)
        except (TypeError, ValueError):
            status = 200
        return cls(
            message=payload.get("message"),
            status=status,
            fin=bool(payload.get("fin", False)),
            type=payload.get("type"),
            extra={key: value for key, value in payload.items() if key not in known},
        )

    @property
    def ok(self) -> bool:
        return self.status < 400
