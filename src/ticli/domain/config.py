"""In-memory model of the user config (``~/.titanium/config.json``)."""

from __future__ import annotations

import copy
import re
from pathlib import Path
from typing import Any, Mapping

KEY_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9\-_]*(\.[A-Za-z\-_][A-Za-z0-9\-_]*)*)$")
PATH_KEYS = ("hooks", "modules", "plugins", "sdks", "templates", "xcode")
_INT_PATTERN = re.compile(r"^-?(0|[1-9]\d*)$")

_MISSING = object()


def default_config() -> dict[str, Any]:
    return {
        "app": {
            "workspace": ".",
        },
        "cli": {
            "colors": True,
            "completion": False,
            "httpProxyServer": "",
            "ignoreDirs": r"^(\.svn|_svn|\.git|\.hg|\.?[Cc][Vv][Ss]|\.bzr|\$RECYCLE\.BIN)$",
            "ignoreFiles": (
                r"^(\.gitignore|\.npmignore|\.cvsignore|\.DS_Store|\._.*|[Tt]humbs.db|\.vspscc|\.vssscc"
                r"|\.sublime-project|\.sublime-workspace|\.project|\.tmproj)$"
            ),
            "logLevel": "info",
            "progressBars": True,
            "prompt": True,
            "rejectUnauthorized": True,
            "width": 80,
        },
        "daemon": {
            "host": "127.0.0.1",
            "port": 1732,
            "command": ["appcd", "start"],
            "startTimeout": 10,
            "pluginPath": "",
        },
        "paths": {
            "hooks": [],
            "modules": [],
            "plugins": [],
            "sdks": [],
            "templates": [],
        },
        "user": {},
    }


def coerce_scalar(value: Any) -> Any:
    """Turn a command-line string into ``None``/``bool``/``int`` when it looks like one."""

    if isinstance(value, list):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if text == "null":
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    if _INT_PATTERN.match(text):
        return int(text)
    return text


def is_valid_key(key: str) -> bool:
    return bool(KEY_PATTERN.match(key))


class TiConfig:
    """Dotted-key access over a nested mapping seeded with defaults."""

    def __init__(self, data: Mapping[str, Any] | None = None, *, path: Path | None = None) -> None:
        self.path = path
        self.data: dict[str, Any] = default_config()
        if data:
            self.apply(data)

    def reset(self) -> None:
        self.data = default_config()

    def apply(self, src: Mapping[str, Any], dest: dict[str, Any] | None = None) -> "TiConfig":
        """Deep-merge ``src`` into the config without dropping unrelated keys."""

        target = self.data if dest is None else dest
        for key, value in src.items():
            if isinstance(value, Mapping):
                if not isinstance(target.get(key), dict):
                    target[key] = {}
                self.apply(value, target[key])
                continue
            if isinstance(value, str):
                value = value.strip()
                if value == "null":
                    value = None
                elif value == "true":
                    value = True
                elif value == "false":
                    value = False
            elif isinstance(value, list):
                value = copy.deepcopy(value)
            target[key] = value
        return self

    def get(self, key: str | None = None, default: Any = None) -> Any:
        if not key:
            return self.data
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split(".")
        node = self.data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = coerce_scalar(value)

    def remove(self, key: str) -> bool:
        *parents, leaf = key.split(".")
        node: Any = self.data
        for part in parents:
            if not isinstance(node, dict) or part not in node:
                return False
            node = node[part]
        if isinstance(node, dict) and leaf in node:
            del node[leaf]
            return True
        return False

    def flatten(self, prefix: str | None = None) -> dict[str, Any]:
        """Leaf values keyed by dotted path, optionally limited to ``prefix``."""

        results: dict[str, Any] = {}

        def walk(node: Mapping[str, Any], parent: str) -> None:
            for name, value in node.items():
                dotted = f"{parent}.{name}" if parent else name
                if isinstance(value, dict):
                    walk(value, dotted)
                else:
                    results[dotted] = value

        root = self.get(prefix) if prefix else self.data
        if isinstance(root, dict):
            walk(root, prefix or "")
        elif prefix and self.has(prefix):
            results[prefix] = root
        return results

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.data)
