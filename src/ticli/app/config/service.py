"""Implements ``ti config``: list, get, set, append and remove settings."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from ticli.adapters.config_file import save_config
from ticli.domain.config import PATH_KEYS, TiConfig, is_valid_key
from ticli.domain.errors import TiError
from ticli.utils.paths import expand


@dataclass
class ConfigResult:
    lines: list[str]
    payload: Any = None


class ConfigCommandService:
    def __init__(self, config: TiConfig, *, save: Callable[[TiConfig], Path] = save_config) -> None:
        self._config = config
        self._save = save

    def validate(self, key: str | None, values: Sequence[str], *, remove: bool = False) -> None:
        if key is not None and not is_valid_key(key):
            raise TiError(f'Invalid key "{key}"')
        if not remove:
            return
        if key is None:
            raise TiError(
                "Missing key of the config setting to remove",
                after="Run titanium config --remove <key> to remove the config setting.",
            )
        if values and not key.startswith("paths."):
            shown = f'"{key}"' if " " in key else key
            raise TiError(
                'Too many arguments for "--remove" flag',
                after=f"Run titanium config --remove {shown} to remove the config setting.",
            )

    def execute(
        self,
        key: str | None = None,
        values: Sequence[str] = (),
        *,
        append: bool = False,
        remove: bool = False,
    ) -> ConfigResult:
        self.validate(key, values, remove=remove)
        if key is None:
            return self._listing(None)
        if values:
            return self._write(key, list(values), append=append, remove=remove)
        if remove:
            if self._config.remove(key):
                self._save(self._config)
                return ConfigResult([f'"{key}" removed'], {"success": True})
            raise TiError(f'Key "{key}" not found')
        return self._read(key)

    def _listing(self, prefix: str | None) -> ConfigResult:
        flat = self._config.flatten(prefix)
        width = max((len(name) for name in flat), default=0)
        lines = [f"{name.ljust(width)} = {json.dumps(flat[name])}" for name in sorted(flat)]
        return ConfigResult(lines, self._config.get(prefix))

    def _read(self, key: str) -> ConfigResult:
        if not self._config.has(key):
            raise TiError(f'Key "{key}" not found')
        value = self._config.get(key)
        if isinstance(value, list):
            return ConfigResult([str(item) for item in value], value)
        if isinstance(value, dict):
            return self._listing(key)
        text = value if isinstance(value, str) else json.dumps(value)
        return ConfigResult([text], value)

    def _write(self, key: str, values: list[str], *, append: bool, remove: bool) -> ConfigResult:
        if key.startswith("paths."):
            sub_path = key[len("paths."):]
            if sub_path not in PATH_KEYS:
                raise TiError(f'Unsupported key "{key}"')
            paths = self._config.data.setdefault("paths", {})
            current = paths.get(sub_path)
            if not isinstance(current, list):
                current = []
            if append:
                for value in values:
                    expanded = str(expand(value))
                    if expanded not in current:
                        current.append(expanded)
            elif remove:
                for value in values:
                    if value in current:
                        current.remove(value)
                    else:
                        expanded = str(expand(value))
                        if expanded in current:
                            current.remove(expanded)
            else:
                current = list(values)
            paths[sub_path] = current
        else:
            self._config.set(key, values[0])
        self._save(self._config)
        return ConfigResult([f"{key} saved"], {"success": True})
