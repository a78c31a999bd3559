"""Load and persist the user config as JSON."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import time
from importlib import resources
from pathlib import Path

import jsonschema
from jsonschema.exceptions import best_match

from ticli.domain.config import TiConfig
from ticli.domain.errors import ConfigError
from ticli.utils.paths import expand

LOG = logging.getLogger("ti.config")

_VALIDATOR: jsonschema.Draft202012Validator | None = None


def _validator() -> jsonschema.Draft202012Validator:
    global _VALIDATOR
    if _VALIDATOR is None:
        schema_resource = resources.files("ticli.resources") / "config.schema.json"
        _VALIDATOR = jsonschema.Draft202012Validator(json.loads(schema_resource.read_text(encoding="utf-8")))
    return _VALIDATOR


def validate_config(config: TiConfig, source: Path | None = None) -> None:
    error = best_match(_validator().iter_errors(config.data))
    if error is None:
        return
    location = ".".join(str(part) for part in error.absolute_path) or "<root>"
    where = f' "{source}"' if source else ""
    raise ConfigError(f"Invalid config file{where}: {location}: {error.message}")


def load_config(default_file: Path, file: str | os.PathLike[str] | None = None) -> TiConfig:
    """Defaults merged with ``file`` (when given, it must exist) or ``default_file``."""

    if file:
        path = expand(file)
        if not path.exists():
            raise ConfigError(f'Unable to open config file "{path}"')
    else:
        path = default_file

    config = TiConfig(path=default_file)
    if path.exists():
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ConfigError(f'Unable to parse config file "{path}"') from exc
        if not isinstance(payload, dict):
            raise ConfigError(f'Unable to parse config file "{path}"')
        config.apply(payload)
        config.path = path
    try:
        validate_config(config, path)
    except ConfigError as exc:
        # loading only warns; save_config rejects the invalid value
        LOG.warning("%s", exc)
    return config


def save_config(config: TiConfig) -> Path:
    if config.path is None:
        raise ConfigError("Config has no file to save to")
    validate_config(config, config.path)
    path = config.path
    tmp = path.with_name(f"{path.name}.{int(time.time() * 1000)}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(config.data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        os.replace(tmp, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        raise ConfigError(
            f"Unable to write config file {path}",
            after="Please ensure the Titanium CLI has access to modify this file",
        ) from exc
    return path
