"""Process-wide locations for the Titanium CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ticli import __version__

HOME_ENV = "TI_CLI_HOME"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    config_file: Path
    log_dir: Path
    cli_version: str = __version__


def _default_home_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".titanium"


def load_settings(home_dir: Path | None = None) -> RuntimeSettings:
    base = home_dir or _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        config_file=base / "config.json",
        log_dir=base / "logs",
    )


SETTINGS = load_settings()
