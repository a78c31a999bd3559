"""Non-interactive `ti setup`: writes the common settings to the user config."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict

from ticli.adapters.config_file import save_config
from ticli.domain.config import TiConfig
from ticli.domain.errors import TiError
from ticli.utils.paths import expand

LOG = logging.getLogger("ti.cli.setup")

EMAIL_RE = r"^[^@\s]+@[^@\s]+$"


@dataclass
class SetupResult:
    path: Path
    changed: Dict[str, object]


class SetupService:
    def __init__(self, config: TiConfig, *, save: Callable[[TiConfig], Path] = save_config) -> None:
        self._config = config
        self._save = save

    def run(
        self,
        *,
        name: str | None = None,
        email: str | None = None,
        locale: str | None = None,
        sdk_path: str | None = None,
        workspace: str | None = None,
    ) -> SetupResult:
        changed: Dict[str, object] = {}
        if name is not None:
            changed["user.name"] = name.strip()
        if email is not None:
            if not re.match(EMAIL_RE, email.strip()):
                raise TiError(f'Invalid email address "{email}"')
            changed["user.email"] = email.strip()
        if locale is not None:
            changed["user.locale"] = locale.strip()
        if sdk_path is not None:
            changed["sdk.defaultInstallLocation"] = str(expand(sdk_path))
        if workspace is not None:
            location = expand(workspace)
            if not location.is_dir():
                raise TiError(f'Workspace directory "{location}" does not exist')
            changed["app.workspace"] = str(location)

        for key, value in changed.items():
            self._config.set(key, value)
        path = self._save(self._config)
        LOG.info("Configuration saved to %s", path)
        return SetupResult(path=path, changed=changed)
