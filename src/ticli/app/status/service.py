"""Session and project status for `ti status`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from ticli.app.sdk.service import SDKService
from ticli.domain.config import TiConfig
from ticli.domain.errors import ProjectConfigError
from ticli.domain.project import (
    PROJECT_CONFIG_FILE,
    TIAPP_FILE,
    find_project_dir,
    load_project_config,
    read_tiapp,
)

LOG = logging.getLogger("ti.cli.status")


@dataclass
class StatusReport:
    data: Dict[str, Any]

    def lines(self) -> list[str]:
        session = self.data["session"]
        lines = ["Session"]
        if session["loggedIn"]:
            lines.append(f"  Logged in as {session['email']}")
        else:
            lines.append("  Not logged in")
        project = self.data.get("project")
        lines.append("")
        lines.append("Project")
        if project is None:
            lines.append("  No Titanium project found")
            return lines
        lines.append(f"  Directory    {project['dir']}")
        for label, key in (("Name", "name"), ("App ID", "id"), ("Version", "version"), ("SDK", "sdkVersion")):
            if project.get(key):
                lines.append(f"  {label.ljust(12)} {project[key]}")
        sdk = self.data.get("sdk")
        if sdk:
            lines.append(f"  SDK path     {sdk['path']}")
        elif project.get("sdkVersion"):
            lines.append(f"  SDK {project['sdkVersion']} is not installed")
        for error in project.get("errors", []):
            lines.append(f"  Error: {error}")
        return lines


class StatusService:
    def __init__(self, config: TiConfig) -> None:
        self._config = config

    def session(self) -> Dict[str, Any]:
        user = self._config.get("user") or {}
        email = user.get("email") if isinstance(user, dict) else None
        return {"loggedIn": bool(email), "email": email}

    def collect(self, start_dir: Path, *, sdk: str | None = None) -> StatusReport:
        data: Dict[str, Any] = {"session": self.session(), "project": None, "sdk": None}
        project_dir = find_project_dir(start_dir)
        if project_dir is None:
            return StatusReport(data)

        project: Dict[str, Any] = {"dir": str(project_dir), "errors": []}
        if (project_dir / TIAPP_FILE).exists():
            try:
                project.update({k: v for k, v in read_tiapp(project_dir / TIAPP_FILE).to_dict().items() if k != "path"})
            except ProjectConfigError as exc:
                project["errors"].append(str(exc))
        if (project_dir / PROJECT_CONFIG_FILE).exists():
            try:
                config = load_project_config(project_dir)
            except ProjectConfigError as exc:
                project["errors"].append(str(exc))
            else:
                project["config"] = config
                for key in ("id", "name", "version", "sdkVersion"):
                    if not project.get(key) and config.get(key):
                        project[key] = config[key]
        data["project"] = project

        sdk_service = SDKService(self._config)
        report = sdk_service.detect()
        selected = sdk_service.select(report, sdk, project.get("sdkVersion"))
        if selected is not None:
            data["sdk"] = selected.to_dict()
        else:
            LOG.debug("No matching SDK for %s", sdk or project.get("sdkVersion") or "latest")
        return StatusReport(data)
