"""Detects installed Titanium SDKs."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

from ticli.domain.config import TiConfig
from ticli.utils import version
from ticli.utils.arrays import arrayify, unique
from ticli.utils.logger import trace
from ticli.utils.paths import expand

LOG = logging.getLogger("ti.cli.sdk")

SORT_TYPES = ("local", "nightly", "beta", "rc", "ga")
TYPE_LABELS = {
    "local": "Local Build",
    "nightly": "Nightly Build",
    "beta": "Beta",
    "rc": "Release Candidate",
    "ga": "Production Stable",
}


def sdk_os_name() -> str:
    if sys.platform == "darwin":
        return "osx"
    if sys.platform.startswith("win"):
        return "win32"
    return "linux"


def default_install_location(config: TiConfig | None = None) -> Path:
    configured = config.get("sdk.defaultInstallLocation") if config is not None else None
    if configured:
        return expand(configured)
    if sys.platform == "darwin":
        return expand("~/Library/Application Support/Titanium")
    if sys.platform.startswith("win"):
        return expand(os.environ.get("ProgramData", "C:\\ProgramData"), "Titanium")
    return expand("~/.titanium")


def sdk_type(name: str) -> str:
    lowered = name.lower()
    if lowered.endswith(".ga"):
        return "ga"
    if ".rc" in lowered:
        return "rc"
    if ".beta" in lowered:
        return "beta"
    if re.search(r"\.v\d{8,}", lowered):
        return "nightly"
    return "local"


@dataclass
class SDKInfo:
    name: str
    version: str
    path: Path
    type: str
    manifest: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "path": str(self.path),
            "type": self.type,
            "typeLabel": TYPE_LABELS[self.type],
            "githash": self.manifest.get("githash"),
            "timestamp": self.manifest.get("timestamp"),
        }


@dataclass
class SDKReport:
    install_path: Path
    sdk_paths: List[Path]
    sdks: Dict[str, SDKInfo]
    latest: str | None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "installPath": str(self.install_path),
            "sdkPaths": [str(path) for path in self.sdk_paths],
            "latest": self.latest,
            "sdks": {name: sdk.to_dict() for name, sdk in self.sdks.items()},
        }


def _read_sdk(sdk_dir: Path) -> SDKInfo | None:
    manifest_file = sdk_dir / "manifest.json"
    if not manifest_file.is_file():
        return None
    try:
        manifest = json.loads(manifest_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOG.warning("Skipping SDK %s: %s", sdk_dir, exc)
        return None
    if not isinstance(manifest, dict):
        return None
    name = str(manifest.get("name") or sdk_dir.name)
    ver = str(manifest.get("version") or version.format(name, 3, 3))
    if not version.is_valid(ver):
        return None
    return SDKInfo(name=name, version=ver, path=sdk_dir, type=sdk_type(name), manifest=manifest)


class SDKService:
    def __init__(self, config: TiConfig) -> None:
        self._config = config

    def search_paths(self) -> List[Path]:
        configured = self._config.get("paths.sdks")
        extra = arrayify(configured, True) if isinstance(configured, list) else []
        paths = [default_install_location(self._config), *(expand(str(item)) for item in extra)]
        return unique(paths)

    def detect(self, search_paths: Iterable[Path] | None = None) -> SDKReport:
        paths = list(search_paths) if search_paths is not None else self.search_paths()
        sdks: Dict[str, SDKInfo] = {}
        os_name = sdk_os_name()
        for location in paths:
            for root in (location / "mobilesdk" / os_name, location):
                if not root.is_dir():
                    continue
                for sdk_dir in sorted(root.iterdir()):
                    if not sdk_dir.is_dir():
                        continue
                    info = _read_sdk(sdk_dir)
                    if info is not None and info.name not in sdks:
                        trace(LOG, "Detected SDK %s at %s", info.name, sdk_dir)
                        sdks[info.name] = info
        ordered = version.sort_versions(sdks)
        return SDKReport(
            install_path=paths[0] if paths else default_install_location(self._config),
            sdk_paths=paths,
            sdks={name: sdks[name] for name in ordered},
            latest=ordered[-1] if ordered else None,
        )

    def select(self, report: SDKReport, requested: str | None = None, tiapp_version: str | None = None) -> SDKInfo | None:
        """Pick the SDK named explicitly, then by the project, then the latest."""

        name = requested or tiapp_version or "latest"
        if name == "latest":
            name = report.latest or ""
        return report.sdks.get(name)
