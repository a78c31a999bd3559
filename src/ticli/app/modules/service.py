"""Detects Titanium native modules on disk.

Modules live in ``<modules>/<platform>/<moduleid>/<version>/manifest``. Zip
archives dropped next to a ``modules`` directory (``<name>-<platform>-<ver>.zip``)
are extracted and removed before scanning.
"""

from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

from ticli.domain.config import TiConfig
from ticli.utils import version
from ticli.utils.arrays import arrayify
from ticli.utils.logger import trace
from ticli.utils.paths import expand

LOG = logging.getLogger("ti.cli.modules")

PLATFORM_ALIASES = {"ipad": "ios", "iphone": "ios"}
OS_DIRS = re.compile(r"^(osx|win32|linux)$")
ZIP_NAME = re.compile(r"^.+-.+?-.+?\.zip$")
DEFAULT_IGNORE_DIRS = r"^(\.svn|\.git|\.hg|\.?[Cc][Vv][Ss]|\.bzr)$"

ModuleTree = Dict[str, Dict[str, Dict[str, Dict[str, Any]]]]


@dataclass
class DetectedModule:
    version: str
    module_path: Path
    platform: str
    manifest: Dict[str, Any]

    @property
    def module_id(self) -> str | None:
        return self.manifest.get("moduleid")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "modulePath": str(self.module_path),
            "platform": [self.platform],
            "manifest": dict(self.manifest),
        }


def read_manifest(path: Path) -> Dict[str, Any]:
    manifest: Dict[str, Any] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.startswith("#") or ":" not in line:
            continue
        key, _, raw = line.partition(":")
        value: Any = raw.strip()
        if key == "apiversion":
            try:
                value = int(value)
            except ValueError:
                LOG.warning("Invalid apiversion %r in %s", value, path)
        elif key == "architectures":
            value = value.split(" ")
        manifest[key] = value
    return manifest


def unzip_modules(module_root: Path) -> list[Path]:
    """Extract module archives found in ``module_root``; returns the archives installed."""

    installed: list[Path] = []
    if not module_root.is_dir():
        return installed
    for archive in sorted(module_root.iterdir()):
        if not archive.is_file() or not ZIP_NAME.match(archive.name):
            continue
        LOG.info("Installing module: %s", archive.name)
        try:
            with zipfile.ZipFile(archive) as bundle:
                bundle.extractall(module_root)
        except (OSError, zipfile.BadZipFile) as exc:
            LOG.error("Failed to install module: %s", exc)
            continue
        archive.unlink()
        installed.append(archive)
    return installed


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _detect_module(version_dir: Path, platform_dir_name: str) -> DetectedModule | None:
    manifest_file = version_dir / "manifest"
    if not manifest_file.exists():
        return None
    manifest = read_manifest(manifest_file)
    ver = str(manifest.get("version", version_dir.name))
    platform = platform_dir_name.lower()
    if manifest.get("platform"):
        platform = str(manifest["platform"]).strip().lower()
        platform = PLATFORM_ALIASES.get(platform, platform)
        manifest["platform"] = platform
    else:
        # manifest without a platform is not a module
        return None
    if not version.is_valid(ver):
        return None
    return DetectedModule(version=ver, module_path=version_dir, platform=platform, manifest=manifest)


def detect_modules(modules_dir: Path, ignore_dirs: str = DEFAULT_IGNORE_DIRS) -> ModuleTree:
    """Scan one ``modules`` directory into ``platform -> moduleid -> version`` entries."""

    tree: ModuleTree = {}
    if not modules_dir.parent.exists():
        return tree
    unzip_modules(modules_dir.parent)
    if not _is_dir(modules_dir):
        return tree
    trace(LOG, "Detecting modules in %s", modules_dir)
    ignore = re.compile(ignore_dirs)
    for platform_dir in sorted(modules_dir.iterdir()):
        if OS_DIRS.match(platform_dir.name) or ignore.match(platform_dir.name) or not _is_dir(platform_dir):
            continue
        for module_dir in sorted(platform_dir.iterdir()):
            if ignore.match(module_dir.name) or not _is_dir(module_dir):
                continue
            for version_dir in sorted(module_dir.iterdir()):
                if ignore.match(version_dir.name) or not _is_dir(version_dir):
                    continue
                module = _detect_module(version_dir, platform_dir.name)
                if module is None or not module.module_id:
                    continue
                trace(LOG, "Detected %s module: %s @ %s", module.platform, module.module_id, version_dir)
                tree.setdefault(module.platform, {}).setdefault(module.module_id, {})[module.version] = module.to_dict()
    return tree


def _merge(into: ModuleTree, other: ModuleTree) -> None:
    for platform, modules in other.items():
        for module_id, versions in modules.items():
            into.setdefault(platform, {}).setdefault(module_id, {}).update(versions)


class ModuleService:
    def __init__(self, config: TiConfig) -> None:
        self._config = config

    def search_paths(self, project_dir: Path | None, install_location: Path) -> Dict[str, list[Path]]:
        scopes: Dict[str, list[Path]] = {}
        if project_dir is not None:
            scopes["project"] = [project_dir / "modules"]
        configured = self._config.get("paths.modules")
        scopes["config"] = [expand(str(item)) for item in arrayify(configured, True)] if isinstance(configured, list) else []
        scopes["global"] = [install_location / "modules"]
        return scopes

    def detect(self, search_paths: Mapping[str, Iterable[Path]]) -> Dict[str, ModuleTree]:
        ignore_dirs = self._config.get("cli.ignoreDirs") or DEFAULT_IGNORE_DIRS
        results: Dict[str, ModuleTree] = {}
        for scope, paths in search_paths.items():
            results[scope] = {}
            for path in paths:
                _merge(results[scope], detect_modules(path, ignore_dirs))
        return results
