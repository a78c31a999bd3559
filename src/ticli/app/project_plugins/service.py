"""Detects Titanium CLI plugins (build hooks) in project and global scopes."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ticli.domain.config import TiConfig
from ticli.utils import version
from ticli.utils.arrays import arrayify
from ticli.utils.paths import expand

LOG = logging.getLogger("ti.cli.hooks")

PluginTree = Dict[str, Dict[str, Dict[str, Any]]]


def _looks_like_plugin(path: Path) -> bool:
    return (path / "hooks").is_dir() or (path / "package.json").is_file() or (path / "plugin.py").is_file()


def _package_version(path: Path) -> str | None:
    package = path / "package.json"
    if not package.is_file():
        return None
    try:
        data = json.loads(package.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOG.warning("Ignoring unreadable %s: %s", package, exc)
        return None
    value = data.get("version") if isinstance(data, dict) else None
    return str(value) if value else None


def detect_plugins(plugins_dir: Path) -> PluginTree:
    """``name -> version -> {pluginPath, legacy}`` for one plugins directory."""

    tree: PluginTree = {}
    if not plugins_dir.is_dir():
        return tree
    for plugin_dir in sorted(plugins_dir.iterdir()):
        if not plugin_dir.is_dir() or plugin_dir.name.startswith("."):
            continue
        versions = [child for child in sorted(plugin_dir.iterdir()) if child.is_dir() and version.is_valid(child.name)]
        found = tree.setdefault(plugin_dir.name, {})
        for version_dir in versions:
            if _looks_like_plugin(version_dir):
                found[version_dir.name] = {
                    "pluginPath": str(version_dir),
                    "legacy": (version_dir / "plugin.py").is_file(),
                }
        if _looks_like_plugin(plugin_dir):
            ver = _package_version(plugin_dir) or "-"
            found.setdefault(ver, {"pluginPath": str(plugin_dir), "legacy": True})
        if not found:
            del tree[plugin_dir.name]
    return tree


class PluginService:
    def __init__(self, config: TiConfig) -> None:
        self._config = config

    def detect(self, project_dir: Path | None = None) -> Dict[str, PluginTree]:
        results: Dict[str, PluginTree] = {}
        if project_dir is not None:
            results["project"] = detect_plugins(project_dir / "plugins")
        configured = self._config.get("paths.plugins")
        global_tree: PluginTree = {}
        for item in arrayify(configured, True) if isinstance(configured, list) else []:
            for name, versions in detect_plugins(expand(str(item))).items():
                global_tree.setdefault(name, {}).update(versions)
        results["global"] = global_tree
        return results
