"""Collects environment metadata for `ti info`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ticli import __version__
from ticli.app.modules.service import ModuleService
from ticli.app.sdk.service import SDKService
from ticli.domain.bridge import PluginDescriptor
from ticli.domain.config import TiConfig
from ticli.settings import RuntimeSettings


@dataclass
class InfoPayload:
    data: Dict[str, Any]


class InfoService:
    """Aggregates CLI, daemon, SDK and module data."""

    def __init__(self, settings: RuntimeSettings, config: TiConfig) -> None:
        self._settings = settings
        self._config = config

    def collect(self, plugin: PluginDescriptor | None = None) -> InfoPayload:
        sdk_report = SDKService(self._config).detect()
        module_service = ModuleService(self._config)
        modules = module_service.detect(module_service.search_paths(None, sdk_report.install_path))
        module_counts = {
            scope: sum(len(versions) for platform in tree.values() for versions in platform.values())
            for scope, tree in modules.items()
        }
        payload: Dict[str, Any] = {
            "cli": {
                "version": __version__,
                "home": str(self._settings.home_dir),
                "configFile": str(self._config.path or self._settings.config_file),
            },
            "daemon": {
                "host": self._config.get("daemon.host"),
                "port": self._config.get("daemon.port"),
                "plugin": None
                if plugin is None
                else {"name": plugin.name, "version": plugin.version, "path": str(plugin.path)},
            },
            "titanium": {
                "installPath": str(sdk_report.install_path),
                "latest": sdk_report.latest,
                "sdks": sorted(sdk_report.sdks),
            },
            "modules": module_counts,
        }
        return InfoPayload(payload)
