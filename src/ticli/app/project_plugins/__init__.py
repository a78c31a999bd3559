from ticli.app.project_plugins.service import PluginService, detect_plugins

__all__ = ["PluginService", "detect_plugins"]
