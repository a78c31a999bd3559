from ticli.app.config.service import ConfigCommandService, ConfigResult

__all__ = ["ConfigCommandService", "ConfigResult"]
