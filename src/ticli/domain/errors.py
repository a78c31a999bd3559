"""Error hierarchy shared by the CLI, the bridge and the config layer."""

from __future__ import annotations

from typing import Any, Mapping


class TiError(Exception):
    """User-facing error. ``after`` is an optional hint printed below the message."""

    def __init__(self, message: str, *, after: str | None = None, exit_code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.after = after
        self.exit_code = exit_code


class ConfigError(TiError):
    """Raised when the user config file cannot be read, validated or written."""


class ProjectConfigError(TiError):
    """Raised when a project's ``ti.config.yml`` or ``tiapp.xml`` is invalid."""


class DaemonError(Exception):
    """Error response returned by the daemon for a request."""

    def __init__(self, message: str, status: int | None = None, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} ({self.status})"
        return self.message


class DaemonConnectionError(DaemonError):
    """The daemon could not be reached, even after an attempt to start it."""


class PluginBrokenError(DaemonError):
    """The daemon knows the Titanium plugin but its CLI service does not answer."""

    def __init__(self, message: str, info: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.info = dict(info or {})

    def __str__(self) -> str:
        return self.message


class PluginRegistrationError(DaemonError):
    """Registering the Titanium plugin with the daemon failed."""

    def __str__(self) -> str:
        return self.message
