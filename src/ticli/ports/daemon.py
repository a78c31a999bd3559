"""Port definitions for the background daemon transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Mapping

from ticli.domain.bridge import ResponseMessage


class DaemonClient(ABC):
    """Duplex request/response channel to the local daemon.

    One instance backs one request; the bridge never reuses a client after
    ``disconnect``.
    """

    @abstractmethod
    async def connect(self, *, start_daemon: bool = False) -> None:
        """Open the connection, starting the daemon first when asked to."""

    @abstractmethod
    def request(self, path: str, data: Mapping[str, Any] | None = None) -> AsyncIterator[ResponseMessage]:
        """Send a request and iterate its response messages.

        Error responses raise ``DaemonError``. Iteration stops when the
        connection closes.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection. Safe to call more than once."""
