"""Extra ``ti`` subcommands contributed by installed packages.

A package advertises a plugin under the ``ticli.plugins`` entry-point group.
The entry point resolves to an object with a ``register(registry, context)``
callable which adds commands through ``registry.add_command``.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from importlib import metadata
from typing import TYPE_CHECKING, Callable, Iterable, Protocol

from ticli.settings import RuntimeSettings

if TYPE_CHECKING:
    from ticli.app.bridge import Bridge

ENTRY_POINT_GROUP = "ticli.plugins"

CommandHandler = Callable[[argparse.Namespace], int]
ParserBuilder = Callable[[argparse.ArgumentParser, "PluginContext"], CommandHandler]


@dataclass(frozen=True)
class PluginContext:
    settings: RuntimeSettings
    # builds a bridge honouring the invocation's --config-file
    open_bridge: Callable[[argparse.Namespace], "Bridge"] | None = None


class CommandRegistry(Protocol):  # pragma: no cover
    def add_command(self, name: str, help_text: str, builder: ParserBuilder) -> None:
        ...


class CommandPlugin(Protocol):  # pragma: no cover
    def register(self, registry: CommandRegistry, context: PluginContext) -> None:
        ...


def iter_entry_points(group: str = ENTRY_POINT_GROUP) -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=group)
