"""Loads command plugins and collects the subcommands they contribute."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Collection, Dict, Iterable, Iterator

from ticli.plugins import ParserBuilder, PluginContext, iter_entry_points

LOG = logging.getLogger("ti.cli.plugins")


@dataclass(frozen=True)
class PluginCommand:
    name: str
    help: str
    builder: ParserBuilder
    source: str


class Registry:
    """Plugin commands by name. Built-in command names are reserved."""

    def __init__(self, reserved: Collection[str] = ()) -> None:
        self._reserved = frozenset(reserved)
        self._commands: Dict[str, PluginCommand] = {}
        self._source = "<unknown>"

    def add_command(self, name: str, help_text: str, builder: ParserBuilder) -> None:
        if name in self._reserved:
            raise ValueError(f'Plugin command "{name}" from {self._source} conflicts with a built-in command')
        existing = self._commands.get(name)
        if existing is not None:
            raise ValueError(f'Plugin command "{name}" from {self._source} is already provided by {existing.source}')
        self._commands[name] = PluginCommand(name=name, help=help_text, builder=builder, source=self._source)

    def register_from(self, source: str, plugin: Any, context: PluginContext) -> None:
        register = getattr(plugin, "register", None)
        if not callable(register):
            raise TypeError(f"Plugin {source} does not provide register()")
        self._source = source
        try:
            register(self, context)
        finally:
            self._source = "<unknown>"

    def names(self) -> list[str]:
        return sorted(self._commands)

    def __iter__(self) -> Iterator[PluginCommand]:
        return iter(self._commands[name] for name in self.names())

    def __contains__(self, name: object) -> bool:
        return name in self._commands


def load_plugins(
    context: PluginContext,
    reserved: Collection[str] = (),
    entry_points: Callable[[], Iterable[Any]] = iter_entry_points,
) -> Registry:
    """Load every advertised plugin; a plugin that fails is reported and skipped."""

    registry = Registry(reserved)
    for entry_point in entry_points():
        try:
            registry.register_from(entry_point.name, entry_point.load(), context)
        except Exception as exc:  # noqa: BLE001
            LOG.warning("Skipping plugin %s: %s", entry_point.name, exc)
    return registry
