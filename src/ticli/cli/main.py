#!/usr/bin/env python3
"""Entry point for the ``ti`` / ``titanium`` CLI.

Built-in commands run locally. Anything else is forwarded verbatim to the
Titanium plugin running inside the appcd daemon.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import shlex
import sys
import time
from collections import deque
from pathlib import Path
from typing import Any, Collection

from ticli import __version__
from ticli.adapters.config_file import load_config
from ticli.adapters.daemon_client import WebSocketDaemonClient
from ticli.app.auth import AuthService
from ticli.app.bridge import Bridge, BridgeContext, load_plugin_descriptor
from ticli.app.config import ConfigCommandService
from ticli.app.info import InfoService
from ticli.app.modules import ModuleService
from ticli.app.project_plugins import PluginService
from ticli.app.sdk import SDKService, default_install_location
from ticli.app.sdk.service import TYPE_LABELS
from ticli.app.setup import SetupService
from ticli.app.status import StatusService
from ticli.domain.config import TiConfig
from ticli.domain.errors import (
    DaemonConnectionError,
    DaemonError,
    PluginBrokenError,
    PluginRegistrationError,
    TiError,
)
from ticli.domain.project import find_project_dir
from ticli.plugins import PluginContext
from ticli.plugins.loader import Registry, load_plugins
from ticli.ports.daemon import DaemonClient
from ticli.settings import SETTINGS
from ticli.utils.arrays import arrayify
from ticli.utils.columns import columns
from ticli.utils.logger import configure_logging
from ticli.utils.suggest import suggest
from ticli.utils import telemetry

LOG = logging.getLogger("ti.cli")

HELP_OVERVIEW = """Titanium command-line interface.

Built-in commands manage the local configuration, SDKs, modules and plugins.
Every other command (build, clean, create, project, ...) is handled by the
Titanium plugin running in the appcd daemon.
"""

BUILTIN_COMMANDS = (
    "commands",
    "config",
    "exec",
    "info",
    "login",
    "logout",
    "module",
    "plugin",
    "sdk",
    "setup",
    "status",
    "telemetry",
    "version",
)

VALUE_FLAGS = {"--log-level", "--config-file"}
SWITCH_FLAGS = {"--quiet", "--no-colors", "--no-prompt"}
CONFIG_SWITCHES = {"-a", "--append", "-r", "--remove", "--json"}


def _load_config(args: argparse.Namespace) -> TiConfig:
    config = getattr(args, "config", None)
    if config is None:
        config = load_config(SETTINGS.config_file, getattr(args, "config_file", None))
        args.config = config
    return config


def _build_bridge(config: TiConfig) -> Bridge:
    try:
        plugin = load_plugin_descriptor(config.get("daemon.pluginPath") or None)
    except (OSError, ValueError) as exc:
        raise TiError(
            f"Unable to load the Titanium appcd plugin: {exc}",
            after='Set "daemon.pluginPath" to the directory holding the plugin\'s package.json',
        ) from exc

    def factory(context: BridgeContext) -> DaemonClient:
        return WebSocketDaemonClient(
            host=str(config.get("daemon.host") or "127.0.0.1"),
            port=int(config.get("daemon.port") or 1732),
            user_agent=context.user_agent,
            start_command=_start_command(config.get("daemon.command")),
            start_timeout=float(config.get("daemon.startTimeout") or 10),
        )

    return Bridge(BridgeContext(plugin=plugin, client_factory=factory, settings=SETTINGS))


def _start_command(value: Any) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    return [str(part) for part in arrayify(value, True)]


def _plugin_context() -> PluginContext:
    return PluginContext(settings=SETTINGS, open_bridge=lambda args: _build_bridge(_load_config(args)))


def _prompt_enabled(args: argparse.Namespace, config: TiConfig) -> bool:
    return not args.no_prompt and bool(config.get("cli.prompt", True)) and sys.stdin.isatty()


def _project_dir(path_arg: str | None) -> Path | None:
    start = Path(path_arg).expanduser() if path_arg else Path.cwd()
    return find_project_dir(start)


def _print_chunk(chunk: Any) -> None:
    if isinstance(chunk, str):
        sys.stdout.write(chunk if chunk.endswith("\n") else chunk + "\n")
    else:
        print(json.dumps(chunk, ensure_ascii=False))
    sys.stdout.flush()


def _version_cmd(args: argparse.Namespace) -> int:
    if args.json:
        print(json.dumps({"version": __version__}))
    else:
        print(__version__)
    return 0


def _config_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    service = ConfigCommandService(config)
    result = service.execute(args.key, args.value, append=args.append, remove=args.remove)
    if args.json:
        print(json.dumps(result.payload, indent=2, ensure_ascii=False))
    else:
        for line in result.lines:
            print(line)
    return 0


def _print_module_tree(title: str, tree: dict[str, Any]) -> None:
    print(title)
    if not tree:
        print("  No modules found")
        print()
        return
    for platform in sorted(tree):
        print(f"  {platform}")
        for module_id in sorted(tree[platform]):
            versions = tree[platform][module_id]
            print(f"    {module_id}")
            for ver in sorted(versions):
                print(f"      {ver}  {versions[ver]['modulePath']}")
    print()


def _module_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    project_dir = _project_dir(args.project_dir)
    install_location = default_install_location(config)
    service = ModuleService(config)
    results = service.detect(service.search_paths(project_dir, install_location))
    if args.output == "json":
        print(json.dumps(results, indent=2, ensure_ascii=False))
        return 0
    titles = {"project": "Project Modules", "config": "Configured Path Modules", "global": "Global Modules"}
    for scope, tree in results.items():
        _print_module_tree(titles.get(scope, scope), tree)
    return 0


def _plugin_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    project_dir = _project_dir(args.project_dir)
    results = PluginService(config).detect(project_dir)
    if args.output == "json":
        print(json.dumps(results, indent=2, ensure_ascii=False))
        return 0
    titles = {"project": "Project Plugins", "global": "Global Plugins"}
    for scope, tree in results.items():
        print(titles.get(scope, scope))
        if not tree:
            print(f"  No {scope} plugins found")
        for name in sorted(tree):
            print(f"  {name}")
            for ver, entry in sorted(tree[name].items()):
                legacy = " (legacy)" if entry["legacy"] else ""
                print(f"    {ver}{legacy} {entry['pluginPath']}")
        print()
    return 0


def _sdk_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    report = SDKService(config).detect()
    if args.output == "json":
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return 0
    print(f"SDK Install Locations:\n  {report.install_path}")
    for path in report.sdk_paths[1:]:
        print(f"  {path}")
    print()
    if not report.sdks:
        print("No Titanium SDKs found")
        return 0
    print("Installed SDKs:")
    width = max(len(name) for name in report.sdks)
    for name, sdk in reversed(list(report.sdks.items())):
        marker = " [latest]" if name == report.latest else ""
        print(f"  {name.ljust(width)}  {sdk.version:<10} {TYPE_LABELS[sdk.type]:<18} {sdk.path}{marker}")
    return 0


def _info_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    try:
        plugin = load_plugin_descriptor(config.get("daemon.pluginPath") or None)
    except (OSError, ValueError) as exc:
        LOG.warning("Unable to load the Titanium appcd plugin: %s", exc)
        plugin = None
    payload = InfoService(SETTINGS, config).collect(plugin).data
    if args.json:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0
    _print_info_summary(payload)
    return 0


def _print_info_summary(payload: dict[str, Any]) -> None:
    cli = payload["cli"]
    daemon = payload["daemon"]
    titanium = payload["titanium"]
    print("Titanium CLI")
    print(f"  Version        {cli['version']}")
    print(f"  Config file    {cli['configFile']}")
    print()
    print("appcd")
    print(f"  Endpoint       {daemon['host']}:{daemon['port']}")
    plugin = daemon.get("plugin")
    if plugin:
        print(f"  Plugin         {plugin['name']}@{plugin['version']} ({plugin['path']})")
    else:
        print("  Plugin         not found")
    print()
    print("Titanium SDKs")
    print(f"  Install path   {titanium['installPath']}")
    print(f"  Latest         {titanium['latest'] or 'none'}")
    for name in titanium["sdks"]:
        print(f"  - {name}")
    print()
    print("Modules")
    for scope, count in payload["modules"].items():
        print(f"  {scope.ljust(14)} {count}")


def _status_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    start = Path(args.project_dir).expanduser() if args.project_dir else Path.cwd()
    report = StatusService(config).collect(start, sdk=args.sdk)
    if args.output == "json":
        print(json.dumps(report.data, indent=2, ensure_ascii=False))
    else:
        for line in report.lines():
            print(line)
    return 0


def _setup_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    result = SetupService(config).run(
        name=args.name,
        email=args.email,
        locale=args.locale,
        sdk_path=args.sdk_path,
        workspace=args.workspace,
    )
    for key, value in result.changed.items():
        print(f"{key} = {json.dumps(value)}")
    print(f"Configuration saved to {result.path}")
    return 0


def _login_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    username = args.username
    password = args.password
    if _prompt_enabled(args, config):
        if not username:
            default = config.get("user.email") or ""
            answer = input(f"Username{f' [{default}]' if default else ''}: ").strip()
            username = answer or default
        if not password:
            password = getpass.getpass("Password: ")
    service = AuthService(_build_bridge(config), config)
    asyncio.run(service.login(username, password, _print_chunk))
    return 0


def _logout_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    service = AuthService(_build_bridge(config), config)
    asyncio.run(service.logout(_print_chunk))
    return 0


def _commands_cmd(args: argparse.Namespace) -> int:
    config = _load_config(args)
    schema = asyncio.run(_build_bridge(config).schema())
    commands = schema.get("commands") or {}
    names = sorted(commands)
    if args.json:
        print(json.dumps(names))
        return 0
    if not names:
        print("The Titanium plugin did not publish any commands")
        return 0
    print(columns(names, "  ", int(config.get("cli.width") or 80)))
    return 0


def _exec_cmd(args: argparse.Namespace) -> int:
    argv = list(args.argv)
    if not argv:
        raise TiError("Missing command to run")
    config = _load_config(args)
    bridge = _build_bridge(config)
    try:
        asyncio.run(bridge.exec(argv, _print_chunk, cwd=os.getcwd(), env=dict(os.environ)))
    except (DaemonConnectionError, PluginBrokenError, PluginRegistrationError):
        raise
    except DaemonError as err:
        hint = suggest(argv[0], [name for name in BUILTIN_COMMANDS if name != "exec"])
        if not hint:
            raise
        raise TiError(str(err), after=hint.rstrip()) from err
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            events = list(deque(telemetry.iter_events(SETTINGS), maxlen=recent))
        else:
            events = list(telemetry.iter_events(SETTINGS))
        print(json.dumps(telemetry.summarize(events), indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry.clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        for evt in deque(telemetry.iter_events(SETTINGS), maxlen=args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def _add_output(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output", choices=["report", "json"], default="report", help="Output format")
    parser.add_argument("--json", dest="output", action="store_const", const="json", help="Shorthand for --output json")


def build_parser(registry: Registry | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ti",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--log-level", choices=["trace", "debug", "info", "warn", "error"], help="Minimum log level")
    parser.add_argument("--quiet", action="store_true", help="Suppress all log output")
    parser.add_argument("--no-colors", action="store_true", help="Disable colored log output")
    parser.add_argument("--no-prompt", action="store_true", help="Never prompt for missing values")
    parser.add_argument("--config-file", help="Use this config file instead of ~/.titanium/config.json")

    sub = parser.add_subparsers(dest="command")

    version_cmd = sub.add_parser("version", help="Print the CLI version")
    version_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    version_cmd.set_defaults(func=_version_cmd)

    config_cmd = sub.add_parser("config", help="Get and set config options")
    config_cmd.add_argument("key", nargs="?", help="Config key (dotted path)")
    config_cmd.add_argument("value", nargs="*", help="Value(s) to store")
    mode = config_cmd.add_mutually_exclusive_group()
    mode.add_argument("-a", "--append", action="store_true", help="Append the values to a paths.* list")
    mode.add_argument("-r", "--remove", action="store_true", help="Remove the key or the values from a paths.* list")
    config_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    config_cmd.set_defaults(func=_config_cmd)

    module_cmd = sub.add_parser("module", help="List installed Titanium modules")
    module_cmd.add_argument("subcommand", nargs="?", choices=["list"], default="list")
    module_cmd.add_argument("--project-dir", help="Project to inspect (default: current directory)")
    _add_output(module_cmd)
    module_cmd.set_defaults(func=_module_cmd)

    plugin_cmd = sub.add_parser("plugin", help="List installed Titanium CLI plugins")
    plugin_cmd.add_argument("subcommand", nargs="?", choices=["list"], default="list")
    plugin_cmd.add_argument("--project-dir", help="Project to inspect (default: current directory)")
    _add_output(plugin_cmd)
    plugin_cmd.set_defaults(func=_plugin_cmd)

    sdk_cmd = sub.add_parser("sdk", help="List installed Titanium SDKs")
    sdk_cmd.add_argument("subcommand", nargs="?", choices=["list"], default="list")
    _add_output(sdk_cmd)
    sdk_cmd.set_defaults(func=_sdk_cmd)

    info_cmd = sub.add_parser("info", help="Show CLI, daemon, SDK and module information")
    info_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    info_cmd.set_defaults(func=_info_cmd)

    status_cmd = sub.add_parser("status", help="Show session and project status")
    status_cmd.add_argument("project_dir", nargs="?", help="Project directory (default: current directory)")
    status_cmd.add_argument("--sdk", help="Titanium SDK version to select")
    _add_output(status_cmd)
    status_cmd.set_defaults(func=_status_cmd)

    setup_cmd = sub.add_parser("setup", help="Store common settings in the user config")
    setup_cmd.add_argument("--name", help="Your name")
    setup_cmd.add_argument("--email", help="Your email address")
    setup_cmd.add_argument("--locale", help="Preferred locale, e.g. en_US")
    setup_cmd.add_argument("--sdk-path", help="Titanium SDK install location")
    setup_cmd.add_argument("--workspace", help="Default workspace directory for new projects")
    setup_cmd.set_defaults(func=_setup_cmd)

    login_cmd = sub.add_parser("login", help="Log in through the Titanium daemon plugin")
    login_cmd.add_argument("username", nargs="?", help="User to log in as")
    login_cmd.add_argument("--password", help="Password (prompted when omitted)")
    login_cmd.set_defaults(func=_login_cmd)

    logout_cmd = sub.add_parser("logout", help="Log out through the Titanium daemon plugin")
    logout_cmd.set_defaults(func=_logout_cmd)

    commands_cmd = sub.add_parser("commands", help="List the commands provided by the daemon plugin")
    commands_cmd.add_argument("--json", action="store_true", help="Emit machine-readable output")
    commands_cmd.set_defaults(func=_commands_cmd)

    exec_cmd = sub.add_parser("exec", help="Run a daemon-provided command")
    exec_cmd.add_argument("argv", nargs=argparse.REMAINDER, help="Command and arguments")
    exec_cmd.set_defaults(func=_exec_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)
    telemetry_report = telemetry_sub.add_parser("report", help="Summarize recorded events")
    telemetry_report.add_argument("--recent", type=int, default=0, help="Only include the last N events")
    telemetry_report.set_defaults(func=_telemetry_cmd)
    telemetry_tail = telemetry_sub.add_parser("tail", help="Print the last events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.set_defaults(func=_telemetry_cmd)
    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Delete the telemetry log")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    context = _plugin_context()
    if registry is None:
        registry = load_plugins(context, BUILTIN_COMMANDS)
    for command in registry:
        plugin_parser = sub.add_parser(command.name, help=command.help)
        handler = command.builder(plugin_parser, context)

        def _plugin_dispatch(ns: argparse.Namespace, plugin_handler=handler) -> int:
            return plugin_handler(ns)

        plugin_parser.set_defaults(func=_plugin_dispatch)

    return parser


def _preprocess_argv(argv: list[str], commands: Collection[str]) -> list[str]:
    """Route unknown commands to ``exec`` and hoist global flags in front of built-ins."""

    head: list[str] = []
    index = 0
    while index < len(argv) and argv[index].startswith("-"):
        token = argv[index]
        head.append(token)
        if token in VALUE_FLAGS and index + 1 < len(argv):
            head.append(argv[index + 1])
            index += 1
        index += 1
    rest = argv[index:]
    if not rest:
        return head
    if rest[0] not in commands:
        return [*head, "exec", *rest]

    hoisted: list[str] = []
    remaining = [rest[0]]
    position = 1
    while position < len(rest):
        token = rest[position]
        name = token.split("=", 1)[0]
        if token == "--":
            remaining.extend(rest[position:])
            break
        if name in SWITCH_FLAGS:
            hoisted.append(token)
        elif name in VALUE_FLAGS:
            hoisted.append(token)
            if "=" not in token and position + 1 < len(rest):
                position += 1
                hoisted.append(rest[position])
        else:
            remaining.append(token)
        position += 1
    if remaining[0] == "config":
        # argparse cannot resume "value" positionals once a switch was seen
        switches = [token for token in remaining[1:] if token in CONFIG_SWITCHES]
        remaining = [remaining[0], *switches, *(token for token in remaining[1:] if token not in CONFIG_SWITCHES)]
    return [*head, *hoisted, *remaining]


def _report_error(args: argparse.Namespace, message: str, after: str | None) -> None:
    if getattr(args, "json", False) or getattr(args, "output", None) == "json":
        payload = {"success": False, "error": message}
        if after:
            payload["after"] = after
        print(json.dumps(payload, indent=2, ensure_ascii=False), file=sys.stderr)
        return
    LOG.error(message)
    if after:
        print(after, file=sys.stderr)


def _configure_logging(args: argparse.Namespace) -> None:
    level = args.log_level
    colors = not args.no_colors and sys.stderr.isatty()
    config = getattr(args, "config", None)
    if config is not None:
        level = level or config.get("cli.logLevel")
        colors = colors and bool(config.get("cli.colors", True))
    configure_logging(level, quiet=args.quiet, colors=colors)


def main(argv: list[str] | None = None) -> int:
    registry = load_plugins(_plugin_context(), BUILTIN_COMMANDS)
    parser = build_parser(registry)
    raw_args = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(_preprocess_argv(list(raw_args), {*BUILTIN_COMMANDS, *registry.names()}))
    _configure_logging(args)
    if getattr(args, "func", None) is None:
        parser.print_help()
        return 0

    command = args.command
    track = command != "telemetry"
    started = time.perf_counter()
    try:
        if command != "version":
            _load_config(args)
            _configure_logging(args)
        if track:
            telemetry.record(SETTINGS, "command.run", status="start", component="cli", payload={"command": command})
        code = args.func(args)
    except TiError as exc:
        _report_error(args, exc.message, exc.after)
        code = exc.exit_code
    except PluginBrokenError as exc:
        _report_error(args, exc.message, None)
        if exc.info:
            LOG.debug("Plugin status: %s", json.dumps(exc.info))
        code = 1
    except DaemonError as exc:
        _report_error(args, str(exc), None)
        code = 1
    except KeyboardInterrupt:
        code = 130

    if track:
        telemetry.record(
            SETTINGS,
            "command.run",
            status="success" if code == 0 else "error",
            level="info" if code == 0 else "error",
            component="cli",
            duration_ms=(time.perf_counter() - started) * 1000,
            payload={"command": command, "exitCode": code},
        )
    return code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
