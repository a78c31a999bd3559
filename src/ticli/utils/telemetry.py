"""Local JSONL telemetry for CLI commands and daemon requests (opt-out).

Every process gets its own session id so ``ti telemetry tail`` output can be
grouped by invocation. The log is rotated to ``telemetry.jsonl.1`` once it
grows past ``MAX_LOG_BYTES``.
"""

from __future__ import annotations

import json
import os
import time
import uuid
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Iterator

import jsonschema

from ticli.settings import RuntimeSettings

TELEMETRY_ENV = "TI_CLI_TELEMETRY"
LOG_FILENAME = "telemetry.jsonl"
MAX_LOG_BYTES = 1024 * 1024
SESSION_ID = uuid.uuid4().hex

_DISABLE_VALUES = {"0", "false", "no", "off"}

_VALIDATOR: jsonschema.Draft202012Validator | None = None


def telemetry_enabled() -> bool:
    return os.getenv(TELEMETRY_ENV, "1").strip().lower() not in _DISABLE_VALUES


def log_path(settings: RuntimeSettings) -> Path:
    return settings.log_dir / LOG_FILENAME


def record(
    settings: RuntimeSettings,
    event: str,
    *,
    payload: dict[str, Any] | None = None,
    level: str = "info",
    status: str | None = None,
    component: str | None = None,
    duration_ms: float | None = None,
) -> None:
    """Append one event. Raises ``ValueError`` for a record the schema rejects."""

    if not telemetry_enabled():
        return
    entry: dict[str, Any] = {
        "ts": time.time(),
        "session": SESSION_ID,
        "cliVersion": settings.cli_version,
        "event": event,
        "level": level,
        "payload": payload or {},
    }
    if status:
        entry["status"] = status
    if component:
        entry["component"] = component
    if duration_ms is not None:
        entry["durationMs"] = round(duration_ms, 3)
    try:
        _validator().validate(entry)
    except jsonschema.ValidationError as exc:
        raise ValueError(f"Invalid telemetry record for {event!r}: {exc.message}") from exc

    path = log_path(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and path.stat().st_size >= MAX_LOG_BYTES:
        os.replace(path, path.with_name(f"{LOG_FILENAME}.1"))
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    path = log_path(settings)
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Counts per event and status, plus the mean duration of timed events."""

    total = 0
    by_event: dict[str, int] = {}
    by_status: dict[str, int] = {}
    durations: dict[str, list[float]] = {}
    for evt in events:
        total += 1
        name = evt.get("event", "unknown")
        by_event[name] = by_event.get(name, 0) + 1
        status = evt.get("status", "unknown")
        by_status[status] = by_status.get(status, 0) + 1
        if isinstance(evt.get("durationMs"), (int, float)):
            durations.setdefault(name, []).append(float(evt["durationMs"]))
    return {
        "total": total,
        "by_event": by_event,
        "by_status": by_status,
        "avg_duration_ms": {name: round(sum(values) / len(values), 3) for name, values in durations.items()},
    }


def clear(settings: RuntimeSettings) -> None:
    path = log_path(settings)
    for candidate in (path, path.with_name(f"{LOG_FILENAME}.1")):
        if candidate.exists():
            candidate.unlink()


def _validator() -> jsonschema.Draft202012Validator:
    global _VALIDATOR
    if _VALIDATOR is None:
        schema = json.loads((resources.files("ticli.resources") / "telemetry.schema.json").read_text(encoding="utf-8"))
        _VALIDATOR = jsonschema.Draft202012Validator(schema)
    return _VALIDATOR
