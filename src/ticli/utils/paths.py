"""Path expansion helpers."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

_HOME_RE = re.compile(r"^~([\\/].*)?$")
_WIN_ENV_RE = re.compile(r"%([^%]*)%")


def expand(*segments: str | os.PathLike[str]) -> Path:
    """Join ``segments`` into an absolute path, expanding ``~`` (and ``%VAR%`` on Windows)."""

    if not segments:
        return Path.cwd()
    parts = [os.fspath(segment) for segment in segments]
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or str(Path.home())
    parts[0] = _HOME_RE.sub(lambda m: home + (m.group(1) or ""), parts[0])
    joined = os.path.join(*parts)
    if sys.platform.startswith("win"):
        joined = _WIN_ENV_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), joined)
    return Path(os.path.abspath(joined))
