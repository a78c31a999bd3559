"""Render a list of short strings as terminal columns."""

from __future__ import annotations

import math
import shutil
from typing import Sequence


def columns(items: Sequence[str], margin: str = "", max_width: int | None = 80) -> str:
    if not items:
        return ""
    longest = max(len(item) for item in items) + 6
    current = shutil.get_terminal_size((80, 24)).columns
    width = min(max_width, current) if max_width else current
    cols = max(1, (width - len(margin)) // longest)
    rows = math.ceil(len(items) / cols)

    lines = []
    for i in range(rows):
        line = margin
        for j in range(0, len(items), rows):
            if i + j < len(items):
                item = items[i + j]
                line += item
                if i + j + rows < len(items):
                    line += " " * (longest - len(item))
        lines.append(line)
    return "\n".join(lines)
