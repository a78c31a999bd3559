"""Small list helpers used when merging config values."""

from __future__ import annotations

import math
from typing import Any, Iterable


def _is_falsey(value: Any) -> bool:
    if value is None or value is False or value == "":
        return True
    return isinstance(value, float) and math.isnan(value)


def arrayify(value: Any, remove_falsey: bool = False) -> list[Any]:
    """Return ``value`` as a list; ``None`` becomes ``[]``, sets and tuples are expanded."""

    if value is None:
        items: list[Any] = []
    elif isinstance(value, list):
        items = value
    elif isinstance(value, (set, frozenset, tuple)):
        items = list(value)
    else:
        items = [value]
    if remove_falsey:
        return [item for item in items if not _is_falsey(item)]
    return items


def unique(items: Iterable[Any] | None) -> list[Any]:
    """Drop ``None`` and duplicates, keeping first-seen order."""

    result: list[Any] = []
    if not isinstance(items, (list, tuple)):
        return result
    for item in items:
        if item is not None and item not in result:
            result.append(item)
    return result
