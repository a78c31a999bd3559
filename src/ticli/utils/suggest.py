"""'Did you mean' suggestions for mistyped commands."""

from __future__ import annotations

from typing import Iterable


def levenshtein(s: str, t: str) -> int:
    previous = list(range(len(t) + 1))
    for i, sc in enumerate(s, start=1):
        current = [i]
        for j, tc in enumerate(t, start=1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (sc != tc)))
        previous = current
    return previous[-1]


def suggest(value: object, choices: Iterable[str], threshold: int = 3) -> str:
    text = str(value)
    matches = [choice for choice in choices if choice.startswith(text) or levenshtein(text, choice) <= threshold]
    if not matches:
        return ""
    lines = "\n".join(f"    {match}" for match in matches)
    return f"Did you mean this?\n{lines}\n\n"
