"""Version helpers for SDK and module versions.

Titanium versions can carry a fourth, non-numeric segment
(``12.2.0.GA``, ``3.0.0.v20130101``). Comparisons normalise every version to
three numeric segments first; range checks go through ``packaging``.
"""

from __future__ import annotations

import functools
import re
from typing import Iterable

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:\.(\w+))?", re.IGNORECASE)
_X_UPPER_RE = re.compile(r"(<=?\d+(\.\d+)*?)\.x")
_X_LOWER_RE = re.compile(r"(>=?\d+(\.\d+)*?)\.x")


def format(ver: object, min_segments: int | None = None, max_segments: int | None = None, chop_dash: bool = False) -> str:  # noqa: A001
    text = str(ver or 0)
    if chop_dash:
        text = text.split("-", 1)[0]
    parts = text.split(".")
    if min_segments is not None:
        while len(parts) < min_segments:
            parts.append("0")
    if max_segments is not None:
        parts = parts[:max_segments]
    return ".".join(parts)


def _parse(ver: object) -> Version:
    return Version(format(ver, 3, 3, chop_dash=True))


def compare(a: str, b: str) -> int:
    """``cmp``-style comparison; the tag segment breaks ties, untagged sorts first."""

    ma = _VERSION_RE.match(format(a, 3).lower())
    mb = _VERSION_RE.match(format(b, 3).lower())
    if ma is None or mb is None:
        raise ValueError(f"Invalid version: {a if ma is None else b}")
    for left, right in zip(ma.groups()[:3], mb.groups()[:3]):
        diff = int(left) - int(right)
        if diff:
            return diff
    atag, btag = ma.group(4), mb.group(4)
    if atag and btag:
        return (atag > btag) - (atag < btag)
    if atag:
        return 1
    if btag:
        return -1
    return 0


def eq(v1: str, v2: str) -> bool:
    return _parse(v1) == _parse(v2)


def lt(v1: str, v2: str) -> bool:
    return _parse(v1) < _parse(v2)


def lte(v1: str, v2: str) -> bool:
    return _parse(v1) <= _parse(v2)


def gt(v1: str, v2: str) -> bool:
    return _parse(v1) > _parse(v2)


def gte(v1: str, v2: str) -> bool:
    return _parse(v1) >= _parse(v2)


def is_valid(ver: object) -> bool:
    candidate = format(ver, 3, 3)
    if not re.fullmatch(r"\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?", candidate):
        return False
    try:
        _parse(candidate)
    except InvalidVersion:
        return False
    return True


def sort_versions(versions: Iterable[str]) -> list[str]:
    return sorted(versions, key=functools.cmp_to_key(compare))


def parse_min(ranges: str) -> str | None:
    """Lowest version mentioned in a ``||``-separated list of ranges."""

    minimum: str | None = None
    for part in re.split(r"\s*\|\|\s*", ranges):
        candidate = re.sub(r"[^.\d]", "", part.split(" ")[0]).rstrip(".")
        if not candidate:
            continue
        if minimum is None or lt(candidate, minimum):
            minimum = candidate
    return minimum


def parse_max(ranges: str, allow_x: bool = False) -> str | None:
    """Highest version mentioned in a ``||``-separated list of ranges.

    A leading ``<`` is kept when the maximum comes from an exclusive bound.
    """

    maximum: str | None = None
    exclusive = False
    for part in re.split(r"\s*\|\|\s*", ranges):
        tokens = part.split(" ")
        token = tokens[0] if len(tokens) == 1 else tokens[1]
        if not allow_x:
            token = re.sub(r"\.x$", "", token, flags=re.IGNORECASE)
        candidate = re.sub(r"[^.xX\d]" if allow_x else r"[^.\d]", "", token).rstrip(".")
        if not candidate:
            continue
        comparable = candidate.lower().replace("x", "99999999") if allow_x else candidate
        current = maximum.lower().replace("x", "99999999") if (allow_x and maximum) else maximum
        if maximum is None or gt(comparable, current):
            exclusive = bool(re.match(r"^<[^=]\d", token))
            maximum = candidate
    if maximum is None:
        return None
    return ("<" if exclusive else "") + maximum


def _to_specifier(expr: str) -> SpecifierSet:
    expr = _X_UPPER_RE.sub(r"\1.99999999", expr)
    expr = _X_LOWER_RE.sub(r"\1.0", expr)
    clauses: list[str] = []
    for token in expr.split():
        if token[0] in "^~" and token[1:2].isdigit():
            base = format(token[1:], 3, 3).split(".")
            major, minor = int(base[0]), int(base[1])
            upper = f"{major + 1}.0.0" if token[0] == "^" else f"{major}.{minor + 1}.0"
            clauses.extend([f">={'.'.join(base)}", f"<{upper}"])
        elif token[0].isdigit():
            if token.lower().endswith(".x"):
                clauses.append(f"=={token[:-2]}.*")
            else:
                clauses.append(f"=={token}")
        else:
            clauses.append(token)
    return SpecifierSet(",".join(clauses))


def satisfies(ver: str, ranges: str, maybe: bool = False) -> bool | str:
    """Check ``ver`` against npm-style ``||`` ranges (``>=1.0 <2.0 || 3.x``).

    With ``maybe`` set, returns ``"maybe"`` when the version is newer than the
    upper bound of every range.
    """

    target = _parse(ver)
    if ranges.strip() == "*":
        return True
    parts = re.split(r"\s*\|\|\s*", ranges.strip())
    above_all = True
    for part in parts:
        if part == "*":
            return True
        try:
            spec = _to_specifier(part)
        except InvalidSpecifier:
            continue
        if spec.contains(target, prereleases=True):
            return True
        uppers = [s for s in spec if s.operator in ("<", "<=")]
        if not uppers or any(target <= _parse(s.version) if s.operator == "<=" else target < _parse(s.version) for s in uppers):
            above_all = False
    if maybe and above_all:
        return "maybe"
    return False
