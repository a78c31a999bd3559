from __future__ import annotations

import os
from pathlib import Path

import pytest

from ticli.utils.arrays import arrayify, unique
from ticli.utils.columns import columns
from ticli.utils.paths import expand
from ticli.utils.suggest import levenshtein, suggest


def test_arrayify() -> None:
    assert arrayify(None) == []
    assert arrayify("a") == ["a"]
    assert arrayify(("a", "b")) == ["a", "b"]
    assert sorted(arrayify({"a", "b"})) == ["a", "b"]
    assert arrayify([0, "", None, False, "x", float("nan")], remove_falsey=True) == [0, "x"]


def test_unique() -> None:
    assert unique([1, 2, 1, None, 3, 2]) == [1, 2, 3]
    assert unique("abc") == []
    assert unique(None) == []


def test_levenshtein() -> None:
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("same", "same") == 0


def test_suggest() -> None:
    hint = suggest("confg", ["config", "module", "status"])
    assert hint == "Did you mean this?\n    config\n\n"
    assert "module" in suggest("mod", ["config", "module", "status"])
    assert suggest("zzzzzzzz", ["config", "info"]) == ""


def test_columns_layout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ticli.utils.columns.shutil.get_terminal_size", lambda fallback: os.terminal_size((80, 24)))
    rendered = columns(["build", "clean", "create", "project"], "  ", 30)
    lines = rendered.split("\n")
    assert len(lines) == 2
    assert all(line.startswith("  ") for line in lines)
    assert lines[0].split() == ["build", "create"]
    assert columns([]) == ""


def test_expand_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert expand("~") == tmp_path
    assert expand("~/a", "b") == tmp_path / "a" / "b"
    assert expand("/abs/path") == Path(os.path.abspath("/abs/path"))
