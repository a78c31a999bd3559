from __future__ import annotations

from ticli.domain.config import TiConfig, coerce_scalar, is_valid_key


def test_defaults_are_present() -> None:
    config = TiConfig()
    assert config.get("daemon.port") == 1732
    assert config.get("cli.logLevel") == "info"
    assert config.get("paths.modules") == []


def test_apply_merges_and_coerces_strings() -> None:
    config = TiConfig({"cli": {"colors": "false", "width": 120}, "user": {"name": " Jane "}})
    assert config.get("cli.colors") is False
    assert config.get("cli.width") == 120
    assert config.get("cli.prompt") is True
    assert config.get("user.name") == "Jane"


def test_apply_copies_lists() -> None:
    source = {"paths": {"sdks": ["/a"]}}
    config = TiConfig(source)
    source["paths"]["sdks"].append("/b")
    assert config.get("paths.sdks") == ["/a"]


def test_get_whole_tree_and_default() -> None:
    config = TiConfig()
    assert config.get() is config.data
    assert config.get("") is config.data
    assert config.get("nope.nothing", "fallback") == "fallback"


def test_set_creates_parents_and_coerces() -> None:
    config = TiConfig()
    config.set("foo.bar.baz", "42")
    config.set("foo.flag", "true")
    config.set("foo.empty", None)
    assert config.get("foo.bar.baz") == 42
    assert config.get("foo.flag") is True
    assert config.get("foo.empty") == ""


def test_set_replaces_scalar_parent() -> None:
    config = TiConfig({"foo": "bar"})
    config.set("foo.child", "x")
    assert config.get("foo") == {"child": "x"}


def test_remove() -> None:
    config = TiConfig({"user": {"email": "a@b.c"}})
    assert config.remove("user.email") is True
    assert config.remove("user.email") is False
    assert config.remove("missing.key") is False
    assert config.has("user")


def test_flatten_with_prefix() -> None:
    config = TiConfig({"user": {"email": "a@b.c", "name": "A"}})
    assert config.flatten("user") == {"user.email": "a@b.c", "user.name": "A"}
    assert config.flatten("daemon.port") == {"daemon.port": 1732}
    assert "cli.width" in config.flatten()


def test_coerce_scalar() -> None:
    assert coerce_scalar("null") is None
    assert coerce_scalar(" -3 ") == -3
    assert coerce_scalar("007") == "007"
    assert coerce_scalar(["a"]) == ["a"]


def test_key_pattern() -> None:
    assert is_valid_key("paths.modules")
    assert is_valid_key("_private.key-name")
    assert not is_valid_key("1abc")
    assert not is_valid_key("a..b")
    assert not is_valid_key("a b")
