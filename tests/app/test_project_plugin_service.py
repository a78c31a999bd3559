from __future__ import annotations

import json
from pathlib import Path

from ticli.app.project_plugins import PluginService, detect_plugins
from ticli.domain.config import TiConfig


def test_versioned_and_legacy_plugins(tmp_path: Path) -> None:
    plugins = tmp_path / "plugins"
    (plugins / "ti.alloy" / "1.0.0" / "hooks").mkdir(parents=True)
    (plugins / "legacy").mkdir(parents=True)
    (plugins / "legacy" / "plugin.py").write_text("def compile(config): pass\n")
    (plugins / "npm-style").mkdir()
    (plugins / "npm-style" / "package.json").write_text(json.dumps({"version": "2.1.0"}))
    (plugins / "empty").mkdir()

    tree = detect_plugins(plugins)

    assert set(tree) == {"ti.alloy", "legacy", "npm-style"}
    assert tree["ti.alloy"]["1.0.0"]["legacy"] is False
    assert tree["legacy"]["-"]["legacy"] is True
    assert tree["npm-style"]["2.1.0"]["pluginPath"] == str(plugins / "npm-style")


def test_service_project_and_global(tmp_path: Path) -> None:
    project = tmp_path / "project"
    (project / "plugins" / "local" / "1.0.0" / "hooks").mkdir(parents=True)
    global_dir = tmp_path / "global"
    (global_dir / "shared" / "2.0.0" / "hooks").mkdir(parents=True)
    service = PluginService(TiConfig({"paths": {"plugins": [str(global_dir)]}}))

    results = service.detect(project)

    assert list(results["project"]) == ["local"]
    assert list(results["global"]) == ["shared"]
    assert "project" not in service.detect(None)
