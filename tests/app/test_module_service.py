from __future__ import annotations

import zipfile
from pathlib import Path

from ticli.app.modules import ModuleService, detect_modules, read_manifest
from ticli.domain.config import TiConfig


def _module(root: Path, platform: str, module_id: str, version: str, manifest_platform: str | None = None, **extra) -> Path:
    module_dir = root / platform / module_id / version
    module_dir.mkdir(parents=True)
    lines = ["# this is a comment", f"moduleid: {module_id}", f"version: {version}"]
    lines.append(f"platform: {manifest_platform or platform}")
    lines.extend(f"{key}: {value}" for key, value in extra.items())
    (module_dir / "manifest").write_text("\n".join(lines) + "\n")
    return module_dir


def test_read_manifest_types(tmp_path: Path) -> None:
    path = tmp_path / "manifest"
    path.write_text("# comment\napiversion: 4\narchitectures: arm64 x86_64\nname: thing: with colon\nnoise\n")
    manifest = read_manifest(path)
    assert manifest == {"apiversion": 4, "architectures": ["arm64", "x86_64"], "name": "thing: with colon"}


def test_detect_builds_tree_and_aliases_ios(tmp_path: Path) -> None:
    modules = tmp_path / "modules"
    _module(modules, "android", "ti.map", "5.0.0", apiversion="4")
    _module(modules, "iphone", "ti.map", "6.0.0")
    _module(modules, "iphone", "ti.facebook", "10.0.0", manifest_platform="ipad")

    tree = detect_modules(modules)

    assert set(tree) == {"android", "ios"}
    assert set(tree["ios"]) == {"ti.map", "ti.facebook"}
    android = tree["android"]["ti.map"]["5.0.0"]
    assert android["platform"] == ["android"]
    assert android["manifest"]["apiversion"] == 4
    assert android["modulePath"].endswith("5.0.0")


def test_detect_skips_os_dirs_ignored_dirs_and_bad_versions(tmp_path: Path) -> None:
    modules = tmp_path / "modules"
    _module(modules, "osx", "ti.desktop", "1.0.0")
    _module(modules, ".git", "ti.hidden", "1.0.0")
    _module(modules, "android", "ti.bad", "not-a-version")
    no_platform = modules / "android" / "ti.noplatform" / "1.0.0"
    no_platform.mkdir(parents=True)
    (no_platform / "manifest").write_text("moduleid: ti.noplatform\nversion: 1.0.0\n")

    assert detect_modules(modules) == {}


def test_detect_extracts_module_zips(tmp_path: Path) -> None:
    root = tmp_path / "Titanium"
    root.mkdir()
    archive = root / "ti.map-android-5.0.0.zip"
    with zipfile.ZipFile(archive, "w") as bundle:
        bundle.writestr("modules/android/ti.map/5.0.0/manifest", "moduleid: ti.map\nversion: 5.0.0\nplatform: android\n")

    tree = detect_modules(root / "modules")

    assert "5.0.0" in tree["android"]["ti.map"]
    assert not archive.exists()


def test_missing_directory_is_empty(tmp_path: Path) -> None:
    assert detect_modules(tmp_path / "nowhere" / "modules") == {}


def test_service_scopes(tmp_path: Path) -> None:
    project = tmp_path / "project"
    configured = tmp_path / "configured"
    install = tmp_path / "Titanium"
    _module(project / "modules", "android", "ti.project", "1.0.0")
    _module(configured, "android", "ti.configured", "1.0.0")
    _module(install / "modules", "android", "ti.global", "1.0.0")
    service = ModuleService(TiConfig({"paths": {"modules": [str(configured)]}}))

    results = service.detect(service.search_paths(project, install))

    assert list(results["project"]["android"]) == ["ti.project"]
    assert list(results["config"]["android"]) == ["ti.configured"]
    assert list(results["global"]["android"]) == ["ti.global"]
