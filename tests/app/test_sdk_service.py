from __future__ import annotations

import json
from pathlib import Path

import pytest

from ticli.app.sdk import SDKService, default_install_location
from ticli.app.sdk.service import sdk_os_name, sdk_type
from ticli.domain.config import TiConfig


def _install_sdk(location: Path, name: str, **manifest) -> Path:
    sdk_dir = location / "mobilesdk" / sdk_os_name() / name
    sdk_dir.mkdir(parents=True)
    payload = {"name": name, "version": name.rsplit(".", 1)[0] if name[-1].isalpha() else name, **manifest}
    (sdk_dir / "manifest.json").write_text(json.dumps(payload))
    return sdk_dir


@pytest.fixture()
def install_location(tmp_path: Path) -> Path:
    return tmp_path / "Titanium"


@pytest.fixture()
def config(install_location: Path) -> TiConfig:
    return TiConfig({"sdk": {"defaultInstallLocation": str(install_location)}})


def test_default_install_location_honours_config(config: TiConfig, install_location: Path) -> None:
    assert default_install_location(config) == install_location


def test_detect_sorts_and_picks_latest(config: TiConfig, install_location: Path) -> None:
    _install_sdk(install_location, "12.2.0.GA", githash="abc")
    _install_sdk(install_location, "9.3.2.GA")
    _install_sdk(install_location, "12.3.0.RC")

    report = SDKService(config).detect()

    assert list(report.sdks) == ["9.3.2.GA", "12.2.0.GA", "12.3.0.RC"]
    assert report.latest == "12.3.0.RC"
    assert report.sdks["12.2.0.GA"].type == "ga"
    assert report.sdks["12.2.0.GA"].to_dict()["githash"] == "abc"
    assert report.install_path == install_location


def test_detect_includes_configured_paths_and_skips_junk(tmp_path: Path, config: TiConfig, install_location: Path) -> None:
    extra = tmp_path / "extra"
    _install_sdk(extra, "13.0.0.v20240101000000")
    broken = install_location / "mobilesdk" / sdk_os_name() / "broken"
    broken.mkdir(parents=True)
    (broken / "manifest.json").write_text("{oops")
    config.set("paths.sdks", [str(extra)])

    report = SDKService(config).detect()

    assert list(report.sdks) == ["13.0.0.v20240101000000"]
    assert report.sdks["13.0.0.v20240101000000"].type == "nightly"
    assert extra in report.sdk_paths


def test_select_prefers_explicit_then_project_then_latest(config: TiConfig, install_location: Path) -> None:
    _install_sdk(install_location, "12.2.0.GA")
    _install_sdk(install_location, "12.3.0.GA")
    service = SDKService(config)
    report = service.detect()

    assert service.select(report).name == "12.3.0.GA"
    assert service.select(report, tiapp_version="12.2.0.GA").name == "12.2.0.GA"
    assert service.select(report, "12.3.0.GA", "12.2.0.GA").name == "12.3.0.GA"
    assert service.select(report, "1.0.0.GA") is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("12.2.0.GA", "ga"),
        ("12.2.0.RC", "rc"),
        ("12.2.0.Beta", "beta"),
        ("12.2.0.v20240101120000", "nightly"),
        ("12.2.0", "local"),
    ],
)
def test_sdk_type(name: str, expected: str) -> None:
    assert sdk_type(name) == expected
